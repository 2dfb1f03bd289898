"""
Static registry of installable skills.

The plan compiler embeds this list in its instruction so the model can
prescribe skills together with the command that installs them.
"""

from __future__ import annotations

from typing import List, Optional

from skillflow.skills.models import RegistrySkill

SKILL_REGISTRY: List[RegistrySkill] = [
    RegistrySkill(
        name="Web Researcher",
        id="research-skills/web-researcher",
        description="Deep web research and analysis capability.",
        tags=["research", "web", "analysis"],
        command="npx --yes skills add vercel-labs/agent-skills/web-browser",
    ),
    RegistrySkill(
        name="Data Analyst",
        id="analysis-skills/data-analyst",
        description="Analyze data sets and provide insights.",
        tags=["analysis", "data", "processing"],
        command="npx --yes skills add anthropics/skills/csv-analysis",
    ),
    RegistrySkill(
        name="Content Writer",
        id="writing-skills/content-writer",
        description="Generate high-quality written content.",
        tags=["writing", "content", "markdown"],
        command="npx --yes skills add coreyhaines31/marketingskills/copywriting",
    ),
    RegistrySkill(
        name="Software Engineer",
        id="coding-skills/software-engineer",
        description="Write and review code.",
        tags=["coding", "development", "engineering"],
        command="npx --yes skills add vercel-labs/agent-skills/vercel-react-best-practices",
    ),
    RegistrySkill(
        name="SEO Auditor",
        id="coreyhaines31/marketingskills/seo-audit",
        description="Perform comprehensive SEO audits on websites.",
        tags=["marketing", "seo", "audit"],
        command="npx --yes skills add coreyhaines31/marketingskills/seo-audit",
    ),
    RegistrySkill(
        name="PDF Tools",
        id="anthropics/skills/pdf",
        description="Capabilities for reading and manipulating PDF documents.",
        tags=["document", "pdf", "tools"],
        command="npx --yes skills add anthropics/skills/pdf",
    ),
    RegistrySkill(
        name="Browser Use",
        id="browser-use/browser-use/browser-use",
        description="Control a web browser to automate tasks.",
        tags=["automation", "browser", "testing"],
        command="npx --yes skills add browser-use/browser-use/browser-use",
    ),
]


def find_registry_skill(
    name: str,
    registry: Optional[List[RegistrySkill]] = None,
) -> Optional[RegistrySkill]:
    """Look up a registry entry by exact name."""
    for entry in registry if registry is not None else SKILL_REGISTRY:
        if entry.name == name:
            return entry
    return None
