"""
SkillFlow Configuration.

Controls where workflows and installed skills live on disk,
the default canvas layout spacing, and the skill install timeout.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from skillflow.config.base import BaseConfig, get_config, register_config
from skillflow.config.env_utils import read_env_defaults

_DEFAULT_HOME = Path.home() / ".skillflow"


@register_config
@dataclass
class SkillFlowConfig(BaseConfig):
    """Storage locations, layout spacing, and install behaviour."""

    workflows_dir: str = str(_DEFAULT_HOME / "projects")
    skills_dir: str = str(_DEFAULT_HOME / "skills")
    node_spacing: float = 300.0
    lane_y: float = 100.0
    install_timeout: float = 0.0  # seconds; 0 waits indefinitely
    default_version: str = "1.0.0"

    _ENV_MAP = {
        "workflows_dir": "SKILLFLOW_WORKFLOWS_DIR",
        "skills_dir": "SKILLFLOW_SKILLS_DIR",
        "node_spacing": "SKILLFLOW_NODE_SPACING",
        "lane_y": "SKILLFLOW_LANE_Y",
        "install_timeout": "SKILLFLOW_INSTALL_TIMEOUT",
        "default_version": "SKILLFLOW_DEFAULT_VERSION",
    }

    @classmethod
    def get_default_instance(cls) -> "SkillFlowConfig":
        defaults = read_env_defaults(cls._ENV_MAP, cls.__dataclass_fields__)
        return cls(**defaults)

    @classmethod
    def get_config_name(cls) -> str:
        return "skillflow"

    @classmethod
    def get_display_name(cls) -> str:
        return "SkillFlow"

    @classmethod
    def get_description(cls) -> str:
        return "Workflow storage, skill directory, canvas layout, and install timeout."

    @property
    def install_timeout_or_none(self) -> Optional[float]:
        return self.install_timeout if self.install_timeout > 0 else None


def get_skillflow_config() -> SkillFlowConfig:
    """Return the process-wide SkillFlowConfig."""
    return get_config(SkillFlowConfig.get_config_name())  # type: ignore[return-value]
