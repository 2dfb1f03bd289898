"""
Skill Catalog — installed-skill listing and install-by-command.

Two implementations:
    LocalSkillCatalog    — skills are JSON files in a directory; installs
                           run the registry command as a subprocess there.
    InMemorySkillCatalog — list-backed, with a pluggable installer.
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from logging import getLogger
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from pydantic import ValidationError

from skillflow.config.skillflow_config import get_skillflow_config
from skillflow.errors import CapabilityInstallError
from skillflow.skills.models import Skill

logger = getLogger(__name__)

Installer = Callable[[str], Awaitable[Optional[Skill]]]


class SkillCatalog(ABC):
    """Read installed skills and install new ones."""

    @abstractmethod
    async def list_installed(self) -> List[Skill]:
        """Return installed skills in catalog order."""

    @abstractmethod
    async def install(self, command: str) -> None:
        """Run an install command.

        Raises:
            CapabilityInstallError: If the command fails.
        """

    async def find_by_name(self, name: str) -> Optional[Skill]:
        for skill in await self.list_installed():
            if skill.name == name:
                return skill
        return None


# ============================================================================
# Directory-backed catalog
# ============================================================================


class LocalSkillCatalog(SkillCatalog):
    """Installed skills are ``*.json`` files under ``skills_dir``."""

    def __init__(self, skills_dir: Path, install_timeout: Optional[float] = None) -> None:
        self._dir = Path(skills_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._timeout = install_timeout
        logger.info(f"LocalSkillCatalog initialized at {self._dir}")

    async def list_installed(self) -> List[Skill]:
        # Blocking file reads run off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.list_installed_sync)

    def list_installed_sync(self) -> List[Skill]:
        """Read every skill file, skipping malformed ones."""
        skills: List[Skill] = []
        for path in sorted(self._dir.glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                skills.append(Skill.model_validate(data))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning(f"Skipping malformed skill file {path.name}: {e}")
        return skills

    def add(self, skill: Skill) -> None:
        """Register a skill directly (e.g. one created in the editor)."""
        path = self._dir / f"{_safe_name(skill.id)}.json"
        path.write_text(skill.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"Skill saved: {skill.name} ({skill.id})")

    async def install(self, command: str) -> None:
        logger.info(f"Installing skill: {command}")
        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                cwd=str(self._dir),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CapabilityInstallError(command, str(e)) from e

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise CapabilityInstallError(
                command, f"timed out after {self._timeout}s"
            ) from e

        if proc.returncode != 0:
            reason = stderr.decode("utf-8", errors="replace").strip()[:500]
            raise CapabilityInstallError(
                command, f"exit code {proc.returncode}: {reason or 'no output'}"
            )
        logger.info(f"Skill install finished: {command}")


# ============================================================================
# In-memory catalog
# ============================================================================


class InMemorySkillCatalog(SkillCatalog):
    """List-backed catalog.

    ``installer`` receives the command and may return the newly
    installed skill, which is appended to the catalog. Without an
    installer every install fails.
    """

    def __init__(
        self,
        skills: Optional[List[Skill]] = None,
        installer: Optional[Installer] = None,
    ) -> None:
        self._skills: List[Skill] = list(skills or [])
        self._installer = installer
        self.install_calls: List[str] = []

    async def list_installed(self) -> List[Skill]:
        return list(self._skills)

    def add(self, skill: Skill) -> None:
        self._skills.append(skill)

    async def install(self, command: str) -> None:
        self.install_calls.append(command)
        if self._installer is None:
            raise CapabilityInstallError(command, "no installer configured")
        try:
            installed = await self._installer(command)
        except CapabilityInstallError:
            raise
        except Exception as e:
            raise CapabilityInstallError(command, str(e)) from e
        if installed is not None:
            self._skills.append(installed)


def _safe_name(value: str) -> str:
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in value)


# ── Singleton ──

_catalog_instance: Optional[LocalSkillCatalog] = None


def get_skill_catalog() -> LocalSkillCatalog:
    """Return the global LocalSkillCatalog built from SkillFlowConfig."""
    global _catalog_instance
    if _catalog_instance is None:
        config = get_skillflow_config()
        _catalog_instance = LocalSkillCatalog(
            Path(config.skills_dir), install_timeout=config.install_timeout_or_none,
        )
    return _catalog_instance
