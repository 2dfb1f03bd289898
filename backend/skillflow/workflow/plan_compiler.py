"""
Plan Compiler — natural-language goal → validated, dependency-ordered steps.

Stages (one pass per request, not resumable)::

    IDLE → REQUESTING → INSTALLING → RESOLVING → FINALIZED
                  ↘           ↘            ↘
                            FAILED

REQUESTING  Read installed skills, send one instruction to the text
            generator, parse the reply (``InvalidPlanFormatError`` is fatal).
INSTALLING  Install each planned skill not already installed by exact
            name, sequentially in plan order. Failures become warnings.
RESOLVING   Re-read installed skills, bind every step via the resolver
            (``NoCapabilityAvailableError`` is fatal), chain step i to
            step i-1, force the final output filename.

Skills installed before a later failure stay installed.

Usage::

    compiler = PlanCompiler(ChatModelTextGenerator(model), catalog)
    compiled = await compiler.compile("Research X and write a report", "report.md")
    draft = compiled.to_draft(project_id)
"""

from __future__ import annotations

import re
import time
from enum import Enum
from logging import getLogger
from typing import Callable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from skillflow.errors import CompilerBusyError
from skillflow.llm.plan_output import PlanOutput, build_plan_instruction, parse_plan
from skillflow.llm.text_generation import ChatMessage, TextGenerator
from skillflow.skills.catalog import SkillCatalog
from skillflow.skills.models import RegistrySkill, Skill, SkillMatchKind
from skillflow.skills.registry import SKILL_REGISTRY
from skillflow.skills.resolver import resolve_skill
from skillflow.workflow.workflow_model import (
    Step,
    StepConfig,
    StepType,
    Workflow,
    is_flat_filename,
)

logger = getLogger(__name__)


class CompileStage(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    INSTALLING = "installing"
    RESOLVING = "resolving"
    FINALIZED = "finalized"
    FAILED = "failed"


class InstallOutcome(BaseModel):
    name: str
    command: str
    status: str  # "installed" | "skipped" | "failed"
    error: Optional[str] = None


class StepResolution(BaseModel):
    """Which skill a compiled step was bound to, and by which rule."""

    step_id: str
    step_name: str
    requested: str
    skill_id: str
    skill_name: str
    kind: SkillMatchKind


class CompiledWorkflow(BaseModel):
    """Result of a successful compilation."""

    name: str
    description: str = ""
    steps: List[Step]
    warnings: List[str] = Field(default_factory=list)
    installs: List[InstallOutcome] = Field(default_factory=list)
    resolutions: List[StepResolution] = Field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return any(r.kind == SkillMatchKind.FALLBACK for r in self.resolutions)

    def to_draft(self, project_id: str = "") -> Workflow:
        """Wrap the compiled steps in an unsaved draft workflow."""
        draft = Workflow.new_draft(project_id=project_id, name=self.name)
        draft.description = self.description
        draft.steps = [s.model_copy(deep=True) for s in self.steps]
        return draft


StatusCallback = Callable[[CompileStage, str], None]


class PlanCompiler:
    """Turn a free-text goal into a linear, skill-bound step list."""

    def __init__(
        self,
        generator: TextGenerator,
        catalog: SkillCatalog,
        registry: Optional[Sequence[RegistrySkill]] = None,
        status_callback: Optional[StatusCallback] = None,
    ) -> None:
        self._generator = generator
        self._catalog = catalog
        self._registry = list(registry) if registry is not None else list(SKILL_REGISTRY)
        self._status_callback = status_callback
        self._stage = CompileStage.IDLE
        self._busy = False

    @property
    def stage(self) -> CompileStage:
        return self._stage

    @property
    def is_busy(self) -> bool:
        return self._busy

    # ========================================================================
    # Public API
    # ========================================================================

    async def compile(
        self,
        prompt: str,
        output_filename: Optional[str] = None,
    ) -> CompiledWorkflow:
        """Run the full pipeline for one goal.

        Raises:
            ValueError: If ``prompt`` is blank.
            CompilerBusyError: If another compilation is in flight.
            InvalidPlanFormatError: If the plan reply cannot be parsed.
            NoCapabilityAvailableError: If any step cannot be bound.
        """
        if not prompt or not prompt.strip():
            raise ValueError("prompt must not be empty")
        if self._busy:
            raise CompilerBusyError()

        self._busy = True
        self._stage = CompileStage.IDLE
        target = _flatten_filename(output_filename)
        try:
            plan, installed = await self._request_plan(prompt.strip(), target)

            self._set_stage(CompileStage.INSTALLING, "Installing skills...")
            warnings: List[str] = []
            installs = await self._install_skills(plan, installed, warnings)

            self._set_stage(CompileStage.RESOLVING, "Finalizing workflow...")
            refreshed = await self._catalog.list_installed()
            steps, resolutions = self._build_steps(plan, refreshed, target)

            for res in resolutions:
                if res.kind == SkillMatchKind.FALLBACK:
                    warnings.append(
                        f"Step '{res.step_name}' requested skill '{res.requested}' "
                        f"and was bound to fallback skill '{res.skill_name}'"
                    )

            self._set_stage(CompileStage.FINALIZED, "")
            logger.info(
                f"Plan compiled: '{plan.workflow_name}' with {len(steps)} steps, "
                f"{len(warnings)} warnings"
            )
            return CompiledWorkflow(
                name=plan.workflow_name,
                description=plan.description,
                steps=steps,
                warnings=warnings,
                installs=installs,
                resolutions=resolutions,
            )
        except Exception as e:
            self._set_stage(CompileStage.FAILED, str(e))
            logger.error(f"Plan compilation failed: {e}")
            raise
        finally:
            self._busy = False

    # ========================================================================
    # Stages
    # ========================================================================

    async def _request_plan(
        self, prompt: str, target: Optional[str],
    ) -> Tuple[PlanOutput, List[Skill]]:
        self._set_stage(CompileStage.REQUESTING, "Analyzing request...")
        installed = await self._catalog.list_installed()
        instruction = build_plan_instruction(prompt, self._registry, installed, target)
        reply = await self._generator.send([ChatMessage(role="user", content=instruction)])
        plan = parse_plan(reply.content)
        logger.info(
            f"Plan received: '{plan.workflow_name}' "
            f"({len(plan.steps)} steps, {len(plan.skills_to_install)} installs)"
        )
        return plan, installed

    async def _install_skills(
        self,
        plan: PlanOutput,
        installed: Sequence[Skill],
        warnings: List[str],
    ) -> List[InstallOutcome]:
        outcomes: List[InstallOutcome] = []
        installed_names = {s.name for s in installed}

        for entry in plan.skills_to_install:
            if entry.name in installed_names:
                outcomes.append(InstallOutcome(
                    name=entry.name, command=entry.command, status="skipped",
                ))
                continue

            self._set_stage(CompileStage.INSTALLING, f"Installing skill: {entry.name}...")
            try:
                await self._catalog.install(entry.command)
            except Exception as e:
                message = f"Failed to install {entry.name}, continuing: {e}"
                logger.warning(message)
                warnings.append(message)
                outcomes.append(InstallOutcome(
                    name=entry.name, command=entry.command, status="failed", error=str(e),
                ))
                continue

            outcomes.append(InstallOutcome(
                name=entry.name, command=entry.command, status="installed",
            ))
        return outcomes

    def _build_steps(
        self,
        plan: PlanOutput,
        installed: Sequence[Skill],
        target: Optional[str],
    ) -> Tuple[List[Step], List[StepResolution]]:
        stamp = int(time.time() * 1000)
        steps: List[Step] = []
        resolutions: List[StepResolution] = []
        last_index = len(plan.steps) - 1

        for i, planned in enumerate(plan.steps):
            match = resolve_skill(planned.skill_name_ref, installed, step_name=planned.name)

            step_id = f"step_{stamp}_{i}"
            depends_on = [steps[i - 1].id] if i > 0 else []

            output_file = _flatten_filename(planned.output_file) or _default_output(planned.name)
            if i == last_index and target:
                output_file = target

            steps.append(Step(
                id=step_id,
                name=planned.name,
                step_type=StepType.AGENT,
                config=StepConfig(
                    skill_id=match.skill.id,
                    parameters={},
                    output_file=output_file,
                ),
                depends_on=depends_on,
            ))
            resolutions.append(StepResolution(
                step_id=step_id,
                step_name=planned.name,
                requested=planned.skill_name_ref,
                skill_id=match.skill.id,
                skill_name=match.skill.name,
                kind=match.kind,
            ))
        return steps, resolutions

    def _set_stage(self, stage: CompileStage, message: str) -> None:
        self._stage = stage
        if message and stage != CompileStage.FAILED:
            logger.info(f"[{stage.value}] {message}")
        if self._status_callback:
            self._status_callback(stage, message)


def _flatten_filename(name: Optional[str]) -> Optional[str]:
    """Drop any directory part; return None for blank names."""
    if not name or not name.strip():
        return None
    flat = re.split(r"[\\/]", name.strip())[-1]
    return flat if is_flat_filename(flat) else None


def _default_output(step_name: str) -> str:
    safe_name = re.sub(r"[^a-z0-9]", "_", step_name.lower())
    return f"{safe_name}_output.md"
