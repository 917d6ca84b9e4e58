"""Stage handlers of the generation pipeline.

``StageRunner.run_stage`` executes the single handler bound to a status. Each
handler reads the live state, performs its LLM calls one at a time and ends by
transitioning the store to the next status. Every awaited call is followed by
a generation check; a result that belongs to a reset or replaced run is
discarded by raising ``RunSupersededError``.
"""

from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from studio.agents.coder import CoderAgent
from studio.agents.designer import DesignerAgent
from studio.agents.manager import ManagerAgent
from studio.agents.patcher import PatcherAgent
from studio.agents.planner import PlannerAgent
from studio.agents.plugin_agent import PluginAgent
from studio.agents.reviewer import ReviewerAgent
from studio.core.errors import RunSupersededError, StagePreconditionError
from studio.core.plugins import PluginDispatcher
from studio.core.state import (
    PLACEHOLDER_CONTENT,
    AgentStatus,
    PluginHook,
    ReviewComment,
)
from studio.core.store import ProjectStore
from studio.llm.adapter import BaseLLMAdapter
from studio.settings import Settings, get_settings
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")

STAGE_NAMES: Dict[AgentStatus, str] = {
    AgentStatus.MANAGING: "Manager",
    AgentStatus.PLANNING: "Planner",
    AgentStatus.DESIGNING: "Designer",
    AgentStatus.ARCHITECTING: "Architect",
    AgentStatus.CODING: "Coder",
    AgentStatus.REVIEWING: "Reviewer",
    AgentStatus.COMPILING: "Compiler",
    AgentStatus.HEALING: "Patcher",
}


class StageAgents:
    """The agent set one runner talks to."""

    def __init__(
        self,
        manager: Optional[ManagerAgent] = None,
        planner: Optional[PlannerAgent] = None,
        designer: Optional[DesignerAgent] = None,
        coder: Optional[CoderAgent] = None,
        reviewer: Optional[ReviewerAgent] = None,
        patcher: Optional[PatcherAgent] = None,
        plugin: Optional[PluginAgent] = None,
    ) -> None:
        self.manager = manager or ManagerAgent()
        self.planner = planner or PlannerAgent()
        self.designer = designer or DesignerAgent()
        self.coder = coder or CoderAgent()
        self.reviewer = reviewer or ReviewerAgent()
        self.patcher = patcher or PatcherAgent()
        self.plugin = plugin or PluginAgent()

    @classmethod
    def from_adapter(cls, adapter: BaseLLMAdapter) -> "StageAgents":
        return cls(
            manager=ManagerAgent(adapter),
            planner=PlannerAgent(adapter),
            designer=DesignerAgent(adapter),
            coder=CoderAgent(adapter),
            reviewer=ReviewerAgent(adapter),
            patcher=PatcherAgent(adapter),
            plugin=PluginAgent(adapter),
        )


class StageRunner:
    def __init__(
        self,
        store: ProjectStore,
        agents: Optional[StageAgents] = None,
        *,
        dispatcher: Optional[PluginDispatcher] = None,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._store = store
        self._agents = agents or StageAgents()
        self._dispatcher = dispatcher or PluginDispatcher(store, self._agents.plugin)
        self._settings = settings or get_settings()
        self._rng = rng or random.Random()
        # post-coding plugin comments wait here until the review report exists
        self._buffered_comments: Dict[int, List[ReviewComment]] = {}
        self._handlers: Dict[AgentStatus, Callable[[int], Awaitable[None]]] = {
            AgentStatus.MANAGING: self._manage,
            AgentStatus.PLANNING: self._plan,
            AgentStatus.DESIGNING: self._design,
            AgentStatus.ARCHITECTING: self._architect,
            AgentStatus.CODING: self._code,
            AgentStatus.REVIEWING: self._review,
            AgentStatus.COMPILING: self._compile,
            AgentStatus.HEALING: self._heal,
        }

    @property
    def store(self) -> ProjectStore:
        return self._store

    @property
    def dispatcher(self) -> PluginDispatcher:
        return self._dispatcher

    async def run_stage(self, status: AgentStatus, generation: int) -> AgentStatus:
        """Run the handler bound to ``status`` and return the status it left behind.

        Stage failures move the run to ``error``; they are not re-raised.
        """
        handler = self._handlers.get(status)
        if handler is None:
            raise ValueError(f"No stage handler for status '{status.value}'")
        self._ensure_current(generation)
        if self._store.status != status:
            # Status moved under us (rollback or reset); this run is over
            raise RunSupersededError(generation)

        stage = STAGE_NAMES[status]
        LOGGER.info("Stage %s started (run %d)", stage, generation)
        try:
            await handler(generation)
        except RunSupersededError:
            self._buffered_comments.pop(generation, None)
            raise
        except Exception as exc:
            if not self._store.is_current(generation):
                raise RunSupersededError(generation) from exc
            LOGGER.error("Stage %s failed (run %d): %s", stage, generation, exc)
            self._buffered_comments.pop(generation, None)
            await self._store.fail(stage, exc)
        LOGGER.info("Stage %s finished (run %d) -> %s", stage, generation, self._store.status.value)
        return self._store.status

    # ----------------------------------------------------------------- helpers

    def _ensure_current(self, generation: int) -> None:
        if not self._store.is_current(generation):
            raise RunSupersededError(generation)

    async def _call(self, generation: int, awaitable: Awaitable[T]) -> T:
        timeout = self._settings.stage_timeout_seconds
        try:
            result = await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise TimeoutError(f"LLM call timed out after {timeout:g}s") from exc
        self._ensure_current(generation)
        return result

    @staticmethod
    def _require(status: AgentStatus, **values: Any) -> None:
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise StagePreconditionError(status.value, missing)

    async def _log(self, status: AgentStatus, msg: str) -> None:
        await self._store.log(msg, agent=STAGE_NAMES[status].lower())

    # ---------------------------------------------------------------- handlers

    async def _manage(self, generation: int) -> None:
        state = self._store.working_state()
        self._require(AgentStatus.MANAGING, user_prompt=state.user_prompt)
        self._buffered_comments.clear()
        await self._log(AgentStatus.MANAGING, "Manager: Generating Software Requirement Specification (SRS)...")
        srs = await self._call(generation, self._agents.manager.write_srs(state.user_prompt))
        await self._store.transition(AgentStatus.PLANNING, srs=srs, log="Manager: Technical blueprint completed.")

    async def _plan(self, generation: int) -> None:
        state = self._store.working_state()
        self._require(AgentStatus.PLANNING, srs=state.srs)
        await self._log(AgentStatus.PLANNING, "Planner: Mapping file system based on SRS...")
        plan = await self._call(generation, self._agents.planner.plan(state.srs))
        await self._store.transition(
            AgentStatus.DESIGNING, plan=plan, log=f"Planner: Scaffolded {len(plan.files)} modules."
        )

    async def _design(self, generation: int) -> None:
        state = self._store.working_state()
        self._require(AgentStatus.DESIGNING, plan=state.plan)
        await self._log(AgentStatus.DESIGNING, "Designer: Constructing atomic design system...")
        design = await self._call(
            generation, self._agents.designer.design(state.user_prompt, state.plan.features)
        )
        await self._store.transition(
            AgentStatus.ARCHITECTING,
            design_system=design,
            log=f'Designer: Branding finalized for "{design.metadata.app_name}".',
        )

    async def _architect(self, generation: int) -> None:
        state = self._store.working_state()
        self._require(AgentStatus.ARCHITECTING, plan=state.plan)
        await self._log(AgentStatus.ARCHITECTING, "Architect: Generating virtual file structures...")
        file_system = {path: PLACEHOLDER_CONTENT for path in state.plan.files}
        self._ensure_current(generation)
        await self._store.transition(
            AgentStatus.CODING,
            file_system=file_system,
            current_file=next(iter(file_system), None),
            log=f"Architect: {len(file_system)} files staged.",
        )

    async def _code(self, generation: int) -> None:
        state = self._store.working_state()
        self._require(AgentStatus.CODING, plan=state.plan, design_system=state.design_system)
        # One file at a time so currentFile stays a single cursor
        for path in list(state.file_system):
            self._ensure_current(generation)
            await self._store.set_current_file(path)
            await self._log(AgentStatus.CODING, f"Coder: Implementing {path}...")
            live = self._store.working_state()
            content = await self._call(
                generation,
                self._agents.coder.write_file(path, live.plan, live.design_system, live.file_system),
            )
            await self._store.write_file(path, content)

        result = await self._dispatcher.run_hook(PluginHook.POST_CODING, generation=generation)
        self._buffered_comments[generation] = list(result.comments)
        await self._store.transition(AgentStatus.REVIEWING, log="Coder: Implementation complete.")

    async def _review(self, generation: int) -> None:
        state = self._store.working_state()
        self._require(AgentStatus.REVIEWING, file_system=state.file_system, design_system=state.design_system)
        await self._log(AgentStatus.REVIEWING, "Reviewer: Auditing quality, accessibility and design fidelity...")
        report = await self._call(
            generation, self._agents.reviewer.review(state.file_system, state.design_system)
        )
        report.comments.extend(self._buffered_comments.pop(generation, []))
        result = await self._dispatcher.run_hook(PluginHook.POST_AUDIT, generation=generation)
        report.comments.extend(result.comments)
        # Manual plugin runs during this run commented on the live review
        report.comments.extend(self._store.review_comments())
        await self._store.transition(
            AgentStatus.COMPILING,
            active_review=report,
            log=f"Reviewer: Audit complete. Score {report.overall_score:g}/100.",
        )

    async def _compile(self, generation: int) -> None:
        await self._log(AgentStatus.COMPILING, "Compiler: Optimizing build artifacts...")
        await asyncio.sleep(self._settings.compile_delay_seconds)
        self._ensure_current(generation)
        if self._should_fail(self._store.iteration_count):
            await self._store.transition(
                AgentStatus.HEALING, log="Compiler Error: Build failed due to inconsistent module resolution."
            )
        else:
            await self._store.transition(AgentStatus.READY, log="Compiler Success: Runtime deployed at :3000.")

    def _should_fail(self, iteration_count: int) -> bool:
        # The ceiling is checked before the draw so healing can never loop
        if iteration_count >= self._settings.max_heal_attempts:
            return False
        return self._rng.random() < self._settings.compile_failure_probability

    async def _heal(self, generation: int) -> None:
        state = self._store.working_state()
        self._require(AgentStatus.HEALING, file_system=state.file_system)
        target = self._settings.healing_target_file
        if target not in state.file_system:
            target = next(iter(state.file_system))
        await self._log(AgentStatus.HEALING, "Patcher: Performing self-healing mutation...")
        content = await self._call(
            generation,
            self._agents.patcher.patch(target, state.file_system[target], self._settings.healing_error),
        )
        file_system = dict(state.file_system)
        file_system[target] = content
        await self._store.transition(
            AgentStatus.COMPILING,
            file_system=file_system,
            current_file=target,
            iteration_count=state.iteration_count + 1,
            log=f"Patcher: {target} patched (attempt {state.iteration_count + 1}).",
        )
