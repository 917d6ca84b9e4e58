from __future__ import annotations

import asyncio
from typing import Optional

from studio.core.errors import RunSupersededError
from studio.core.graph import RunState, create_pipeline_graph, recursion_limit
from studio.core.plugins import PluginDispatcher
from studio.core.stages import StageAgents, StageRunner
from studio.core.state import AgentStatus, PluginResult, ProjectState
from studio.core.store import ProjectStore
from studio.settings import get_settings
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Orchestrator:
    """Owns the single in-flight pipeline run for a workspace."""

    def __init__(
        self,
        store: ProjectStore,
        agents: Optional[StageAgents] = None,
        *,
        runner: Optional[StageRunner] = None,
    ) -> None:
        self._store = store
        self._runner = runner or StageRunner(store, agents)
        self._graph = create_pipeline_graph(self._runner)
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def store(self) -> ProjectStore:
        return self._store

    @property
    def runner(self) -> StageRunner:
        return self._runner

    @property
    def dispatcher(self) -> PluginDispatcher:
        return self._runner.dispatcher

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, prompt: str) -> asyncio.Task[None]:
        """Start a run in the background; raises if one is already active."""
        generation = await self._store.start_run(prompt)
        task = asyncio.create_task(self._run_workflow(generation), name=f"studio-run-{generation}")
        self._task = task
        task.add_done_callback(self._clear_task)
        return task

    async def run(self, prompt: str) -> ProjectState:
        """Start a run and wait for it to finish."""
        task = await self.start(prompt)
        await task
        return self._store.state

    async def wait(self) -> None:
        task = self._task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def run_plugin(self, plugin_id: str) -> PluginResult:
        return await self._runner.dispatcher.run_manual(plugin_id)

    async def reset(self) -> None:
        await self._store.reset()
        await self._cancel()

    async def rollback(self, snapshot_id: str) -> None:
        # An unknown id raises here and leaves the active run alone
        await self._store.rollback(snapshot_id)
        await self._cancel()

    async def shutdown(self) -> None:
        await self._cancel()

    def _clear_task(self, task: asyncio.Task[None]) -> None:
        if self._task is task:
            self._task = None

    async def _cancel(self) -> None:
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        LOGGER.info("In-flight run cancelled")

    async def _run_workflow(self, generation: int) -> None:
        settings = get_settings()
        state: RunState = {"generation": generation, "status": AgentStatus.MANAGING.value}
        config = {"recursion_limit": recursion_limit(settings.max_heal_attempts)}
        LOGGER.info("Invoking pipeline graph for run %d", generation)
        try:
            result = await self._graph.ainvoke(state, config=config)
            LOGGER.info("Run %d finished with status %s", generation, result.get("status"))
        except RunSupersededError:
            LOGGER.info("Run %d superseded; late results discarded", generation)
        except asyncio.CancelledError:
            LOGGER.info("Run %d cancelled", generation)
            raise
        except Exception as exc:
            LOGGER.exception("Run %d failed outside a stage: %s", generation, exc)
            if self._store.is_current(generation):
                await self._store.fail("Orchestrator", exc)
