from __future__ import annotations

import asyncio
import random
from typing import Dict, List, Mapping, Optional

from studio.core.state import STAGE_STATUSES, AgentStatus, Resources
from studio.core.store import ProjectStore
from studio.settings import Settings, get_settings
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)

BASE_PROCESSES: List[str] = ["vfs-daemon", "event-bus", "resource-monitor"]

STAGE_PROCESSES: Dict[AgentStatus, List[str]] = {
    AgentStatus.MANAGING: ["llm:manager"],
    AgentStatus.PLANNING: ["llm:planner"],
    AgentStatus.DESIGNING: ["llm:designer", "token-synth"],
    AgentStatus.ARCHITECTING: ["vfs-scaffold"],
    AgentStatus.CODING: ["llm:coder", "tsc --watch"],
    AgentStatus.REVIEWING: ["llm:auditor", "eslint"],
    AgentStatus.COMPILING: ["vite build", "esbuild"],
    AgentStatus.HEALING: ["llm:patcher"],
}

BASE_MEMORY_MB = 48.0
MEMORY_PER_FILE_MB = 2.5
ACTIVE_MEMORY_MB = 64.0
MEMORY_JITTER_MB = 1.5


class ResourceSimulator:
    """Pure tick function for the cosmetic resource panel."""

    def __init__(self, settings: Optional[Settings] = None, rng: Optional[random.Random] = None) -> None:
        self._settings = settings or get_settings()
        self._rng = rng or random.Random()

    def target_cpu(self, status: AgentStatus) -> float:
        if status in STAGE_STATUSES:
            return self._settings.cpu_active_target
        return self._settings.cpu_idle_target

    def tick(self, previous: Resources, status: AgentStatus, file_system: Mapping[str, str]) -> Resources:
        target = self.target_cpu(status)
        # Relaxation with a factor in (0, 1] stays between the old value and the target
        cpu = previous.cpu + (target - previous.cpu) * self._settings.cpu_smoothing
        cpu = max(0.0, min(100.0, cpu))

        memory = BASE_MEMORY_MB + MEMORY_PER_FILE_MB * len(file_system)
        if status in STAGE_STATUSES:
            memory += ACTIVE_MEMORY_MB
        memory += self._rng.uniform(-MEMORY_JITTER_MB, MEMORY_JITTER_MB)

        vfs_bytes = sum(len(content.encode("utf-8")) for content in file_system.values())
        return Resources(
            cpu=round(cpu, 2),
            memory=round(max(0.0, memory), 2),
            vfs_size=round(vfs_bytes / 1024, 2),
            processes=BASE_PROCESSES + STAGE_PROCESSES.get(status, []),
        )


class ResourceTicker:
    """Background task feeding simulator ticks into the store."""

    def __init__(
        self,
        store: ProjectStore,
        simulator: Optional[ResourceSimulator] = None,
        *,
        interval: Optional[float] = None,
    ) -> None:
        self._store = store
        self._simulator = simulator or ResourceSimulator()
        self._interval = interval if interval is not None else get_settings().resource_tick_seconds
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="studio-resource-ticker")

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def tick_once(self) -> Resources:
        resources = self._simulator.tick(self._store.resources, self._store.status, self._store.files())
        await self._store.update_resources(resources)
        return resources

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.tick_once()
            except Exception:
                LOGGER.exception("Resource tick failed")
