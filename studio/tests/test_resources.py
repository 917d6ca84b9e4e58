import asyncio
import random

from studio.core.event_bus import EventBus
from studio.core.persistence import MemoryStateStorage
from studio.core.resources import BASE_PROCESSES, ResourceSimulator, ResourceTicker
from studio.core.state import AgentStatus, Resources
from studio.core.store import ProjectStore
from studio.settings import get_settings


def _simulator(seed=7):
    return ResourceSimulator(get_settings(), random.Random(seed))


def test_cpu_converges_to_active_target_without_overshoot():
    settings = get_settings()
    simulator = _simulator()
    resources = Resources()
    previous = 0.0
    for _ in range(40):
        resources = simulator.tick(resources, AgentStatus.CODING, {"src/App.tsx": "x"})
        assert previous <= resources.cpu <= settings.cpu_active_target
        previous = resources.cpu
    assert settings.cpu_active_target - resources.cpu < 0.5


def test_cpu_relaxes_down_to_idle_target():
    settings = get_settings()
    simulator = _simulator()
    resources = Resources(cpu=settings.cpu_active_target)
    for _ in range(40):
        resources = simulator.tick(resources, AgentStatus.READY, {})
        assert resources.cpu >= settings.cpu_idle_target
    assert resources.cpu - settings.cpu_idle_target < 0.5


def test_values_are_never_negative():
    simulator = _simulator(seed=1)
    resources = Resources()
    for status in AgentStatus:
        for _ in range(10):
            resources = simulator.tick(resources, status, {})
            assert resources.cpu >= 0
            assert resources.memory >= 0
            assert resources.vfs_size >= 0


def test_vfs_size_and_processes():
    simulator = _simulator()
    resources = simulator.tick(Resources(), AgentStatus.CODING, {"a.ts": "x" * 2048, "b.ts": "é" * 512})
    assert resources.vfs_size == 3.0
    assert resources.processes[: len(BASE_PROCESSES)] == BASE_PROCESSES
    assert "llm:coder" in resources.processes

    idle = simulator.tick(resources, AgentStatus.IDLE, {})
    assert idle.processes == BASE_PROCESSES


def test_memory_grows_with_files_and_activity():
    simulator = _simulator()
    idle = simulator.tick(Resources(), AgentStatus.IDLE, {})
    busy = simulator.tick(Resources(), AgentStatus.CODING, {f"f{i}.ts": "" for i in range(10)})
    assert busy.memory > idle.memory


def test_ticker_updates_store_without_persisting():
    async def inner():
        storage = MemoryStateStorage()
        store = ProjectStore(storage, key="test", bus=EventBus())
        events = []

        async def collect(event):
            events.append(event.type)

        store.bus.subscribe(collect)
        ticker = ResourceTicker(store, _simulator(), interval=0.01)
        resources = await ticker.tick_once()

        assert store.state.resources == resources
        assert events == ["resources"]
        assert "test" not in storage

        ticker.start()
        assert ticker.running
        await asyncio.sleep(0.05)
        await ticker.stop()
        assert not ticker.running
        assert events.count("resources") > 1

    asyncio.run(inner())
