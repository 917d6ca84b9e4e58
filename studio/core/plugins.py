from __future__ import annotations

from typing import List, Optional

from studio.agents.plugin_agent import PluginAgent
from studio.core.errors import PluginDisabledError, RunSupersededError, SnapshotModeError, UnknownPluginError
from studio.core.state import NeuralPlugin, PluginHook, PluginResult
from studio.core.store import ProjectStore
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


class PluginDispatcher:
    """Runs installed plugins automatically on a hook or manually on request.

    Plugins run one after another against the current workspace, so a later
    plugin sees the mutations of an earlier one. Mutations are merged into the
    file system by path as soon as each plugin returns.
    """

    def __init__(self, store: ProjectStore, agent: Optional[PluginAgent] = None) -> None:
        self._store = store
        self._agent = agent or PluginAgent()

    def plugins_for(self, hook: PluginHook) -> List[NeuralPlugin]:
        return self._store.enabled_plugins(hook)

    async def run_hook(self, hook: PluginHook, *, generation: Optional[int] = None) -> PluginResult:
        """Dispatch every enabled plugin bound to ``hook``.

        Returns the combined result; mutations are already applied, comments
        are left for the caller to merge into the right review.
        """
        combined = PluginResult()
        plugins = self.plugins_for(hook)
        if not plugins:
            return combined
        LOGGER.info("Dispatching %d %s plugin(s)", len(plugins), hook.value)
        for plugin in plugins:
            result = await self._invoke(plugin, generation)
            combined.comments.extend(result.comments)
            combined.mutations.extend(result.mutations)
        return combined

    async def run_manual(self, plugin_id: str) -> PluginResult:
        """Run one plugin now, independent of the pipeline status."""
        plugin = self._store.find_plugin(plugin_id)
        if plugin is None:
            raise UnknownPluginError(plugin_id)
        if self._store.in_snapshot_mode:
            raise SnapshotModeError("run plugins")
        if not plugin.enabled:
            raise PluginDisabledError(plugin_id)

        generation = self._store.generation
        result = await self._invoke(plugin, generation)
        await self._store.append_review_comments(result.comments, source=plugin.name)
        await self._store.capture_snapshot(f"Manual Run: {plugin.name}")
        return result

    async def _invoke(self, plugin: NeuralPlugin, generation: Optional[int]) -> PluginResult:
        state = self._store.working_state()
        await self._store.log(f"Plugin: {plugin.icon} {plugin.name} running...", agent="plugin")
        result = await self._agent.run(plugin, state.file_system, state.design_system)
        if generation is not None and not self._store.is_current(generation):
            raise RunSupersededError(generation)
        touched = await self._store.apply_mutations(result.mutations, source=plugin.name)
        await self._store.log(
            f"Plugin: {plugin.name} finished ({len(result.comments)} comment(s), {len(touched)} file(s) changed).",
            agent="plugin",
        )
        return result
