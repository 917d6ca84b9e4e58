import asyncio
import json

import pytest

from studio import settings as settings_module
from studio.agents.coder import CoderAgent
from studio.agents.designer import DesignerAgent
from studio.agents.patcher import PatcherAgent
from studio.agents.planner import PlannerAgent
from studio.agents.plugin_agent import PluginAgent
from studio.agents.reviewer import DEFAULT_SCORE, ReviewerAgent
from studio.core.errors import MalformedResponseError
from studio.core.state import DesignSystem, NeuralPlugin, Plan


def _fixed(response):
    class A:
        async def acomplete(self, prompt, json_mode=False, cache_key=None):
            return response

    return A()


def test_planner_adds_required_files_and_normalizes_paths():
    async def inner():
        agent = PlannerAgent(_fixed(json.dumps({"features": ["List"], "files": ["./src/main.tsx", "src/main.tsx", 3]})))
        plan = await agent.plan("## Overview")
        assert plan.files == ["src/main.tsx", "src/App.tsx", "src/lib/mockData.ts"]
        assert plan.features == ["List"]
        assert plan.dependencies == []

    asyncio.run(inner())


def test_designer_falls_back_to_prompt_for_app_name():
    async def inner():
        design = await DesignerAgent(_fixed("{}")).design("todo app", [])
        assert design.metadata.app_name == "Todo App"
        assert design.colors.primary == DesignSystem().colors.primary

    asyncio.run(inner())


def test_coder_strips_fences():
    async def inner():
        agent = CoderAgent(_fixed("```tsx\nexport const x = 1;\n```"))
        content = await agent.write_file("src/x.ts", Plan(), DesignSystem(), {"src/x.ts": "// placeholder"})
        assert content == "export const x = 1;"

    asyncio.run(inner())


def test_coder_keeps_placeholder_on_empty_response():
    async def inner():
        agent = CoderAgent(_fixed(""))
        content = await agent.write_file("src/x.ts", Plan(), DesignSystem(), {"src/x.ts": "// placeholder"})
        assert content == "// placeholder"

    asyncio.run(inner())


def test_coder_raises_on_empty_response_when_strict(monkeypatch):
    monkeypatch.setenv("RESPONSE_POLICY", "strict")
    settings_module.get_settings.cache_clear()

    async def inner():
        agent = CoderAgent(_fixed("   "))
        with pytest.raises(MalformedResponseError):
            await agent.write_file("src/x.ts", Plan(), DesignSystem(), {"src/x.ts": "// placeholder"})

    asyncio.run(inner())


def test_patcher_returns_original_on_empty_response():
    async def inner():
        patched = await PatcherAgent(_fixed("")).patch("src/App.tsx", "const a = 1;", "boom")
        assert patched == "const a = 1;"

    asyncio.run(inner())


def test_reviewer_clamps_and_derives_scores():
    async def inner():
        report = await ReviewerAgent(_fixed(json.dumps({"overallScore": 140}))).review({}, DesignSystem())
        assert report.overall_score == 100.0

        report = await ReviewerAgent(
            _fixed(json.dumps({"scores": {"quality": 80, "a11y": 60}, "comments": ["Missing alt text"]}))
        ).review({}, DesignSystem())
        assert report.overall_score == 70.0
        assert report.comments[0].message == "Missing alt text"

    asyncio.run(inner())


def test_reviewer_defaults_on_garbage():
    async def inner():
        report = await ReviewerAgent(_fixed("no json here")).review({}, DesignSystem())
        assert report.overall_score == DEFAULT_SCORE
        assert report.comments == []

    asyncio.run(inner())


def test_plugin_agent_filters_invalid_mutations():
    async def inner():
        payload = {
            "comments": [{"file": "src/App.tsx", "message": "ok"}],
            "mutations": [
                {"file": "README.md", "content": "```md\n# Todo\n```"},
                {"file": "broken.ts"},
                "nonsense",
            ],
        }
        plugin = NeuralPlugin(id="docs-writer", name="Docs Writer", description="Writes docs")
        result = await PluginAgent(_fixed(json.dumps(payload))).run(plugin, {"src/App.tsx": "x"}, None)
        assert [(m.file, m.content) for m in result.mutations] == [("README.md", "# Todo")]
        assert result.comments[0].message == "ok"

    asyncio.run(inner())


def test_ollama_process_is_killed_when_the_call_times_out(monkeypatch):
    from studio.llm import ollama_adapter

    class HangingProcess:
        def __init__(self):
            self.returncode = None
            self.killed = False

        async def communicate(self, data):
            await asyncio.Event().wait()

        def kill(self):
            self.killed = True
            self.returncode = -9

        async def wait(self):
            return self.returncode

    process = HangingProcess()

    async def fake_exec(*cmd, **kwargs):
        return process

    monkeypatch.setattr(ollama_adapter.asyncio, "create_subprocess_exec", fake_exec)

    async def inner():
        adapter = ollama_adapter.OllamaLLMAdapter(model="tiny")
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(adapter.acomplete("hello"), timeout=0.05)

    asyncio.run(inner())
    assert process.killed
