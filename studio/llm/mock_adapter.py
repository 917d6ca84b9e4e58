from __future__ import annotations

import json
import re
from typing import Dict, Optional

from studio.agents.prompts import (
    CODER_ROLE,
    DESIGNER_ROLE,
    MANAGER_ROLE,
    PATCHER_ROLE,
    PLANNER_ROLE,
    PLUGIN_ROLE,
    REVIEWER_ROLE,
)

from .adapter import BaseLLMAdapter

_INTENT = re.compile(r'^INTENT: "(.*)"$', re.MULTILINE)
_FILE = re.compile(r"^FILE: (.+)$", re.MULTILINE)
_FILES = re.compile(r"^FILES: (.*)$", re.MULTILINE)
_PLUGIN = re.compile(r"^PLUGIN: (.+)$", re.MULTILINE)


class MockLLMAdapter(BaseLLMAdapter):
    """Offline adapter returning canned output for each stage role."""

    async def acomplete(self, prompt: str, json_mode: bool = False, cache_key: Optional[str] = None) -> str:
        role = prompt.split("\n", 1)[0].strip()
        if role == MANAGER_ROLE:
            return self._srs()
        if role == PLANNER_ROLE:
            return json.dumps(
                {
                    "features": ["Item list", "Create item", "Toggle completion", "Filter by status"],
                    "files": [
                        "src/App.tsx",
                        "src/components/ItemList.tsx",
                        "src/components/ItemForm.tsx",
                        "src/lib/mockData.ts",
                    ],
                    "dependencies": ["react", "react-dom", "lucide-react"],
                }
            )
        if role == DESIGNER_ROLE:
            match = _INTENT.search(prompt)
            intent = match.group(1) if match else "Generated App"
            return json.dumps(
                {
                    "metadata": {"appName": intent.title() or "Generated App", "styleVibe": "Modern"},
                    "colors": {
                        "background": "#f8fafc",
                        "foreground": "#0f172a",
                        "primary": "#4f46e5",
                        "primaryForeground": "#ffffff",
                        "secondary": "#64748b",
                        "accent": "#22c55e",
                        "muted": "#e2e8f0",
                        "border": "#cbd5e1",
                    },
                    "layout": {"radius": "0.75rem", "spacing": "1rem", "container": "64rem"},
                    "typography": {"fontSans": "Inter, sans-serif", "h1": "2.25rem", "h2": "1.5rem", "body": "1rem"},
                }
            )
        if role == CODER_ROLE:
            match = _FILE.search(prompt)
            return self._source(match.group(1).strip() if match else "src/App.tsx")
        if role == REVIEWER_ROLE:
            return json.dumps(
                {
                    "overallScore": 86,
                    "scores": {"quality": 88, "a11y": 80, "performance": 90, "design": 86},
                    "comments": [
                        {
                            "file": "src/App.tsx",
                            "severity": "warning",
                            "category": "a11y",
                            "message": "Filter buttons have no accessible pressed state.",
                            "recommendation": "Add aria-pressed to the active filter button.",
                        }
                    ],
                }
            )
        if role == PATCHER_ROLE:
            match = _FILE.search(prompt)
            path = match.group(1).strip() if match else "src/App.tsx"
            return self._source(path) + "\n// patched: module resolution fixed\n"
        if role == PLUGIN_ROLE:
            plugin = _PLUGIN.search(prompt)
            files = _FILES.search(prompt)
            first_file = (files.group(1).split(",")[0].strip() if files else "") or "src/App.tsx"
            return json.dumps(
                {
                    "comments": [
                        {
                            "file": first_file,
                            "severity": "info",
                            "category": "plugin",
                            "message": f"{plugin.group(1) if plugin else 'Plugin'} inspected {first_file}.",
                            "recommendation": "No action required.",
                        }
                    ],
                    "mutations": [],
                }
            )
        return json.dumps({}) if json_mode else ""

    @staticmethod
    def _srs() -> str:
        return (
            "## Overview\nA focused single-page app with mocked data.\n\n"
            "## Tech\nReact, TypeScript, Tailwind CSS.\n\n"
            "## Features\n- Item list\n- Create item\n- Toggle completion\n- Filter by status\n\n"
            "## Execution Roadmap\n1. Data model\n2. Components\n3. Styling\n"
        )

    @staticmethod
    def _source(path: str) -> str:
        sources: Dict[str, str] = {
            "src/lib/mockData.ts": (
                "export interface Item { id: number; title: string; done: boolean }\n\n"
                "export const items: Item[] = [\n"
                "  { id: 1, title: 'Draft the plan', done: true },\n"
                "  { id: 2, title: 'Ship the app', done: false },\n"
                "];\n"
            ),
            "src/App.tsx": (
                "import React, { useState } from 'react';\n"
                "import { items as seed } from './lib/mockData';\n\n"
                "export default function App() {\n"
                "  const [items, setItems] = useState(seed);\n"
                "  return (\n"
                "    <main className=\"mx-auto max-w-2xl p-6\">\n"
                "      <ul>{items.map(i => <li key={i.id}>{i.title}</li>)}</ul>\n"
                "    </main>\n"
                "  );\n"
                "}\n"
            ),
        }
        if path in sources:
            return sources[path]
        name = path.rsplit("/", 1)[-1].split(".", 1)[0] or "Component"
        return f"export default function {name}() {{\n  return <div className=\"p-4\">{name}</div>;\n}}\n"
