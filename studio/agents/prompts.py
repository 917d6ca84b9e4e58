from __future__ import annotations

import json
from typing import Dict, List

from studio.core.state import REQUIRED_FILES, DesignSystem, NeuralPlugin, Plan

# First line of every stage prompt; the mock adapter keys its canned output on it.
MANAGER_ROLE = "ROLE: Senior Product Manager"
PLANNER_ROLE = "ROLE: Software Planner"
DESIGNER_ROLE = "ROLE: Design System Lead"
CODER_ROLE = "ROLE: Senior Frontend Engineer"
REVIEWER_ROLE = "ROLE: Code Auditor"
PATCHER_ROLE = "ROLE: Build Patcher"
PLUGIN_ROLE = "ROLE: Plugin Agent"

_MAX_FILE_CHARS = 6000


def _truncate(content: str, limit: int = _MAX_FILE_CHARS) -> str:
    if len(content) > limit:
        return content[:limit] + "\n...[truncated]..."
    return content


def _files_block(file_system: Dict[str, str]) -> str:
    return "".join(
        f"--- FILE: {path} ---\n{_truncate(content)}\n\n" for path, content in file_system.items()
    )


class PromptBuilder:
    """Prompt templates for every pipeline stage."""

    @staticmethod
    def manager(user_prompt: str) -> str:
        return (
            f"{MANAGER_ROLE}\n"
            f'GOAL: Software Requirement Specification for "{user_prompt}".\n'
            "FORMAT: Markdown with the sections ## Overview, ## Tech, ## Features, ## Execution Roadmap.\n"
            "The product is a single-page React + TypeScript + Tailwind application with mocked data.\n"
            "Return ONLY the document."
        )

    @staticmethod
    def planner(srs: str) -> str:
        required = ", ".join(REQUIRED_FILES)
        return (
            f"{PLANNER_ROLE}\n"
            "Map the requirements below to a feature list and a virtual file tree.\n"
            f"=== SRS ===\n{srs}\n\n"
            "RULES:\n"
            f"- files MUST include {required}.\n"
            "- file paths are relative, use forward slashes, and live under src/.\n"
            "- dependencies are npm package names.\n"
            "=== OUTPUT (JSON) ===\n"
            '{"features": ["..."], "files": ["src/App.tsx", "..."], "dependencies": ["react", "..."]}'
        )

    @staticmethod
    def designer(user_prompt: str, features: List[str]) -> str:
        return (
            f"{DESIGNER_ROLE}\n"
            f'INTENT: "{user_prompt}"\n'
            f"FEATURES: {', '.join(features) or 'n/a'}\n"
            "Produce the design token set the coders must honor.\n"
            "=== OUTPUT (JSON) ===\n"
            "{\n"
            '  "metadata": {"appName": "...", "styleVibe": "Modern|Corporate|Playful|Brutalist|Minimalist"},\n'
            '  "colors": {"background": "#hex", "foreground": "#hex", "primary": "#hex", "primaryForeground": "#hex",\n'
            '             "secondary": "#hex", "accent": "#hex", "muted": "#hex", "border": "#hex"},\n'
            '  "layout": {"radius": "css length", "spacing": "css length", "container": "css length"},\n'
            '  "typography": {"fontSans": "font stack", "h1": "css size", "h2": "css size", "body": "css size"}\n'
            "}"
        )

    @staticmethod
    def coder(path: str, plan: Plan, design: DesignSystem, file_system: Dict[str, str]) -> str:
        return (
            f"{CODER_ROLE}\n"
            f"FILE: {path}\n"
            f"FEATURES: {', '.join(plan.features)}\n"
            f"DEPENDENCIES: {', '.join(plan.dependencies)}\n"
            f"DESIGN: {json.dumps(design.to_wire())}\n"
            f"PROJECT FILES: {', '.join(file_system)}\n"
            "Implement the file completely. Use Tailwind classes and the design tokens above.\n"
            "Import only from project files or the listed dependencies.\n"
            "Return ONLY the file content, no explanations."
        )

    @staticmethod
    def reviewer(file_system: Dict[str, str], design: DesignSystem) -> str:
        return (
            f"{REVIEWER_ROLE}\n"
            "Audit this React project for quality, accessibility, performance and design fidelity.\n"
            f"=== DESIGN ===\n{json.dumps(design.to_wire())}\n\n"
            f"=== CODE ===\n{_files_block(file_system)}"
            "=== OUTPUT (JSON) ===\n"
            "{\n"
            '  "overallScore": 0-100,\n'
            '  "scores": {"quality": 0-100, "a11y": 0-100, "performance": 0-100, "design": 0-100},\n'
            '  "comments": [{"file": "...", "severity": "info|warning|critical", "category": "...",\n'
            '                "message": "...", "recommendation": "..."}]\n'
            "}"
        )

    @staticmethod
    def patcher(path: str, content: str, error_log: str) -> str:
        return (
            f"{PATCHER_ROLE}\n"
            f"FILE: {path}\n"
            f"ERROR: {error_log}\n"
            f"=== CONTENT ===\n{_truncate(content)}\n\n"
            "Fix the error. Return ONLY the full corrected file content."
        )

    @staticmethod
    def plugin(plugin: NeuralPlugin, file_system: Dict[str, str], design: DesignSystem | None) -> str:
        vibe = design.metadata.style_vibe if design else "unspecified"
        return (
            f"{PLUGIN_ROLE}\n"
            f"PLUGIN: {plugin.name}\n"
            f"TASK: {plugin.description}\n"
            f"FILES: {', '.join(file_system)}\n"
            f"DESIGN VIBE: {vibe}\n"
            f"=== CODE ===\n{_files_block(file_system)}"
            "Examine the codebase and return review comments and/or file mutations.\n"
            "A mutation carries the FULL new content of the file.\n"
            "=== OUTPUT (JSON) ===\n"
            '{"comments": [{"file": "...", "severity": "...", "category": "...", "message": "...",'
            ' "recommendation": "..."}], "mutations": [{"file": "...", "content": "..."}]}'
        )
