"""Editor helpers: preview markup from design tokens and Monaco language ids."""

from __future__ import annotations

from html import escape
from pathlib import PurePosixPath
from typing import Optional

from studio.core.state import AgentStatus, DesignSystem

_SPECIAL_NAMES = {
    "dockerfile": "dockerfile",
    "makefile": "makefile",
    "cmakelists.txt": "cmake",
    "jenkinsfile": "groovy",
    ".gitignore": "plaintext",
    ".npmignore": "plaintext",
}

_DOTFILE_PREFIXES = (
    (".env", "ini"),
    (".babelrc", "json"),
    (".eslintrc", "json"),
    (".prettierrc", "json"),
)

_EXTENSIONS = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "html": "html",
    "htm": "html",
    "css": "css",
    "scss": "scss",
    "sass": "scss",
    "less": "less",
    "json": "json",
    "xml": "xml",
    "svg": "xml",
    "yaml": "yaml",
    "yml": "yaml",
    "md": "markdown",
    "markdown": "markdown",
    "py": "python",
    "go": "go",
    "rs": "rust",
    "java": "java",
    "c": "c",
    "cpp": "cpp",
    "h": "cpp",
    "hpp": "cpp",
    "cs": "csharp",
    "php": "php",
    "sh": "shell",
    "bash": "shell",
    "zsh": "shell",
    "bat": "bat",
    "ps1": "powershell",
    "ini": "ini",
    "toml": "ini",
    "sql": "sql",
    "rb": "ruby",
    "lua": "lua",
    "r": "r",
    "dart": "dart",
    "swift": "swift",
}


def file_language(path: Optional[str]) -> str:
    if not path:
        return "plaintext"
    name = PurePosixPath(path).name.lower()
    if name in _SPECIAL_NAMES:
        return _SPECIAL_NAMES[name]
    if name in ("vite.config.js", "vite.config.ts", "next.config.js"):
        return "javascript"
    for prefix, language in _DOTFILE_PREFIXES:
        if name.startswith(prefix):
            return language
    if "." not in name:
        return "plaintext"
    return _EXTENSIONS.get(name.rsplit(".", 1)[-1], "plaintext")


def render_preview_html(design: Optional[DesignSystem], status: AgentStatus) -> str:
    """Landing page shown in the preview frame once a build is ready."""
    if status != AgentStatus.READY:
        return (
            "<html><body style=\"font-family: sans-serif; display: flex; align-items: center; "
            "justify-content: center; min-height: 100vh; margin: 0; color: #64748b;\">"
            "<div style=\"text-align: center;\"><p><b>Awaiting system compilation...</b></p>"
            f"<p style=\"font-size: 10px; text-transform: uppercase;\">Phase: {escape(status.value)}</p>"
            "</div></body></html>"
        )

    design = design or DesignSystem()
    colors = design.colors
    app_name = escape(design.metadata.app_name or "Application Ready")
    vibe = escape(design.metadata.style_vibe or "Modern")
    return f"""<html>
  <head>
    <script src="https://cdn.tailwindcss.com"></script>
    <style>
      body {{ font-family: {escape(design.typography.font_sans)}; background: {escape(colors.background)}; color: {escape(colors.foreground)}; margin: 0; }}
      .btn-primary {{ background-color: {escape(colors.primary)}; color: {escape(colors.primary_foreground)}; border-radius: {escape(design.layout.radius)}; }}
    </style>
  </head>
  <body class="flex items-center justify-center min-h-screen p-4">
    <div class="text-center p-8 bg-white shadow-xl rounded-2xl max-w-md border border-slate-100">
      <h1 class="text-2xl font-bold text-slate-800 mb-4">{app_name}</h1>
      <p class="text-slate-500 mb-6 text-sm">
        The agents have completed the build cycle.
        <span class="block mt-2 font-mono text-[10px] bg-slate-100 p-2 rounded text-slate-700">{vibe} Vibe</span>
      </p>
      <button class="btn-primary px-6 py-2 font-semibold shadow-md">GET STARTED</button>
    </div>
  </body>
</html>
"""
