#!/usr/bin/env python3
"""
Development server launcher for Agentic Studio.
Starts the FastAPI backend with auto-reload.
"""

import os
import signal
import subprocess
import sys
from pathlib import Path

# Colors for terminal output
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
RESET = "\033[0m"


def print_colored(message: str, color: str = RESET):
    print(f"{color}{message}{RESET}")


def check_dependencies():
    """Check if required dependencies are installed."""
    issues = []
    try:
        import uvicorn  # noqa: F401
        import fastapi  # noqa: F401
        import langgraph  # noqa: F401
    except ImportError:
        issues.append("Python dependencies not installed. Run: pip install -e .")
    return issues


def start_backend(port: int):
    """Start the FastAPI backend server."""
    print_colored(f"🚀 Starting studio backend on http://localhost:{port}", GREEN)
    base_dir = Path(__file__).parent.resolve()
    cmd = [
        sys.executable, "-m", "uvicorn", "studio.main:app",
        "--host", "0.0.0.0", "--port", str(port), "--reload",
        "--reload-dir", str(base_dir / "studio"),
    ]
    # SQLite WAL churn under data/ must not trigger reloads
    for exclude in ("data/**", "**/*.db*", "**/__pycache__/**", "**/.venv/**"):
        cmd.extend(["--reload-exclude", exclude])

    return subprocess.Popen(
        cmd,
        cwd=base_dir,
        env={**os.environ, "PYTHONPATH": str(base_dir)},
    )


def main():
    """Main entry point."""
    print_colored("=" * 60, GREEN)
    print_colored("Agentic Studio Development Server", GREEN)
    print_colored("=" * 60, GREEN)

    issues = check_dependencies()
    if issues:
        print_colored("\n⚠️  Issues found:", YELLOW)
        for issue in issues:
            print_colored(f"  - {issue}", YELLOW)
        sys.exit(1)

    port = int(os.getenv("STUDIO_PORT", "8000"))
    process = start_backend(port)

    def cleanup(signum, frame):
        print_colored("\n\n🛑 Shutting down server...", YELLOW)
        try:
            process.terminate()
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            process.kill()
        print_colored("✅ Server stopped.", GREEN)
        sys.exit(0)

    signal.signal(signal.SIGINT, cleanup)
    signal.signal(signal.SIGTERM, cleanup)

    print_colored(f"📝 API docs: http://localhost:{port}/docs", GREEN)
    print_colored(f"🔌 WebSocket: ws://localhost:{port}/ws/studio", GREEN)
    print_colored("\nPress Ctrl+C to stop.\n", YELLOW)

    code = process.wait()
    if code != 0:
        print_colored(f"\n⚠️  Server exited with code {code}", RED)
    sys.exit(code)


if __name__ == "__main__":
    main()
