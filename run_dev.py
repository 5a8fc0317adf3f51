#!/usr/bin/env python3
"""
Development server launcher for IA Board.
Starts the FastAPI API with auto-reload.
"""

import os
import sys
import signal
import subprocess
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
    except ImportError:
        issues.append("Python dependencies not installed. Run: pip install -e .")
    return issues


def start_api(port: int):
    print_colored(f"🚀 Starting IA Board API on http://localhost:{port}", GREEN)
    base_dir = Path(__file__).parent.resolve()

    # Generated files and the SQLite databases must not trigger reloads
    cmd = [
        sys.executable, "-m", "uvicorn", "iaboard.main:app",
        "--host", "0.0.0.0", "--port", str(port), "--reload",
        "--reload-dir", str(base_dir / "iaboard"),
    ]
    for exclude in ("data/**", "downloads/**", "ai-content/**", "**/*.db*", "**/__pycache__/**"):
        cmd.extend(["--reload-exclude", exclude])

    return subprocess.Popen(
        cmd,
        cwd=base_dir,
        env={**os.environ, "PYTHONPATH": str(base_dir)},
    )


def main():
    print_colored("=" * 60, GREEN)
    print_colored("IA Board Development Server", GREEN)
    print_colored("=" * 60, GREEN)

    issues = check_dependencies()
    if issues:
        print_colored("\n⚠️  Issues found:", YELLOW)
        for issue in issues:
            print_colored(f"  - {issue}", YELLOW)
        sys.exit(1)

    process = start_api(int(os.environ.get("PORT", "8000")))

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

    print_colored("📝 API docs: http://localhost:8000/docs", GREEN)
    print_colored("\nPress Ctrl+C to stop.\n", YELLOW)
    try:
        code = process.wait()
        print_colored(f"\n⚠️  Server exited with code {code}", RED)
    except KeyboardInterrupt:
        cleanup(None, None)


if __name__ == "__main__":
    main()
