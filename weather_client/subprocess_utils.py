"""
Utilities for launching and terminating the weather server subprocess.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

from fastmcp.client.transports import StdioTransport

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SERVER_MODULE = "weather_server"


def detect_python_executable() -> str:
    """
    Return the Python executable to use for spawning the server.
    Prefers a local .venv if available, otherwise falls back to the current interpreter.
    """
    if os.name == "nt":
        candidate = PROJECT_ROOT / ".venv" / "Scripts" / "python.exe"
    else:
        candidate = PROJECT_ROOT / ".venv" / "bin" / "python"
    if candidate.exists():
        logger.debug("Using virtualenv interpreter: %s", candidate)
        return str(candidate)
    logger.debug("Using current interpreter: %s", sys.executable)
    return sys.executable


def build_server_command(
    transport: str = "stdio",
) -> Tuple[str, List[str], Dict[str, str], str]:
    """
    Build command, arguments, environment and working directory for the server process.
    """
    command = detect_python_executable()
    args = ["-m", SERVER_MODULE, transport]
    env = os.environ.copy()
    env.setdefault("PYTHONUNBUFFERED", "1")
    cwd = str(PROJECT_ROOT)
    logger.debug("Server command: %s %s (cwd=%s)", command, " ".join(args), cwd)
    return command, args, env, cwd


def create_stdio_transport(*, keep_alive: bool = True) -> StdioTransport:
    """
    Create a FastMCP stdio transport configured for the weather server.
    """
    command, args, env, cwd = build_server_command("stdio")
    return StdioTransport(
        command=command,
        args=args,
        env=env,
        cwd=cwd,
        keep_alive=keep_alive,
    )


def spawn_line_server() -> subprocess.Popen[str]:
    """
    Start the server in line-protocol mode with piped stdin/stdout.
    """
    command, args, env, cwd = build_server_command("jsonl")
    process = subprocess.Popen(
        [command, *args],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        env=env,
        cwd=cwd,
        text=True,
        encoding="utf-8",
        bufsize=1,
    )
    logger.info("Started weather server (PID %s)", process.pid)
    return process


def terminate_process(
    process: subprocess.Popen[Any] | None,
    *,
    timeout: float = 5.0,
) -> None:
    """
    Terminate a subprocess gracefully and escalate to kill if required.
    """
    if process is None:
        return
    if process.poll() is not None:
        return

    logger.info("Requesting weather server shutdown (PID %s)", process.pid)
    process.terminate()
    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning("Killing weather server (PID %s)", process.pid)
        process.kill()
        process.wait(timeout=timeout)


__all__ = [
    "build_server_command",
    "create_stdio_transport",
    "detect_python_executable",
    "spawn_line_server",
    "terminate_process",
]
