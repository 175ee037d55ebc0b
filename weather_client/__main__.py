"""
Executable entry point for the weather client GUI.
"""

from __future__ import annotations

import argparse

from .gui import run_app
from .line_client import LineProtocolClient
from .mcp_client import WeatherMCPClient
from .shell import WeatherBackend


def build_backend(transport: str) -> WeatherBackend:
    if transport == "jsonl":
        return LineProtocolClient()
    return WeatherMCPClient()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Desktop client for the weather server.")
    parser.add_argument(
        "--transport",
        choices=["mcp", "jsonl"],
        default="mcp",
        help="How to talk to the server: a full MCP session or line-delimited JSON-RPC.",
    )
    parser.add_argument(
        "--autostart",
        action="store_true",
        help="Start the server as soon as the window opens.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    args = parser.parse_args(argv)
    run_app(build_backend(args.transport), autostart=args.autostart, log_level=args.log_level)


if __name__ == "__main__":
    main()
