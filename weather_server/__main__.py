"""
Entrypoint for running the weather server over stdio.
"""

from __future__ import annotations

import argparse
import logging
import sys

from .line_protocol import serve_lines
from .weather_server import create_weather_server


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="MCP server that serves weather data for a fixed set of cities."
    )
    parser.add_argument(
        "transport",
        choices=["stdio", "jsonl"],
        help=(
            "Transport mode. 'stdio' speaks MCP, 'jsonl' speaks newline-delimited "
            "JSON-RPC with get_resource/invoke_tool requests."
        ),
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for messages written to stderr.",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)
    logger = logging.getLogger(__name__)
    logger.info("Server started with transport %s", args.transport)

    if args.transport == "jsonl":
        serve_lines(sys.stdin, sys.stdout)
        return

    server = create_weather_server()
    server.run(args.transport, show_banner=False)


if __name__ == "__main__":
    main()
