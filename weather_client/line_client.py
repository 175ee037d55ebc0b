"""
Client for the server's newline-delimited JSON-RPC mode.

Requests run on a single worker thread, so there is never more than one
envelope in flight.
"""

from __future__ import annotations

import itertools
import json
import logging
import subprocess
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from weather_server.catalog import CityNotFound, WeatherRecord

from .errors import ServerNotRunningError, ServiceError, UnexpectedResponseError
from .responses import parse_city_list, parse_city_weather, parse_number
from .subprocess_utils import spawn_line_server, terminate_process

logger = logging.getLogger(__name__)

CITIES_URI = "weather://cities"
CITY_URI = "weather://city/{}"


def parse_response(line: str, request_id: int) -> Any:
    """
    Decode one response line and return its result, raising on JSON-RPC errors.
    """
    try:
        response = json.loads(line)
    except ValueError as exc:
        raise UnexpectedResponseError("The server sent invalid JSON.") from exc
    if not isinstance(response, dict):
        raise UnexpectedResponseError("The server sent a non-object response.")
    if response.get("id") != request_id:
        raise UnexpectedResponseError(
            f"Response id {response.get('id')!r} does not match request {request_id}."
        )
    error = response.get("error")
    if error is not None:
        if not isinstance(error, dict):
            raise UnexpectedResponseError(f"Malformed error object: {error!r}")
        raise ServiceError(str(error.get("message")), error.get("code"))
    return response.get("result")


class LineProtocolClient:
    name = "jsonl"

    def __init__(self) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="weather-jsonl"
        )
        self._process: Optional[subprocess.Popen[str]] = None
        self._ids = itertools.count(1)
        self._shutdown = False

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process is not None else None

    def submit(self, fn, *args: Any) -> Future:
        if self._shutdown:
            raise RuntimeError("The line client has already been closed.")
        return self._executor.submit(fn, *args)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self) -> Future:
        return self.submit(self._start)

    def stop(self) -> Future:
        return self.submit(self._stop)

    def list_cities(self) -> Future:
        return self.submit(self._list_cities)

    def get_weather(self, city: str) -> Future:
        return self.submit(self._get_weather, city)

    def describe_weather(self, city: str) -> Future:
        return self.submit(self._describe_weather, city)

    def convert_temperature(self, value: float, from_unit: str, to_unit: str) -> Future:
        return self.submit(self._convert_temperature, value, from_unit, to_unit)

    def weather_prompt(self, city: str) -> Future:
        return self.submit(self._weather_prompt, city)

    def shutdown(self) -> None:
        if self._shutdown:
            return
        self._shutdown = True
        try:
            self._executor.submit(self._stop).result()
        finally:
            self._executor.shutdown(wait=True)

    # ------------------------------------------------------------------
    # Worker-thread implementations
    # ------------------------------------------------------------------

    def _start(self) -> str:
        if self._process is not None and self._process.poll() is None:
            return "MCP server is already running"
        self._process = spawn_line_server()
        return f"MCP server started with PID: {self._process.pid}"

    def _stop(self) -> str:
        process = self._process
        if process is None:
            return "MCP server was not running"
        if process.stdin is not None:
            process.stdin.close()
        terminate_process(process)
        if process.stdout is not None:
            process.stdout.close()
        self._process = None
        return "MCP server stopped"

    def _request(self, method: str, params: Dict[str, Any]) -> Any:
        process = self._process
        if process is None or process.poll() is not None:
            raise ServerNotRunningError("MCP server not running")
        if process.stdin is None or process.stdout is None:
            raise ServiceError("The server process has no open pipes.")

        request_id = next(self._ids)
        envelope = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": request_id,
        }
        message = json.dumps(envelope)
        logger.debug("Sending: %s", message)
        try:
            process.stdin.write(message + "\n")
            process.stdin.flush()
            line = process.stdout.readline()
        except (BrokenPipeError, OSError) as exc:
            raise ServiceError(f"Lost connection to the server: {exc}") from exc
        if not line:
            raise ServiceError("The server closed its output stream.")
        logger.debug("Received: %s", line.rstrip())
        return parse_response(line, request_id)

    def _read_resource(self, uri: str) -> str:
        result = self._request("get_resource", {"uri": uri})
        try:
            return result["contents"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise UnexpectedResponseError(f"Malformed resource {uri}.") from exc

    def _invoke_tool(self, tool: str, arguments: Dict[str, Any]) -> tuple[str, bool]:
        result = self._request("invoke_tool", {"tool": tool, "arguments": arguments})
        try:
            text = result["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise UnexpectedResponseError(f"Malformed result from {tool}.") from exc
        return text, bool(result.get("isError"))

    def _list_cities(self) -> List[str]:
        return parse_city_list(self._read_resource(CITIES_URI))

    def _get_weather(self, city: str) -> WeatherRecord | CityNotFound:
        text = self._read_resource(CITY_URI.format(quote(city, safe="")))
        return parse_city_weather(city, text)

    def _describe_weather(self, city: str) -> str:
        text, _ = self._invoke_tool("getWeather", {"city": city})
        return text

    def _convert_temperature(self, value: float, from_unit: str, to_unit: str) -> float:
        text, is_error = self._invoke_tool(
            "convertTemperature",
            {"temperature": value, "from": from_unit, "to": to_unit},
        )
        if is_error:
            raise ServiceError(text)
        return parse_number(text)

    def _weather_prompt(self, city: str) -> str:
        result = self._request(
            "get_prompt", {"name": "weatherPrompt", "arguments": {"city": city}}
        )
        try:
            return result["messages"][0]["content"]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise UnexpectedResponseError("Malformed prompt response.") from exc


__all__ = ["LineProtocolClient", "parse_response"]
