"""
Asynchronous MCP client wrapper tailored for the Tkinter GUI.
"""

from __future__ import annotations

import asyncio
import ast
import json
import logging
import threading
from concurrent.futures import Future
from dataclasses import asdict, is_dataclass
from typing import Any, Awaitable, List
from urllib.parse import quote

from fastmcp.client import Client
from fastmcp.client.client import CallToolResult
from fastmcp.exceptions import ToolError

from weather_server.catalog import CityNotFound, WeatherRecord

from .errors import UnexpectedResponseError
from .responses import parse_city_list, parse_city_weather, parse_number
from .subprocess_utils import create_stdio_transport

DEFAULT_TIMEOUT = 30
CITIES_URI = "weather://cities"
CITY_URI = "weather://city/{}"

logger = logging.getLogger(__name__)


def _normalize_payload(value: Any) -> Any:
    """
    Convert Pydantic/BaseModel/iterables into plain Python structures.
    """
    if value is None:
        return None
    if hasattr(value, "model_dump"):
        return value.model_dump()
    if is_dataclass(value) and not isinstance(value, type):
        return {key: _normalize_payload(val) for key, val in asdict(value).items()}
    if isinstance(value, dict):
        return {key: _normalize_payload(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_normalize_payload(item) for item in value]
    return value


def unwrap_tool_result(result: CallToolResult) -> Any:
    if result.data is not None:
        return _normalize_payload(result.data)
    if result.structured_content is not None:
        return _normalize_payload(result.structured_content)
    contents: list[str] = []
    for block in result.content:
        text = getattr(block, "text", None)
        if text is not None:
            contents.append(text)
    if len(contents) == 1:
        text = contents[0]
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            try:
                return ast.literal_eval(text)
            except (ValueError, SyntaxError):
                return text
    return contents


def _first_text(blocks: Any) -> str:
    for block in blocks or ():
        text = getattr(block, "text", None)
        if text is not None:
            return text
    raise UnexpectedResponseError("The server returned no text content.")


class WeatherMCPClient:
    """
    Wrapper that manages a FastMCP stdio client on a dedicated asyncio loop.
    """

    name = "mcp"

    def __init__(self) -> None:
        self._loop = asyncio.new_event_loop()
        self._loop_ready = threading.Event()
        self._thread = threading.Thread(target=self._loop_worker, daemon=True)
        self._lock: asyncio.Lock | None = None
        self._client: Client | None = None
        self._shutdown = False

        self._thread.start()
        self._loop_ready.wait()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _loop_worker(self) -> None:
        asyncio.set_event_loop(self._loop)
        transport = create_stdio_transport(keep_alive=True)
        self._client = Client(transport=transport, name="mcp-weather-gui")
        self._lock = asyncio.Lock()
        self._loop_ready.set()

        try:
            self._loop.run_forever()
        finally:
            pending = asyncio.all_tasks(self._loop)
            for task in pending:
                task.cancel()
            if pending:
                self._loop.run_until_complete(
                    asyncio.gather(*pending, return_exceptions=True)
                )
            self._loop.run_until_complete(self._loop.shutdown_asyncgens())
            self._loop.close()

    def _ensure_client(self) -> Client:
        if self._client is None:
            raise RuntimeError("The MCP client is not initialised yet.")
        return self._client

    def _ensure_lock(self) -> asyncio.Lock:
        if self._lock is None:
            raise RuntimeError("The MCP client is not initialised yet.")
        return self._lock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, coro: Awaitable[Any]) -> Future:
        """
        Schedule a coroutine on the internal event loop.
        """
        if self._shutdown:
            raise RuntimeError("The MCP client has already been closed.")
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def start(self) -> Future:
        """
        Spawn the server and check it answers a ping.
        """
        return self.submit(self._start_async())

    def stop(self) -> Future:
        return self.submit(self._stop_async())

    def list_cities(self) -> Future:
        return self.submit(self._list_cities_async())

    def get_weather(self, city: str) -> Future:
        return self.submit(self._get_weather_async(city))

    def describe_weather(self, city: str) -> Future:
        return self.submit(self._describe_weather_async(city))

    def convert_temperature(self, value: float, from_unit: str, to_unit: str) -> Future:
        return self.submit(self._convert_temperature_async(value, from_unit, to_unit))

    def weather_prompt(self, city: str) -> Future:
        return self.submit(self._weather_prompt_async(city))

    def shutdown(self) -> None:
        if self._shutdown:
            return
        self._shutdown = True
        try:
            future = asyncio.run_coroutine_threadsafe(
                self._stop_async(), self._loop
            )
            future.result(timeout=DEFAULT_TIMEOUT)
        finally:
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=DEFAULT_TIMEOUT)

    # ------------------------------------------------------------------
    # Coroutine implementations
    # ------------------------------------------------------------------

    async def _start_async(self) -> str:
        client = self._ensure_client()
        lock = self._ensure_lock()
        async with lock:
            async with client:
                await client.ping()
        logger.info("MCP server reachable over stdio")
        return "MCP server started"

    async def _stop_async(self) -> str:
        client = self._ensure_client()
        lock = self._ensure_lock()
        async with lock:
            await client.close()
        return "MCP server stopped"

    async def _read_text_resource(self, uri: str) -> str:
        client = self._ensure_client()
        lock = self._ensure_lock()
        async with lock:
            async with client:
                contents = await client.read_resource(uri)
        text = _first_text(contents)
        logger.debug("Raw resource %s: %r", uri, text)
        return text

    async def _list_cities_async(self) -> List[str]:
        text = await self._read_text_resource(CITIES_URI)
        return parse_city_list(text)

    async def _get_weather_async(self, city: str) -> WeatherRecord | CityNotFound:
        text = await self._read_text_resource(CITY_URI.format(quote(city, safe="")))
        return parse_city_weather(city, text)

    async def _call_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        client = self._ensure_client()
        lock = self._ensure_lock()
        async with lock:
            async with client:
                return await client.call_tool(
                    name,
                    arguments,
                    timeout=DEFAULT_TIMEOUT,
                )

    async def _describe_weather_async(self, city: str) -> str:
        try:
            result = await self._call_tool("getWeather", {"city": city})
        except ToolError as exc:
            return str(exc)
        return _first_text(result.content)

    async def _convert_temperature_async(
        self, value: float, from_unit: str, to_unit: str
    ) -> float:
        result = await self._call_tool(
            "convertTemperature",
            {"temperature": value, "from": from_unit, "to": to_unit},
        )
        payload = unwrap_tool_result(result)
        logger.debug("Raw conversion result: %r", payload)
        return parse_number(payload)

    async def _weather_prompt_async(self, city: str) -> str:
        client = self._ensure_client()
        lock = self._ensure_lock()
        async with lock:
            async with client:
                result = await client.get_prompt("weatherPrompt", {"city": city})
        if not result.messages:
            raise UnexpectedResponseError("The prompt has no messages.")
        return _first_text([result.messages[0].content])


__all__ = ["WeatherMCPClient", "unwrap_tool_result"]
