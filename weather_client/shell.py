"""
Server lifecycle tracking and request gating for the client shell.
"""

from __future__ import annotations

import enum
import logging
import threading
from concurrent.futures import Future
from typing import Any, Protocol

from .errors import ServerNotRunningError

logger = logging.getLogger(__name__)


class ServerStatus(str, enum.Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class WeatherBackend(Protocol):
    name: str

    def start(self) -> Future: ...

    def stop(self) -> Future: ...

    def list_cities(self) -> Future: ...

    def get_weather(self, city: str) -> Future: ...

    def describe_weather(self, city: str) -> Future: ...

    def convert_temperature(self, value: float, from_unit: str, to_unit: str) -> Future: ...

    def weather_prompt(self, city: str) -> Future: ...

    def shutdown(self) -> None: ...


def failure_message(action: str, exc: BaseException) -> str:
    return f"Failed to {action}: {exc}"


def _completed(value: Any) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future


def _rejected(exc: BaseException) -> Future:
    future: Future = Future()
    future.set_exception(exc)
    return future


class WeatherShell:
    """
    Drives a backend through stopped → starting → running → stopping → stopped.

    Requests are only forwarded while running; otherwise they fail locally
    with ServerNotRunningError.
    """

    def __init__(self, backend: WeatherBackend) -> None:
        self.backend = backend
        self._status = ServerStatus.STOPPED
        self._status_lock = threading.Lock()

    @property
    def status(self) -> ServerStatus:
        with self._status_lock:
            return self._status

    @property
    def is_running(self) -> bool:
        return self.status is ServerStatus.RUNNING

    def _set_status(self, status: ServerStatus) -> None:
        with self._status_lock:
            previous, self._status = self._status, status
        logger.info("Server status: %s -> %s", previous.value, status.value)

    def _transition(
        self, expected: ServerStatus, status: ServerStatus
    ) -> ServerStatus:
        """
        Move to ``status`` only when currently in ``expected``. Returns the
        status observed before the attempt.
        """
        with self._status_lock:
            current = self._status
            if current is expected:
                self._status = status
        if current is expected:
            logger.info("Server status: %s -> %s", current.value, status.value)
        return current

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> Future:
        current = self._transition(ServerStatus.STOPPED, ServerStatus.STARTING)
        if current in (ServerStatus.STARTING, ServerStatus.RUNNING):
            return _completed("MCP server is already running")
        if current is ServerStatus.STOPPING:
            return _rejected(ServerNotRunningError("MCP server is stopping"))
        try:
            future = self.backend.start()
        except Exception as exc:  # pylint: disable=broad-except
            self._set_status(ServerStatus.STOPPED)
            return _rejected(exc)
        future.add_done_callback(self._on_started)
        return future

    def _on_started(self, future: Future) -> None:
        if future.exception() is not None:
            logger.error("Server failed to start: %s", future.exception())
            self._set_status(ServerStatus.STOPPED)
        else:
            self._set_status(ServerStatus.RUNNING)

    def stop(self) -> Future:
        current = self._transition(ServerStatus.RUNNING, ServerStatus.STOPPING)
        if current is ServerStatus.STOPPED:
            return _completed("MCP server was not running")
        if current is not ServerStatus.RUNNING:
            return _rejected(
                ServerNotRunningError(f"MCP server is {current.value}")
            )
        try:
            future = self.backend.stop()
        except Exception as exc:  # pylint: disable=broad-except
            self._set_status(ServerStatus.RUNNING)
            return _rejected(exc)
        future.add_done_callback(self._on_stopped)
        return future

    def _on_stopped(self, future: Future) -> None:
        if future.exception() is not None:
            logger.error("Server failed to stop: %s", future.exception())
            self._set_status(ServerStatus.RUNNING)
        else:
            self._set_status(ServerStatus.STOPPED)

    def close(self) -> None:
        self.backend.shutdown()
        self._set_status(ServerStatus.STOPPED)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _gate(self, action: str) -> ServerNotRunningError | None:
        if self.is_running:
            return None
        return ServerNotRunningError(f"Cannot {action}: MCP server not running")

    def fetch_cities(self) -> Future:
        error = self._gate("fetch cities")
        if error:
            return _rejected(error)
        return self.backend.list_cities()

    def fetch_weather(self, city: str) -> Future:
        error = self._gate("fetch weather data")
        if error:
            return _rejected(error)
        return self.backend.get_weather(city)

    def describe_weather(self, city: str) -> Future:
        error = self._gate("fetch weather report")
        if error:
            return _rejected(error)
        return self.backend.describe_weather(city)

    def convert_temperature(self, value: float, from_unit: str, to_unit: str) -> Future:
        error = self._gate("convert temperature")
        if error:
            return _rejected(error)
        return self.backend.convert_temperature(value, from_unit, to_unit)

    def weather_prompt(self, city: str) -> Future:
        error = self._gate("fetch weather prompt")
        if error:
            return _rejected(error)
        return self.backend.weather_prompt(city)


__all__ = [
    "ServerStatus",
    "WeatherBackend",
    "WeatherShell",
    "failure_message",
]
