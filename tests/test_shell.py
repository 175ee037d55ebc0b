"""Tests for the client shell lifecycle and request gating."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any

import pytest

from weather_client.errors import ServerNotRunningError
from weather_client.shell import ServerStatus, WeatherShell, failure_message
from weather_server.catalog import get_weather


def _done(value: Any) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future


def _failed(exc: BaseException) -> Future:
    future: Future = Future()
    future.set_exception(exc)
    return future


class FakeBackend:
    name = "fake"

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.start_result: Future | None = None
        self.stop_result: Future | None = None
        self.closed = False

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    def start(self) -> Future:
        self._record("start")
        return self.start_result or _done("MCP server started")

    def stop(self) -> Future:
        self._record("stop")
        return self.stop_result or _done("MCP server stopped")

    def list_cities(self) -> Future:
        self._record("list_cities")
        return _done(["Paris"])

    def get_weather(self, city: str) -> Future:
        self._record("get_weather", city)
        return _done(get_weather(city))

    def describe_weather(self, city: str) -> Future:
        self._record("describe_weather", city)
        return _done(f"Weather in {city}")

    def convert_temperature(self, value: float, from_unit: str, to_unit: str) -> Future:
        self._record("convert_temperature", value, from_unit, to_unit)
        return _done(0.0)

    def weather_prompt(self, city: str) -> Future:
        self._record("weather_prompt", city)
        return _done(f"What's the weather like in {city}?")

    def shutdown(self) -> None:
        self.closed = True


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def shell(backend: FakeBackend) -> WeatherShell:
    return WeatherShell(backend)


class TestLifecycle:
    """Tests for start/stop transitions."""

    def test_initially_stopped(self, shell: WeatherShell) -> None:
        assert shell.status is ServerStatus.STOPPED
        assert not shell.is_running

    def test_start_then_stop(self, shell: WeatherShell) -> None:
        assert shell.start().result() == "MCP server started"
        assert shell.status is ServerStatus.RUNNING

        assert shell.stop().result() == "MCP server stopped"
        assert shell.status is ServerStatus.STOPPED

    def test_starting_until_backend_finishes(
        self, shell: WeatherShell, backend: FakeBackend
    ) -> None:
        pending: Future = Future()
        backend.start_result = pending

        shell.start()
        assert shell.status is ServerStatus.STARTING

        pending.set_result("MCP server started")
        assert shell.status is ServerStatus.RUNNING

    def test_start_twice_is_a_no_op(
        self, shell: WeatherShell, backend: FakeBackend
    ) -> None:
        shell.start().result()
        assert shell.start().result() == "MCP server is already running"
        assert [name for name, _ in backend.calls] == ["start"]

    def test_failed_start_returns_to_stopped(
        self, shell: WeatherShell, backend: FakeBackend
    ) -> None:
        backend.start_result = _failed(OSError("python not found"))

        future = shell.start()

        assert isinstance(future.exception(), OSError)
        assert shell.status is ServerStatus.STOPPED

    def test_stop_when_stopped(self, shell: WeatherShell, backend: FakeBackend) -> None:
        assert shell.stop().result() == "MCP server was not running"
        assert backend.calls == []

    def test_failed_stop_keeps_running(
        self, shell: WeatherShell, backend: FakeBackend
    ) -> None:
        shell.start().result()
        backend.stop_result = _failed(PermissionError("denied"))

        future = shell.stop()

        assert isinstance(future.exception(), PermissionError)
        assert shell.status is ServerStatus.RUNNING

    def test_stopping_state(self, shell: WeatherShell, backend: FakeBackend) -> None:
        shell.start().result()
        pending: Future = Future()
        backend.stop_result = pending

        shell.stop()
        assert shell.status is ServerStatus.STOPPING
        assert isinstance(shell.start().exception(), ServerNotRunningError)

        pending.set_result("MCP server stopped")
        assert shell.status is ServerStatus.STOPPED

    def test_close_shuts_backend_down(
        self, shell: WeatherShell, backend: FakeBackend
    ) -> None:
        shell.start().result()
        shell.close()
        assert backend.closed
        assert shell.status is ServerStatus.STOPPED


class TestRequests:
    """Tests for request gating."""

    def test_requests_rejected_while_stopped(
        self, shell: WeatherShell, backend: FakeBackend
    ) -> None:
        future = shell.fetch_cities()

        error = future.exception()
        assert isinstance(error, ServerNotRunningError)
        assert str(error) == "Cannot fetch cities: MCP server not running"
        assert isinstance(shell.fetch_weather("Paris").exception(), ServerNotRunningError)
        assert isinstance(
            shell.convert_temperature(1, "celsius", "fahrenheit").exception(),
            ServerNotRunningError,
        )
        assert backend.calls == []

    def test_requests_forwarded_while_running(
        self, shell: WeatherShell, backend: FakeBackend
    ) -> None:
        shell.start().result()

        assert shell.fetch_cities().result() == ["Paris"]
        assert shell.fetch_weather("Tokyo").result().condition == "Partly Cloudy"
        assert shell.describe_weather("Tokyo").result() == "Weather in Tokyo"
        assert shell.convert_temperature(32, "fahrenheit", "celsius").result() == 0.0
        assert shell.weather_prompt("Tokyo").result() == "What's the weather like in Tokyo?"
        assert ("convert_temperature", (32, "fahrenheit", "celsius")) in backend.calls


def test_failure_message() -> None:
    assert (
        failure_message("start MCP server", OSError("boom"))
        == "Failed to start MCP server: boom"
    )
