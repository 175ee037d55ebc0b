"""Tests for the newline-delimited JSON-RPC transport."""

from __future__ import annotations

import io
import json
from typing import Any

from weather_server.line_protocol import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    dispatch,
    handle_line,
    serve_lines,
)


def _request(method: str, params: dict[str, Any], request_id: int = 1) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "method": method, "params": params, "id": request_id}


def _text(response: dict[str, Any]) -> str:
    result = response["result"]
    if "contents" in result:
        return result["contents"][0]["text"]
    return result["content"][0]["text"]


class TestGetResource:
    """Tests for get_resource requests."""

    def test_cities(self) -> None:
        response = dispatch(_request("get_resource", {"uri": "weather://cities"}))
        assert response["id"] == 1
        assert response["jsonrpc"] == "2.0"
        assert response["result"]["contents"][0]["uri"] == "weather://cities"
        assert sorted(json.loads(_text(response))) == [
            "London",
            "New York",
            "Paris",
            "Sydney",
            "Tokyo",
        ]

    def test_city_record(self) -> None:
        response = dispatch(_request("get_resource", {"uri": "weather://city/Tokyo"}))
        assert json.loads(_text(response)) == {
            "temperature": 78,
            "condition": "Partly Cloudy",
            "humidity": 65,
            "windSpeed": 5,
        }

    def test_city_name_is_percent_decoded(self) -> None:
        response = dispatch(
            _request("get_resource", {"uri": "weather://city/New%20York"})
        )
        assert json.loads(_text(response))["condition"] == "Sunny"

    def test_unknown_city_is_a_message(self) -> None:
        response = dispatch(
            _request("get_resource", {"uri": "weather://city/Atlantis"})
        )
        assert "error" not in response
        assert _text(response) == "No weather data available for Atlantis"

    def test_unknown_uri(self) -> None:
        response = dispatch(_request("get_resource", {"uri": "weather://moon"}))
        assert response["error"]["code"] == INVALID_PARAMS


class TestInvokeTool:
    """Tests for invoke_tool requests."""

    def test_get_weather(self) -> None:
        response = dispatch(
            _request("invoke_tool", {"tool": "getWeather", "arguments": {"city": "London"}})
        )
        assert response["result"]["isError"] is False
        assert _text(response).startswith("Weather in London:\nTemperature: 62°F")

    def test_get_weather_unknown_city(self) -> None:
        response = dispatch(
            _request("invoke_tool", {"tool": "getWeather", "arguments": {"city": "Atlantis"}})
        )
        assert response["result"]["isError"] is True
        assert _text(response) == "No weather data available for Atlantis"

    def test_convert_temperature(self) -> None:
        response = dispatch(
            _request(
                "invoke_tool",
                {
                    "tool": "convertTemperature",
                    "arguments": {"temperature": 32, "from": "fahrenheit", "to": "celsius"},
                },
            )
        )
        assert _text(response) == "0.0"

    def test_convert_temperature_same_unit_echoes_value(self) -> None:
        response = dispatch(
            _request(
                "invoke_tool",
                {
                    "tool": "convertTemperature",
                    "arguments": {"temperature": 21.75, "from": "celsius", "to": "celsius"},
                },
            )
        )
        assert _text(response) == "21.75"

    def test_convert_temperature_bad_unit(self) -> None:
        response = dispatch(
            _request(
                "invoke_tool",
                {
                    "tool": "convertTemperature",
                    "arguments": {"temperature": 1, "from": "kelvin", "to": "celsius"},
                },
            )
        )
        assert response["error"]["code"] == INVALID_PARAMS

    def test_unknown_tool(self) -> None:
        response = dispatch(_request("invoke_tool", {"tool": "forecast", "arguments": {}}))
        assert response["error"]["code"] == INVALID_PARAMS


class TestEnvelopes:
    """Tests for envelope validation and the serving loop."""

    def test_get_prompt(self) -> None:
        response = dispatch(
            _request("get_prompt", {"name": "weatherPrompt", "arguments": {"city": "Paris"}})
        )
        message = response["result"]["messages"][0]
        assert message["role"] == "user"
        assert message["content"]["text"] == "What's the weather like in Paris?"

    def test_unknown_method(self) -> None:
        response = dispatch(_request("resources/list", {}, request_id=7))
        assert response == {
            "jsonrpc": "2.0",
            "error": {"code": METHOD_NOT_FOUND, "message": "Method not found: resources/list"},
            "id": 7,
        }

    def test_missing_method(self) -> None:
        response = dispatch({"jsonrpc": "2.0", "id": 3})
        assert response["error"]["code"] == INVALID_REQUEST

    def test_notification_gets_no_response(self) -> None:
        assert dispatch({"jsonrpc": "2.0", "method": "get_resource", "params": {"uri": "weather://cities"}}) is None

    def test_parse_error(self) -> None:
        response = json.loads(handle_line("{not json"))
        assert response["error"]["code"] == PARSE_ERROR
        assert response["id"] is None

    def test_serve_lines(self) -> None:
        requests = [
            _request("get_resource", {"uri": "weather://cities"}, request_id=1),
            _request("invoke_tool", {"tool": "getWeather", "arguments": {"city": "Paris"}}, request_id=2),
        ]
        stdin = io.StringIO("\n".join(json.dumps(item) for item in requests) + "\n\n")
        stdout = io.StringIO()

        serve_lines(stdin, stdout)

        lines = stdout.getvalue().splitlines()
        assert [json.loads(line)["id"] for line in lines] == [1, 2]


class TestMalformedRequests:
    """Tests that bad input yields error responses and keeps the loop alive."""

    def test_non_string_tool(self) -> None:
        response = dispatch(_request("invoke_tool", {"tool": ["x"]}))
        assert response["error"]["code"] == INVALID_PARAMS
        assert response["error"]["message"] == "Parameter 'tool' must be a string."

    def test_non_string_prompt_name(self) -> None:
        response = dispatch(_request("get_prompt", {"name": {"a": 1}}))
        assert response["error"]["code"] == INVALID_PARAMS

    def test_non_object_arguments(self) -> None:
        response = dispatch(
            _request("invoke_tool", {"tool": "getWeather", "arguments": ["Paris"]})
        )
        assert response["error"]["message"] == "Parameter 'arguments' must be an object."

    def test_oversized_number_is_a_parse_error(self) -> None:
        response = json.loads(handle_line("1" * 5000))
        assert response["error"]["code"] == PARSE_ERROR

    def test_deeply_nested_json_is_a_parse_error(self) -> None:
        response = json.loads(handle_line("[" * 100000 + "]" * 100000))
        assert response["error"]["code"] == PARSE_ERROR

    def test_empty_list_params_is_not_an_object(self) -> None:
        envelope = {"jsonrpc": "2.0", "method": "get_resource", "params": [], "id": 4}
        response = dispatch(envelope)
        assert response["error"]["code"] == INVALID_PARAMS
        assert response["error"]["message"] == "Parameter 'params' must be an object."

    def test_null_params_defaults_to_empty(self) -> None:
        envelope = {"jsonrpc": "2.0", "method": "get_resource", "params": None, "id": 5}
        response = dispatch(envelope)
        assert response["error"]["message"] == "Missing parameter 'uri'."

    def test_non_scalar_id_is_rejected(self) -> None:
        envelope = _request("get_resource", {"uri": "weather://cities"})
        envelope["id"] = {"x": 1}
        response = dispatch(envelope)
        assert response["error"]["code"] == INVALID_REQUEST
        assert response["id"] is None

    def test_loop_survives_bad_requests(self) -> None:
        lines = [
            json.dumps({"method": "invoke_tool", "params": {"tool": ["x"]}, "id": 1}),
            "1" * 5000,
            json.dumps(_request("get_resource", {"uri": "weather://cities"}, request_id=2)),
        ]
        stdin = io.StringIO("\n".join(lines) + "\n")
        stdout = io.StringIO()

        serve_lines(stdin, stdout)

        responses = [json.loads(line) for line in stdout.getvalue().splitlines()]
        assert [item["id"] for item in responses] == [1, None, 2]
        assert responses[0]["error"]["code"] == INVALID_PARAMS
        assert responses[1]["error"]["code"] == PARSE_ERROR
        assert "result" in responses[2]
