"""
Newline-delimited JSON-RPC transport for clients that talk to the server over
plain pipes instead of a full MCP session.

Each input line holds one envelope::

    {"jsonrpc": "2.0", "method": "get_resource", "params": {"uri": "weather://cities"}, "id": 1}

and each envelope carrying an ``id`` gets exactly one response line.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional, TextIO

from .catalog import (
    CityNotFound,
    convert_temperature,
    format_weather_report,
    get_weather,
    weather_prompt,
)
from .weather_server import (
    CITIES_URI,
    CITY_URI_PREFIX,
    read_cities_resource,
    read_city_resource,
)

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602


class ProtocolError(Exception):
    """Raised by handlers to produce a JSON-RPC error response."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def _text_content(text: str) -> Dict[str, str]:
    return {"type": "text", "text": text}


def _require(params: Dict[str, Any], key: str) -> Any:
    if key not in params:
        raise ProtocolError(INVALID_PARAMS, f"Missing parameter '{key}'.")
    return params[key]


def _optional_object(container: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = container.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ProtocolError(INVALID_PARAMS, f"Parameter '{key}' must be an object.")
    return value


def _require_name(params: Dict[str, Any], key: str) -> str:
    value = _require(params, key)
    if not isinstance(value, str):
        raise ProtocolError(INVALID_PARAMS, f"Parameter '{key}' must be a string.")
    return value


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _handle_get_resource(params: Dict[str, Any]) -> Dict[str, Any]:
    uri = _require(params, "uri")
    if not isinstance(uri, str):
        raise ProtocolError(INVALID_PARAMS, "Parameter 'uri' must be a string.")
    if uri == CITIES_URI:
        text = read_cities_resource()
    elif uri.startswith(CITY_URI_PREFIX) and len(uri) > len(CITY_URI_PREFIX):
        text = read_city_resource(uri[len(CITY_URI_PREFIX):])
    else:
        raise ProtocolError(INVALID_PARAMS, f"Unknown resource: {uri}")
    return {"contents": [{"uri": uri, "text": text}]}


def _tool_get_weather(arguments: Dict[str, Any]) -> Dict[str, Any]:
    city = _require(arguments, "city")
    if not isinstance(city, str):
        raise ProtocolError(INVALID_PARAMS, "Argument 'city' must be a string.")
    result = get_weather(city)
    if isinstance(result, CityNotFound):
        return {"content": [_text_content(result.message)], "isError": True}
    return {
        "content": [_text_content(format_weather_report(city, result))],
        "isError": False,
    }


def _tool_convert_temperature(arguments: Dict[str, Any]) -> Dict[str, Any]:
    temperature = _require(arguments, "temperature")
    source = _require(arguments, "from")
    target = _require(arguments, "to")
    if isinstance(temperature, bool) or not isinstance(temperature, (int, float)):
        raise ProtocolError(INVALID_PARAMS, "Argument 'temperature' must be a number.")
    try:
        value = convert_temperature(temperature, source, target)
    except ValueError as exc:
        raise ProtocolError(INVALID_PARAMS, str(exc)) from exc
    if source == target:
        text = _format_number(value)
    else:
        text = f"{value:.1f}"
    return {"content": [_text_content(text)], "isError": False}


TOOLS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    "getWeather": _tool_get_weather,
    "convertTemperature": _tool_convert_temperature,
}


def _handle_invoke_tool(params: Dict[str, Any]) -> Dict[str, Any]:
    tool = _require_name(params, "tool")
    arguments = _optional_object(params, "arguments")
    handler = TOOLS.get(tool)
    if handler is None:
        raise ProtocolError(INVALID_PARAMS, f"Unknown tool: {tool}")
    logger.info("Invoking tool %s with %s", tool, arguments)
    return handler(arguments)


def _handle_get_prompt(params: Dict[str, Any]) -> Dict[str, Any]:
    name = _require_name(params, "name")
    if name != "weatherPrompt":
        raise ProtocolError(INVALID_PARAMS, f"Unknown prompt: {name}")
    arguments = _optional_object(params, "arguments")
    city = _require(arguments, "city")
    return {
        "messages": [
            {"role": "user", "content": _text_content(weather_prompt(str(city)))}
        ]
    }


METHODS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    "get_resource": _handle_get_resource,
    "invoke_tool": _handle_invoke_tool,
    "get_prompt": _handle_get_prompt,
}


def _error_response(request_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "error": {"code": code, "message": message},
        "id": request_id,
    }


def dispatch(envelope: Any) -> Optional[Dict[str, Any]]:
    """
    Answer one decoded envelope. Returns ``None`` for notifications.
    """
    if not isinstance(envelope, dict):
        return _error_response(None, INVALID_REQUEST, "Request must be a JSON object.")

    request_id = envelope.get("id")
    is_notification = "id" not in envelope
    if isinstance(request_id, bool) or not isinstance(
        request_id, (str, int, float, type(None))
    ):
        return _error_response(
            None, INVALID_REQUEST, "Request id must be a string, number or null."
        )
    method = envelope.get("method")
    params = envelope.get("params")
    if params is None:
        params = {}

    try:
        if not isinstance(method, str):
            raise ProtocolError(INVALID_REQUEST, "Request is missing 'method'.")
        if not isinstance(params, dict):
            raise ProtocolError(INVALID_PARAMS, "Parameter 'params' must be an object.")
        handler = METHODS.get(method)
        if handler is None:
            raise ProtocolError(METHOD_NOT_FOUND, f"Method not found: {method}")
        result = handler(params)
    except ProtocolError as exc:
        logger.warning("Request %s failed: %s", request_id, exc.message)
        if is_notification:
            return None
        return _error_response(request_id, exc.code, exc.message)

    if is_notification:
        return None
    return {"jsonrpc": JSONRPC_VERSION, "result": result, "id": request_id}


def handle_line(line: str) -> Optional[str]:
    """
    Decode one input line and return the encoded response line, if any.
    """
    try:
        envelope = json.loads(line)
    except (ValueError, RecursionError) as exc:
        logger.warning("Discarding malformed request: %s", exc)
        return json.dumps(_error_response(None, PARSE_ERROR, "Parse error"))
    response = dispatch(envelope)
    if response is None:
        return None
    return json.dumps(response)


def serve_lines(stdin: TextIO, stdout: TextIO) -> None:
    """
    Serve requests until ``stdin`` is exhausted.
    """
    for raw_line in stdin:
        line = raw_line.strip()
        if not line:
            continue
        response = handle_line(line)
        if response is None:
            continue
        stdout.write(response + "\n")
        stdout.flush()
    logger.info("Input stream closed, stopping line server.")


__all__ = [
    "INVALID_PARAMS",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "PARSE_ERROR",
    "ProtocolError",
    "dispatch",
    "handle_line",
    "serve_lines",
]
