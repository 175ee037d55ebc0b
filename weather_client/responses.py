"""
Parsing of the text payloads returned by the weather server.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List

from weather_server.catalog import CityNotFound, WeatherRecord

from .errors import UnexpectedResponseError

logger = logging.getLogger(__name__)


def parse_city_list(text: str) -> List[str]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise UnexpectedResponseError("City list is not valid JSON.") from exc
    if not isinstance(payload, list) or not all(isinstance(item, str) for item in payload):
        raise UnexpectedResponseError("City list must be a JSON array of names.")
    return payload


def parse_city_weather(city: str, text: str) -> WeatherRecord | CityNotFound:
    """
    Interpret a city resource: a JSON record, or a plain not-found message.
    """
    try:
        payload: Any = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("No weather record for %s: %s", city, text)
        return CityNotFound(city)
    if not isinstance(payload, dict):
        raise UnexpectedResponseError(f"Unexpected weather payload for {city}.")
    try:
        return WeatherRecord.from_payload(payload)
    except ValueError as exc:
        raise UnexpectedResponseError(str(exc)) from exc


def parse_number(value: Any) -> float:
    if isinstance(value, dict) and "result" in value:
        value = value["result"]
    if isinstance(value, list) and len(value) == 1:
        value = value[0]
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise UnexpectedResponseError(f"Expected a number, got {value!r}.") from exc


__all__ = ["parse_city_list", "parse_city_weather", "parse_number"]
