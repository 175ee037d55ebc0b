"""
FastMCP server exposing the static weather catalog as resources, tools and a prompt.
"""

from __future__ import annotations

import json
import logging
from typing import Annotated
from urllib.parse import unquote

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from .catalog import (
    CityNotFound,
    Unit,
    convert_temperature,
    format_weather_report,
    get_weather,
    list_cities,
    weather_prompt,
)

logger = logging.getLogger(__name__)

SERVER_NAME = "Weather MCP Server"
CITIES_URI = "weather://cities"
CITY_URI_TEMPLATE = "weather://city/{city_name}"
CITY_URI_PREFIX = "weather://city/"


def read_cities_resource() -> str:
    return json.dumps(list_cities())


def read_city_resource(city_name: str) -> str:
    """
    Render one catalog entry as JSON text, or the not-found message as plain text.
    """
    city = unquote(city_name)
    result = get_weather(city)
    if isinstance(result, CityNotFound):
        logger.info("Resource requested for unknown city: %s", city)
        return result.message
    return json.dumps(result.to_payload(), indent=2)


def create_weather_server() -> FastMCP:
    """
    Create and configure the FastMCP server with the weather catalog.
    """

    server = FastMCP(SERVER_NAME)

    @server.resource(
        CITIES_URI,
        name="cities",
        description="Names of every city with weather data.",
        mime_type="application/json",
    )
    def cities() -> str:
        return read_cities_resource()

    @server.resource(
        CITY_URI_TEMPLATE,
        name="cityWeather",
        description="Weather data for a single city.",
    )
    def city_weather(city_name: str) -> str:
        return read_city_resource(city_name)

    @server.tool(
        name="getWeather",
        description="Returns a short weather report for one of the known cities.",
        title="Get weather",
    )
    def get_weather_tool(city: str) -> str:
        logger.info("Weather requested for %s", city)
        result = get_weather(city)
        if isinstance(result, CityNotFound):
            raise ToolError(result.message)
        return format_weather_report(city, result)

    @server.tool(
        name="convertTemperature",
        description="Converts a temperature between celsius and fahrenheit.",
        title="Convert temperature",
    )
    def convert_temperature_tool(
        temperature: float,
        source: Annotated[Unit, Field(alias="from")],
        target: Annotated[Unit, Field(alias="to")],
    ) -> float:
        logger.info("Converting %s from %s to %s", temperature, source, target)
        try:
            return convert_temperature(temperature, source, target)
        except ValueError as exc:
            raise ToolError(str(exc)) from exc

    @server.prompt(
        name="weatherPrompt",
        description="Asks about the weather in a city.",
    )
    def weather_prompt_template(city: str) -> str:
        return weather_prompt(city)

    return server


__all__ = [
    "CITIES_URI",
    "CITY_URI_PREFIX",
    "CITY_URI_TEMPLATE",
    "SERVER_NAME",
    "create_weather_server",
    "read_cities_resource",
    "read_city_resource",
]
