"""
Weather MCP server package exposing a static city weather catalog.
"""

from .weather_server import create_weather_server

__all__ = ["create_weather_server"]
