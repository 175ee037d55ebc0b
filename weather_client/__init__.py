"""
Desktop client that drives the weather server as a subprocess.
"""

from .line_client import LineProtocolClient
from .mcp_client import WeatherMCPClient
from .shell import ServerStatus, WeatherShell

__all__ = ["LineProtocolClient", "ServerStatus", "WeatherMCPClient", "WeatherShell"]
