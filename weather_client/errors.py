"""
Error types raised by the weather client backends and shell.
"""

from __future__ import annotations


class ShellError(RuntimeError):
    """Base error for client-side failures."""


class ServerNotRunningError(ShellError):
    """A request was issued while the server is not running."""


class ServiceError(ShellError):
    """The server answered a request with an error."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class UnexpectedResponseError(ShellError):
    """The server answered with a payload the client cannot interpret."""


__all__ = [
    "ServerNotRunningError",
    "ServiceError",
    "ShellError",
    "UnexpectedResponseError",
]
