# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Custom exceptions for Wilson."""


class WilsonError(Exception):
    """Base exception for all Wilson errors."""

    pass


class ConfigurationError(WilsonError):
    """Raised when required configuration is missing or invalid."""

    pass


class SecurityError(WilsonError):
    """Raised when a security constraint is violated."""

    pass


class PathTraversalError(SecurityError):
    """Raised when a path escapes the working directory."""

    pass


class UnknownToolError(WilsonError):
    """Raised by a tool backend asked to run a tool it does not provide.

    Attributes:
        tool_name: Name of the tool that was requested.
    """

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class InvalidTransitionError(WilsonError):
    """Raised when a conversation turn moves to a state it cannot reach."""

    pass


class BackendError(WilsonError):
    """Base exception for backend client errors."""

    pass


class BackendUnreachableError(BackendError):
    """Raised when the backend cannot be reached."""

    pass


class StreamTransportError(BackendError):
    """Raised when the connection fails after the backend was reached."""

    pass


class BackendRequestError(BackendError):
    """Raised when the backend rejects a request.

    Attributes:
        status_code: HTTP status code returned by the backend.
        body: Response body text, if any.
    """

    def __init__(self, status_code: int, body: str = ""):
        message = f"API error: {status_code}"
        if body:
            message = f"{message} - {body}"
        super().__init__(message)
        self.status_code = status_code
        self.body = body
