"""Errors raised by the token broker, the webhook parser and the relay client."""

from typing import Any


class AuthBrokerError(Exception):
    """Client-credentials exchange with the token endpoint failed."""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None):
        self.message = message
        self.status_code = status_code
        self.body = body
        super().__init__(f"{message} (Status: {status_code})")


class MalformedRequest(Exception):
    """Inbound webhook is structurally invalid and was rejected before verification."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class UpstreamError(Exception):
    """The verification provider could not be reached."""
