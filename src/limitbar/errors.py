"""Error types raised inside adapters and configuration loading.

Adapters catch every ``LimitbarError`` at the sub-fetch boundary and turn it
into a detail line on the account snapshot, so ``str(error)`` is what the
user ends up reading.
"""

from __future__ import annotations


class LimitbarError(Exception):
    """Base class for all limitbar failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class MissingSecretError(LimitbarError):
    """A required API key, OAuth token or project id could not be resolved."""


class InvalidConfigError(LimitbarError):
    """The configuration file exists but cannot be used."""


class InvalidResponseError(LimitbarError):
    """A malformed URL or a response that is not an HTTP response."""


class HttpStatusError(LimitbarError):
    """The provider answered with a non-2xx status code."""

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        if body:
            message = f"HTTP status {status_code}: {body}"
        else:
            message = f"HTTP status {status_code}"
        super().__init__(message)


class ParsingError(LimitbarError):
    """The payload could not be decoded or lacks a required field."""


class UnsupportedError(LimitbarError):
    """The requested data is not exposed for this kind of account."""


class TransportError(LimitbarError):
    """The request failed below HTTP: connection, timeout, decoding or redirects."""
