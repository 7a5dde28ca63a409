"""httpx-based transport shared by every provider adapter.

All calls are GETs with a JSON content type and a fixed timeout. Failures are
raised as ``LimitbarError`` subclasses so adapters only ever catch one family.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

import httpx

from limitbar.errors import HttpStatusError, InvalidResponseError, ParsingError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


@dataclass
class HttpResult:
    status_code: int
    body: bytes
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        try:
            return json.loads(self.body)
        except ValueError as exc:
            raise ParsingError(f"Failed to parse JSON: {exc}") from exc

    def header(self, name: str) -> str | None:
        # httpx.Headers is case-insensitive; plain dicts from callers may not be.
        value = self.headers.get(name)
        if value is None:
            lowered = name.lower()
            for key, candidate in self.headers.items():
                if key.lower() == lowered:
                    return candidate
        return value


class HttpTransport(Protocol):
    async def get(
        self,
        url: str,
        headers: Mapping[str, str],
        timeout: float = DEFAULT_TIMEOUT,
    ) -> HttpResult: ...


class HttpxTransport:
    """Async httpx client wrapper for provider APIs."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    async def get(
        self,
        url: str,
        headers: Mapping[str, str],
        timeout: float = DEFAULT_TIMEOUT,
    ) -> HttpResult:
        request_headers = {"Content-Type": "application/json", **headers}
        logger.debug("GET %s", url.split("?", 1)[0])
        try:
            if self._client is not None:
                resp = await self._client.get(url, headers=request_headers, timeout=timeout)
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    resp = await client.get(url, headers=request_headers)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            raise InvalidResponseError(f"Invalid URL {url}: {exc}") from exc
        except httpx.TimeoutException as exc:
            raise TransportError(f"Request timed out after {timeout:g}s") from exc
        except httpx.RequestError as exc:
            raise TransportError(f"Request failed: {exc}") from exc

        result = HttpResult(status_code=resp.status_code, body=resp.content, headers=resp.headers)
        if not 200 <= result.status_code < 300:
            logger.debug("GET %s -> %s", url.split("?", 1)[0], result.status_code)
            raise HttpStatusError(result.status_code, result.text)
        return result
