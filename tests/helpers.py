from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Mapping

from limitbar.errors import HttpStatusError
from limitbar.models import AccountConfig, AccountKind, Provider
from limitbar.transport import HttpResult

FIXED_NOW = datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)


class FakeTransport:
    """Routes GETs to a handler and records every request."""

    def __init__(self, handler: Callable[[str, Mapping[str, str]], HttpResult]) -> None:
        self.handler = handler
        self.requests: list[tuple[str, dict[str, str]]] = []

    async def get(self, url: str, headers: Mapping[str, str], timeout: float = 10.0) -> HttpResult:
        self.requests.append((url, dict(headers)))
        return self.handler(url, headers)


def ok(body: str = "{}", headers: dict[str, str] | None = None) -> HttpResult:
    return HttpResult(status_code=200, body=body.encode(), headers=headers or {})


def fail(status: int = 500, body: str = "boom"):
    raise HttpStatusError(status, body)


def make_account(
    account_id: str = "acct",
    provider: Provider = Provider.CODEX,
    kind: AccountKind = AccountKind.API,
    display_name: str | None = None,
    **settings: str,
) -> AccountConfig:
    return AccountConfig(
        id=account_id,
        display_name=display_name or account_id,
        provider=provider,
        account_kind=kind,
        settings=dict(settings),
    )
