from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable

from limitbar.errors import UnsupportedError
from limitbar.models import (
    AccountConfig,
    AccountKind,
    AccountSnapshot,
    LimitMetric,
    OverallStatus,
    Provider,
    SourceInfo,
)
from limitbar.status import overall_status

Clock = Callable[[], datetime]

DAY_SECONDS = 86_400


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def require_api_account(account: AccountConfig, reason: str) -> None:
    """Raise ``UnsupportedError`` unless the account authenticates with an API key."""
    if account.account_kind is not AccountKind.API:
        raise UnsupportedError(reason)


class ProviderAdapter(ABC):
    provider: Provider

    @abstractmethod
    async def fetch(self, account: AccountConfig) -> AccountSnapshot:
        """Return a snapshot for ``account``; failures end up inside it."""
        raise NotImplementedError


def finish_snapshot(
    account: AccountConfig,
    metrics: list[LimitMetric],
    failures: list[str],
    now: datetime,
    summary: str,
    success_detail: str,
) -> AccountSnapshot:
    """Build the snapshot for an adapter that ran several independent sub-fetches.

    Any failed sub-fetch turns the empty-metrics fallback into ``error`` and
    lifts an ``ok`` or ``unknown`` result to ``warning``, so an account with a
    failed sub-fetch never reads better than ``warning``.
    """
    fallback = OverallStatus.ERROR if failures else OverallStatus.UNKNOWN
    status = overall_status(metrics, fallback=fallback)
    if failures and status < OverallStatus.WARNING:
        status = OverallStatus.WARNING

    return AccountSnapshot(
        id=account.id,
        display_name=account.display_name,
        provider=account.provider,
        account_kind=account.account_kind,
        metrics=tuple(metrics),
        overall_status=status,
        last_updated=now,
        source_info=SourceInfo(
            summary=summary,
            details=tuple(failures) if failures else (success_detail,),
        ),
    )
