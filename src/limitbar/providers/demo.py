from __future__ import annotations

import hashlib
from datetime import datetime, timedelta

from limitbar.models import (
    AccountConfig,
    AccountKind,
    AccountSnapshot,
    LimitMetric,
    Provider,
    SourceInfo,
    WindowKind,
)
from limitbar.providers.base import Clock, ProviderAdapter, utc_now
from limitbar.status import metric_status_from_used, overall_status


def demo_seed(account_id: str) -> int:
    """Stable 0..99 seed; unlike ``hash()`` it survives interpreter restarts."""
    digest = hashlib.sha256(account_id.encode("utf-8")).hexdigest()
    return int(digest, 16) % 100


def _metric(name: str, window: WindowKind, limit: float, used: float, unit: str, reset_at: datetime) -> LimitMetric:
    return LimitMetric(
        name=name,
        window=window,
        limit=limit,
        used=used,
        remaining=max(0.0, limit - used),
        reset_at=reset_at,
        unit=unit,
        status=metric_status_from_used(limit, used),
    )


def demo_metrics(account: AccountConfig, now: datetime) -> list[LimitMetric]:
    seed = demo_seed(account.id)

    if account.account_kind is AccountKind.SUBSCRIPTION:
        return [
            _metric("Session Messages", WindowKind.SESSION, 45.0, float(seed % 28 + 10), "messages",
                    now + timedelta(hours=1)),
            _metric("Weekly Messages", WindowKind.WEEKLY, 250.0, float(seed % 160 + 30), "messages",
                    now + timedelta(days=5)),
        ]

    daily_budget = float(seed % 8 + 8)
    return [
        _metric("Cost (24h)", WindowKind.DAILY, daily_budget, (seed % int(daily_budget * 100)) / 100, "usd",
                now + timedelta(hours=24)),
        _metric("Requests", WindowKind.RPM, 120.0, float(seed % 100 + 8), "requests/min",
                now + timedelta(seconds=60)),
        _metric("Tokens", WindowKind.TPM, 120_000.0, float(seed % 95_000 + 18_000), "tokens/min",
                now + timedelta(seconds=60)),
    ]


class DemoDataAdapter(ProviderAdapter):
    """Plausible, deterministic numbers for accounts with ``demo = true``."""

    def __init__(self, provider: Provider, now: Clock = utc_now) -> None:
        self.provider = provider
        self.now = now

    async def fetch(self, account: AccountConfig) -> AccountSnapshot:
        current = self.now()
        metrics = demo_metrics(account, current)
        return AccountSnapshot(
            id=account.id,
            display_name=account.display_name,
            provider=account.provider,
            account_kind=account.account_kind,
            metrics=tuple(metrics),
            overall_status=overall_status(metrics),
            last_updated=current,
            source_info=SourceInfo(
                summary="Demo data",
                details=("Rendered from local demo mode (account.settings.demo=true)",),
            ),
        )
