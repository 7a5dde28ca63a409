from __future__ import annotations

import logging
from typing import Any

from limitbar.errors import LimitbarError, MissingSecretError, ParsingError, UnsupportedError
from limitbar.extract import parse_number
from limitbar.models import (
    AccountConfig,
    AccountSnapshot,
    LimitMetric,
    Provider,
    SourceInfo,
    WindowKind,
)
from limitbar.providers.base import Clock, ProviderAdapter, require_api_account, utc_now
from limitbar.secrets import GCP_PROJECT, GOOGLE_OAUTH_TOKEN, EnvSecretResolver
from limitbar.status import overall_status
from limitbar.transport import HttpTransport

logger = logging.getLogger(__name__)

QUOTA_URL = (
    "https://serviceusage.googleapis.com/v1/projects/{project}"
    "/services/generativelanguage.googleapis.com/consumerQuotaMetrics?view=FULL"
)
MAX_METRICS = 8


def infer_window(unit: str) -> WindowKind:
    lower = unit.lower()
    if "minute" in lower:
        return WindowKind.RPM
    if "day" in lower:
        return WindowKind.DAILY
    if "week" in lower:
        return WindowKind.WEEKLY
    return WindowKind.CUSTOM


def effective_limit(limit_entry: dict) -> float | None:
    for bucket in _dicts(limit_entry.get("quotaBuckets")):
        value = parse_number(bucket.get("effectiveLimit"))
        if value is not None:
            return value
        value = parse_number(bucket.get("defaultLimit"))
        if value is not None:
            return value
    return None


def _dicts(value: Any) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _text(entry: dict, *keys: str, default: str) -> str:
    for key in keys:
        value = entry.get(key)
        if isinstance(value, str):
            return value
    return default


def parse_quota_metrics(payload: Any) -> list[LimitMetric]:
    """Flatten ``consumerQuotaMetrics[].consumerQuotaLimits[]`` into metrics.

    Raises ``ParsingError`` when the payload is not an object or yields no
    limits at all; only the first eight limits are kept.
    """
    if not isinstance(payload, dict):
        raise ParsingError("Invalid Service Usage payload")

    metrics: list[LimitMetric] = []
    for raw_metric in _dicts(payload.get("consumerQuotaMetrics")):
        metric_name = _text(raw_metric, "displayName", "metric", default="Quota")
        for limit in _dicts(raw_metric.get("consumerQuotaLimits")):
            limit_name = _text(limit, "displayName", "name", default="Limit")
            unit = _text(limit, "unit", default="quota")
            metrics.append(
                LimitMetric(
                    id=f"{metric_name}-{limit_name}-{unit}",
                    name=f"{metric_name} / {limit_name}",
                    window=infer_window(unit),
                    limit=effective_limit(limit),
                    unit=unit,
                )
            )

    if not metrics:
        raise ParsingError("No quota metrics returned for the configured project")
    return metrics[:MAX_METRICS]


class GeminiAdapter(ProviderAdapter):
    provider = Provider.GEMINI

    def __init__(self, transport: HttpTransport, secrets: EnvSecretResolver, now: Clock = utc_now) -> None:
        self.transport = transport
        self.secrets = secrets
        self.now = now

    async def fetch(self, account: AccountConfig) -> AccountSnapshot:
        current = self.now()

        try:
            require_api_account(account, "Public API does not expose remaining limits for Gemini subscription accounts.")
            project = self.secrets.require(self.secrets.google_project(account), GCP_PROJECT, account, "project")
            token = self.secrets.require(
                self.secrets.google_oauth_token(account), GOOGLE_OAUTH_TOKEN, account, "OAuth token"
            )
        except UnsupportedError as exc:
            return AccountSnapshot.not_available(account, exc.message, now=current)
        except MissingSecretError as exc:
            return AccountSnapshot.error(account, exc.message, now=current)

        try:
            result = await self.transport.get(
                QUOTA_URL.format(project=project),
                headers={"Authorization": f"Bearer {token}"},
            )
            metrics = parse_quota_metrics(result.json())
        except LimitbarError as exc:
            logger.warning("Google quota fetch failed for %s: %s", account.id, exc)
            return AccountSnapshot.error(account, str(exc), now=current)

        return AccountSnapshot(
            id=account.id,
            display_name=account.display_name,
            provider=account.provider,
            account_kind=account.account_kind,
            metrics=tuple(metrics),
            overall_status=overall_status(metrics),
            last_updated=current,
            source_info=SourceInfo(
                summary="Google Service Usage API",
                details=("Quota limits for generativelanguage.googleapis.com",),
            ),
        )
