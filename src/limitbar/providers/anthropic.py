from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from limitbar.errors import LimitbarError, MissingSecretError, UnsupportedError
from limitbar.extract import number_setting, parse_number, positive_or_none, sum_keys_then_descend, sum_numeric
from limitbar.models import AccountConfig, AccountSnapshot, LimitMetric, Provider, WindowKind
from limitbar.providers.base import (
    DAY_SECONDS,
    Clock,
    ProviderAdapter,
    finish_snapshot,
    require_api_account,
    utc_now,
)
from limitbar.secrets import ANTHROPIC_ADMIN_KEY, EnvSecretResolver
from limitbar.status import metric_status_from_used
from limitbar.transport import HttpTransport

logger = logging.getLogger(__name__)

API_BASE = "https://api.anthropic.com"
API_VERSION = "2023-06-01"
BUDGET_KEYS = ("dailyBudgetUSD", "budgetUSD")


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _pick_cost(mapping: dict) -> float:
    return (parse_number(mapping.get("cost_usd")) or 0.0) + (parse_number(mapping.get("amount_usd")) or 0.0)


def sum_cost_usd(payload) -> float:
    """Sum ``cost_usd`` and ``amount_usd`` wherever they appear in a cost report."""
    return sum_keys_then_descend(payload, _pick_cost)


class AnthropicAdapter(ProviderAdapter):
    provider = Provider.CLAUDE

    def __init__(self, transport: HttpTransport, secrets: EnvSecretResolver, now: Clock = utc_now) -> None:
        self.transport = transport
        self.secrets = secrets
        self.now = now

    async def fetch(self, account: AccountConfig) -> AccountSnapshot:
        current = self.now()

        try:
            require_api_account(account, "Public API does not expose remaining limits for Claude subscription sessions.")
            api_key = self.secrets.require(self.secrets.anthropic_admin_key(account), ANTHROPIC_ADMIN_KEY, account)
        except UnsupportedError as exc:
            return AccountSnapshot.not_available(account, exc.message, now=current)
        except MissingSecretError as exc:
            return AccountSnapshot.error(account, exc.message, now=current)

        window = f"starting_at={_iso(current - timedelta(seconds=DAY_SECONDS))}&ending_at={_iso(current)}"
        headers = {"x-api-key": api_key, "anthropic-version": API_VERSION}
        metrics: list[LimitMetric] = []
        failures: list[str] = []

        try:
            usage = (
                await self.transport.get(f"{API_BASE}/v1/organizations/usage_report/messages?{window}", headers=headers)
            ).json()
        except LimitbarError as exc:
            logger.warning("Anthropic usage fetch failed for %s: %s", account.id, exc)
            failures.append(f"Usage endpoint failed: {exc}")
        else:
            requests = sum_numeric({"request_count", "requests"}, usage)
            input_tokens = sum_numeric({"input_tokens"}, usage)
            output_tokens = sum_numeric({"output_tokens"}, usage)
            metrics.extend([
                LimitMetric(name="Requests (24h)", window=WindowKind.DAILY, used=positive_or_none(requests), unit="requests"),
                LimitMetric(name="Input Tokens (24h)", window=WindowKind.DAILY, used=positive_or_none(input_tokens), unit="tokens"),
                LimitMetric(name="Output Tokens (24h)", window=WindowKind.DAILY, used=positive_or_none(output_tokens), unit="tokens"),
            ])

        try:
            report = (await self.transport.get(f"{API_BASE}/v1/organizations/cost_report?{window}", headers=headers)).json()
        except LimitbarError as exc:
            logger.warning("Anthropic cost fetch failed for %s: %s", account.id, exc)
            failures.append(f"Cost endpoint failed: {exc}")
        else:
            cost = sum_cost_usd(report)
            budget = number_setting(account, BUDGET_KEYS)
            metrics.append(
                LimitMetric(
                    name="Cost (24h)",
                    window=WindowKind.DAILY,
                    limit=budget,
                    used=cost,
                    remaining=None if budget is None else budget - cost,
                    unit="usd",
                    status=metric_status_from_used(budget, cost),
                )
            )

        return finish_snapshot(
            account,
            metrics,
            failures,
            now=current,
            summary="Anthropic organization APIs",
            success_detail="Usage report + cost report",
        )
