from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from limitbar.errors import LimitbarError, MissingSecretError, UnsupportedError
from limitbar.extract import (
    number_setting,
    parse_number,
    parse_rate_reset,
    positive_or_none,
    sum_keys_then_descend,
    sum_numeric,
)
from limitbar.models import (
    AccountConfig,
    AccountSnapshot,
    LimitMetric,
    Provider,
    WindowKind,
)
from limitbar.providers.base import (
    DAY_SECONDS,
    Clock,
    ProviderAdapter,
    finish_snapshot,
    require_api_account,
    utc_now,
)
from limitbar.secrets import OPENAI_ADMIN_KEY, EnvSecretResolver
from limitbar.status import metric_status, metric_status_from_used
from limitbar.transport import HttpResult, HttpTransport

logger = logging.getLogger(__name__)

API_BASE = "https://api.openai.com"
BUDGET_KEYS = ("dailyBudgetUSD", "budgetUSD")


@dataclass
class RateLimitProbe:
    request_limit: float | None = None
    request_remaining: float | None = None
    request_reset: datetime | None = None
    token_limit: float | None = None
    token_remaining: float | None = None
    token_reset: datetime | None = None

    @property
    def request_used(self) -> float | None:
        if self.request_limit is None or self.request_remaining is None:
            return None
        return max(0.0, self.request_limit - self.request_remaining)

    @property
    def token_used(self) -> float | None:
        if self.token_limit is None or self.token_remaining is None:
            return None
        return max(0.0, self.token_limit - self.token_remaining)


def _pick_cost(mapping: dict) -> float:
    total = 0.0
    amount = mapping.get("amount")
    if isinstance(amount, dict):
        total += parse_number(amount.get("value")) or 0.0
    total += parse_number(mapping.get("cost_usd")) or 0.0
    total += parse_number(mapping.get("total_cost_usd")) or 0.0
    return total


def sum_cost_usd(payload) -> float:
    """Sum cost buckets: ``amount.value`` plus flat ``cost_usd``/``total_cost_usd``."""
    return sum_keys_then_descend(payload, _pick_cost, skip=frozenset({"amount"}))


class OpenAIAdapter(ProviderAdapter):
    provider = Provider.CODEX

    def __init__(self, transport: HttpTransport, secrets: EnvSecretResolver, now: Clock = utc_now) -> None:
        self.transport = transport
        self.secrets = secrets
        self.now = now

    async def fetch(self, account: AccountConfig) -> AccountSnapshot:
        current = self.now()

        try:
            require_api_account(account, "Public API does not expose remaining limits for subscription Codex usage.")
            api_key = self.secrets.require(self.secrets.openai_admin_key(account), OPENAI_ADMIN_KEY, account)
        except UnsupportedError as exc:
            return AccountSnapshot.not_available(account, exc.message, now=current)
        except MissingSecretError as exc:
            return AccountSnapshot.error(account, exc.message, now=current)

        start = current - timedelta(seconds=DAY_SECONDS)
        metrics: list[LimitMetric] = []
        failures: list[str] = []

        try:
            cost = await self._fetch_cost_usd(api_key, start, current)
        except LimitbarError as exc:
            logger.warning("OpenAI cost fetch failed for %s: %s", account.id, exc)
            failures.append(f"Cost endpoint failed: {exc}")
        else:
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

        try:
            requests, input_tokens, output_tokens = await self._fetch_usage(api_key, start, current)
        except LimitbarError as exc:
            logger.warning("OpenAI usage fetch failed for %s: %s", account.id, exc)
            failures.append(f"Usage endpoint failed: {exc}")
        else:
            metrics.extend([
                LimitMetric(name="Model Requests (24h)", window=WindowKind.DAILY, used=requests, unit="requests"),
                LimitMetric(name="Input Tokens (24h)", window=WindowKind.DAILY, used=input_tokens, unit="tokens"),
                LimitMetric(name="Output Tokens (24h)", window=WindowKind.DAILY, used=output_tokens, unit="tokens"),
            ])

        try:
            rate = await self._probe_rate_limit(api_key, current)
        except LimitbarError as exc:
            logger.warning("OpenAI rate-limit probe failed for %s: %s", account.id, exc)
            failures.append(f"Rate-limit probe failed: {exc}")
        else:
            metrics.extend(_rate_metrics(rate))

        return finish_snapshot(
            account,
            metrics,
            failures,
            now=current,
            summary="OpenAI public APIs",
            success_detail="Usage + costs + rate-limit headers",
        )

    def _headers(self, api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}"}

    async def _get(self, url: str, api_key: str) -> HttpResult:
        return await self.transport.get(url, headers=self._headers(api_key))

    async def _fetch_cost_usd(self, api_key: str, start: datetime, end: datetime) -> float:
        url = f"{API_BASE}/v1/organization/costs?start_time={int(start.timestamp())}&end_time={int(end.timestamp())}"
        result = await self._get(url, api_key)
        return sum_cost_usd(result.json())

    async def _fetch_usage(
        self, api_key: str, start: datetime, end: datetime
    ) -> tuple[float | None, float | None, float | None]:
        url = (
            f"{API_BASE}/v1/organization/usage/completions"
            f"?start_time={int(start.timestamp())}&end_time={int(end.timestamp())}"
        )
        payload = (await self._get(url, api_key)).json()
        return (
            positive_or_none(sum_numeric({"num_model_requests", "request_count"}, payload)),
            positive_or_none(sum_numeric({"input_tokens"}, payload)),
            positive_or_none(sum_numeric({"output_tokens"}, payload)),
        )

    async def _probe_rate_limit(self, api_key: str, now: datetime) -> RateLimitProbe:
        # /v1/models carries no usage data; only the response headers matter.
        result = await self._get(f"{API_BASE}/v1/models", api_key)
        return RateLimitProbe(
            request_limit=parse_number(result.header("x-ratelimit-limit-requests")),
            request_remaining=parse_number(result.header("x-ratelimit-remaining-requests")),
            request_reset=parse_rate_reset(result.header("x-ratelimit-reset-requests"), now),
            token_limit=parse_number(result.header("x-ratelimit-limit-tokens")),
            token_remaining=parse_number(result.header("x-ratelimit-remaining-tokens")),
            token_reset=parse_rate_reset(result.header("x-ratelimit-reset-tokens"), now),
        )


def _rate_metrics(rate: RateLimitProbe) -> list[LimitMetric]:
    metrics: list[LimitMetric] = []
    if rate.request_limit is not None or rate.request_remaining is not None:
        metrics.append(
            LimitMetric(
                name="Requests",
                window=WindowKind.RPM,
                limit=rate.request_limit,
                used=rate.request_used,
                remaining=rate.request_remaining,
                reset_at=rate.request_reset,
                unit="requests/min",
                status=metric_status(rate.request_limit, rate.request_remaining),
            )
        )
    if rate.token_limit is not None or rate.token_remaining is not None:
        metrics.append(
            LimitMetric(
                name="Tokens",
                window=WindowKind.TPM,
                limit=rate.token_limit,
                used=rate.token_used,
                remaining=rate.token_remaining,
                reset_at=rate.token_reset,
                unit="tokens/min",
                status=metric_status(rate.token_limit, rate.token_remaining),
            )
        )
    return metrics
