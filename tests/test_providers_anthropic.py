import json

import pytest

from helpers import FakeTransport, fail, make_account, ok

from limitbar.models import AccountKind, MetricStatus, OverallStatus, Provider
from limitbar.providers.anthropic import AnthropicAdapter
from limitbar.secrets import EnvSecretResolver

SECRETS = EnvSecretResolver({"LIMITBAR_ANTHROPIC_ADMIN_KEY": "admin-key"})

USAGE = json.dumps({
    "data": [
        {"results": [{"request_count": 4, "input_tokens": 300, "output_tokens": 120}]},
        {"results": [{"requests": 2, "input_tokens": 100, "output_tokens": 30}]},
    ]
})
COSTS = json.dumps({"data": [{"results": [{"cost_usd": "4.5"}, {"amount_usd": 0.5}]}]})
WINDOW = "starting_at=2023-11-13T22:13:20Z&ending_at=2023-11-14T22:13:20Z"


def _router(usage=None, costs=None):
    def handler(url, headers):
        if "/usage_report/messages" in url:
            return (usage or (lambda: ok(USAGE)))()
        if "/cost_report" in url:
            return (costs or (lambda: ok(COSTS)))()
        raise AssertionError(f"unexpected URL {url}")

    return handler


def _account(**settings):
    return make_account("claude-org", provider=Provider.CLAUDE, **settings)


@pytest.mark.asyncio
async def test_fetch_reads_usage_then_cost(fixed_now) -> None:
    transport = FakeTransport(_router())

    snap = await AnthropicAdapter(transport, SECRETS, now=fixed_now).fetch(_account(budgetUSD="6"))

    assert [url for url, _ in transport.requests] == [
        f"https://api.anthropic.com/v1/organizations/usage_report/messages?{WINDOW}",
        f"https://api.anthropic.com/v1/organizations/cost_report?{WINDOW}",
    ]
    _, headers = transport.requests[0]
    assert headers["x-api-key"] == "admin-key"
    assert headers["anthropic-version"] == "2023-06-01"

    by_name = {m.name: m for m in snap.metrics}
    assert by_name["Requests (24h)"].used == 6
    assert by_name["Input Tokens (24h)"].used == 400
    assert by_name["Output Tokens (24h)"].used == 150
    assert by_name["Cost (24h)"].used == 5
    assert by_name["Cost (24h)"].remaining == 1
    assert by_name["Cost (24h)"].status is MetricStatus.WARNING
    assert snap.overall_status is OverallStatus.WARNING
    assert snap.source_info.summary == "Anthropic organization APIs"
    assert snap.source_info.details == ("Usage report + cost report",)


@pytest.mark.asyncio
async def test_zero_usage_is_reported_as_missing(fixed_now) -> None:
    transport = FakeTransport(_router(usage=lambda: ok('{"data": []}')))

    snap = await AnthropicAdapter(transport, SECRETS, now=fixed_now).fetch(_account())

    assert next(m for m in snap.metrics if m.name == "Requests (24h)").used is None


@pytest.mark.asyncio
async def test_cost_failure_keeps_usage_metrics(fixed_now) -> None:
    transport = FakeTransport(_router(costs=lambda: fail(403, "forbidden")))

    snap = await AnthropicAdapter(transport, SECRETS, now=fixed_now).fetch(_account())

    assert [m.name for m in snap.metrics] == ["Requests (24h)", "Input Tokens (24h)", "Output Tokens (24h)"]
    assert snap.overall_status is OverallStatus.WARNING
    assert snap.source_info.details == ("Cost endpoint failed: HTTP status 403: forbidden",)


@pytest.mark.asyncio
async def test_both_failing_is_an_error(fixed_now) -> None:
    transport = FakeTransport(lambda url, headers: fail(500))

    snap = await AnthropicAdapter(transport, SECRETS, now=fixed_now).fetch(_account())

    assert snap.overall_status is OverallStatus.ERROR
    assert len(snap.source_info.details) == 2


@pytest.mark.asyncio
async def test_missing_key(fixed_now) -> None:
    transport = FakeTransport(_router())

    snap = await AnthropicAdapter(transport, EnvSecretResolver({}), now=fixed_now).fetch(_account())

    assert transport.requests == []
    assert snap.overall_status is OverallStatus.ERROR
    assert snap.source_info.details == ("Missing secret: LIMITBAR_ANTHROPIC_ADMIN_KEY_CLAUDE_ORG",)


@pytest.mark.asyncio
async def test_subscription_not_available(fixed_now) -> None:
    transport = FakeTransport(_router())
    account = make_account("pro", provider=Provider.CLAUDE, kind=AccountKind.SUBSCRIPTION)

    snap = await AnthropicAdapter(transport, SECRETS, now=fixed_now).fetch(account)

    assert transport.requests == []
    assert snap.source_info.summary == "Not available"
