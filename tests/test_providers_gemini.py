import json

import pytest

from helpers import FakeTransport, fail, make_account, ok

from limitbar.errors import ParsingError
from limitbar.models import OverallStatus, Provider, WindowKind
from limitbar.providers.gemini import GeminiAdapter, effective_limit, infer_window, parse_quota_metrics
from limitbar.secrets import EnvSecretResolver

SECRETS = EnvSecretResolver({"LIMITBAR_GOOGLE_OAUTH_TOKEN": "ya29.token", "LIMITBAR_GCP_PROJECT": "proj-1"})

QUOTAS = {
    "consumerQuotaMetrics": [
        {
            "displayName": "Generate content requests",
            "consumerQuotaLimits": [
                {"displayName": "per minute", "unit": "1/min/{project}", "quotaBuckets": [{"effectiveLimit": "60"}]},
                {"displayName": "per day", "unit": "1/d/{project}", "quotaBuckets": [{"defaultLimit": "1500"}]},
            ],
        },
        {"metric": "tokens", "consumerQuotaLimits": [{"name": "weekly", "unit": "per week"}]},
    ]
}


@pytest.mark.parametrize(
    ("unit", "expected"),
    [
        ("requests per minute", WindowKind.RPM),
        ("1/day/{project}", WindowKind.DAILY),
        ("tokens per week", WindowKind.WEEKLY),
        ("1/min/{project}", WindowKind.CUSTOM),
        ("quota", WindowKind.CUSTOM),
    ],
)
def test_infer_window(unit, expected) -> None:
    assert infer_window(unit) is expected


def test_effective_limit_falls_back_to_default() -> None:
    assert effective_limit({"quotaBuckets": [{"effectiveLimit": "60", "defaultLimit": "10"}]}) == 60
    assert effective_limit({"quotaBuckets": [{"defaultLimit": 10}]}) == 10
    assert effective_limit({"quotaBuckets": []}) is None
    assert effective_limit({}) is None


def test_parse_quota_metrics_flattens_limits() -> None:
    metrics = parse_quota_metrics(QUOTAS)

    assert [m.name for m in metrics] == [
        "Generate content requests / per minute",
        "Generate content requests / per day",
        "tokens / weekly",
    ]
    assert metrics[0].id == "Generate content requests-per minute-1/min/{project}"
    assert metrics[0].limit == 60
    assert metrics[1].limit == 1500
    assert metrics[2].limit is None
    assert metrics[2].window is WindowKind.WEEKLY
    assert all(m.used is None and m.remaining is None for m in metrics)


def test_parse_quota_metrics_keeps_first_eight() -> None:
    payload = {
        "consumerQuotaMetrics": [
            {"displayName": f"m{i}", "consumerQuotaLimits": [{"displayName": "a"}, {"displayName": "b"}]}
            for i in range(6)
        ]
    }
    metrics = parse_quota_metrics(payload)
    assert len(metrics) == 8
    assert metrics[-1].name == "m3 / b"
    assert metrics[0].unit == "quota"


@pytest.mark.parametrize("payload", [[], {"consumerQuotaMetrics": []}, {"consumerQuotaMetrics": [{"displayName": "x"}]}])
def test_parse_quota_metrics_rejects_empty(payload) -> None:
    with pytest.raises(ParsingError):
        parse_quota_metrics(payload)


@pytest.mark.asyncio
async def test_fetch_calls_service_usage(fixed_now) -> None:
    transport = FakeTransport(lambda url, headers: ok(json.dumps(QUOTAS)))

    snap = await GeminiAdapter(transport, SECRETS, now=fixed_now).fetch(make_account("g", provider=Provider.GEMINI))

    url, headers = transport.requests[0]
    assert url == (
        "https://serviceusage.googleapis.com/v1/projects/proj-1"
        "/services/generativelanguage.googleapis.com/consumerQuotaMetrics?view=FULL"
    )
    assert headers["Authorization"] == "Bearer ya29.token"
    assert len(snap.metrics) == 3
    assert snap.overall_status is OverallStatus.UNKNOWN
    assert snap.source_info.summary == "Google Service Usage API"


@pytest.mark.asyncio
async def test_project_from_account_settings(fixed_now) -> None:
    transport = FakeTransport(lambda url, headers: ok(json.dumps(QUOTAS)))
    account = make_account("g", provider=Provider.GEMINI, gcpProject="other")

    await GeminiAdapter(transport, SECRETS, now=fixed_now).fetch(account)

    assert "/projects/other/" in transport.requests[0][0]


@pytest.mark.asyncio
async def test_zero_quota_metrics_is_an_error(fixed_now) -> None:
    transport = FakeTransport(lambda url, headers: ok('{"consumerQuotaMetrics": []}'))

    snap = await GeminiAdapter(transport, SECRETS, now=fixed_now).fetch(make_account("g", provider=Provider.GEMINI))

    assert snap.overall_status is OverallStatus.ERROR
    assert snap.source_info.details == ("No quota metrics returned for the configured project",)


@pytest.mark.asyncio
async def test_http_failure_is_an_error(fixed_now) -> None:
    transport = FakeTransport(lambda url, headers: fail(403, "PERMISSION_DENIED"))

    snap = await GeminiAdapter(transport, SECRETS, now=fixed_now).fetch(make_account("g", provider=Provider.GEMINI))

    assert snap.overall_status is OverallStatus.ERROR
    assert snap.source_info.details == ("HTTP status 403: PERMISSION_DENIED",)


@pytest.mark.asyncio
async def test_missing_project_checked_before_token(fixed_now) -> None:
    transport = FakeTransport(lambda url, headers: ok("{}"))
    account = make_account("g-1", provider=Provider.GEMINI)

    no_project = await GeminiAdapter(transport, EnvSecretResolver({}), now=fixed_now).fetch(account)
    no_token = await GeminiAdapter(
        transport, EnvSecretResolver({"GCP_PROJECT": "p"}), now=fixed_now
    ).fetch(account)

    assert no_project.source_info.details == ("Missing project: LIMITBAR_GCP_PROJECT_G_1",)
    assert no_token.source_info.details == ("Missing OAuth token: LIMITBAR_GOOGLE_OAUTH_TOKEN_G_1",)
    assert transport.requests == []
