import pytest

from helpers import FakeTransport, fail, make_account, ok

from limitbar.models import AccountKind, OverallStatus, Provider
from limitbar.providers import (
    AnthropicAdapter,
    DemoDataAdapter,
    GeminiAdapter,
    OpenAIAdapter,
    UnsupportedSubscriptionAdapter,
)
from limitbar.providers.base import utc_now
from limitbar.refresh import RefreshCoordinator
from limitbar.secrets import EnvSecretResolver


def _coordinator(handler=lambda url, headers: ok("{}"), env=None, fixed_now=None):
    return RefreshCoordinator(
        transport=FakeTransport(handler),
        secrets=EnvSecretResolver(env or {}),
        now=fixed_now or utc_now,
    )


@pytest.mark.parametrize(
    ("account", "adapter_type"),
    [
        (make_account(provider=Provider.CODEX), OpenAIAdapter),
        (make_account(provider=Provider.CLAUDE), AnthropicAdapter),
        (make_account(provider=Provider.GEMINI), GeminiAdapter),
        (make_account(provider=Provider.CLAUDE, kind=AccountKind.SUBSCRIPTION), UnsupportedSubscriptionAdapter),
        (make_account(provider=Provider.CODEX, kind=AccountKind.SUBSCRIPTION, demo="true"), DemoDataAdapter),
        (make_account(provider=Provider.GEMINI, demo="True"), DemoDataAdapter),
    ],
)
def test_select_adapter_precedence(account, adapter_type) -> None:
    assert type(_coordinator().select_adapter(account)) is adapter_type


@pytest.mark.asyncio
async def test_refresh_sorts_by_provider_then_name(fixed_now) -> None:
    accounts = [
        make_account("g", provider=Provider.GEMINI, kind=AccountKind.SUBSCRIPTION, display_name="Gemini"),
        make_account("c2", provider=Provider.CODEX, display_name="zeta", demo="true"),
        make_account("a1", provider=Provider.CLAUDE, kind=AccountKind.SUBSCRIPTION, display_name="Pro"),
        make_account("c1", provider=Provider.CODEX, display_name="Alpha", demo="true"),
        make_account("a2", provider=Provider.CLAUDE, display_name="api", demo="true"),
    ]

    snapshots = await _coordinator(fixed_now=fixed_now).refresh(accounts)

    assert [s.id for s in snapshots] == ["a2", "a1", "c1", "c2", "g"]


@pytest.mark.asyncio
async def test_one_failing_account_does_not_affect_others(fixed_now) -> None:
    def handler(url, headers):
        if "anthropic" in url:
            return fail(500)
        return ok("{}")

    accounts = [
        make_account("broken", provider=Provider.CLAUDE),
        make_account("demo", provider=Provider.CODEX, demo="true"),
        make_account("nokey", provider=Provider.GEMINI),
    ]
    coordinator = _coordinator(handler, env={"LIMITBAR_ANTHROPIC_ADMIN_KEY": "k"}, fixed_now=fixed_now)

    snapshots = {s.id: s for s in await coordinator.refresh(accounts)}

    assert len(snapshots) == 3
    assert snapshots["broken"].overall_status is OverallStatus.ERROR
    assert snapshots["demo"].source_info.summary == "Demo data"
    assert snapshots["nokey"].source_info.details[0].startswith("Missing project")


@pytest.mark.asyncio
async def test_refresh_of_no_accounts() -> None:
    assert await _coordinator().refresh([]) == []


@pytest.mark.asyncio
async def test_unexpected_exception_is_contained_to_its_account(fixed_now) -> None:
    def handler(url, headers):
        raise RuntimeError("socket exploded")

    accounts = [
        make_account("broken", provider=Provider.CODEX, display_name="Broken"),
        make_account("demo", provider=Provider.CLAUDE, demo="true"),
    ]
    coordinator = _coordinator(handler, env={"LIMITBAR_OPENAI_ADMIN_KEY": "k"}, fixed_now=fixed_now)

    snapshots = {s.id: s for s in await coordinator.refresh(accounts)}

    assert snapshots["demo"].source_info.summary == "Demo data"
    broken = snapshots["broken"]
    assert broken.overall_status is OverallStatus.ERROR
    assert broken.source_info.details == ("Unexpected error: socket exploded",)
    assert broken.last_updated == fixed_now()


@pytest.mark.asyncio
async def test_oversized_reset_header_does_not_break_refresh(fixed_now) -> None:
    headers = {"x-ratelimit-limit-requests": "100", "x-ratelimit-remaining-requests": "50", "x-ratelimit-reset-requests": "1e20"}

    def handler(url, request_headers):
        return ok("{}", headers)

    coordinator = _coordinator(handler, env={"LIMITBAR_OPENAI_ADMIN_KEY": "k"}, fixed_now=fixed_now)

    [snap] = await coordinator.refresh([make_account("codex", provider=Provider.CODEX)])

    rpm = next(m for m in snap.metrics if m.name == "Requests")
    assert rpm.reset_at is None
    assert rpm.remaining == 50
