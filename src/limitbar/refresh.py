from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable

from limitbar.models import AccountConfig, AccountKind, AccountSnapshot, Provider
from limitbar.providers import (
    AnthropicAdapter,
    DemoDataAdapter,
    GeminiAdapter,
    OpenAIAdapter,
    ProviderAdapter,
    UnsupportedSubscriptionAdapter,
)
from limitbar.providers.base import Clock, utc_now
from limitbar.secrets import EnvSecretResolver
from limitbar.transport import HttpTransport, HttpxTransport

logger = logging.getLogger(__name__)

# No provider currently exposes usage for subscription-authenticated sessions.
SUBSCRIPTION_USAGE_PROVIDERS: frozenset[Provider] = frozenset()

_API_ADAPTERS: dict[Provider, Callable[[HttpTransport, EnvSecretResolver, Clock], ProviderAdapter]] = {
    Provider.CODEX: OpenAIAdapter,
    Provider.CLAUDE: AnthropicAdapter,
    Provider.GEMINI: GeminiAdapter,
}


def sort_key(snapshot: AccountSnapshot) -> tuple[int, str]:
    return (snapshot.provider.ordinal, snapshot.display_name.casefold())


def sort_snapshots(snapshots: Iterable[AccountSnapshot]) -> list[AccountSnapshot]:
    return sorted(snapshots, key=sort_key)


class RefreshCoordinator:
    """Fans one refresh cycle out to an adapter per account."""

    def __init__(
        self,
        transport: HttpTransport | None = None,
        secrets: EnvSecretResolver | None = None,
        now: Clock = utc_now,
    ) -> None:
        self.transport = transport or HttpxTransport()
        self.secrets = secrets or EnvSecretResolver()
        self.now = now

    def select_adapter(self, account: AccountConfig) -> ProviderAdapter:
        if account.is_demo:
            return DemoDataAdapter(account.provider, now=self.now)
        if (
            account.account_kind is AccountKind.SUBSCRIPTION
            and account.provider not in SUBSCRIPTION_USAGE_PROVIDERS
        ):
            return UnsupportedSubscriptionAdapter(account.provider, now=self.now)
        return _API_ADAPTERS[account.provider](self.transport, self.secrets, self.now)

    async def fetch(self, account: AccountConfig) -> AccountSnapshot:
        """Fetch one account; an unexpected exception becomes its error snapshot."""
        try:
            return await self.select_adapter(account).fetch(account)
        except Exception as exc:
            logger.exception("unexpected failure refreshing %s", account.id)
            return AccountSnapshot.error(account, f"Unexpected error: {exc}", now=self.now())

    async def refresh(self, accounts: Iterable[AccountConfig]) -> list[AccountSnapshot]:
        accounts = list(accounts)
        snapshots = await asyncio.gather(*(self.fetch(a) for a in accounts))
        logger.debug("fetched %d snapshot(s)", len(snapshots))
        return sort_snapshots(snapshots)
