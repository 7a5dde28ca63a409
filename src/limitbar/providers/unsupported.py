from __future__ import annotations

from limitbar.models import AccountConfig, AccountSnapshot, Provider
from limitbar.providers.base import Clock, ProviderAdapter, utc_now

REASON = "Public API does not expose remaining limits for subscription accounts."


class UnsupportedSubscriptionAdapter(ProviderAdapter):
    def __init__(self, provider: Provider, now: Clock = utc_now) -> None:
        self.provider = provider
        self.now = now

    async def fetch(self, account: AccountConfig) -> AccountSnapshot:
        return AccountSnapshot.not_available(account, REASON, now=self.now())
