"""App-wide refresh state: loaded config, latest snapshots and aggregates.

Only one refresh cycle runs at a time; a refresh requested while another is
in flight is dropped, not queued.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path

from limitbar.config import config_path, load_config
from limitbar.errors import LimitbarError
from limitbar.models import AccountConfig, AccountKind, AccountSnapshot, OverallStatus, Provider, UIConfig
from limitbar.refresh import RefreshCoordinator
from limitbar.status import aggregate_utilization_percent, overall_app_status, warning_count

logger = logging.getLogger(__name__)

MINI_BAR_SLOTS = 5


def mini_bar(percent: int) -> str:
    clamped = max(0, min(100, percent))
    filled = int(clamped / 100 * MINI_BAR_SLOTS + 0.5)
    return "▰" * filled + "▱" * (MINI_BAR_SLOTS - filled)


class AppState:
    def __init__(
        self,
        path: Path | None = None,
        coordinator: RefreshCoordinator | None = None,
        refresh_seconds: int | None = None,
    ) -> None:
        self.config_path = path or config_path()
        self.coordinator = coordinator or RefreshCoordinator()
        self.accounts: list[AccountConfig] = []
        self.snapshots: list[AccountSnapshot] = []
        self.ui = UIConfig()
        self.refresh_seconds = refresh_seconds or 60
        self._refresh_override = refresh_seconds
        self.warning_count = 0
        self.overall_status = OverallStatus.UNKNOWN
        self.last_updated: datetime | None = None
        self.global_error: str | None = None
        self.is_refreshing = False

    @property
    def utilization_percent(self) -> int | None:
        return aggregate_utilization_percent(self.snapshots, self.ui.menu_bar.aggregation)

    @property
    def menu_bar_label(self) -> str:
        parts = ["AI"]
        percent = self.utilization_percent
        if self.ui.menu_bar.show_mini_bar and percent is not None:
            parts.append(mini_bar(percent))
        if self.ui.menu_bar.show_percentage and percent is not None:
            parts.append(f"{percent}%")
        if self.ui.menu_bar.show_warning_count and self.warning_count > 0:
            parts.append(f"!{self.warning_count}")
        return " ".join(parts)

    def account_config(self, account_id: str) -> AccountConfig | None:
        return next((a for a in self.accounts if a.id == account_id), None)

    def account_icon(self, account_id: str, provider: Provider) -> str:
        account = self.account_config(account_id)
        if account is not None and account.icon_text:
            return account.icon_text
        return provider.short_label

    def account_tag(self, account_id: str, fallback_kind: AccountKind) -> str:
        account = self.account_config(account_id)
        if account is not None:
            return account.compact_tag
        return fallback_kind.display_name

    def load_config(self) -> None:
        try:
            cfg = load_config(self.config_path)
        except LimitbarError as exc:
            self.accounts = []
            self.snapshots = []
            self.ui = UIConfig()
            self.warning_count = 0
            self.overall_status = OverallStatus.ERROR
            self.global_error = str(exc)
            logger.error("Failed loading config: %s", exc)
            return

        self.accounts = cfg.accounts
        self.ui = cfg.ui
        self.refresh_seconds = self._refresh_override or cfg.general.refresh_seconds
        self.global_error = None
        logger.info("Loaded %d account(s) from %s", len(self.accounts), self.config_path)

    async def refresh(self) -> bool:
        """Run one refresh cycle; returns False when one was already running."""
        if self.is_refreshing:
            logger.debug("refresh already in progress; dropping request")
            return False

        self.is_refreshing = True
        try:
            if not self.accounts:
                self.snapshots = []
                self.warning_count = 0
                self.overall_status = OverallStatus.ERROR if self.global_error else OverallStatus.UNKNOWN
            else:
                snapshots = await self.coordinator.refresh(self.accounts)
                self.snapshots = snapshots
                self.warning_count = warning_count(snapshots)
                self.overall_status = overall_app_status(snapshots)
                logger.info("Refresh complete for %d account(s)", len(snapshots))
            self.last_updated = datetime.now(timezone.utc)
        finally:
            self.is_refreshing = False
        return True

    async def run_polling(self, interval: float | None = None) -> None:
        """Refresh every ``interval`` seconds until the task is cancelled."""
        while True:
            await asyncio.sleep(interval if interval is not None else self.refresh_seconds)
            await self.refresh()
