from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Provider(str, Enum):
    CLAUDE = "claude"
    CODEX = "codex"
    GEMINI = "gemini"

    @property
    def ordinal(self) -> int:
        return list(Provider).index(self)

    @property
    def display_name(self) -> str:
        return {"claude": "Claude", "codex": "Codex", "gemini": "Gemini"}[self.value]

    @property
    def short_label(self) -> str:
        return {"claude": "A", "codex": "C", "gemini": "G"}[self.value]


class AccountKind(str, Enum):
    API = "api"
    SUBSCRIPTION = "subscription"

    @property
    def display_name(self) -> str:
        return "API" if self is AccountKind.API else "Subscription"


class WindowKind(str, Enum):
    SESSION = "session"
    DAILY = "daily"
    WEEKLY = "weekly"
    RPM = "rpm"
    TPM = "tpm"
    RPD = "rpd"
    CUSTOM = "custom"

    @property
    def display_name(self) -> str:
        if self in (WindowKind.RPM, WindowKind.TPM, WindowKind.RPD):
            return self.value.upper()
        return self.value.capitalize()


_SEVERITY = {"ok": 0, "unknown": 1, "warning": 2, "exhausted": 3, "error": 4}


class _BySeverity:
    """Orders status members by severity instead of by their string value."""

    @property
    def severity(self) -> int:
        return _SEVERITY[self.value]

    @property
    def label(self) -> str:
        return self.value.capitalize()

    def __lt__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.severity <= other.severity

    def __gt__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.severity > other.severity

    def __ge__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.severity >= other.severity


class MetricStatus(_BySeverity, str, Enum):
    OK = "ok"
    WARNING = "warning"
    EXHAUSTED = "exhausted"
    UNKNOWN = "unknown"
    ERROR = "error"

    def to_overall(self) -> OverallStatus:
        return OverallStatus(self.value)


class OverallStatus(_BySeverity, str, Enum):
    OK = "ok"
    WARNING = "warning"
    EXHAUSTED = "exhausted"
    UNKNOWN = "unknown"
    ERROR = "error"


class ProgressAggregation(str, Enum):
    WORST = "worst"
    AVERAGE = "average"


@dataclass(frozen=True)
class LimitMetric:
    name: str
    window: WindowKind
    limit: float | None = None
    used: float | None = None
    remaining: float | None = None
    reset_at: datetime | None = None
    unit: str = ""
    status: MetricStatus = MetricStatus.UNKNOWN
    id: str = ""

    def __post_init__(self) -> None:
        # Stable across refreshes so UI state keyed by it survives.
        if not self.id:
            object.__setattr__(self, "id", f"{self.window.value}-{self.name}-{self.unit}")


@dataclass(frozen=True)
class SourceInfo:
    summary: str
    details: tuple[str, ...] = ()


@dataclass(frozen=True)
class AccountConfig:
    id: str
    display_name: str
    provider: Provider
    account_kind: AccountKind
    enabled: bool = True
    settings: dict[str, str] = field(default_factory=dict)

    @property
    def icon_text(self) -> str | None:
        return self.settings.get("icon")

    @property
    def compact_tag(self) -> str:
        tag = self.settings.get("tag")
        if tag:
            return tag
        return self.account_kind.display_name

    @property
    def is_demo(self) -> bool:
        return self.settings.get("demo", "").lower() == "true"


@dataclass(frozen=True)
class AccountSnapshot:
    id: str
    display_name: str
    provider: Provider
    account_kind: AccountKind
    metrics: tuple[LimitMetric, ...]
    overall_status: OverallStatus
    last_updated: datetime
    source_info: SourceInfo

    @classmethod
    def not_available(cls, account: AccountConfig, reason: str, now: datetime | None = None) -> AccountSnapshot:
        return cls(
            id=account.id,
            display_name=account.display_name,
            provider=account.provider,
            account_kind=account.account_kind,
            metrics=(),
            overall_status=OverallStatus.UNKNOWN,
            last_updated=now or datetime.now(timezone.utc),
            source_info=SourceInfo(summary="Not available", details=(reason,)),
        )

    @classmethod
    def error(cls, account: AccountConfig, message: str, now: datetime | None = None) -> AccountSnapshot:
        return cls(
            id=account.id,
            display_name=account.display_name,
            provider=account.provider,
            account_kind=account.account_kind,
            metrics=(
                LimitMetric(
                    name="Provider API",
                    window=WindowKind.CUSTOM,
                    unit="status",
                    status=MetricStatus.ERROR,
                ),
            ),
            overall_status=OverallStatus.ERROR,
            last_updated=now or datetime.now(timezone.utc),
            source_info=SourceInfo(summary="Request failed", details=(message,)),
        )


@dataclass
class MenuBarUIConfig:
    show_percentage: bool = True
    show_mini_bar: bool = True
    show_warning_count: bool = True
    aggregation: ProgressAggregation = ProgressAggregation.WORST


@dataclass
class RowUIConfig:
    progress_width: int = 120
    show_percentage: bool = True
    details_collapsed_by_default: bool = True


@dataclass
class UIConfig:
    menu_bar: MenuBarUIConfig = field(default_factory=MenuBarUIConfig)
    row: RowUIConfig = field(default_factory=RowUIConfig)


@dataclass
class GeneralConfig:
    refresh_seconds: int = 60


@dataclass
class AppConfiguration:
    accounts: list[AccountConfig] = field(default_factory=list)
    ui: UIConfig = field(default_factory=UIConfig)
    general: GeneralConfig = field(default_factory=GeneralConfig)
