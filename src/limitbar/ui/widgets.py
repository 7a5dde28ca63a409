from __future__ import annotations

from datetime import datetime, timezone

from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from textual.widgets import Static

from limitbar.models import AccountSnapshot, LimitMetric
from limitbar.status import snapshot_utilization_percent, utilization_ratio
from limitbar.ui.theme import STATUS_BORDERS, STATUS_COLORS


def _bar_color(pct: float) -> str:
    if pct >= 80.0:
        return "red"
    if pct >= 50.0:
        return "yellow"
    return "green"


def progress_width(pixels: int) -> int:
    """Convert the configured row width (pixels) into bar cells."""
    return max(10, pixels // 4)


def usage_bar(ratio: float | None, width: int = 30, show_percentage: bool = True) -> Text:
    if ratio is None:
        return Text("── no limit ──", style="dim")
    pct = ratio * 100.0
    filled = int(round(ratio * width))
    color = _bar_color(pct)
    bar = Text()
    bar.append("━" * filled, style=f"bold {color}")
    bar.append("╌" * (width - filled), style="bright_black")
    if show_percentage:
        bar.append(f"  {pct:5.1f}%", style=f"bold {color}")
    return bar


def fmt_amount(value: float | None, unit: str) -> str:
    if value is None:
        return "-"
    if unit == "usd":
        return f"${value:,.2f}"
    if value == int(value):
        return f"{int(value):,}"
    return f"{value:,.1f}"


def fmt_reset(dt: datetime | None, now: datetime | None = None) -> str:
    if dt is None:
        return "-"
    now = now or datetime.now(timezone.utc)
    total_seconds = (dt - now).total_seconds()
    if total_seconds <= 0:
        return "now"
    hours = int(total_seconds // 3600)
    minutes = int((total_seconds % 3600) // 60)
    if hours >= 24:
        return dt.astimezone().strftime("%b %d  %H:%M")
    if hours > 0:
        return f"in {hours}h {minutes}m"
    if minutes > 0:
        return f"in {minutes}m"
    return f"in {int(total_seconds)}s"


def metric_usage_text(metric: LimitMetric) -> Text:
    used = fmt_amount(metric.used, metric.unit)
    if metric.limit is not None:
        body = f"{used} / {fmt_amount(metric.limit, metric.unit)} {metric.unit}"
    else:
        body = f"{used} {metric.unit}"
    text = Text(body, style="bright_white")
    if metric.reset_at is not None:
        text.append(f"   resets {fmt_reset(metric.reset_at)}", style="dim")
    return text


def render_snapshot(
    snap: AccountSnapshot,
    tag: str | None = None,
    icon: str | None = None,
    show_details: bool = False,
    width: int = 30,
    show_percentage: bool = True,
) -> Panel:
    """Rich panel for one account; shared by the dashboard and ``limitbar panel``."""
    status = snap.overall_status.value
    table = Table.grid(expand=True, padding=(0, 1))
    table.add_column("label", ratio=1, no_wrap=True, style="bold bright_white")
    table.add_column("value", ratio=4)

    # ── Status ──
    status_text = Text()
    status_text.append(f"● {snap.overall_status.label.upper()}", style=f"bold {STATUS_COLORS[status]}")
    percent = snapshot_utilization_percent(snap)
    if percent is not None:
        status_text.append(f"    {percent}% used", style="bright_white")
    status_text.append(f"    source: {snap.source_info.summary}", style="dim")
    table.add_row("Status", status_text)

    # ── Metrics ──
    for metric in snap.metrics:
        table.add_row("", Text())
        label = Text(metric.name, style="bold cyan")
        label.append(f" [{metric.window.display_name}]", style="dim")
        table.add_row(label, usage_bar(utilization_ratio(metric), width, show_percentage))
        table.add_row(Text("  usage", style="dim"), metric_usage_text(metric))

    # ── Details ──
    if show_details and snap.source_info.details:
        table.add_row("", Text())
        notes = " | ".join(snap.source_info.details)
        table.add_row(Text("Details", style="dim"), Text(notes, style="dim italic"))

    title = f"[bold bright_white] {icon or snap.provider.short_label}  {snap.display_name} [/]"
    if tag:
        title += f"[dim]({tag})[/] "
    return Panel(
        table,
        title=title,
        subtitle=f"[dim]updated {snap.last_updated.astimezone().strftime('%H:%M:%S')}[/]",
        border_style=STATUS_BORDERS[status],
        padding=(1, 2),
    )


class AccountCard(Static):
    """One account; kept across refreshes so its expanded state survives."""

    def __init__(self, account_id: str, collapsed: bool = True, **kwargs):
        super().__init__(**kwargs)
        self.account_id = account_id
        self.collapsed = collapsed
        self._last: AccountSnapshot | None = None
        self._render_args: dict[str, object] = {}

    def render_snapshot(self, snap: AccountSnapshot, **render_args: object) -> None:
        self._last = snap
        self._render_args = render_args
        self.update(render_snapshot(snap, show_details=not self.collapsed, **render_args))

    def toggle_details(self) -> None:
        self.collapsed = not self.collapsed
        if self._last is not None:
            self.render_snapshot(self._last, **self._render_args)
