from __future__ import annotations

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.widgets import Footer, Header, Static

from limitbar.state import AppState
from limitbar.ui.theme import APP_CSS
from limitbar.ui.widgets import AccountCard, progress_width


class LimitbarApp(App):
    CSS = APP_CSS
    TITLE = "limitbar"
    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("c", "reload_config", "Reload config"),
        Binding("d", "toggle_details", "Details"),
    ]

    def __init__(self, state: AppState):
        super().__init__()
        self.state = state
        # Expanded/collapsed details per account id, kept across refreshes.
        self._collapsed: dict[str, bool] = {}

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static(id="summary")
        yield VerticalScroll(id="accounts")
        yield Footer()

    async def on_mount(self) -> None:
        self.state.load_config()
        await self.refresh_dashboard()
        self.set_interval(max(1, self.state.refresh_seconds), self.refresh_dashboard)

    async def action_refresh(self) -> None:
        await self.refresh_dashboard()

    async def action_reload_config(self) -> None:
        self.state.load_config()
        await self.refresh_dashboard()

    def action_toggle_details(self) -> None:
        for card in self.query(AccountCard):
            card.toggle_details()
            self._collapsed[card.account_id] = card.collapsed

    async def refresh_dashboard(self) -> None:
        if not await self.state.refresh():
            return

        summary = self.query_one("#summary", Static)
        if self.state.global_error:
            summary.update(f"[bold red]Config error:[/] {self.state.global_error}")
        elif not self.state.snapshots:
            summary.update(f"[dim]No enabled accounts in {self.state.config_path}[/]")
        else:
            summary.update(f"[bold]{self.state.menu_bar_label}[/]    overall: {self.state.overall_status.label}")

        row = self.state.ui.row
        cards = []
        for snap in self.state.snapshots:
            card = AccountCard(snap.id, collapsed=self._collapsed.get(snap.id, row.details_collapsed_by_default))
            card.render_snapshot(
                snap,
                tag=self.state.account_tag(snap.id, snap.account_kind),
                icon=self.state.account_icon(snap.id, snap.provider),
                width=progress_width(row.progress_width),
                show_percentage=row.show_percentage,
            )
            cards.append(card)

        container = self.query_one("#accounts", VerticalScroll)
        await container.remove_children()
        if cards:
            await container.mount_all(cards)


def run_dashboard(state: AppState) -> None:
    LimitbarApp(state).run()
