from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import platform
from dataclasses import asdict

from rich.console import Console
from rich.text import Text

from limitbar.app import run_dashboard
from limitbar.config import CONFIG_PATH_ENV, config_path, sample_config, save_config
from limitbar.secrets import ANTHROPIC_ADMIN_KEY, GCP_PROJECT, GOOGLE_OAUTH_TOKEN, OPENAI_ADMIN_KEY
from limitbar.snapshot import snapshot_to_json
from limitbar.state import AppState
from limitbar.ui.theme import STATUS_COLORS
from limitbar.ui.widgets import progress_width, render_snapshot

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def _refreshed_state() -> AppState:
    state = AppState()
    state.load_config()
    asyncio.run(state.refresh())
    return state


def _status_line(state: AppState) -> Text:
    status = state.overall_status
    line = Text()
    line.append(state.menu_bar_label, style="bold bright_white")
    line.append(f"   ● {status.label}", style=f"bold {STATUS_COLORS[status.value]}")
    if state.global_error:
        line.append(f"   {state.global_error}", style="red")
    return line


def main() -> None:
    parser = argparse.ArgumentParser(prog="limitbar")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    sub = parser.add_subparsers(dest="cmd")

    sub.add_parser("dashboard")

    panel = sub.add_parser("panel")
    panel.add_argument("--provider", choices=["all", "claude", "codex", "gemini"], default="all")
    panel.add_argument("--details", action="store_true", help="show source details")

    sub.add_parser("snapshot")
    sub.add_parser("status")
    sub.add_parser("health")

    config = sub.add_parser("config")
    config_sub = config.add_subparsers(dest="config_cmd")
    config_sub.add_parser("show")
    config_sub.add_parser("path")
    config_init = config_sub.add_parser("init")
    config_init.add_argument("--force", action="store_true")

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format=LOG_FORMAT)

    cmd = args.cmd or "dashboard"
    console = Console()

    if cmd == "dashboard":
        run_dashboard(AppState())
        return

    if cmd == "panel":
        state = _refreshed_state()
        console.print(_status_line(state))
        row = state.ui.row
        for snap in state.snapshots:
            if args.provider != "all" and snap.provider.value != args.provider:
                continue
            console.print(render_snapshot(
                snap,
                tag=state.account_tag(snap.id, snap.account_kind),
                icon=state.account_icon(snap.id, snap.provider),
                show_details=args.details or not row.details_collapsed_by_default,
                width=progress_width(row.progress_width),
                show_percentage=row.show_percentage,
            ))
        return

    if cmd == "snapshot":
        print(snapshot_to_json(_refreshed_state()))
        return

    if cmd == "status":
        console.print(_status_line(_refreshed_state()))
        return

    if cmd == "health":
        secret_names = [OPENAI_ADMIN_KEY, ANTHROPIC_ADMIN_KEY, GOOGLE_OAUTH_TOKEN, GCP_PROJECT]
        checks = {
            "config": str(config_path()),
            "config_exists": config_path().exists(),
            "config_env": os.environ.get(CONFIG_PATH_ENV),
            "secrets_present": sorted(
                name for name in os.environ if any(name.startswith(base) for base in secret_names)
            ),
            "platform": platform.platform(),
        }
        print(json.dumps(checks, indent=2))
        return

    if cmd == "config":
        if args.config_cmd == "path":
            print(config_path())
            return
        if args.config_cmd == "show":
            state = AppState()
            state.load_config()
            if state.global_error:
                parser.exit(1, f"{state.global_error}\n")
            payload = {
                "path": str(state.config_path),
                "refresh_seconds": state.refresh_seconds,
                "ui": asdict(state.ui),
                "accounts": [asdict(a) for a in state.accounts],
            }
            print(json.dumps(payload, indent=2, default=str))
            return
        if args.config_cmd == "init":
            path = config_path()
            if path.exists() and not args.force:
                parser.exit(1, f"{path} already exists; use --force to overwrite\n")
            save_config(sample_config(), path)
            print(f"wrote {path}")
            return
        parser.error("config requires show, path or init")

    parser.error("unknown command")


if __name__ == "__main__":
    main()
