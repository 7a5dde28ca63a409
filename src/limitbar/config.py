from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Mapping

import tomli_w

from limitbar.errors import InvalidConfigError
from limitbar.models import (
    AccountConfig,
    AccountKind,
    AppConfiguration,
    GeneralConfig,
    MenuBarUIConfig,
    ProgressAggregation,
    Provider,
    RowUIConfig,
    UIConfig,
)

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "LIMITBAR_CONFIG_PATH"
CONFIG_PATH = Path.home() / ".config/limitbar/config.toml"


def config_path(environ: Mapping[str, str] | None = None) -> Path:
    env = os.environ if environ is None else environ
    configured = env.get(CONFIG_PATH_ENV)
    if configured:
        return Path(configured).expanduser()
    return CONFIG_PATH


def _setting_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _account_from_dict(raw: dict) -> AccountConfig:
    try:
        return AccountConfig(
            id=str(raw["id"]),
            display_name=str(raw.get("display_name", raw["id"])),
            provider=Provider(raw["provider"]),
            account_kind=AccountKind(raw.get("account_kind", "api")),
            enabled=bool(raw.get("enabled", True)),
            settings={str(k): _setting_text(v) for k, v in raw.get("settings", {}).items()},
        )
    except KeyError as exc:
        raise ValueError(f"account is missing required field {exc.args[0]!r}") from exc


def _account_to_dict(account: AccountConfig) -> dict:
    return {
        "id": account.id,
        "display_name": account.display_name,
        "provider": account.provider.value,
        "account_kind": account.account_kind.value,
        "enabled": account.enabled,
        "settings": dict(account.settings),
    }


def _ui_from_dict(raw: dict) -> UIConfig:
    menu_raw = raw.get("menu_bar", {})
    row_raw = raw.get("row", {})
    return UIConfig(
        menu_bar=MenuBarUIConfig(
            show_percentage=bool(menu_raw.get("show_percentage", True)),
            show_mini_bar=bool(menu_raw.get("show_mini_bar", True)),
            show_warning_count=bool(menu_raw.get("show_warning_count", True)),
            aggregation=ProgressAggregation(menu_raw.get("aggregation", "worst")),
        ),
        row=RowUIConfig(
            progress_width=int(row_raw.get("progress_width", 120)),
            show_percentage=bool(row_raw.get("show_percentage", True)),
            details_collapsed_by_default=bool(row_raw.get("details_collapsed_by_default", True)),
        ),
    )


def load_config(path: Path | None = None) -> AppConfiguration:
    """Read the TOML config; a missing file is an empty configuration.

    Disabled accounts are dropped. Anything unreadable raises
    ``InvalidConfigError`` naming the file.
    """
    path = path or config_path()
    if not path.exists():
        logger.info("no config at %s; starting with zero accounts", path)
        return AppConfiguration()

    try:
        raw = tomllib.loads(path.read_text())
        general_raw = raw.get("general", {})
        cfg = AppConfiguration(
            accounts=[_account_from_dict(a) for a in raw.get("accounts", [])],
            ui=_ui_from_dict(raw.get("ui", {})),
            general=GeneralConfig(refresh_seconds=int(general_raw.get("refresh_seconds", 60))),
        )
    except (OSError, tomllib.TOMLDecodeError, ValueError, TypeError, AttributeError) as exc:
        raise InvalidConfigError(f"Failed to decode {path}: {exc}") from exc

    cfg.accounts = [a for a in cfg.accounts if a.enabled]
    return cfg


def save_config(cfg: AppConfiguration, path: Path | None = None) -> None:
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "general": {"refresh_seconds": cfg.general.refresh_seconds},
        "ui": {
            "menu_bar": {
                "show_percentage": cfg.ui.menu_bar.show_percentage,
                "show_mini_bar": cfg.ui.menu_bar.show_mini_bar,
                "show_warning_count": cfg.ui.menu_bar.show_warning_count,
                "aggregation": cfg.ui.menu_bar.aggregation.value,
            },
            "row": {
                "progress_width": cfg.ui.row.progress_width,
                "show_percentage": cfg.ui.row.show_percentage,
                "details_collapsed_by_default": cfg.ui.row.details_collapsed_by_default,
            },
        },
        "accounts": [_account_to_dict(a) for a in cfg.accounts],
    }
    path.write_text(tomli_w.dumps(payload))


def sample_config() -> AppConfiguration:
    return AppConfiguration(
        accounts=[
            AccountConfig(
                id="codex_api",
                display_name="Codex API",
                provider=Provider.CODEX,
                account_kind=AccountKind.API,
                settings={"dailyBudgetUSD": "20", "demo": "true"},
            ),
            AccountConfig(
                id="claude_api",
                display_name="Claude API",
                provider=Provider.CLAUDE,
                account_kind=AccountKind.API,
                settings={"dailyBudgetUSD": "15", "demo": "true"},
            ),
            AccountConfig(
                id="claude_pro",
                display_name="Claude Pro",
                provider=Provider.CLAUDE,
                account_kind=AccountKind.SUBSCRIPTION,
                settings={"tag": "Pro"},
            ),
        ]
    )
