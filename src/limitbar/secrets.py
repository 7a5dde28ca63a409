from __future__ import annotations

import os
import re
from typing import Mapping

from limitbar.errors import MissingSecretError
from limitbar.models import AccountConfig

OPENAI_ADMIN_KEY = "LIMITBAR_OPENAI_ADMIN_KEY"
ANTHROPIC_ADMIN_KEY = "LIMITBAR_ANTHROPIC_ADMIN_KEY"
GOOGLE_OAUTH_TOKEN = "LIMITBAR_GOOGLE_OAUTH_TOKEN"
GCP_PROJECT = "LIMITBAR_GCP_PROJECT"

_NON_ALNUM_RE = re.compile(r"[^A-Z0-9]+")


def account_suffix(account_id: str) -> str:
    return _NON_ALNUM_RE.sub("_", account_id.upper())


class EnvSecretResolver:
    """Looks up per-account secrets in the process environment.

    For a base name ``BASE`` the lookup order is ``BASE_<ACCOUNT_ID>``, then
    ``BASE``, then the legacy fallbacks. Empty values are skipped.
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def scoped_name(self, base_name: str, account: AccountConfig) -> str:
        return f"{base_name}_{account_suffix(account.id)}"

    def openai_admin_key(self, account: AccountConfig) -> str | None:
        return self._value(OPENAI_ADMIN_KEY, account, ["OPENAI_API_KEY"])

    def anthropic_admin_key(self, account: AccountConfig) -> str | None:
        return self._value(ANTHROPIC_ADMIN_KEY, account, ["ANTHROPIC_API_KEY"])

    def google_oauth_token(self, account: AccountConfig) -> str | None:
        return self._value(GOOGLE_OAUTH_TOKEN, account, ["GOOGLE_OAUTH_ACCESS_TOKEN"])

    def google_project(self, account: AccountConfig) -> str | None:
        project = account.settings.get("gcpProject")
        if project:
            return project
        return self._value(GCP_PROJECT, account, ["GCP_PROJECT", "GOOGLE_CLOUD_PROJECT"])

    def require(self, value: str | None, base_name: str, account: AccountConfig, what: str = "secret") -> str:
        """Return ``value`` or raise ``MissingSecretError`` naming the scoped variable."""
        if not value:
            raise MissingSecretError(f"Missing {what}: {self.scoped_name(base_name, account)}")
        return value

    def _value(self, base_name: str, account: AccountConfig, fallbacks: list[str]) -> str | None:
        for name in [self.scoped_name(base_name, account), base_name, *fallbacks]:
            value = self._environ.get(name)
            if value:
                return value
        return None
