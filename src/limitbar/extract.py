"""Loose parsing helpers for provider payloads and rate-limit headers.

Decoded JSON is treated as an untyped tree of dicts, lists and scalars. The
scanners below walk that tree and branch on the runtime type of each node.
Nothing here raises on odd input; unusable values come back as ``None``.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable

from limitbar.models import AccountConfig


def parse_number(value: Any) -> float | None:
    """Coerce ints, floats and numeric strings to a finite float.

    Booleans, NaN, infinities and integers too large for a float are ``None``.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _parse_iso(text: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(text.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _after(now: datetime, **delta: float) -> datetime | None:
    try:
        return now + timedelta(**delta)
    except (OverflowError, ValueError):
        return None


def parse_date(value: Any) -> datetime | None:
    """Unix seconds (number or numeric string) or an ISO-8601 timestamp."""
    seconds = parse_number(value)
    if seconds is not None:
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value:
        return _parse_iso(value)
    return None


def parse_rate_reset(raw: str | None, now: datetime) -> datetime | None:
    """Parse an ``x-ratelimit-reset-*`` header relative to ``now``.

    Accepted forms, first match wins: bare seconds ("60"), milliseconds
    ("45000ms"), seconds with suffix ("30s"), then an ISO-8601 timestamp.
    A duration too large to add to ``now`` is ``None``.
    """
    if not raw:
        return None
    text = raw.strip()
    if not text:
        return None

    seconds = parse_number(text)
    if seconds is not None:
        return _after(now, seconds=seconds)

    if text.endswith("ms"):
        millis = parse_number(text[:-2])
        if millis is not None:
            return _after(now, milliseconds=millis)

    if text.endswith("s"):
        seconds = parse_number(text[:-1])
        if seconds is not None:
            return _after(now, seconds=seconds)

    return _parse_iso(text)


def sum_numeric(keys: Iterable[str], node: Any) -> float:
    """Sum every numeric value stored under one of ``keys`` anywhere in ``node``.

    Every level of the tree contributes: a total reported on an outer bucket
    and again on its inner results is added twice.
    """
    wanted = keys if isinstance(keys, (set, frozenset)) else frozenset(keys)
    if isinstance(node, dict):
        total = 0.0
        for key, value in node.items():
            if key in wanted:
                number = parse_number(value)
                if number is not None:
                    total += number
            total += sum_numeric(wanted, value)
        return total
    if isinstance(node, list):
        return sum(sum_numeric(wanted, item) for item in node)
    return 0.0


def sum_keys_then_descend(
    node: Any,
    pick: Callable[[dict], float],
    skip: frozenset[str] = frozenset(),
) -> float:
    """Add ``pick(mapping)`` for every mapping in the tree, then recurse.

    Children stored under a key in ``skip`` are not descended into, which lets
    a picker that already consumed a nested structure avoid counting it twice.
    """
    if isinstance(node, dict):
        total = pick(node)
        for key, value in node.items():
            if key in skip:
                continue
            total += sum_keys_then_descend(value, pick, skip)
        return total
    if isinstance(node, list):
        return sum(sum_keys_then_descend(item, pick, skip) for item in node)
    return 0.0


def number_setting(account: AccountConfig, keys: Iterable[str]) -> float | None:
    for key in keys:
        value = account.settings.get(key)
        if value is None:
            continue
        parsed = parse_number(value)
        if parsed is not None:
            return parsed
    return None


def positive_or_none(value: float) -> float | None:
    return value if value > 0 else None
