from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime, timezone

from limitbar.state import AppState
from limitbar.status import snapshot_utilization_percent


def _json_default(obj):
    if isinstance(obj, datetime):
        return obj.isoformat()
    raise TypeError(f"not serializable: {type(obj)!r}")


def snapshot_to_dict(state: AppState) -> dict[str, object]:
    accounts = []
    for snap in state.snapshots:
        item = asdict(snap)
        item["utilization_percent"] = snapshot_utilization_percent(snap)
        accounts.append(item)

    return {
        "generated_at": datetime.now(timezone.utc),
        "overall_status": state.overall_status.value,
        "warning_count": state.warning_count,
        "utilization_percent": state.utilization_percent,
        "global_error": state.global_error,
        "accounts": accounts,
    }


def snapshot_to_json(state: AppState) -> str:
    return json.dumps(snapshot_to_dict(state), default=_json_default, indent=2)
