from __future__ import annotations

from typing import Iterable, Sequence

from limitbar.models import (
    AccountSnapshot,
    LimitMetric,
    MetricStatus,
    OverallStatus,
    ProgressAggregation,
)

WARNING_RATIO = 0.20

_ATTENTION = {OverallStatus.WARNING, OverallStatus.EXHAUSTED, OverallStatus.ERROR}


def metric_status(limit: float | None, remaining: float | None) -> MetricStatus:
    if limit is None or limit <= 0:
        return MetricStatus.UNKNOWN
    if remaining is None:
        return MetricStatus.UNKNOWN
    if remaining <= 0:
        return MetricStatus.EXHAUSTED
    if remaining / limit <= WARNING_RATIO:
        return MetricStatus.WARNING
    return MetricStatus.OK


def metric_status_from_used(limit: float | None, used: float | None) -> MetricStatus:
    if limit is None or limit <= 0 or used is None:
        return MetricStatus.UNKNOWN
    return metric_status(limit, limit - used)


def overall_status(
    metrics: Iterable[LimitMetric],
    fallback: OverallStatus = OverallStatus.UNKNOWN,
) -> OverallStatus:
    statuses = [m.status for m in metrics]
    if not statuses:
        return fallback
    return max(statuses).to_overall()


def warning_count(snapshots: Iterable[AccountSnapshot]) -> int:
    return sum(1 for s in snapshots if s.overall_status in _ATTENTION)


def overall_app_status(snapshots: Sequence[AccountSnapshot]) -> OverallStatus:
    if not snapshots:
        return OverallStatus.UNKNOWN
    return max((s.overall_status for s in snapshots), default=OverallStatus.OK)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def utilization_ratio(metric: LimitMetric) -> float | None:
    if metric.limit is None or metric.limit <= 0:
        return None
    if metric.used is not None:
        return _clamp(metric.used / metric.limit)
    if metric.remaining is not None:
        return _clamp(1 - metric.remaining / metric.limit)
    return None


def metrics_utilization_ratio(metrics: Iterable[LimitMetric]) -> float | None:
    ratios = [r for r in (utilization_ratio(m) for m in metrics) if r is not None]
    return max(ratios) if ratios else None


def _to_percent(ratio: float) -> int:
    # Round half away from zero; ratios are never negative.
    return int(ratio * 100 + 0.5)


def snapshot_utilization_percent(snapshot: AccountSnapshot) -> int | None:
    ratio = metrics_utilization_ratio(snapshot.metrics)
    return None if ratio is None else _to_percent(ratio)


def aggregate_utilization_percent(
    snapshots: Iterable[AccountSnapshot],
    mode: ProgressAggregation = ProgressAggregation.WORST,
) -> int | None:
    ratios = [r for r in (metrics_utilization_ratio(s.metrics) for s in snapshots) if r is not None]
    if not ratios:
        return None
    if mode is ProgressAggregation.AVERAGE:
        ratio = sum(ratios) / len(ratios)
    else:
        ratio = max(ratios)
    return _to_percent(ratio)
