"""Monitoring infrastructure for the progression engine"""
from progression.monitoring.prometheus_metrics import (
    metrics,
    track_ledger_operation,
    record_points,
    record_achievements,
    record_redemption,
)

__all__ = [
    "metrics",
    "track_ledger_operation",
    "record_points",
    "record_achievements",
    "record_redemption",
]
