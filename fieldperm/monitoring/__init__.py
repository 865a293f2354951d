"""
Monitoring module for application metrics
"""

from fieldperm.monitoring.metrics import (
    metrics_registry,
    get_metrics,
    record_cache_event,
    record_check,
    track_mutation,
)

__all__ = [
    "metrics_registry",
    "get_metrics",
    "record_cache_event",
    "record_check",
    "track_mutation",
]
