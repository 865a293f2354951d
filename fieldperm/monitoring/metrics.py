"""
Prometheus metrics for the field permission service
"""

import time
from functools import wraps
from typing import Callable
from prometheus_client import Counter, Histogram, CollectorRegistry
from prometheus_client.exposition import generate_latest

# Create a custom registry
metrics_registry = CollectorRegistry()

# Resolution metrics
permission_checks_total = Counter(
    "permission_checks_total",
    "Total field permission decisions",
    ["action", "decision"],
    registry=metrics_registry
)

# Cache metrics
permission_cache_events_total = Counter(
    "permission_cache_events_total",
    "Permission cache hits, misses and invalidations",
    ["event"],
    registry=metrics_registry
)

# Mutation metrics
permission_mutations_total = Counter(
    "permission_mutations_total",
    "Total override mutations",
    ["operation", "status"],
    registry=metrics_registry
)

permission_mutation_duration_seconds = Histogram(
    "permission_mutation_duration_seconds",
    "Override mutation latency",
    ["operation"],
    buckets=(.005, .01, .025, .05, .075, .1, .25, .5, .75, 1.0, 2.5, 5.0),
    registry=metrics_registry
)


def track_mutation(operation: str):
    """Decorator to track override mutations"""
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            status = "success"
            try:
                return await func(*args, **kwargs)
            except Exception:
                status = "error"
                raise
            finally:
                duration = time.time() - start_time
                permission_mutations_total.labels(
                    operation=operation,
                    status=status
                ).inc()
                permission_mutation_duration_seconds.labels(
                    operation=operation
                ).observe(duration)
        return wrapper
    return decorator


def record_check(action: str, allowed: bool) -> None:
    """Count a single permission decision"""
    permission_checks_total.labels(
        action=action,
        decision="allow" if allowed else "deny"
    ).inc()


def record_cache_event(event: str) -> None:
    """Count a cache hit, miss or invalidation"""
    permission_cache_events_total.labels(event=event).inc()


def get_metrics() -> bytes:
    """Generate Prometheus metrics exposition format"""
    return generate_latest(metrics_registry)
