"""
Prometheus metrics helpers

Usage:
    from utils.metrics import MetricsPublisher, get_or_create_metric

    ROWS = get_or_create_metric(
        lambda: Counter("rows_total", "Rows written", ["table"]),
        "rows_total",
    )

    publisher = MetricsPublisher(port=9091)
    publisher.start()
"""

import logging
from typing import Callable, TypeVar

from prometheus_client import REGISTRY, CollectorRegistry

from .publisher import MetricsPublisher

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a metric, or return the one already registered under that name.

    Modules defining metrics at import time can be reloaded (tests do) without
    a "Duplicated timeseries" error.

    Args:
        metric_factory: Callable that creates the metric
        metric_name: Registered name used for lookup. Counters register
            under the name without the ``_total`` suffix.
        registry: Prometheus registry to use (default: global REGISTRY)

    Returns:
        The metric instance
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        raise


__all__ = [
    "MetricsPublisher",
    "get_or_create_metric",
]
