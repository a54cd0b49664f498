"""Aggregation of cloud cost snapshots into Prometheus metrics."""

from .aggregation import (
    COST_LABELS,
    COST_TYPES,
    AggregatedCost,
    DimensionKey,
    Observation,
    aggregate,
    cost_observations,
    kube_percent_observations,
)
from .metrics import ExporterMetrics

__all__ = [
    "COST_LABELS",
    "COST_TYPES",
    "AggregatedCost",
    "DimensionKey",
    "Observation",
    "aggregate",
    "cost_observations",
    "kube_percent_observations",
    "ExporterMetrics",
]
