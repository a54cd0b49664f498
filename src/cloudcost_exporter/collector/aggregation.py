"""
Aggregation of cloud cost snapshots into labeled cost observations.

Cost items from every set of a snapshot are grouped by a fixed set of
dimensions and their five cost figures summed per group. Each group then
yields one observation per cost type, with label values in the order of
COST_LABELS.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import NamedTuple

from ..models import CloudCostItem, CloudCostResponse

logger = logging.getLogger(__name__)

COST_TYPES = ("list", "net", "amortized_net", "invoiced", "amortized")

# cost_type sits between category and region
COST_LABELS = (
    "provider_id",
    "account_id",
    "service",
    "category",
    "cost_type",
    "region",
    "availability_zone",
    "owner",
    "environment",
    "cluster",
)

# Kubernetes percent is only reported under this cost type to avoid duplicate series
KUBE_PERCENT_COST_TYPE = "amortized_net"


class DimensionKey(NamedTuple):
    """Grouping key for cost items; items with equal keys are summed."""

    provider_id: str
    account_id: str
    service: str
    category: str
    region: str
    availability_zone: str
    owner: str
    environment: str
    cluster: str


@dataclass
class AggregatedCost:
    """Summed cost figures for one DimensionKey."""

    list_cost: float = 0.0
    net_cost: float = 0.0
    amortized_net_cost: float = 0.0
    invoiced_cost: float = 0.0
    amortized_cost: float = 0.0
    kube_percent: float = 0.0

    def add(self, item: CloudCostItem) -> None:
        self.list_cost += item.list_cost.cost
        self.net_cost += item.net_cost.cost
        self.amortized_net_cost += item.amortized_net_cost.cost
        self.invoiced_cost += item.invoiced_cost.cost
        self.amortized_cost += item.amortized_cost.cost
        # Last write wins; items sharing a key are assumed to share attribution
        self.kube_percent = item.list_cost.kubernetes_percent

    def by_cost_type(self) -> dict[str, float]:
        """Cost figures keyed by cost type, in COST_TYPES order."""
        return {
            "list": self.list_cost,
            "net": self.net_cost,
            "amortized_net": self.amortized_net_cost,
            "invoiced": self.invoiced_cost,
            "amortized": self.amortized_cost,
        }


class Observation(NamedTuple):
    """A labeled value handed to the metrics sink."""

    label_values: tuple[str, ...]
    value: float


def dimension_key(item: CloudCostItem) -> DimensionKey:
    """Derive the grouping key of a cost item; missing labels become empty strings."""
    props = item.properties
    labels = props.labels
    return DimensionKey(
        provider_id=props.provider_id,
        account_id=props.account_id,
        service=props.service,
        category=props.category,
        region=props.region_id,
        availability_zone=props.availability_zone,
        owner=labels.get("owner", ""),
        environment=labels.get("environment", ""),
        cluster=labels.get("cluster", ""),
    )


def aggregate(snapshot: CloudCostResponse) -> dict[DimensionKey, AggregatedCost]:
    """
    Sum the cost figures of all items in a snapshot per DimensionKey.

    Args:
        snapshot: Cloud cost snapshot as returned by the OpenCost API

    Returns:
        Mapping of dimension key to aggregated costs, in first-seen order
    """
    aggregated: defaultdict[DimensionKey, AggregatedCost] = defaultdict(AggregatedCost)

    logger.debug(f"Processing cloud cost data: {len(snapshot.data.sets)} sets")

    for set_index, cost_set in enumerate(snapshot.data.sets):
        logger.debug(f"Processing cloud cost set {set_index}: {len(cost_set.cloud_costs)} items")

        for item_id, item in cost_set.cloud_costs.items():
            key = dimension_key(item)
            logger.debug(
                f"Processing cloud cost item {item_id}: key={key} "
                f"list_cost={item.list_cost.cost} kube_percent={item.list_cost.kubernetes_percent}"
            )
            aggregated[key].add(item)

    logger.debug(f"Aggregation complete: {len(aggregated)} unique keys")
    return dict(aggregated)


def cost_label_values(key: DimensionKey, cost_type: str) -> tuple[str, ...]:
    """Label values for a cost observation, in COST_LABELS order."""
    return (
        key.provider_id,
        key.account_id,
        key.service,
        key.category,
        cost_type,
        key.region,
        key.availability_zone,
        key.owner,
        key.environment,
        key.cluster,
    )


def cost_observations(aggregated: dict[DimensionKey, AggregatedCost]) -> list[Observation]:
    """One observation per dimension key and cost type."""
    observations = []
    for key, cost in aggregated.items():
        for cost_type, value in cost.by_cost_type().items():
            observations.append(Observation(cost_label_values(key, cost_type), value))
    return observations


def kube_percent_observations(
    aggregated: dict[DimensionKey, AggregatedCost],
) -> list[Observation]:
    """One Kubernetes attribution observation per dimension key."""
    return [
        Observation(cost_label_values(key, KUBE_PERCENT_COST_TYPE), cost.kube_percent)
        for key, cost in aggregated.items()
    ]
