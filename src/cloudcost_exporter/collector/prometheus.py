"""
Prometheus collector exposing OpenCost cloud costs.

Each scrape obtains a snapshot through the RefreshOrchestrator, aggregates it
and writes the resulting observations into gauge metric families. Exchange
rates are fetched per scrape and never block cost metrics when they fail.
"""

import logging

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from ..cache.refresh import RefreshOrchestrator
from ..cache.store import SnapshotCache
from ..client.errors import FetchError
from ..client.opencost import OpenCostClient
from ..models import CloudCostResponse
from .aggregation import COST_LABELS, aggregate, cost_observations, kube_percent_observations
from .metrics import ExporterMetrics

logger = logging.getLogger(__name__)

NAMESPACE = "aws_cloud"

COST_TOTAL_METRIC = f"{NAMESPACE}_cost_total"
KUBE_PERCENT_METRIC = f"{NAMESPACE}_cost_kubernetes_percent"
EXCHANGE_RATE_METRIC = "currency_exchange_rate"


class CloudCostCollector(Collector):
    """Collects AWS cloud cost metrics from OpenCost."""

    def __init__(
        self,
        client: OpenCostClient,
        cache: SnapshotCache,
        orchestrator: RefreshOrchestrator,
        metrics: ExporterMetrics,
        emit_kube_percent_metrics: bool = False,
        currency_symbols: list[str] | None = None,
        exchange_rate_base: str = "USD",
        exchange_rate_timeout: float = 10.0,
    ):
        self.client = client
        self.cache = cache
        self.orchestrator = orchestrator
        self.metrics = metrics
        self.emit_kube_percent_metrics = emit_kube_percent_metrics
        self.currency_symbols = ["CNY", "EUR"] if currency_symbols is None else currency_symbols
        self.exchange_rate_base = exchange_rate_base
        self.exchange_rate_timeout = exchange_rate_timeout

    def describe(self):
        yield self._cost_family()
        if self.emit_kube_percent_metrics:
            yield self._kube_percent_family()
        yield self._exchange_rate_family()
        yield from self.metrics.describe()

    def collect(self):
        snapshot = self.orchestrator.obtain()

        self.metrics.cache_age.set(self.cache.age())
        yield from self.metrics.collect()

        if snapshot is None:
            return

        yield from self.cost_metrics(snapshot)
        yield from self.exchange_rate_metrics()

    def cost_metrics(self, snapshot: CloudCostResponse) -> list[GaugeMetricFamily]:
        """Build the cost (and optional Kubernetes percent) families for a snapshot."""
        aggregated = aggregate(snapshot)

        cost_family = self._cost_family()
        for observation in cost_observations(aggregated):
            cost_family.add_metric(observation.label_values, observation.value)
        families = [cost_family]

        if self.emit_kube_percent_metrics:
            kube_family = self._kube_percent_family()
            for observation in kube_percent_observations(aggregated):
                kube_family.add_metric(observation.label_values, observation.value)
            families.append(kube_family)

        return families

    def exchange_rate_metrics(self) -> list[GaugeMetricFamily]:
        """Fetch exchange rates for the configured symbols; empty on failure."""
        if not self.currency_symbols:
            return []

        try:
            rates = self.client.fetch_exchange_rates(
                self.exchange_rate_base, self.currency_symbols, timeout=self.exchange_rate_timeout
            )
        except FetchError as e:
            logger.error(f"Failed to fetch exchange rates: {e}")
            return []

        family = self._exchange_rate_family()
        for currency, rate in rates.rates.items():
            family.add_metric([rates.base, currency], rate)
        return [family]

    @staticmethod
    def _cost_family() -> GaugeMetricFamily:
        return GaugeMetricFamily(COST_TOTAL_METRIC, "AWS cloud cost in USD", labels=COST_LABELS)

    @staticmethod
    def _kube_percent_family() -> GaugeMetricFamily:
        return GaugeMetricFamily(
            KUBE_PERCENT_METRIC,
            "Percentage of cost attributed to Kubernetes",
            labels=COST_LABELS,
        )

    @staticmethod
    def _exchange_rate_family() -> GaugeMetricFamily:
        return GaugeMetricFamily(
            EXCHANGE_RATE_METRIC,
            "Currency exchange rate from base to target currency",
            labels=["base", "target"],
        )
