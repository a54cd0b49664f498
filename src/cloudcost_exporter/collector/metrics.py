"""
Self-observability metrics for the exporter.

The metric objects are created unregistered and exposed through the
CloudCostCollector, so each exporter instance owns its own set and the
global prometheus_client registry is never touched.
"""

from prometheus_client import Counter, Gauge, Histogram
from prometheus_client.registry import CollectorRegistry

NAMESPACE = "cloudcost_exporter"


class ExporterMetrics:
    """Scrape, cache and fetch health metrics."""

    def __init__(self):
        self.scrape_duration = Histogram(
            "scrape_duration_seconds",
            "Time to fetch cloud costs from OpenCost",
            namespace=NAMESPACE,
            registry=None,
        )
        self.scrape_errors = Counter(
            "scrape_errors",
            "Total number of scrape errors",
            namespace=NAMESPACE,
            registry=None,
        )
        self.cache_hits = Counter(
            "cache_hits",
            "Total number of cache hits",
            namespace=NAMESPACE,
            registry=None,
        )
        self.cache_misses = Counter(
            "cache_misses",
            "Total number of cache misses",
            namespace=NAMESPACE,
            registry=None,
        )
        self.cache_age = Gauge(
            "cache_age_seconds",
            "Age of cached data in seconds",
            namespace=NAMESPACE,
            registry=None,
        )
        self.last_successful_scrape = Gauge(
            "last_successful_scrape_timestamp",
            "Unix timestamp of last successful scrape",
            namespace=NAMESPACE,
            registry=None,
        )

    def all(self):
        return [
            self.scrape_duration,
            self.scrape_errors,
            self.cache_hits,
            self.cache_misses,
            self.cache_age,
            self.last_successful_scrape,
        ]

    def describe(self):
        for metric in self.all():
            yield from metric.describe()

    def collect(self):
        for metric in self.all():
            yield from metric.collect()


def register_build_info(
    registry: CollectorRegistry, version: str, commit: str, date: str
) -> Gauge:
    """Register the build information gauge, set to 1 for this build."""
    build_info = Gauge(
        "info",
        "Build information about the opencost-cloudcost-exporter",
        ["version", "commit", "date"],
        namespace=NAMESPACE,
        registry=registry,
    )
    build_info.labels(version=version, commit=commit, date=date).set(1)
    return build_info
