"""
Pytest configuration and shared fixtures for cloud cost exporter tests.

This module provides sample OpenCost payloads, a controllable clock and a
fake OpenCost client used across the unit and integration tests.
"""

import json
import threading
from typing import Any
from unittest.mock import MagicMock

import pytest

from cloudcost_exporter.client.errors import FetchError
from cloudcost_exporter.collector.metrics import ExporterMetrics
from cloudcost_exporter.config.settings import ExporterConfig, build_settings
from cloudcost_exporter.models import CloudCostResponse, ExchangeRateResponse


def make_cost_item(
    service: str = "AmazonEC2",
    category: str = "Compute",
    list_cost: float = 0.0,
    net_cost: float = 0.0,
    amortized_net_cost: float = 0.0,
    invoiced_cost: float = 0.0,
    amortized_cost: float = 0.0,
    kube_percent: float = 0.0,
    labels: dict[str, str] | None = None,
    provider_id: str = "i-1234567890abcdef0",
    account_id: str = "123456789012",
    region: str = "us-east-1",
    availability_zone: str = "us-east-1a",
) -> dict[str, Any]:
    """Build one cloudCost item in the OpenCost JSON shape."""

    def cost_value(cost: float) -> dict[str, float]:
        return {"cost": cost, "kubernetesPercent": kube_percent}

    return {
        "properties": {
            "providerID": provider_id,
            "provider": "AWS",
            "accountID": account_id,
            "accountName": "Production Account",
            "invoiceEntityID": account_id,
            "invoiceEntityName": "Production Account",
            "availabilityZone": availability_zone,
            "regionID": region,
            "service": service,
            "category": category,
            "labels": labels if labels is not None else {},
        },
        "window": {"start": "2024-01-01T00:00:00Z", "end": "2024-01-02T00:00:00Z"},
        "listCost": cost_value(list_cost),
        "netCost": cost_value(net_cost),
        "amortizedNetCost": cost_value(amortized_net_cost),
        "invoicedCost": cost_value(invoiced_cost),
        "amortizedCost": cost_value(amortized_cost),
    }


def make_payload(*sets: list[dict[str, Any]]) -> dict[str, Any]:
    """Build a /cloudCost response body; each argument is one set of items."""
    return {
        "code": 200,
        "data": {
            "sets": [
                {"cloudCosts": {f"item-{set_index}-{i}": item for i, item in enumerate(items)}}
                for set_index, items in enumerate(sets)
            ]
        },
    }


def make_snapshot(*sets: list[dict[str, Any]]) -> CloudCostResponse:
    return CloudCostResponse.model_validate(make_payload(*sets))


def make_response(status_code: int = 200, payload: Any = None, text: str | None = None):
    """Mock requests.Response with the given status and body."""
    body = text if text is not None else json.dumps(payload if payload is not None else {})
    response = MagicMock()
    response.status_code = status_code
    response.text = body
    response.content = body.encode()
    return response


def sample_value(metric, sample_name: str) -> float | None:
    """Read a sample value from an unregistered prometheus_client metric."""
    for family in metric.collect():
        for sample in family.samples:
            if sample.name == sample_name:
                return sample.value
    return None


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeOpenCostClient:
    """Stand-in for OpenCostClient that counts fetches."""

    def __init__(
        self,
        snapshot: CloudCostResponse | None = None,
        error: FetchError | None = None,
        gate: threading.Event | None = None,
        rates: ExchangeRateResponse | None = None,
        rates_error: FetchError | None = None,
    ):
        self.snapshot = snapshot
        self.error = error
        self.gate = gate
        self.rates = rates
        self.rates_error = rates_error
        self.calls = 0
        self.rate_calls = 0
        self._lock = threading.Lock()

    def fetch_cloud_costs(self, timeout=None, cancel_event=None):
        with self._lock:
            self.calls += 1
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return self.snapshot

    def fetch_exchange_rates(self, base, symbols, timeout=10.0):
        with self._lock:
            self.rate_calls += 1
        if self.rates_error is not None:
            raise self.rates_error
        return self.rates or ExchangeRateResponse(amount=1.0, base=base, date="2024-01-02")

    def ping(self, timeout=5.0):
        return None

    def close(self):
        pass


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def metrics() -> ExporterMetrics:
    return ExporterMetrics()


@pytest.fixture
def sample_snapshot() -> CloudCostResponse:
    """Snapshot with a single EC2 compute item."""
    return make_snapshot(
        [
            make_cost_item(
                list_cost=100.50,
                net_cost=90.00,
                amortized_net_cost=70.30,
                invoiced_cost=95.00,
                amortized_cost=80.00,
                kube_percent=0.75,
                labels={"owner": "platform", "environment": "prod", "cluster": "eks-main"},
            )
        ]
    )


@pytest.fixture
def sample_rates() -> ExchangeRateResponse:
    return ExchangeRateResponse(
        amount=1.0, base="USD", date="2024-01-02", rates={"CNY": 7.1, "EUR": 0.92}
    )


@pytest.fixture
def test_config(monkeypatch) -> ExporterConfig:
    """Configuration built from defaults only, isolated from the environment."""
    monkeypatch.delenv("CLOUDCOST_EXPORTER_CACHE__TTL", raising=False)
    monkeypatch.delenv("CLOUDCOST_EXPORTER_OPENCOST__URL", raising=False)
    return ExporterConfig(build_settings(settings_files=[]))
