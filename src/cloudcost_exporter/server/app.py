"""
Cloud Cost Exporter - FastAPI application

Serves Prometheus metrics plus liveness and readiness probes.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from prometheus_client.registry import CollectorRegistry

from .. import __build_date__, __commit__, __version__
from ..cache.refresh import RefreshOrchestrator
from ..cache.store import SnapshotCache
from ..client.errors import FetchError
from ..client.opencost import OpenCostClient
from ..collector.metrics import ExporterMetrics, register_build_info
from ..collector.prometheus import CloudCostCollector
from ..config.settings import ExporterConfig, get_config

logger = logging.getLogger(__name__)

READINESS_PING_TIMEOUT = 5.0
SHUTDOWN_REFRESH_TIMEOUT = 10.0


def create_app(
    config: ExporterConfig | None = None, client: OpenCostClient | None = None
) -> FastAPI:
    """
    Build the exporter components and the FastAPI app serving them.

    Args:
        config: Exporter configuration (defaults to the global configuration)
        client: OpenCost client override, mainly for tests

    Returns:
        Configured FastAPI application
    """
    config = config or get_config()
    client = client or OpenCostClient(
        config.opencost_url,
        window=config.window,
        aggregate=config.aggregate,
        timeout=config.request_timeout,
        max_retries=config.max_retries,
        exchange_rate_url=config.exchange_rate_url,
    )

    cache = SnapshotCache(config.cache_ttl, config.max_stale)
    metrics = ExporterMetrics()
    orchestrator = RefreshOrchestrator(client, cache, metrics, fetch_timeout=config.fetch_timeout)

    registry = CollectorRegistry()
    register_build_info(registry, __version__, __commit__, __build_date__)
    registry.register(
        CloudCostCollector(
            client,
            cache,
            orchestrator,
            metrics,
            emit_kube_percent_metrics=config.emit_kube_percent,
            currency_symbols=config.currency_symbols,
            exchange_rate_base=config.exchange_rate_base,
        )
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan management"""
        logger.info(f"Starting opencost-cloudcost-exporter {__version__}: {config.summary()}")
        yield
        logger.info("Shutting down server")
        orchestrator.wait_for_refresh(timeout=SHUTDOWN_REFRESH_TIMEOUT)
        client.close()

    app = FastAPI(
        title="OpenCost CloudCost Exporter",
        version=__version__,
        description="Prometheus exporter for AWS cloud costs from OpenCost",
        lifespan=lifespan,
    )
    app.state.registry = registry
    app.state.cache = cache
    app.state.client = client
    app.state.orchestrator = orchestrator

    # Handlers are sync so blocking fetches run in the threadpool
    @app.get("/metrics")
    def metrics_endpoint():
        """Prometheus scrape endpoint"""
        return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz", response_class=PlainTextResponse)
    def healthz():
        """Liveness probe"""
        return "ok"

    @app.get("/readyz", response_class=PlainTextResponse)
    def readyz():
        """Readiness probe: ready once data is cached or OpenCost is reachable"""
        if not cache.is_populated():
            try:
                client.ping(timeout=READINESS_PING_TIMEOUT)
            except FetchError as e:
                logger.warning(f"Readiness check failed: {e}")
                return PlainTextResponse(f"not ready: {e}", status_code=503)
        return "ready"

    return app
