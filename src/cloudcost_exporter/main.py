"""
Command-line entry point for the OpenCost cloud cost exporter.

Every option also reads the unprefixed environment variable named in its
help text; values not given on the command line come from the dynaconf
configuration.
"""

import logging
import sys

import click
import uvicorn

from . import __build_date__, __commit__, __version__
from .config.settings import ConfigurationError, get_config
from .server.app import create_app

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def setup_logging(level: str = "info"):
    """Configure logging for the given level name."""
    log_level = LOG_LEVELS.get(level.lower(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )

    # HTTP library loggers are only interesting when debugging
    noisy_loggers = ["urllib3", "uvicorn.access"]
    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(
            logging.DEBUG if log_level == logging.DEBUG else logging.WARNING
        )


@click.command()
@click.option("--opencost-url", envvar="OPENCOST_URL", help="OpenCost service URL [OPENCOST_URL]")
@click.option("--port", envvar="PORT", type=int, help="Metrics server port [PORT]")
@click.option("--window", envvar="WINDOW", help="Time window for cost queries [WINDOW]")
@click.option("--aggregate", envvar="AGGREGATE", help="Aggregation dimensions [AGGREGATE]")
@click.option("--cache-ttl", envvar="CACHE_TTL", help="Cache TTL, e.g. 1h [CACHE_TTL]")
@click.option(
    "--max-stale", envvar="MAX_STALE", help="Maximum age for stale data, e.g. 6h [MAX_STALE]"
)
@click.option(
    "--emit-kube-percent-metrics/--no-emit-kube-percent-metrics",
    envvar="EMIT_KUBE_PERCENT_METRICS",
    default=None,
    help="Emit kubernetes percent metric [EMIT_KUBE_PERCENT_METRICS]",
)
@click.option(
    "--currency-symbols",
    envvar="CURRENCY_SYMBOLS",
    help="Comma-separated target currency symbols for exchange rates [CURRENCY_SYMBOLS]",
)
@click.option(
    "--log-level",
    envvar="LOG_LEVEL",
    type=click.Choice(["debug", "info", "warn", "error"], case_sensitive=False),
    help="Log level [LOG_LEVEL]",
)
@click.version_option(
    __version__,
    prog_name="opencost-cloudcost-exporter",
    message=f"%(prog)s %(version)s {__commit__} {__build_date__}",
)
def cli(**options):
    """Prometheus exporter for AWS cloud costs from OpenCost."""
    try:
        config = get_config()
        config.override_from_cli(options)
    except ConfigurationError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    setup_logging(config.log_level)

    app = create_app(config)
    logger.info(f"Server listening on {config.host}:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_config=None)


if __name__ == "__main__":
    cli()
