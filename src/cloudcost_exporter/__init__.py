"""
OpenCost CloudCost Exporter

Prometheus exporter that turns OpenCost cloud cost reports into labeled
cost metrics, with stale-while-revalidate caching of the upstream data.
"""

import os

__version__ = "1.0.0"
__author__ = "Cost Monitor Team"

# Build metadata, injected by the container build
__commit__ = os.getenv("CLOUDCOST_EXPORTER_BUILD_COMMIT", "none")
__build_date__ = os.getenv("CLOUDCOST_EXPORTER_BUILD_DATE", "unknown")
