#!/usr/bin/env python3

# ==== PREFECT FLOWS SERVING SCRIPT ==== #

"""
Serve the fulfillment exception flows on their one-minute schedules.

Served Flows:
1. Order Exception Sweep: every SWEEP_INTERVAL_SECONDS (default 60)
2. Pick Completion: every PICK_COMPLETION_INTERVAL_SECONDS (default 60)

Usage:
    python scripts/serve_flows.py [--dry-run] [--metrics-port PORT]
"""

import argparse
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from prefect import serve

from flows.schedules import build_deployments
from fulfillment_exceptions.observability.logging import get_logger, init_logging
from fulfillment_exceptions.observability.metrics import init_metrics
from fulfillment_exceptions.observability.tracing import init_tracing
from fulfillment_exceptions.settings import get_settings


logger = get_logger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Serve the fulfillment exception flows")
    parser.add_argument("--dry-run", action="store_true", help="List deployments without serving them")
    parser.add_argument("--metrics-port", type=int, default=None, help="Expose Prometheus metrics on this port")
    args = parser.parse_args()

    settings = get_settings()
    init_logging(settings.LOG_LEVEL, settings.LOG_DIR)
    init_tracing(settings)

    deployments = build_deployments(settings)

    if args.dry_run:
        for deployment in deployments:
            logger.info(f"[DRY RUN] Would serve deployment {deployment.name}")
        return 0

    init_metrics(args.metrics_port)
    logger.info(f"Serving {len(deployments)} deployments")
    serve(*deployments)
    return 0


if __name__ == "__main__":
    sys.exit(main())
