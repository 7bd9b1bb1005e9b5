#!/usr/bin/env python
"""
Command-line interface for the CRM dashboard.

Usage:
    python cli.py forecast --start 2025-01-01 --end 2025-03-31 --platform google_ads
    python cli.py classify "Google Ads - Search" "Instagram Stories"
    python cli.py init-db --config dashboard.yaml
    python cli.py serve --port 8080
"""

import argparse
import json
import sys
import logging

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="CRM Dashboard - marketing funnel and revenue forecast CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Forecast command
    forecast_parser = subparsers.add_parser("forecast", help="Compute the revenue forecast")
    forecast_parser.add_argument(
        "--start", "-s",
        type=str,
        help="First day (YYYY-MM-DD). Defaults to the configured lookback"
    )
    forecast_parser.add_argument(
        "--end", "-e",
        type=str,
        help="Last day (YYYY-MM-DD). Defaults to today"
    )
    forecast_parser.add_argument(
        "--platform", "-p",
        type=str,
        default="all",
        help="all, google_ads, meta_ads, linkedin_ads or other"
    )
    forecast_parser.add_argument(
        "--config", "-c",
        type=str,
        help="Optional: Path to YAML configuration file"
    )
    forecast_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the API response payload as JSON"
    )

    # Classify command
    classify_parser = subparsers.add_parser("classify", help="Classify deal source labels")
    classify_parser.add_argument("labels", nargs="+", help="Source labels")

    # Init-db command
    init_parser = subparsers.add_parser("init-db", help="Create the local warehouse tables")
    init_parser.add_argument(
        "--config", "-c",
        type=str,
        help="Optional: Path to YAML configuration file"
    )

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", type=str, help="Bind address")
    serve_parser.add_argument("--port", type=int, help="Port to listen on")
    serve_parser.add_argument(
        "--config", "-c",
        type=str,
        help="Optional: Path to YAML configuration file"
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    # Route to command handlers
    if args.command == "forecast":
        cmd_forecast(args)
    elif args.command == "classify":
        cmd_classify(args)
    elif args.command == "init-db":
        cmd_init_db(args)
    elif args.command == "serve":
        cmd_serve(args)


def _load_config(path):
    from crm_dashboard.config.loader import ConfigLoader

    if path:
        logger.info(f"Loading configuration from: {path}")
        return ConfigLoader.from_yaml(path)
    return ConfigLoader.from_env()


def cmd_forecast(args):
    """Compute and print the revenue forecast."""
    from crm_dashboard.core.validation import InvalidRequestError, RequestValidator
    from crm_dashboard.database.connection import WarehouseConnection, WarehouseQueryError
    from crm_dashboard.database.repository import CRMRepository
    from crm_dashboard.forecasting.revenue_forecast import RevenueForecastEngine

    config = _load_config(args.config)

    try:
        date_range, platform = RequestValidator().resolve(
            args.start, args.end, args.platform, config.forecast.default_lookback_days
        )
    except InvalidRequestError as e:
        logger.error(f"Invalid arguments: {e}")
        sys.exit(2)

    warehouse = WarehouseConnection(config.warehouse.resolved_url(), echo=config.warehouse.echo)
    engine = RevenueForecastEngine(CRMRepository(warehouse, config.warehouse), config.forecast)

    try:
        result = engine.forecast(date_range.start, date_range.end, platform)
    except WarehouseQueryError as e:
        logger.error(f"Forecast failed: {e}")
        sys.exit(1)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return

    print(f"\nRevenue forecast {result.start} to {result.end} (platform={platform})")
    print(f"  Window: {result.ma_window} days, band: {result.band:.0%}")
    print(f"  Accuracy: {result.accuracy_rate:.1%}")
    print(f"  Total actual: {result.total_actual:,.2f}\n")
    print(result.series.to_string(index=False, float_format=lambda v: f"{v:,.2f}"))


def cmd_classify(args):
    """Print the platform bucket of each label."""
    from crm_dashboard.core.classifier import PLATFORM_LABELS, classify

    for label in args.labels:
        bucket = classify(label).value
        print(f"{bucket}\t{PLATFORM_LABELS[bucket]}\t{label}")


def cmd_init_db(args):
    """Create the warehouse tables in the configured database."""
    from crm_dashboard.database.connection import init_warehouse

    config = _load_config(args.config)
    warehouse = init_warehouse(config.warehouse)
    warehouse.dispose()
    logger.info("Tables ready")


def cmd_serve(args):
    """Launch the API server."""
    import uvicorn
    from crm_dashboard.api.server import create_app

    config = _load_config(args.config)
    host = args.host or config.api.host
    port = args.port or config.api.port

    logger.info(f"Launching API on {host}:{port}...")
    uvicorn.run(create_app(config), host=host, port=port)


if __name__ == "__main__":
    main()
