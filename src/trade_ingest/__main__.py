"""
Entry point for a trade ingestion run.

Usage:
    # Ingest trades_data.csv into trade-data using src/config/config.yaml
    python -m trade_ingest

    # Another file and broker
    python -m trade_ingest --file exports/trades.csv --brokers localhost:19092

    # Read the whole file before the first publish
    python -m trade_ingest --drain

    # Container-friendly logging
    python -m trade_ingest --log-to-stdout

Exit status:
    0   run completed (individual publish failures are logged, not fatal)
    1   configuration, provisioning, connection or source read failure
    130 interrupted
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from config.config import load_config
from core.logging import generate_run_id, log_exception, setup_logging
from trade_ingest.pipeline import EXIT_FAILURE, run_pipeline

# Placeholder logger until setup_logging() is called in main()
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="trade-ingest",
        description="Publish trade captures from a CSV file to a Kafka topic",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--file",
        "-f",
        help="CSV file to ingest (default: source.path from config)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config.yaml (default: src/config/config.yaml)",
    )
    parser.add_argument(
        "--brokers",
        help="Comma-separated bootstrap servers, overrides config",
    )
    parser.add_argument(
        "--topic",
        help="Destination topic, overrides config",
    )
    parser.add_argument(
        "--drain",
        action="store_true",
        help="Read the whole file into memory before publishing",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=Path("logs"),
        help="Directory for log files (default: ./logs)",
    )
    parser.add_argument(
        "--log-to-stdout",
        action="store_true",
        help="Write logs to stdout only, no log file",
    )
    parser.add_argument(
        "--plain-logs",
        action="store_true",
        help="Write the log file as plain text instead of JSON lines",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging on the console",
    )
    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate command line flags into config overrides."""
    overrides: Dict[str, Any] = {}
    kafka: Dict[str, Any] = {}
    source: Dict[str, Any] = {}

    if args.brokers:
        kafka["connection"] = {"bootstrap_servers": args.brokers}
    if args.topic:
        kafka["topic"] = {"name": args.topic}
    if args.file:
        source["path"] = args.file
    if args.drain:
        source["streaming"] = False

    if kafka:
        overrides["kafka"] = kafka
    if source:
        overrides["source"] = source
    return overrides


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = parse_args(argv)

    global logger
    logger = setup_logging(
        name="trade_ingest",
        stage="ingest",
        log_dir=args.log_dir,
        json_format=not args.plain_logs,
        console_level=logging.DEBUG if args.verbose else logging.INFO,
        run_id=generate_run_id(),
        log_to_stdout=args.log_to_stdout,
    )

    try:
        config = load_config(config_path=args.config, overrides=build_overrides(args))
    except (FileNotFoundError, ValueError) as e:
        log_exception(logger, e, "Invalid configuration", include_traceback=False)
        return EXIT_FAILURE

    try:
        result = asyncio.run(run_pipeline(config))
    except KeyboardInterrupt:
        logger.warning("Ingestion interrupted")
        return 130
    except Exception as e:
        log_exception(logger, e, "Error in ingestion script")
        return EXIT_FAILURE

    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
