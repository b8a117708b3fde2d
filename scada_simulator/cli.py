#!/usr/bin/env python3
"""
SCADA table simulator

Fills an existing data-logger table with synthetic measure values and quality
flags over a date window.

Usage:
    scada-simulate simulate -t ANA -i 1 -s 01-10-2025 -e 03-10-2025
"""

import argparse
import logging
import os
import random
import sys
from pathlib import Path
from typing import List, Optional

from .config import load_settings_file, parse_date, resolve_settings
from .connection import create_engine_for, open_connection, parse_connection_descriptor, redact
from .databases import get_adapter
from .driver import DEFAULT_INTERVAL_MINUTES, Progress, SimulationParameters, TimeSeriesSimulator
from .env_loader import load_env
from .errors import SimulatorError
from .waveform import WaveformGenerator

logger = logging.getLogger("scada_simulator")

USAGE_EXAMPLE = "scada-simulate simulate -t ANA -i 1 -s 01-10-2025 -e 03-10-2025"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scada-simulate",
        description="Simulate and insert data into an existing SCADA table",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    sim = subparsers.add_parser("simulate", help="Simulate and insert data into an existing SCADA table")
    sim.add_argument("-t", "--table", help="Target table name")
    sim.add_argument("-i", "--interval", type=int, default=DEFAULT_INTERVAL_MINUTES, help="Step interval in minutes (default: 1)")
    sim.add_argument("-s", "--startdate", help="First day, inclusive (dd-mm-yyyy)")
    sim.add_argument("-e", "--enddate", help="Last day, inclusive (dd-mm-yyyy)")
    sim.add_argument("--batch-size", type=int, default=None, help="Rows per commit (default: Simulation.CommitBatchSize or 1000)")
    sim.add_argument("--min", dest="value_min", type=float, default=None, help="Lower value bound (default: 40)")
    sim.add_argument("--max", dest="value_max", type=float, default=None, help="Upper value bound (default: 95)")
    sim.add_argument("--noise", dest="noise_amplitude", type=float, default=None, help="Noise amplitude (default: 0.5)")
    sim.add_argument("--seed", type=int, default=None, help="Seed the random generator for repeatable output")
    sim.add_argument("--config", type=Path, default=None, help="Settings file (default: ./appsettings.json)")
    sim.add_argument("--connection", dest="connection_string", default=None,
                     help="Connection string with Provider=SQLite|SqlServer|PostgreSQL (overrides settings)")
    return parser


def _log_progress(progress: Progress) -> None:
    logger.debug(f"Batch of {progress.batch_rows} rows committed")


def run_simulate(args: argparse.Namespace) -> int:
    load_env()
    config_path = args.config or (Path(os.environ["SIMULATOR_SETTINGS"]) if os.environ.get("SIMULATOR_SETTINGS") else None)
    settings = resolve_settings(
        load_settings_file(config_path),
        overrides={
            "connection_string": args.connection_string,
            "batch_size": args.batch_size,
            "value_min": args.value_min,
            "value_max": args.value_max,
            "noise_amplitude": args.noise_amplitude,
        },
    )

    params = SimulationParameters(
        table=args.table,
        start_date=parse_date(args.startdate),
        end_date=parse_date(args.enddate),
        interval_minutes=args.interval,
        batch_size=settings.batch_size,
        bounds=settings.bounds,
    )
    params.validate()

    descriptor = parse_connection_descriptor(settings.connection_string)
    logger.info(f"Provider: {descriptor.provider}")
    logger.info(f"Connection string (trimmed): {redact(descriptor)}")

    adapter = get_adapter(descriptor.provider)
    generator = WaveformGenerator(params.bounds, random.Random(args.seed))
    simulator = TimeSeriesSimulator(adapter, generator, on_progress=_log_progress)

    engine = create_engine_for(descriptor)
    try:
        with open_connection(engine) as conn:
            simulator.run(conn, params)
    finally:
        engine.dispose()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    if args.command is None:
        logger.info(f"Usage example: {USAGE_EXAMPLE}")
        return 0

    try:
        return run_simulate(args)
    except SimulatorError as e:
        logger.error(f"Error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
