"""
Main entry point when running the mpc_control module with python -m.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import ACTUATION_DELAY_SECONDS, LATENCY_SECONDS, POLY_DEGREE, WS_HOST, WS_PORT, ControlConstants
from .data_collector import DataCollector
from .server import SimulatorServer, main as serve, setup_logging


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        description="MPC control server for the driving simulator"
    )
    parser.add_argument("--host", default=WS_HOST, help=f"Interface to bind (default: {WS_HOST})")
    parser.add_argument("--port", type=int, default=WS_PORT, help=f"Port to listen on (default: {WS_PORT})")
    parser.add_argument(
        "--latency",
        type=float,
        default=LATENCY_SECONDS,
        help=f"Latency used for state prediction in seconds (default: {LATENCY_SECONDS})",
    )
    parser.add_argument(
        "--actuation-delay",
        type=float,
        default=ACTUATION_DELAY_SECONDS,
        help=f"Delay before each command is sent in seconds (default: {ACTUATION_DELAY_SECONDS})",
    )
    parser.add_argument(
        "--degree",
        type=int,
        default=POLY_DEGREE,
        help=f"Degree of the reference polynomial (default: {POLY_DEGREE})",
    )
    parser.add_argument("--record", action="store_true", help="Record control cycles to CSV")
    parser.add_argument(
        "--output-dir", default=".", help="Base directory for recorded runs (default: current directory)"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Parse arguments and run the server until interrupted."""
    args = build_parser().parse_args(argv)

    # Setup logging based on verbose flag
    setup_logging(args.verbose)

    try:
        constants = ControlConstants(latency=args.latency, poly_degree=args.degree)
    except ValueError as e:
        logging.error(f"Invalid configuration: {e}")
        sys.exit(2)

    data_collector = DataCollector(output_dir=args.output_dir) if args.record else None
    server = SimulatorServer(
        host=args.host,
        port=args.port,
        constants=constants,
        actuation_delay=args.actuation_delay,
        data_collector=data_collector,
    )

    try:
        asyncio.run(serve(server))
    except KeyboardInterrupt:
        logging.info("\nExiting...")
        sys.exit(0)


if __name__ == "__main__":
    main()
