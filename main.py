"""Command-line entry point for the BlindGate alert pipeline."""

from __future__ import annotations

import argparse
import sys

from config import ConfigController
from core.logging import configure_logging, log_info, logger, set_level


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Raw command-line arguments.

    Returns:
        Parsed arguments namespace.
    """

    parser = argparse.ArgumentParser(
        description="Turn camera detections into spoken and haptic alerts."
    )
    parser.add_argument(
        "--diagnostics",
        action="store_true",
        help="Run diagnostics probes and exit.",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds instead of running until interrupted.",
    )
    parser.add_argument(
        "--depth",
        action="store_true",
        help="Expect depth frames alongside color frames for this session.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Application entry point.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Process exit code.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = parse_args(argv)
    config = ConfigController.get_instance().get_config()

    if args.diagnostics:
        set_level(config.get("logging_level", "INFO"))
        from diagnostics.run import run_all

        return run_all(config)

    log_file_path = configure_logging(config)
    if log_file_path is not None:
        logger.info("Writing logs to %s", log_file_path)

    if args.depth:
        config["camera"] = {**config["camera"], "depth_enabled": True}

    from core.app import AppConfig, run

    log_info("BlindGate alert pipeline starting")
    return run(config, AppConfig(duration_s=args.duration))


if __name__ == "__main__":
    raise SystemExit(main())
