"""Command-line entry point for running diagnostics."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Mapping

from config.diagnostics import probe as config_probe
from core.diagnostics import probe as core_probe
from diagnostics.runner import format_results, run_diagnostics
from hardware.diagnostics import HardwareProbeConfig, probe as hardware_probe
from interaction.diagnostics import probe as speech_probe
from interaction.speech_hal import FakeSpeechBackend
from vision.diagnostics import probe as detection_probe


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""

    parser = argparse.ArgumentParser(description="Run diagnostics probes.")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Use fake speech backends instead of initializing real engines.",
    )
    parser.add_argument(
        "--base-dir",
        type=Path,
        default=None,
        help="Optional base directory containing the config folder.",
    )
    parser.add_argument(
        "--require-all",
        action="store_true",
        help="Fail when optional hardware dependencies are missing.",
    )
    return parser.parse_args(argv)


def run_all(
    config: Mapping[str, Any],
    *,
    base_dir: Path | None = None,
    offline: bool = False,
    require_all: bool = False,
) -> int:
    """Run every probe, print the report and return an exit code."""

    detection_cfg = config.get("detection") or {}
    model = str(detection_cfg.get("model", "yolov8n.pt"))
    speech_backend = FakeSpeechBackend() if offline else None

    results = run_diagnostics(
        [
            lambda: config_probe(base_dir=base_dir),
            core_probe,
            lambda: detection_probe(model=model),
            lambda: speech_probe(backend=speech_backend),
            lambda: hardware_probe(HardwareProbeConfig(require_all=require_all)),
        ]
    )
    print(format_results(results))
    return 1 if any(result.failed for result in results) else 0


def main(argv: list[str] | None = None) -> int:
    """Run diagnostics and return an exit code."""

    from config import ConfigController

    args = parse_args(argv)
    config = ConfigController.get_instance().get_config()
    return run_all(
        config,
        base_dir=args.base_dir,
        offline=args.offline,
        require_all=args.require_all,
    )


if __name__ == "__main__":
    raise SystemExit(main())
