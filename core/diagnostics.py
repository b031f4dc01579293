"""Diagnostics routines for the core subsystem."""

from __future__ import annotations

import importlib.util
import logging

from diagnostics.models import DiagnosticResult, DiagnosticStatus


def probe() -> DiagnosticResult:
    """Run a core probe to validate logging readiness.

    Returns:
        Diagnostic result indicating core readiness.
    """

    name = "core"
    from core import logging as core_logging

    logger = core_logging.logger
    if logger is None or not logger.handlers:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details="Core logger failed to initialize",
        )

    rich_available = importlib.util.find_spec("rich") is not None
    renderer = "rich" if rich_available else "plain (rich not installed)"
    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS if rich_available else DiagnosticStatus.WARN,
        details=f"Logger '{logger.name}' at {logging.getLevelName(logger.level)}, {renderer} output",
    )
