"""Diagnostics routines for hardware dependencies."""

from __future__ import annotations

import importlib.util
from dataclasses import dataclass

from diagnostics.models import DiagnosticResult, DiagnosticStatus


@dataclass(frozen=True)
class HardwareProbeConfig:
    """Configuration for hardware dependency checks."""

    require_all: bool = False


def probe(config: HardwareProbeConfig | None = None, available_modules: set[str] | None = None) -> DiagnosticResult:
    """Run a hardware probe to validate capture and haptic dependencies.

    Args:
        config: Optional configuration for probe behavior.
        available_modules: Optional override set for offline testing.

    Returns:
        Diagnostic result indicating hardware dependency readiness.
    """

    name = "hardware"
    settings = config or HardwareProbeConfig()
    required = ["numpy"]
    optional = ["picamera2", "smbus"]

    def _available(module_name: str) -> bool:
        if available_modules is not None:
            return module_name in available_modules
        return importlib.util.find_spec(module_name) is not None

    missing_required = [module_name for module_name in required if not _available(module_name)]
    missing_optional = [module_name for module_name in optional if not _available(module_name)]

    if missing_required:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Missing required deps: {', '.join(missing_required)}",
        )

    if missing_optional:
        status = DiagnosticStatus.FAIL if settings.require_all else DiagnosticStatus.WARN
        details = f"Missing hardware deps: {', '.join(missing_optional)}"
        return DiagnosticResult(name=name, status=status, details=details)

    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details="Hardware dependencies available",
    )
