"""Exception types raised by the build pipeline."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .compiler import CompileReport
    from .validation import ValidationReport


class PipelineError(RuntimeError):
    """Base class for failures while running the build pipeline."""


class ResolutionError(PipelineError):
    """Raised when build options cannot be resolved."""


class BuildFailure(PipelineError):
    """Raised when the compile step reports anything other than success."""

    def __init__(self, report: "CompileReport | None"):
        if report is None:
            message = "Build failed: no report. Errors: 0, Warnings: 0"
        else:
            message = (
                f"Build failed: {report.result.value}. "
                f"Errors: {report.error_count}, Warnings: {report.warning_count}"
            )
        super().__init__(message)
        self.report = report


class ConfigurationError(ValueError):
    """Raised when the pipeline configuration is unusable."""

    def __init__(self, message: str, report: "ValidationReport | None" = None):
        super().__init__(message)
        self.report = report


__all__ = ["BuildFailure", "ConfigurationError", "PipelineError", "ResolutionError"]
