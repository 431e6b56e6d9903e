"""Compile collaborator interfaces and the command-backed implementation."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Protocol, Sequence
import re

from core.command_runner import CommandRunner, SubprocessCommandRunner
from core.template import TemplateResolver, extract_placeholders

from .errors import ConfigurationError
from .models import PipelineConfig

INTERNAL_BUILD_ENV = "STAGEBUILD_INTERNAL_BUILD"
PLACEHOLDER_KEYS = ("target", "location", "output_dir", "scenes", "options")

_ERROR_LINE = re.compile(r"\berror\b", re.IGNORECASE)
_WARNING_LINE = re.compile(r"\bwarning\b", re.IGNORECASE)


class CompileResult(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True)
class CompileReport:
    result: CompileResult
    error_count: int = 0
    warning_count: int = 0

    @property
    def succeeded(self) -> bool:
        return self.result is CompileResult.SUCCEEDED


class Compiler(Protocol):
    def compile(
        self,
        scenes: Sequence[str],
        target: str,
        output_path: Path,
        options: Sequence[str],
    ) -> CompileReport:
        ...


class SceneProvider(Protocol):
    def enabled_scenes(self) -> List[str]:
        ...


class ConfigSceneProvider:
    """Enabled scene paths from ``[compile].scenes``, in declaration order."""

    def __init__(self, config: PipelineConfig) -> None:
        self._config = config

    def enabled_scenes(self) -> List[str]:
        return [scene.path for scene in self._config.scenes if scene.enabled and scene.path]


def _flatten_arguments(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        flattened: List[str] = []
        for item in value:
            flattened.extend(_flatten_arguments(item))
        return flattened
    text = str(value)
    return [text] if text else []


def unknown_placeholders(command: Sequence[str]) -> List[str]:
    """Placeholders in *command* that the compile context does not provide."""

    known = {f"build.{key}" for key in PLACEHOLDER_KEYS}
    return sorted(extract_placeholders(list(command)) - known)


def count_diagnostics(output: str) -> tuple[int, int]:
    """Return ``(errors, warnings)`` counted from lines of compiler output."""

    errors = 0
    warnings = 0
    for line in output.splitlines():
        if _ERROR_LINE.search(line):
            errors += 1
        elif _WARNING_LINE.search(line):
            warnings += 1
    return errors, warnings


class CommandCompiler:
    """Run an external build command and translate its outcome into a report.

    ``command`` is an argument list whose items may reference
    ``{{build.target}}``, ``{{build.location}}``, ``{{build.output_dir}}``,
    ``{{build.scenes}}`` and ``{{build.options}}``. An item consisting of a
    single list-valued placeholder expands to one argument per element.
    """

    def __init__(
        self,
        command: Sequence[str],
        *,
        runner: CommandRunner | None = None,
        project_root: Path | None = None,
    ) -> None:
        self._command = list(command)
        self._runner = runner or SubprocessCommandRunner()
        self._project_root = project_root

    def render_command(
        self,
        scenes: Sequence[str],
        target: str,
        output_path: Path,
        options: Sequence[str],
    ) -> List[str]:
        if not self._command:
            raise ConfigurationError("compile.command is not configured")
        context: Dict[str, Any] = {
            "build": {
                "target": target,
                "location": str(output_path),
                "output_dir": str(output_path if output_path.is_dir() else output_path.parent),
                "scenes": list(scenes),
                "options": list(options),
            }
        }
        resolver = TemplateResolver(context, recursive=False)
        rendered: List[str] = []
        for argument in self._command:
            rendered.extend(_flatten_arguments(resolver.resolve(argument)))
        return rendered

    def compile(
        self,
        scenes: Sequence[str],
        target: str,
        output_path: Path,
        options: Sequence[str],
    ) -> CompileReport:
        command = self.render_command(scenes, target, output_path, options)
        result = self._runner.run(
            command,
            cwd=self._project_root,
            env={INTERNAL_BUILD_ENV: "1"},
            check=False,
        )
        errors, warnings = count_diagnostics(f"{result.stdout}\n{result.stderr}")
        outcome = CompileResult.SUCCEEDED if result.returncode == 0 else CompileResult.FAILED
        if outcome is CompileResult.FAILED and errors == 0:
            errors = 1
        return CompileReport(result=outcome, error_count=errors, warning_count=warnings)


__all__ = [
    "INTERNAL_BUILD_ENV",
    "PLACEHOLDER_KEYS",
    "CommandCompiler",
    "CompileReport",
    "CompileResult",
    "Compiler",
    "ConfigSceneProvider",
    "SceneProvider",
    "count_diagnostics",
    "unknown_placeholders",
]
