"""Configuration and profile validation helpers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

from .actions import ActionRegistry
from .compiler import unknown_placeholders
from .models import ActionBinding, PipelineConfig, ProfileConfig
from .platforms import PlatformRegistry


@dataclass(slots=True)
class ValidationReport:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _validate_profile_ids(config: PipelineConfig, report: ValidationReport) -> None:
    seen: set[str] = set()
    for profile in config.profiles:
        if not profile.id:
            report.errors.append(f"Profile '{profile.display_name}' has no id")
            continue
        key = profile.id.lower()
        if key in seen:
            report.errors.append(f"Duplicate profile id: '{profile.id}'")
        seen.add(key)


def _validate_flag_ids(config: PipelineConfig, report: ValidationReport) -> None:
    seen: set[str] = set()
    for flag in config.flags:
        if not flag.id:
            report.errors.append("A flag has no id")
            continue
        key = flag.id.lower()
        if key in seen:
            report.errors.append(f"Duplicate flag id: '{flag.id}'")
        seen.add(key)


def _validate_bindings(
    owner: str,
    bindings: Iterable[ActionBinding],
    registry: ActionRegistry,
    report: ValidationReport,
) -> None:
    for binding in bindings:
        if not binding.enabled:
            continue
        if not binding.action_id:
            report.errors.append(f"{owner}: action binding without an id")
            continue
        if binding.action_id not in registry:
            report.warnings.append(f"{owner}: action '{binding.action_id}' is not registered and will be skipped")


def validate_config(config: PipelineConfig | None, registry: ActionRegistry) -> ValidationReport:
    report = ValidationReport()
    if config is None:
        report.errors.append("Pipeline configuration not found")
        return report
    if not config.profiles:
        report.errors.append("No build profiles are configured")
        return report

    _validate_profile_ids(config, report)
    _validate_flag_ids(config, report)
    _validate_bindings("Global actions", config.actions, registry, report)
    for profile in config.profiles:
        _validate_bindings(f"Profile '{profile.display_name}'", profile.actions, registry, report)
    for placeholder in unknown_placeholders(config.compile_command):
        report.errors.append(f"compile.command references unknown placeholder '{{{{{placeholder}}}}}'")
    return report


def validate_profile(
    config: PipelineConfig | None,
    profile: ProfileConfig | None,
    registry: ActionRegistry,
    platforms: PlatformRegistry | None = None,
) -> ValidationReport:
    """Validate *config* and then the single *profile* about to be built."""

    report = validate_config(config, registry)
    if not report.is_valid:
        return report
    if profile is None:
        report.errors.append("No build profile selected")
        return report

    if not profile.id:
        report.errors.append("Profile has no id")

    registry_platforms = platforms or PlatformRegistry.with_builtins()
    if not registry_platforms.get(profile.platform).has_symbol_group:
        report.warnings.append(
            f"Profile '{profile.display_name}' targets '{profile.platform}' which has no symbol group; "
            "symbols will not be applied"
        )

    for flag_id in profile.flags:
        if config.get_flag(flag_id) is None:
            report.errors.append(f"Profile '{profile.display_name}' references missing flag '{flag_id}'")
    return report


__all__ = ["ValidationReport", "validate_config", "validate_profile"]
