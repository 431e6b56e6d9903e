"""Versioning and symbol handling for builds started outside the pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Mapping
import os

from core.console import Console

from .compiler import INTERNAL_BUILD_ENV
from .execution import is_internal_build_in_progress
from .models import PipelineConfig, ProfileConfig
from .platforms import PlatformRegistry
from .resolver import resolve_options
from .stores import SettingsStore, SymbolStore
from .symbols import apply_managed_symbols
from .versioning import apply_version, next_version

LOG_PREFIX = "[Build Pipeline][Preprocess]"


@dataclass(slots=True)
class PreprocessOutcome:
    skipped: bool = False
    profile_id: str = ""
    version_before: str = ""
    version_after: str = ""
    symbols_applied: bool = False
    symbols: List[str] = field(default_factory=list)


def resolve_preprocess_profile(config: PipelineConfig, target: str) -> ProfileConfig | None:
    """Pick the profile whose settings apply to an external build for *target*.

    Order: the configured preprocess profile, the last selected profile when
    it targets the same platform, the first profile for the platform, then
    the first profile overall.
    """

    configured = config.get_profile(config.preprocess_profile)
    if configured is not None:
        return configured

    platform = (target or "").strip().lower()
    last_selected = config.get_profile(config.last_selected_profile)
    if last_selected is not None and last_selected.platform == platform:
        return last_selected

    matching = config.profiles_for_platform(platform)
    if matching:
        return matching[0]
    return config.profiles[0] if config.profiles else None


def _environment_marks_internal(environ: Mapping[str, str]) -> bool:
    value = environ.get(INTERNAL_BUILD_ENV, "").strip().lower()
    return value not in {"", "0", "false", "no", "off"}


def run_preprocess(
    config: PipelineConfig,
    target: str,
    *,
    settings: SettingsStore,
    project_root: Path,
    symbols: SymbolStore | None = None,
    platforms: PlatformRegistry | None = None,
    console: Console | None = None,
    environ: Mapping[str, str] | None = None,
    now: datetime | None = None,
) -> PreprocessOutcome:
    """Apply the preprocess profile's version bump and symbols. Never packages."""

    console = console or Console()
    environ = os.environ if environ is None else environ
    if is_internal_build_in_progress() or _environment_marks_internal(environ):
        console.debug(f"{LOG_PREFIX} Build driven by the pipeline, skipped")
        return PreprocessOutcome(skipped=True)

    profile = resolve_preprocess_profile(config, target)
    if profile is None:
        console.debug(f"{LOG_PREFIX} No profile available, skipped")
        return PreprocessOutcome(skipped=True)

    platforms = platforms or PlatformRegistry.with_builtins()
    symbol_store = symbols if symbols is not None else settings  # type: ignore[assignment]
    resolved = resolve_options(
        config,
        profile,
        settings=settings,
        project_root=project_root,
        now=now,
        platforms=platforms,
    )

    outcome = PreprocessOutcome(
        profile_id=profile.id,
        version_before=resolved.version_before,
        version_after=resolved.version_before,
    )

    if config.preprocess_versioning and resolved.increment_version:
        outcome.version_after = apply_version(
            settings, next_version(resolved.version_before, profile.version_mode)
        )
        console.info(
            f"{LOG_PREFIX} Version updated: {outcome.version_before} -> {outcome.version_after} "
            f"(profile: {profile.id})"
        )

    if config.preprocess_symbols and resolved.apply_symbols:
        applied = apply_managed_symbols(
            symbol_store,
            platforms.get(profile.platform).symbol_group,
            config.managed_symbols(),
            resolved.symbols,
        )
        outcome.symbols_applied = True
        outcome.symbols = sorted(applied)
        console.info(f"{LOG_PREFIX} Symbols applied for profile '{profile.id}'")

    return outcome


__all__ = ["LOG_PREFIX", "PreprocessOutcome", "resolve_preprocess_profile", "run_preprocess"]
