"""Merging of profile defaults, flag state and caller overrides."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, TYPE_CHECKING

from core.archive import archive_suffix

from .errors import ResolutionError
from .models import DECISIONS, PipelineConfig, ProfileConfig
from .naming import build_name_for
from .platforms import PlatformRegistry
from .versioning import current_version, next_version

if TYPE_CHECKING:  # pragma: no cover
    from .stores import SettingsStore


@dataclass(slots=True)
class ResolvedOptions:
    """Per-invocation decisions for one profile. Never persisted."""

    config: PipelineConfig
    profile: ProfileConfig
    increment_version: bool
    apply_symbols: bool
    zip_after_build: bool
    remove_excluded_dirs: bool
    flag_states: Dict[str, bool] = field(default_factory=dict)
    symbols: List[str] = field(default_factory=list)
    version_before: str = ""
    version_after: str = ""
    build_name: str = ""
    output_root: Path = Path()
    build_dir: Path = Path()
    archive_path: Path = Path()

    @property
    def symbols_text(self) -> str:
        return ";".join(self.symbols)


def default_flag_state(config: PipelineConfig, profile: ProfileConfig) -> Dict[str, bool]:
    """Default state of every flag *profile* exposes, in declaration order.

    Exposed ids that name no defined flag are left out.
    """

    state: Dict[str, bool] = {}
    if config is None or profile is None:
        return state
    for flag_id in profile.flags:
        flag = config.get_flag(flag_id)
        if flag is None:
            continue
        state[flag.id] = flag.default_enabled
    return state


def _apply_flag_overrides(state: Dict[str, bool], overrides: Mapping[str, bool] | None) -> None:
    if not overrides:
        return
    keys = {key.lower(): key for key in state}
    for raw_id, value in overrides.items():
        key = keys.get(str(raw_id).strip().lower())
        if key is None:
            continue
        state[key] = bool(value)


def resolve_options(
    config: PipelineConfig | None,
    profile: ProfileConfig | None,
    *,
    settings: "SettingsStore",
    project_root: Path,
    flag_overrides: Mapping[str, bool] | None = None,
    force_zip: bool = False,
    now: datetime | None = None,
    platforms: PlatformRegistry | None = None,
) -> ResolvedOptions:
    """Compute the decision set, version and output paths for one build.

    Flags apply in the profile's declared order, so when several enabled
    flags override the same decision the last one wins. ``force_zip`` is
    applied after every flag.
    """

    if config is None:
        raise ResolutionError("Pipeline configuration is missing")
    if profile is None:
        raise ResolutionError("Build profile is missing")

    decisions: Dict[str, bool] = {name: getattr(profile, name) for name in DECISIONS}
    working_symbols = [symbol.strip() for symbol in profile.symbols if symbol.strip()]

    flag_states = default_flag_state(config, profile)
    _apply_flag_overrides(flag_states, flag_overrides)

    for flag_id, enabled in flag_states.items():
        if not enabled:
            continue
        flag = config.get_flag(flag_id)
        if flag is None:
            continue
        for name in DECISIONS:
            override = flag.override_for(name)
            if override.present:
                decisions[name] = override.value
        working_symbols.extend(symbol.strip() for symbol in flag.symbols if symbol.strip())

    if force_zip:
        decisions["zip_after_build"] = True

    version_before = current_version(settings)
    version_after = (
        next_version(version_before, profile.version_mode) if decisions["increment_version"] else version_before
    )

    product_name = (settings.get_product_name() or "").strip() or "Game"
    build_name = build_name_for(profile, product_name, version_after, flag_states, now or datetime.now())

    output_root = Path(project_root) / config.output_root_name
    build_dir = output_root / build_name
    if build_dir.resolve().parent != output_root.resolve():
        raise ResolutionError(f"Build folder '{build_dir}' is not directly inside '{output_root}'")
    archive_path = output_root / (build_name + archive_suffix(profile.archive_format))

    registry = platforms or PlatformRegistry.with_builtins()
    if not registry.get(profile.platform).has_symbol_group:
        decisions["apply_symbols"] = False

    return ResolvedOptions(
        config=config,
        profile=profile,
        increment_version=decisions["increment_version"],
        apply_symbols=decisions["apply_symbols"],
        zip_after_build=decisions["zip_after_build"],
        remove_excluded_dirs=decisions["remove_excluded_dirs"],
        flag_states=flag_states,
        symbols=sorted(set(working_symbols)),
        version_before=version_before,
        version_after=version_after,
        build_name=build_name,
        output_root=output_root,
        build_dir=build_dir,
        archive_path=archive_path,
    )


__all__ = ["ResolvedOptions", "default_flag_state", "resolve_options"]
