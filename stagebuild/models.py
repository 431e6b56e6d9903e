"""Configuration data model: profiles, flags, action bindings."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from core.archive import normalize_archive_format
from core.config_loader import coerce_bool, normalize_string_list

from .errors import ConfigurationError

DEFAULT_OUTPUT_ROOT = "BUILD"
DEFAULT_SETTINGS_FILE = "ProjectSettings/stagebuild-settings.json"
DEFAULT_EXCLUDED_DIRS = ("do not ship", "BurstDebugInformation_DoNotShip")

DECISIONS = ("increment_version", "apply_symbols", "zip_after_build", "remove_excluded_dirs")


def _compact(text: str) -> str:
    return text.replace("-", "").replace("_", "").replace(" ", "").lower()


class VersionMode(str, Enum):
    NONE = "none"
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    @classmethod
    def parse(cls, value: Any) -> "VersionMode":
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.PATCH
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for mode in cls:
            if mode.value == text:
                return mode
        allowed = ", ".join(mode.value for mode in cls)
        raise ConfigurationError(f"Unknown version mode '{value}' (allowed: {allowed})")


class Stage(str, Enum):
    """Pipeline checkpoints, in execution order."""

    BEFORE_VERSIONING = "before-versioning"
    AFTER_VERSIONING = "after-versioning"
    BEFORE_SYMBOLS = "before-symbols"
    AFTER_SYMBOLS = "after-symbols"
    BEFORE_BUILD = "before-build"
    AFTER_BUILD = "after-build"
    BEFORE_PACKAGING = "before-packaging"
    AFTER_PACKAGING = "after-packaging"
    ON_SUCCESS = "on-success"
    ON_FAILURE = "on-failure"

    @classmethod
    def parse(cls, value: Any) -> "Stage":
        if isinstance(value, cls):
            return value
        text = _compact(str(value or ""))
        for stage in cls:
            if _compact(stage.value) == text:
                return stage
        # "defines" is accepted as a synonym for "symbols"
        text = text.replace("defines", "symbols")
        for stage in cls:
            if _compact(stage.value) == text:
                return stage
        raise ConfigurationError(f"Unknown action stage '{value}'")


@dataclass(slots=True)
class ActionBinding:
    action_id: str
    stage: Stage = Stage.BEFORE_BUILD
    enabled: bool = True

    @classmethod
    def from_value(cls, value: Any) -> "ActionBinding":
        if not isinstance(value, Mapping):
            raise ConfigurationError("Action bindings must be tables with 'id' and 'stage'")
        raw_id = value.get("id", value.get("action"))
        return cls(
            action_id=str(raw_id).strip() if raw_id is not None else "",
            stage=Stage.parse(value.get("stage", Stage.BEFORE_BUILD.value)),
            enabled=coerce_bool(value.get("enabled"), default=True, field_name="action.enabled"),
        )


def parse_bindings(value: Any, *, owner: str) -> List[ActionBinding]:
    if value is None:
        return []
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        raise ConfigurationError(f"{owner}: actions must be an array of tables")
    return [ActionBinding.from_value(entry) for entry in value]


@dataclass(frozen=True, slots=True)
class FlagOverride:
    present: bool = False
    value: bool = False

    @classmethod
    def from_value(cls, value: Any, *, field_name: str) -> "FlagOverride":
        if isinstance(value, Mapping):
            return cls(
                present=coerce_bool(value.get("present"), default=True, field_name=f"{field_name}.present"),
                value=coerce_bool(value.get("value"), default=False, field_name=f"{field_name}.value"),
            )
        return cls(present=True, value=coerce_bool(value, default=False, field_name=field_name))


_ABSENT = FlagOverride()


def _unique(values: Iterable[str], *, ignore_case: bool) -> List[str]:
    seen: set[str] = set()
    result: List[str] = []
    for value in values:
        key = value.lower() if ignore_case else value
        if key in seen:
            continue
        seen.add(key)
        result.append(value)
    return result


@dataclass(slots=True)
class FlagConfig:
    id: str
    label: str = ""
    description: str = ""
    default_enabled: bool = False
    symbols: List[str] = field(default_factory=list)
    overrides: Dict[str, FlagOverride] = field(default_factory=dict)

    @property
    def display_label(self) -> str:
        return self.label.strip() or self.id

    def override_for(self, decision: str) -> FlagOverride:
        return self.overrides.get(decision, _ABSENT)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FlagConfig":
        if not isinstance(data, Mapping):
            raise ConfigurationError("Flag entries must be tables")
        flag_id = str(data.get("id") or "").strip()
        overrides: Dict[str, FlagOverride] = {}
        overrides_section = data.get("overrides")
        if overrides_section is not None:
            if not isinstance(overrides_section, Mapping):
                raise ConfigurationError(f"Flag '{flag_id}': overrides must be a table")
            for raw_key, raw_value in overrides_section.items():
                key = str(raw_key).strip().lower().replace("-", "_")
                if key not in DECISIONS:
                    allowed = ", ".join(DECISIONS)
                    raise ConfigurationError(
                        f"Flag '{flag_id}': unknown override '{raw_key}' (allowed: {allowed})"
                    )
                overrides[key] = FlagOverride.from_value(raw_value, field_name=f"flags.{flag_id}.overrides.{key}")
        return cls(
            id=flag_id,
            label=str(data.get("label") or "").strip(),
            description=str(data.get("description") or ""),
            default_enabled=coerce_bool(data.get("default"), default=False, field_name=f"flags.{flag_id}.default"),
            symbols=_unique(normalize_string_list(data.get("symbols"), field_name="flag symbols"), ignore_case=False),
            overrides=overrides,
        )


@dataclass(slots=True)
class ProfileConfig:
    id: str
    name: str = ""
    platform: str = "windows64"
    name_template: str = ""
    version_mode: VersionMode = VersionMode.PATCH
    symbols: List[str] = field(default_factory=list)
    increment_version: bool = True
    apply_symbols: bool = True
    zip_after_build: bool = True
    remove_excluded_dirs: bool = True
    excluded_dirs: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_DIRS))
    flags: List[str] = field(default_factory=list)
    build_options: List[str] = field(default_factory=list)
    archive_format: str = "zip"
    actions: List[ActionBinding] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name.strip() or self.id

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ProfileConfig":
        if not isinstance(data, Mapping):
            raise ConfigurationError("Profile entries must be tables")
        profile_id = str(data.get("id") or "").strip()
        label = f"profiles.{profile_id or '<unnamed>'}"

        excluded_value = data.get("excluded_dirs")
        excluded = (
            list(DEFAULT_EXCLUDED_DIRS)
            if excluded_value is None
            else normalize_string_list(excluded_value, field_name=f"{label}.excluded_dirs")
        )

        try:
            archive_format = normalize_archive_format(data.get("archive_format"))
        except ValueError as exc:
            raise ConfigurationError(f"{label}: {exc}") from exc

        return cls(
            id=profile_id,
            name=str(data.get("name") or "").strip(),
            platform=str(data.get("platform") or "windows64").strip().lower(),
            name_template=str(data.get("name_template") or ""),
            version_mode=VersionMode.parse(data.get("version_mode")),
            symbols=_unique(normalize_string_list(data.get("symbols"), field_name=f"{label}.symbols"), ignore_case=False),
            increment_version=coerce_bool(data.get("increment_version"), default=True, field_name=f"{label}.increment_version"),
            apply_symbols=coerce_bool(data.get("apply_symbols"), default=True, field_name=f"{label}.apply_symbols"),
            zip_after_build=coerce_bool(data.get("zip_after_build"), default=True, field_name=f"{label}.zip_after_build"),
            remove_excluded_dirs=coerce_bool(
                data.get("remove_excluded_dirs"), default=True, field_name=f"{label}.remove_excluded_dirs"
            ),
            excluded_dirs=_unique(excluded, ignore_case=True),
            flags=_unique(normalize_string_list(data.get("flags"), field_name=f"{label}.flags"), ignore_case=True),
            build_options=normalize_string_list(data.get("build_options"), field_name=f"{label}.build_options"),
            archive_format=archive_format,
            actions=parse_bindings(data.get("actions"), owner=label),
        )


@dataclass(slots=True)
class SceneEntry:
    path: str
    enabled: bool = True

    @classmethod
    def from_value(cls, value: Any) -> "SceneEntry":
        if isinstance(value, str):
            return cls(path=value.strip())
        if isinstance(value, Mapping):
            return cls(
                path=str(value.get("path") or "").strip(),
                enabled=coerce_bool(value.get("enabled"), default=True, field_name="compile.scenes.enabled"),
            )
        raise ConfigurationError("compile.scenes entries must be strings or tables with 'path'")


@dataclass(slots=True)
class PipelineConfig:
    """Root aggregate: owns every profile, flag and global action binding."""

    profiles: List[ProfileConfig] = field(default_factory=list)
    flags: List[FlagConfig] = field(default_factory=list)
    actions: List[ActionBinding] = field(default_factory=list)
    output_root: str = DEFAULT_OUTPUT_ROOT
    settings_file: str = DEFAULT_SETTINGS_FILE
    preprocess_profile: str = ""
    preprocess_versioning: bool = True
    preprocess_symbols: bool = True
    last_selected_profile: str = ""
    action_factories: List[str] = field(default_factory=list)
    compile_command: List[str] = field(default_factory=list)
    scenes: List[SceneEntry] = field(default_factory=list)
    platforms: Dict[str, Mapping[str, Any]] = field(default_factory=dict)

    @property
    def output_root_name(self) -> str:
        return self.output_root.strip() or DEFAULT_OUTPUT_ROOT

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PipelineConfig":
        pipeline = data.get("pipeline", {})
        if not isinstance(pipeline, Mapping):
            raise ConfigurationError("[pipeline] must be a table")
        compile_section = data.get("compile", {})
        if not isinstance(compile_section, Mapping):
            raise ConfigurationError("[compile] must be a table")

        profiles_section = data.get("profiles", [])
        flags_section = data.get("flags", [])
        for key, section in (("profiles", profiles_section), ("flags", flags_section)):
            if not isinstance(section, Sequence) or isinstance(section, (str, bytes)):
                raise ConfigurationError(f"[[{key}]] must be an array of tables")

        scenes_section = compile_section.get("scenes", [])
        if isinstance(scenes_section, (str, bytes)) or not isinstance(scenes_section, Sequence):
            raise ConfigurationError("compile.scenes must be an array")

        platforms_section = data.get("platforms", {})
        platforms: Dict[str, Mapping[str, Any]] = {}
        if isinstance(platforms_section, Mapping):
            for key, value in platforms_section.items():
                if isinstance(value, Mapping):
                    platforms[str(key).strip().lower()] = value

        try:
            compile_command = normalize_string_list(compile_section.get("command"), field_name="compile.command")
            action_factories = normalize_string_list(
                pipeline.get("action_factories"), field_name="pipeline.action_factories"
            )
        except TypeError as exc:
            raise ConfigurationError(str(exc)) from exc

        return cls(
            profiles=[ProfileConfig.from_mapping(entry) for entry in profiles_section],
            flags=[FlagConfig.from_mapping(entry) for entry in flags_section],
            actions=parse_bindings(data.get("actions"), owner="global actions"),
            output_root=str(pipeline.get("output_root") or DEFAULT_OUTPUT_ROOT),
            settings_file=str(pipeline.get("settings_file") or DEFAULT_SETTINGS_FILE),
            preprocess_profile=str(pipeline.get("preprocess_profile") or "").strip(),
            preprocess_versioning=coerce_bool(pipeline.get("preprocess_versioning"), default=True),
            preprocess_symbols=coerce_bool(pipeline.get("preprocess_symbols"), default=True),
            last_selected_profile=str(pipeline.get("last_selected_profile") or "").strip(),
            action_factories=action_factories,
            compile_command=compile_command,
            scenes=[SceneEntry.from_value(entry) for entry in scenes_section],
            platforms=platforms,
        )

    def get_profile(self, profile_id: str | None) -> ProfileConfig | None:
        if profile_id is None or not profile_id.strip():
            return None
        key = profile_id.strip().lower()
        for profile in self.profiles:
            if profile.id.lower() == key:
                return profile
        return None

    def get_flag(self, flag_id: str | None) -> FlagConfig | None:
        if flag_id is None or not flag_id.strip():
            return None
        key = flag_id.strip().lower()
        for flag in self.flags:
            if flag.id.lower() == key:
                return flag
        return None

    def profiles_for_platform(self, platform: str) -> List[ProfileConfig]:
        key = platform.strip().lower()
        return [profile for profile in self.profiles if profile.platform == key]

    def managed_symbols(self) -> set[str]:
        """Every symbol any profile or exposed flag can add."""

        managed: set[str] = set()
        for profile in self.profiles:
            managed.update(symbol.strip() for symbol in profile.symbols if symbol.strip())
            for flag_id in profile.flags:
                flag = self.get_flag(flag_id)
                if flag is None:
                    continue
                managed.update(symbol.strip() for symbol in flag.symbols if symbol.strip())
        return managed


__all__ = [
    "DECISIONS",
    "DEFAULT_EXCLUDED_DIRS",
    "DEFAULT_OUTPUT_ROOT",
    "DEFAULT_SETTINGS_FILE",
    "ActionBinding",
    "FlagConfig",
    "FlagOverride",
    "PipelineConfig",
    "ProfileConfig",
    "SceneEntry",
    "Stage",
    "VersionMode",
    "parse_bindings",
]
