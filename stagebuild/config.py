"""Locating, loading and bootstrapping the pipeline configuration file."""
from __future__ import annotations

from pathlib import Path
import textwrap

from core.config_loader import find_config_file as _find_config_file
from core.config_loader import load_config_file

from .errors import ConfigurationError
from .models import PipelineConfig
from .platforms import PlatformRegistry

CONFIG_STEM = "stagebuild"
DEFAULT_CONFIG_NAME = f"{CONFIG_STEM}.toml"


def find_config_file(directory: Path) -> Path | None:
    """Return ``stagebuild.{toml,json,yaml,yml}`` inside *directory*, if present."""

    try:
        return _find_config_file(directory, CONFIG_STEM)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def load_config(path: Path) -> PipelineConfig:
    if not path.is_file():
        raise ConfigurationError(f"Configuration file '{path}' does not exist")
    try:
        data = load_config_file(path)
        return PipelineConfig.from_mapping(data)
    except ConfigurationError:
        raise
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{path.name}: {exc}") from exc


def build_platform_registry(config: PipelineConfig) -> PlatformRegistry:
    registry = PlatformRegistry.with_builtins()
    try:
        registry.merge_from_mapping(config.platforms)
    except TypeError as exc:
        raise ConfigurationError(str(exc)) from exc
    return registry


def settings_path(config: PipelineConfig, project_root: Path) -> Path:
    path = Path(config.settings_file)
    return path if path.is_absolute() else project_root / path


def _profile_block(profile_id: str, name: str, template: str, symbols: list[str]) -> str:
    symbol_list = ", ".join(f'"{symbol}"' for symbol in symbols)
    return textwrap.dedent(
        f"""\
        [[profiles]]
        id = "{profile_id}"
        name = "{name}"
        platform = "windows64"
        name_template = "{template}"
        version_mode = "patch"
        symbols = [{symbol_list}]
        increment_version = true
        apply_symbols = true
        zip_after_build = true
        remove_excluded_dirs = true
        excluded_dirs = ["do not ship", "BurstDebugInformation_DoNotShip"]
        flags = ["demo-content", "skip-zip", "skip-version-bump"]
        """
    )


def default_config_text() -> str:
    """Starter configuration written by ``stagebuild init``."""

    header = textwrap.dedent(
        """\
        [pipeline]
        output_root = "BUILD"
        settings_file = "ProjectSettings/stagebuild-settings.json"
        preprocess_profile = "dev"
        preprocess_versioning = true
        preprocess_symbols = true
        last_selected_profile = "dev"

        [compile]
        command = ["./build.sh", "--target", "{{build.target}}", "--output", "{{build.location}}", "{{build.scenes}}"]
        scenes = ["scenes/main"]

        [[actions]]
        id = "log-context"
        stage = "before-build"

        [[actions]]
        id = "log-context"
        stage = "after-build"
        """
    )
    profiles = [
        _profile_block("dev", "Dev", "{product}_{version}", ["BUILD_DEV"]),
        _profile_block("review_demo", "Review + Demo", "{product}_demo_review", ["BUILD_REVIEW", "BUILD_DEMO"]),
        _profile_block("release_demo", "Release + Demo", "{product}_demo_release", ["BUILD_RELEASE", "BUILD_DEMO"]),
        _profile_block("review", "Review", "{product}_review", ["BUILD_REVIEW"]),
        _profile_block("release", "Release", "{product}_release", ["BUILD_RELEASE"]),
    ]
    flags = textwrap.dedent(
        """\
        [[flags]]
        id = "demo-content"
        label = "Demo Content"
        description = "Adds BUILD_DEMO to the selected profile for this build."
        default = false
        symbols = ["BUILD_DEMO"]

        [[flags]]
        id = "skip-zip"
        label = "Skip Zip"
        description = "Disables archiving for this build."
        default = false

        [flags.overrides]
        zip_after_build = false

        [[flags]]
        id = "skip-version-bump"
        label = "Skip Version Bump"
        description = "Keeps the current version for this build."
        default = false

        [flags.overrides]
        increment_version = false
        """
    )
    return "\n".join([header, *profiles, flags])


__all__ = [
    "CONFIG_STEM",
    "DEFAULT_CONFIG_NAME",
    "build_platform_registry",
    "default_config_text",
    "find_config_file",
    "load_config",
    "settings_path",
]
