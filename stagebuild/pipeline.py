"""Staged build orchestration around a single compile call."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping
import time

from core.console import Console

from .actions import ActionContext, ActionRegistry, default_registry
from .compiler import CompileReport, Compiler, ConfigSceneProvider, SceneProvider
from .errors import BuildFailure, ConfigurationError, PipelineError
from .execution import internal_build_scope
from .models import ActionBinding, PipelineConfig, ProfileConfig, Stage
from .packaging import (
    create_archive,
    delete_file_if_exists,
    ensure_build_directory,
    remove_directories_by_name,
    remove_do_not_ship_byproducts,
)
from .platforms import PlatformRegistry, location_path
from .resolver import ResolvedOptions, default_flag_state, resolve_options
from .stores import SettingsStore, SymbolStore
from .symbols import apply_managed_symbols
from .validation import validate_profile
from .versioning import apply_version, current_version, next_version

LOG_PREFIX = "[Build Pipeline]"


@dataclass(slots=True)
class BuildRequest:
    profile_id: str
    flag_overrides: Dict[str, bool] = field(default_factory=dict)
    force_zip: bool = False


@dataclass(slots=True)
class ExecutionResult:
    succeeded: bool = False
    message: str = ""
    build_name: str = ""
    version_before: str = ""
    version_after: str = ""
    build_dir: Path | None = None
    archive_path: Path | None = None
    removed_dir_count: int = 0
    duration: timedelta = field(default_factory=timedelta)


@dataclass(slots=True)
class BuildPreview:
    build_name: str = ""
    version_before: str = ""
    version_after: str = ""
    build_dir: Path | None = None
    archive_path: Path | None = None
    increment_version: bool = False
    apply_symbols: bool = False
    zip_after_build: bool = False
    remove_excluded_dirs: bool = False
    symbols: str = ""


def format_duration(duration: timedelta) -> str:
    seconds = int(duration.total_seconds())
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


class BuildPipeline:
    """Runs the staged build for one profile at a time.

    Stages, in order: before/after versioning, before/after symbols, before
    build, the compile call, after build, before/after packaging and on
    success. Any exception raised on the way runs the on-failure actions and
    turns into a failed :class:`ExecutionResult`.
    """

    def __init__(
        self,
        *,
        config: PipelineConfig,
        settings: SettingsStore,
        compiler: Compiler,
        project_root: Path,
        symbols: SymbolStore | None = None,
        scenes: SceneProvider | None = None,
        registry: ActionRegistry | None = None,
        console: Console | None = None,
        platforms: PlatformRegistry | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self.settings = settings
        self.symbols = symbols if symbols is not None else settings  # type: ignore[assignment]
        self.compiler = compiler
        self.project_root = Path(project_root)
        self.scenes = scenes or ConfigSceneProvider(config)
        self.console = console or Console()
        self.registry = registry or default_registry(config.action_factories, console=self.console)
        self.platforms = platforms or PlatformRegistry.with_builtins()
        self.clock = clock or datetime.now
        self._running = False

    def _require_profile(self, profile_id: str | None) -> ProfileConfig:
        profile = self.config.get_profile(profile_id)
        if profile is None:
            raise ConfigurationError(f"Unknown build profile '{profile_id}'")
        return profile

    def _resolve(
        self,
        profile: ProfileConfig,
        flag_overrides: Mapping[str, bool] | None,
        force_zip: bool,
    ) -> ResolvedOptions:
        return resolve_options(
            self.config,
            profile,
            settings=self.settings,
            project_root=self.project_root,
            flag_overrides=flag_overrides,
            force_zip=force_zip,
            now=self.clock(),
            platforms=self.platforms,
        )

    def _product_name(self) -> str:
        return (self.settings.get_product_name() or "").strip() or "Game"

    def default_flag_state(self, profile: ProfileConfig) -> Dict[str, bool]:
        return default_flag_state(self.config, profile)

    def create_preview(
        self,
        profile_id: str | None,
        flag_overrides: Mapping[str, bool] | None = None,
        force_zip: bool = False,
    ) -> BuildPreview:
        profile = self.config.get_profile(profile_id)
        if profile is None:
            return BuildPreview()
        resolved = self._resolve(profile, flag_overrides, force_zip)
        return BuildPreview(
            build_name=resolved.build_name,
            version_before=resolved.version_before,
            version_after=resolved.version_after,
            build_dir=resolved.build_dir,
            archive_path=resolved.archive_path,
            increment_version=resolved.increment_version,
            apply_symbols=resolved.apply_symbols,
            zip_after_build=resolved.zip_after_build,
            remove_excluded_dirs=resolved.remove_excluded_dirs,
            symbols=resolved.symbols_text,
        )

    def increment_version_only(self, profile_id: str | None) -> ExecutionResult:
        profile = self._require_profile(profile_id)
        before = current_version(self.settings)
        after = apply_version(self.settings, next_version(before, profile.version_mode))
        return ExecutionResult(
            succeeded=True,
            message=f"Version updated: {before} -> {after}",
            version_before=before,
            version_after=after,
        )

    def apply_symbols_only(
        self,
        profile_id: str | None,
        flag_overrides: Mapping[str, bool] | None = None,
    ) -> ExecutionResult:
        profile = self._require_profile(profile_id)
        resolved = self._resolve(profile, flag_overrides, False)
        applied = apply_managed_symbols(
            self.symbols,
            self.platforms.get(profile.platform).symbol_group,
            self.config.managed_symbols(),
            resolved.symbols,
        )
        value = ";".join(sorted(applied))
        return ExecutionResult(
            succeeded=True,
            message=f"Symbols applied for {profile.display_name}: {value}",
            version_before=resolved.version_before,
            version_after=resolved.version_before,
        )

    def execute_build(self, request: BuildRequest) -> ExecutionResult:
        """Validate, resolve and run every stage for ``request.profile_id``.

        Configuration problems raise :class:`ConfigurationError` before any
        stage runs. Failures after that are reported through the result.
        """

        if self._running:
            raise PipelineError("A build is already running on this pipeline")

        profile = self._require_profile(request.profile_id)
        validation = validate_profile(self.config, profile, self.registry, self.platforms)
        if not validation.is_valid:
            raise ConfigurationError("\n".join(validation.errors), validation)
        for warning in validation.warnings:
            self.console.warning(f"{LOG_PREFIX} {warning}")

        resolved = self._resolve(profile, request.flag_overrides, request.force_zip)

        scenes = self.scenes.enabled_scenes()
        if not scenes:
            raise ConfigurationError("No enabled scenes are configured")

        self._running = True
        try:
            return self._run_stages(resolved, scenes)
        finally:
            self._running = False

    def _create_context(self, resolved: ResolvedOptions) -> ActionContext:
        return ActionContext(
            config=resolved.config,
            profile=resolved.profile,
            flags=dict(resolved.flag_states),
            build_name=resolved.build_name,
            output_root=resolved.output_root,
            build_dir=resolved.build_dir,
            archive_path=resolved.archive_path,
            version_before=resolved.version_before,
            version_after=resolved.version_after,
            symbols=list(resolved.symbols),
            log_info=lambda message: self.console.info(f"{LOG_PREFIX} {message}"),
            log_error=lambda message: self.console.error(f"{LOG_PREFIX} {message}"),
        )

    def _run_actions(self, stage: Stage, resolved: ResolvedOptions, context: ActionContext) -> None:
        context.stage = stage
        self._run_binding_list(resolved.config.actions, stage, context)
        self._run_binding_list(resolved.profile.actions, stage, context)

    def _run_binding_list(self, bindings: Iterable[ActionBinding], stage: Stage, context: ActionContext) -> None:
        for binding in bindings:
            if not binding.enabled or binding.stage is not stage or not binding.action_id:
                continue
            action = self.registry.get(binding.action_id)
            if action is None:
                self.console.warning(f"{LOG_PREFIX} Action '{binding.action_id}' not found. Skipped.")
                continue
            self.console.debug(f"{LOG_PREFIX} Running action '{binding.action_id}' at {stage.value}")
            action.execute(context)

    def _run_stages(self, resolved: ResolvedOptions, scenes: List[str]) -> ExecutionResult:
        profile = resolved.profile
        platform = self.platforms.get(profile.platform)
        result = ExecutionResult(
            build_name=resolved.build_name,
            version_before=resolved.version_before,
            version_after=resolved.version_after,
            build_dir=resolved.build_dir,
            archive_path=resolved.archive_path,
        )
        context = self._create_context(resolved)
        report: CompileReport | None = None
        removed = 0
        applied_version = resolved.version_before
        started = time.monotonic()

        try:
            if resolved.increment_version:
                self._run_actions(Stage.BEFORE_VERSIONING, resolved, context)
                resolved.version_after = apply_version(
                    self.settings, next_version(resolved.version_before, profile.version_mode)
                )
                applied_version = resolved.version_after
                context.version_after = resolved.version_after
                self._run_actions(Stage.AFTER_VERSIONING, resolved, context)

            if resolved.apply_symbols:
                self._run_actions(Stage.BEFORE_SYMBOLS, resolved, context)
                applied = apply_managed_symbols(
                    self.symbols,
                    platform.symbol_group,
                    self.config.managed_symbols(),
                    resolved.symbols,
                )
                resolved.symbols = sorted(applied)
                context.symbols = list(resolved.symbols)
                self._run_actions(Stage.AFTER_SYMBOLS, resolved, context)

            self._run_actions(Stage.BEFORE_BUILD, resolved, context)

            resolved.output_root.mkdir(parents=True, exist_ok=True)
            ensure_build_directory(resolved.build_dir)
            if resolved.zip_after_build:
                delete_file_if_exists(resolved.archive_path)

            location = location_path(platform, resolved.build_dir, self._product_name())
            self.console.info(f"{LOG_PREFIX} Compiling {profile.platform} to {location}")
            with internal_build_scope():
                report = self.compiler.compile(scenes, profile.platform, location, list(profile.build_options))

            context.report = report
            self._run_actions(Stage.AFTER_BUILD, resolved, context)

            if report is None or not report.succeeded:
                raise BuildFailure(report)

            self._run_actions(Stage.BEFORE_PACKAGING, resolved, context)

            if resolved.remove_excluded_dirs:
                removed = remove_directories_by_name(resolved.build_dir, profile.excluded_dirs)

            if resolved.zip_after_build:
                removed += remove_do_not_ship_byproducts(resolved.build_dir)
                create_archive(
                    resolved.build_dir,
                    resolved.archive_path,
                    console=self.console,
                    archive_format=profile.archive_format,
                )

            self._run_actions(Stage.AFTER_PACKAGING, resolved, context)
            self._run_actions(Stage.ON_SUCCESS, resolved, context)
        except Exception as exc:
            context.report = report
            try:
                self._run_actions(Stage.ON_FAILURE, resolved, context)
            except Exception as action_exc:
                self.console.error(f"{LOG_PREFIX} Failure action error: {action_exc}")

            result.succeeded = False
            result.version_after = applied_version
            result.duration = timedelta(seconds=time.monotonic() - started)
            result.message = str(exc)
            self.console.error(f"{LOG_PREFIX} {exc}")
            return result

        result.succeeded = True
        result.version_after = resolved.version_after
        result.removed_dir_count = removed
        result.duration = timedelta(seconds=time.monotonic() - started)
        archive_text = str(resolved.archive_path) if resolved.zip_after_build else "disabled"
        result.message = "\n".join(
            [
                "Build completed.",
                "",
                f"Profile: {profile.display_name}",
                f"Build Name: {resolved.build_name}",
                f"Build Folder: {resolved.build_dir}",
                f"Archive: {archive_text}",
                f"Version: {resolved.version_before} -> {resolved.version_after}",
                f"Removed excluded dirs: {removed}",
                f"Duration: {format_duration(result.duration)}",
            ]
        )
        self.console.info(f"{LOG_PREFIX} " + result.message.replace("\n", " | "))
        return result


__all__ = [
    "LOG_PREFIX",
    "BuildPipeline",
    "BuildPreview",
    "BuildRequest",
    "ExecutionResult",
    "format_duration",
]
