"""Command line interface for the staged build pipeline."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Dict, Iterable, List
import json
import sys

from core.command_runner import CommandError, SubprocessCommandRunner
from core.console import Console

from .compiler import CommandCompiler
from .config import (
    DEFAULT_CONFIG_NAME,
    build_platform_registry,
    default_config_text,
    find_config_file,
    load_config,
    settings_path,
)
from .errors import ConfigurationError, PipelineError
from .models import PipelineConfig
from .pipeline import BuildPipeline, BuildRequest
from .preprocess import run_preprocess
from .stores import JsonSettingsStore
from .validation import validate_config, validate_profile


def _add_flag_arguments(parser: ArgumentParser) -> None:
    parser.add_argument("--enable", action="append", default=[], metavar="FLAG", help="Enable a flag for this run (repeatable)")
    parser.add_argument("--disable", action="append", default=[], metavar="FLAG", help="Disable a flag for this run (repeatable)")


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="stagebuild", description="Profile-driven staged build pipeline")
    parser.add_argument("-c", "--config", metavar="PATH", help="Configuration file (default: stagebuild.* in the project root)")
    parser.add_argument("-C", "--project-root", metavar="DIR", help="Project root directory (default: current directory)")
    parser.add_argument(
        "--log",
        choices=list(Console.LEVELS),
        default="warning",
        help="Console log level (default: warning)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Write a starter configuration file")
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing configuration")

    subparsers.add_parser("list", help="List profiles and flags")

    validate_parser = subparsers.add_parser("validate", help="Validate the configuration")
    validate_parser.add_argument("profile", nargs="?", help="Also validate a single profile")

    preview_parser = subparsers.add_parser("preview", help="Show resolved options without building")
    preview_parser.add_argument("profile", help="Profile id")
    _add_flag_arguments(preview_parser)
    preview_parser.add_argument("--force-zip", action="store_true", help="Archive the build regardless of flags")

    build_parser = subparsers.add_parser("build", help="Run the full build pipeline")
    build_parser.add_argument("profile", help="Profile id")
    _add_flag_arguments(build_parser)
    build_parser.add_argument("--force-zip", action="store_true", help="Archive the build regardless of flags")

    bump_parser = subparsers.add_parser("bump-version", help="Increment the version only")
    bump_parser.add_argument("profile", help="Profile id")

    symbols_parser = subparsers.add_parser("apply-symbols", help="Apply the profile's symbols only")
    symbols_parser.add_argument("profile", help="Profile id")
    _add_flag_arguments(symbols_parser)

    output_parser = subparsers.add_parser("output-dir", help="Print the output root directory")
    output_parser.add_argument("--open", action="store_true", help="Reveal the directory with the platform file opener")

    preprocess_parser = subparsers.add_parser("preprocess", help="Apply preprocess versioning and symbols for an external build")
    preprocess_parser.add_argument("--target", required=True, help="Platform the external build targets")

    return parser.parse_args(list(argv))


def _project_root(args: Namespace) -> Path:
    return Path(args.project_root).expanduser().resolve() if args.project_root else Path.cwd()


def _load(args: Namespace, project_root: Path) -> PipelineConfig:
    if args.config:
        path = Path(args.config).expanduser()
        if not path.is_absolute():
            path = project_root / path
    else:
        found = find_config_file(project_root)
        if found is None:
            raise ConfigurationError(
                f"No stagebuild configuration found in {project_root} (run 'stagebuild init')"
            )
        path = found
    return load_config(path)


def _flag_overrides(args: Namespace) -> Dict[str, bool]:
    overrides: Dict[str, bool] = {}
    for flag_id in getattr(args, "enable", []):
        overrides[flag_id] = True
    for flag_id in getattr(args, "disable", []):
        overrides[flag_id] = False
    return overrides


def _make_pipeline(config: PipelineConfig, project_root: Path, console: Console) -> BuildPipeline:
    try:
        settings = JsonSettingsStore(settings_path(config, project_root))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Cannot read settings: {exc}") from exc
    return BuildPipeline(
        config=config,
        settings=settings,
        compiler=CommandCompiler(config.compile_command, project_root=project_root),
        project_root=project_root,
        console=console,
        platforms=build_platform_registry(config),
    )


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    console = Console(args.log)
    project_root = _project_root(args)

    try:
        if args.command == "init":
            return _handle_init(args, project_root)
        config = _load(args, project_root)
        if args.command == "list":
            return _handle_list(config)
        if args.command == "validate":
            return _handle_validate(args, config, project_root, console)
        if args.command == "output-dir":
            return _handle_output_dir(args, config, project_root)
        if args.command == "preprocess":
            return _handle_preprocess(args, config, project_root, console)

        pipeline = _make_pipeline(config, project_root, console)
        if args.command == "preview":
            return _handle_preview(args, pipeline)
        if args.command == "build":
            return _handle_build(args, pipeline)
        if args.command == "bump-version":
            print(pipeline.increment_version_only(args.profile).message)
            return 0
        if args.command == "apply-symbols":
            print(pipeline.apply_symbols_only(args.profile, _flag_overrides(args)).message)
            return 0
    except ConfigurationError as exc:
        print(f"Error: {exc}")
        return 1 if exc.report is not None else 2
    except PipelineError as exc:
        print(f"Error: {exc}")
        return 1
    raise ValueError(f"Unknown command: {args.command}")


def _handle_init(args: Namespace, project_root: Path) -> int:
    existing = find_config_file(project_root)
    if existing is not None and not args.force:
        print(f"Error: {existing} already exists (use --force to overwrite)")
        return 2
    target = existing if existing is not None and existing.suffix == ".toml" else project_root / DEFAULT_CONFIG_NAME
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(default_config_text(), encoding="utf-8")
    print(f"Wrote {target}")
    return 0


def _handle_list(config: PipelineConfig) -> int:
    if not config.profiles:
        print("No profiles configured")
        return 0
    print("Profiles:")
    for profile in config.profiles:
        flags = ", ".join(profile.flags) or "-"
        print(f"  {profile.id:<16} {profile.display_name:<20} {profile.platform:<10} flags: {flags}")
    if config.flags:
        print("Flags:")
        for flag in config.flags:
            state = "on" if flag.default_enabled else "off"
            print(f"  {flag.id:<20} {flag.display_label:<20} default: {state}")
    return 0


def _handle_validate(args: Namespace, config: PipelineConfig, project_root: Path, console: Console) -> int:
    pipeline = _make_pipeline(config, project_root, console)
    if args.profile:
        profile = config.get_profile(args.profile)
        if profile is None:
            print(f"Error: Unknown build profile '{args.profile}'")
            return 2
        report = validate_profile(config, profile, pipeline.registry, pipeline.platforms)
    else:
        report = validate_config(config, pipeline.registry)

    for warning in report.warnings:
        print(f"Warning: {warning}")
    for error in report.errors:
        print(f"Error: {error}")
    if not report.is_valid:
        return 1
    print("Configuration is valid")
    return 0


def _handle_preview(args: Namespace, pipeline: BuildPipeline) -> int:
    profile = pipeline.config.get_profile(args.profile)
    if profile is None:
        print(f"Error: Unknown build profile '{args.profile}'")
        return 2
    preview = pipeline.create_preview(args.profile, _flag_overrides(args), args.force_zip)
    lines: List[str] = [
        f"Profile: {profile.display_name} ({profile.id})",
        f"Build name: {preview.build_name}",
        f"Version: {preview.version_before} -> {preview.version_after}",
        f"Build folder: {preview.build_dir}",
        f"Archive: {preview.archive_path if preview.zip_after_build else 'disabled'}",
        f"Increment version: {_yes_no(preview.increment_version)}",
        f"Apply symbols: {_yes_no(preview.apply_symbols)}",
        f"Remove excluded dirs: {_yes_no(preview.remove_excluded_dirs)}",
        f"Symbols: {preview.symbols or '-'}",
    ]
    print("\n".join(lines))
    return 0


def _handle_build(args: Namespace, pipeline: BuildPipeline) -> int:
    if not pipeline.config.compile_command:
        print("Error: compile.command is not configured")
        return 2
    request = BuildRequest(profile_id=args.profile, flag_overrides=_flag_overrides(args), force_zip=args.force_zip)
    result = pipeline.execute_build(request)
    print(result.message)
    return 0 if result.succeeded else 1


def _opener_command(path: Path) -> List[str]:
    if sys.platform.startswith("win"):
        return ["explorer", str(path)]
    if sys.platform == "darwin":
        return ["open", str(path)]
    return ["xdg-open", str(path)]


def _handle_output_dir(args: Namespace, config: PipelineConfig, project_root: Path) -> int:
    output_root = project_root / config.output_root_name
    print(output_root)
    if args.open:
        output_root.mkdir(parents=True, exist_ok=True)
        # explorer.exe exits non-zero even when it opened the folder
        try:
            SubprocessCommandRunner().run(_opener_command(output_root), check=not sys.platform.startswith("win"))
        except (CommandError, OSError) as exc:
            print(f"Error: could not open {output_root}: {exc}")
            return 1
    return 0


def _handle_preprocess(args: Namespace, config: PipelineConfig, project_root: Path, console: Console) -> int:
    try:
        settings = JsonSettingsStore(settings_path(config, project_root))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Cannot read settings: {exc}") from exc
    outcome = run_preprocess(
        config,
        args.target,
        settings=settings,
        project_root=project_root,
        platforms=build_platform_registry(config),
        console=console,
    )
    if outcome.skipped:
        print("Preprocess skipped")
        return 0
    print(
        json.dumps(
            {
                "profile": outcome.profile_id,
                "version_before": outcome.version_before,
                "version_after": outcome.version_after,
                "symbols_applied": outcome.symbols_applied,
                "symbols": outcome.symbols,
            },
            indent=2,
        )
    )
    return 0


__all__ = ["main"]
