"""Profile-driven build option resolution and staged build orchestration."""

from .actions import ActionContext, ActionRegistry, default_registry
from .compiler import CommandCompiler, CompileReport, CompileResult, ConfigSceneProvider
from .config import default_config_text, find_config_file, load_config
from .errors import BuildFailure, ConfigurationError, PipelineError, ResolutionError
from .models import ActionBinding, FlagConfig, FlagOverride, PipelineConfig, ProfileConfig, Stage, VersionMode
from .pipeline import BuildPipeline, BuildPreview, BuildRequest, ExecutionResult
from .resolver import ResolvedOptions, default_flag_state, resolve_options
from .stores import JsonSettingsStore, MemorySettingsStore

__all__ = [
    "ActionBinding",
    "ActionContext",
    "ActionRegistry",
    "BuildFailure",
    "BuildPipeline",
    "BuildPreview",
    "BuildRequest",
    "CommandCompiler",
    "CompileReport",
    "CompileResult",
    "ConfigSceneProvider",
    "ConfigurationError",
    "ExecutionResult",
    "FlagConfig",
    "FlagOverride",
    "JsonSettingsStore",
    "MemorySettingsStore",
    "PipelineConfig",
    "PipelineError",
    "ProfileConfig",
    "ResolutionError",
    "ResolvedOptions",
    "Stage",
    "VersionMode",
    "default_config_text",
    "default_flag_state",
    "default_registry",
    "find_config_file",
    "load_config",
    "resolve_options",
]
