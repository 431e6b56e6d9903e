"""Shared core utilities for build orchestration and templating."""

from .archive import ArchiveArtifact, ArchiveConsole, ArchiveManager, archive_suffix, normalize_archive_format
from .command_runner import (
    CommandError,
    CommandResult,
    CommandRunner,
    RecordingCommandRunner,
    SubprocessCommandRunner,
)
from .config_loader import (
    ConfigDecoder,
    FILE_DECODERS,
    coerce_bool,
    config_candidates,
    decode_config,
    find_config_file,
    load_config_file,
    normalize_string_list,
)
from .console import Console
from .template import TemplateError, TemplateResolver, extract_placeholders

__all__ = [
    "ArchiveArtifact",
    "ArchiveConsole",
    "ArchiveManager",
    "archive_suffix",
    "normalize_archive_format",
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "ConfigDecoder",
    "FILE_DECODERS",
    "coerce_bool",
    "config_candidates",
    "decode_config",
    "find_config_file",
    "load_config_file",
    "normalize_string_list",
    "Console",
    "TemplateError",
    "TemplateResolver",
    "extract_placeholders",
]
