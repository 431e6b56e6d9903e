"""Shared helpers for locating and decoding configuration files."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Sequence, TextIO

import json
import tomllib

try:  # Optional dependency for YAML support
    import yaml
except ModuleNotFoundError:  # pragma: no cover - exercised when PyYAML absent
    yaml = None


ConfigDecoder = Callable[[str], Any]


def _decode_toml(text: str) -> Any:
    return tomllib.loads(text)


def _decode_json(text: str) -> Any:
    return json.loads(text)


def _decode_yaml(text: str) -> Any:
    if yaml is None:
        raise ValueError(
            "PyYAML is required to load YAML configuration files. Install with `pip install PyYAML`."
        )
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid YAML: {exc}") from exc


FILE_DECODERS: Dict[str, ConfigDecoder] = {
    ".toml": _decode_toml,
    ".json": _decode_json,
    ".yaml": _decode_yaml,
    ".yml": _decode_yaml,
}
"""Supported suffixes, in lookup order."""


def decode_config(stream: TextIO, suffix: str) -> Mapping[str, Any]:
    """Decode the configuration text in *stream* using the decoder for *suffix*.

    Empty documents decode to an empty mapping. Decoder failures surface as
    :class:`ValueError`; a root that is not a mapping raises :class:`TypeError`.
    """

    decoder = FILE_DECODERS.get(suffix.lower())
    if decoder is None:
        supported = ", ".join(FILE_DECODERS)
        raise ValueError(f"Unsupported configuration file extension: {suffix}. Supported: {supported}")

    data = decoder(stream.read())
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError("configuration root must be a mapping")
    return data


def load_config_file(path: Path) -> Mapping[str, Any]:
    """Load and decode a configuration mapping from ``path``."""

    with path.open("r", encoding="utf-8") as handle:
        try:
            return decode_config(handle, path.suffix)
        except TypeError as exc:
            raise TypeError(f"Configuration file '{path}' must contain a mapping at the root") from exc


def config_candidates(directory: Path, stem: str) -> List[Path]:
    """Return every existing ``<stem>.<suffix>`` file inside *directory*."""

    if not directory.is_dir():
        return []
    return [directory / f"{stem}{suffix}" for suffix in FILE_DECODERS if (directory / f"{stem}{suffix}").is_file()]


def find_config_file(directory: Path, stem: str) -> Path | None:
    """Return the configuration file named ``stem`` inside ``directory``, if any.

    Only one format per stem is allowed; two candidates raise :class:`ValueError`.
    """

    candidates = config_candidates(directory, stem)
    if len(candidates) > 1:
        names = "', '".join(path.name for path in candidates)
        raise ValueError(
            f"Multiple configuration files found for '{stem}': '{names}'. "
            "Only one format per configuration entry is allowed."
        )
    return candidates[0] if candidates else None


def normalize_string_list(value: Any, *, field_name: str | None = None) -> List[str]:
    """Coerce ``value`` into a list of trimmed, non-blank strings."""

    if value is None:
        return []

    label = f"{field_name} " if field_name else ""
    if isinstance(value, (str, bytes)):
        text = str(value).strip()
        return [text] if text else []
    if not isinstance(value, Sequence):
        raise TypeError(f"{label}must be a string or sequence of strings")

    items: List[str] = []
    for item in value:
        if not isinstance(item, str):
            raise TypeError(f"{label}entries must be strings")
        if item.strip():
            items.append(item.strip())
    return items


def coerce_bool(value: Any, *, default: bool, field_name: str | None = None) -> bool:
    """Return ``value`` as a boolean, falling back to ``default`` when unset."""

    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in {"true", "yes", "on", "1"}:
            return True
        if text in {"false", "no", "off", "0"}:
            return False
    label = f"{field_name} " if field_name else ""
    raise TypeError(f"{label}must be a boolean")


__all__ = [
    "ConfigDecoder",
    "FILE_DECODERS",
    "coerce_bool",
    "config_candidates",
    "decode_config",
    "find_config_file",
    "load_config_file",
    "normalize_string_list",
]
