"""Target platform definitions and registry utilities."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping

from core.config_loader import coerce_bool

from .errors import ConfigurationError
from .naming import make_safe_file_name


@dataclass(frozen=True, slots=True)
class PlatformDefinition:
    name: str
    symbol_group: str | None = None
    executable_suffix: str = ""
    directory_output: bool = False

    @property
    def has_symbol_group(self) -> bool:
        return bool(self.symbol_group)

    @classmethod
    def from_mapping(cls, name: str, data: Mapping[str, Any], *, base: "PlatformDefinition | None" = None) -> "PlatformDefinition":
        allowed_keys = {"symbol_group", "executable_suffix", "directory_output"}
        unknown = {str(key) for key in data.keys() if str(key) not in allowed_keys}
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ConfigurationError(f"Platform '{name}' contains unknown keys: {joined}")

        group = base.symbol_group if base else None
        if "symbol_group" in data:
            raw_group = data.get("symbol_group")
            group = str(raw_group).strip() if raw_group is not None and str(raw_group).strip() else None

        suffix = base.executable_suffix if base else ""
        if "executable_suffix" in data:
            suffix = str(data.get("executable_suffix") or "").strip()

        directory_output = coerce_bool(
            data.get("directory_output"),
            default=base.directory_output if base else False,
            field_name=f"platforms.{name}.directory_output",
        )
        return cls(name=name, symbol_group=group, executable_suffix=suffix, directory_output=directory_output)


_BUILTIN_PLATFORMS: tuple[PlatformDefinition, ...] = (
    PlatformDefinition("windows", "standalone", ".exe"),
    PlatformDefinition("windows64", "standalone", ".exe"),
    PlatformDefinition("macos", "standalone", ".app"),
    PlatformDefinition("linux64", "standalone", ""),
    PlatformDefinition("android", "android", ".apk"),
    PlatformDefinition("ios", "ios", "", directory_output=True),
    PlatformDefinition("webgl", "webgl", "", directory_output=True),
)


class PlatformRegistry:
    def __init__(self, platforms: Iterable[PlatformDefinition] = ()) -> None:
        self._platforms: Dict[str, PlatformDefinition] = {}
        for platform in platforms:
            self._platforms[platform.name.lower()] = platform

    @classmethod
    def with_builtins(cls) -> "PlatformRegistry":
        return cls(_BUILTIN_PLATFORMS)

    def merge_from_mapping(self, data: Mapping[str, Mapping[str, Any]]) -> None:
        for raw_name, raw_definition in data.items():
            name = str(raw_name).strip().lower()
            if not name:
                continue
            if not isinstance(raw_definition, Mapping):
                raise ConfigurationError(f"Platform '{name}' definition must be a mapping")
            self._platforms[name] = PlatformDefinition.from_mapping(
                name, raw_definition, base=self._platforms.get(name)
            )

    def get(self, name: str) -> PlatformDefinition:
        """Return the platform named *name*; unknown names have no symbol group."""

        key = (name or "").strip().lower()
        return self._platforms.get(key) or PlatformDefinition(name=key or "unknown")

    def available(self) -> Iterable[str]:
        return self._platforms.keys()

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip().lower() in self._platforms


def executable_file_name(platform: PlatformDefinition, product_name: str) -> str:
    return make_safe_file_name(product_name) + platform.executable_suffix


def location_path(platform: PlatformDefinition, build_dir: Path, product_name: str) -> Path:
    """Return the path handed to the compiler as its output location."""

    if platform.directory_output:
        return build_dir
    return build_dir / executable_file_name(platform, product_name)


__all__ = ["PlatformDefinition", "PlatformRegistry", "executable_file_name", "location_path"]
