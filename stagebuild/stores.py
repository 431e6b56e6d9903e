"""Settings and symbol stores consumed by the pipeline."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, Protocol, runtime_checkable
import json

from .symbols import format_symbols


@runtime_checkable
class SettingsStore(Protocol):
    """Persistent product settings: product name, version and build numbers."""

    def get_product_name(self) -> str:
        ...

    def get_version(self) -> str:
        ...

    def set_version(self, version: str) -> None:
        ...

    def set_build_numbers(self, version_code: int, build_number: str) -> None:
        ...


@runtime_checkable
class SymbolStore(Protocol):
    """Per-platform-group storage of semicolon-delimited symbol strings."""

    def get_symbols_raw(self, group: str) -> str:
        ...

    def set_symbols(self, group: str, symbols: Iterable[str]) -> None:
        ...


class MemorySettingsStore:
    """In-memory implementation of :class:`SettingsStore` and :class:`SymbolStore`."""

    def __init__(
        self,
        *,
        product_name: str = "",
        version: str = "",
        symbols: Dict[str, str] | None = None,
    ) -> None:
        self.product_name = product_name
        self.version = version
        self.version_code = 0
        self.build_number = ""
        self.symbols: Dict[str, str] = dict(symbols or {})

    def get_product_name(self) -> str:
        return self.product_name

    def get_version(self) -> str:
        return self.version

    def set_version(self, version: str) -> None:
        self.version = version
        self._changed()

    def set_build_numbers(self, version_code: int, build_number: str) -> None:
        self.version_code = version_code
        self.build_number = build_number
        self._changed()

    def get_symbols_raw(self, group: str) -> str:
        return self.symbols.get(group, "")

    def set_symbols(self, group: str, symbols: Iterable[str]) -> None:
        self.symbols[group] = format_symbols(symbols)
        self._changed()

    def _changed(self) -> None:
        """Hook for subclasses that persist state."""


class JsonSettingsStore(MemorySettingsStore):
    """Settings persisted to a JSON document; a missing file reads as defaults."""

    def __init__(self, path: Path) -> None:
        self.path = path
        data: Dict[str, Any] = {}
        if path.is_file():
            with path.open("r", encoding="utf-8") as handle:
                loaded = json.load(handle)
            if not isinstance(loaded, dict):
                raise TypeError(f"Settings file '{path}' must contain a JSON object")
            data = loaded

        raw_symbols = data.get("symbols")
        symbols = {str(key): str(value) for key, value in raw_symbols.items()} if isinstance(raw_symbols, dict) else {}
        super().__init__(
            product_name=str(data.get("product_name") or ""),
            version=str(data.get("version") or ""),
            symbols=symbols,
        )
        self.version_code = int(data.get("version_code") or 0)
        self.build_number = str(data.get("build_number") or "")

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "product_name": self.product_name,
            "version": self.version,
            "version_code": self.version_code,
            "build_number": self.build_number,
            "symbols": dict(sorted(self.symbols.items())),
        }

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump(self.to_mapping(), handle, indent=2)
            handle.write("\n")

    def _changed(self) -> None:
        self.save()


__all__ = ["JsonSettingsStore", "MemorySettingsStore", "SettingsStore", "SymbolStore"]
