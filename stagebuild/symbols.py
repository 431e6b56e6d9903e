"""Reconciliation of compile-time feature symbols against a shared store."""
from __future__ import annotations

from typing import Iterable, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .stores import SymbolStore

SEPARATOR = ";"


def parse_symbols(raw: str | None) -> set[str]:
    """Split a semicolon-delimited symbol string into a set; ``None`` is empty."""

    if not raw:
        return set()
    return {part.strip() for part in str(raw).split(SEPARATOR) if part.strip()}


def _clean(symbols: Iterable[str] | None) -> set[str]:
    if symbols is None:
        return set()
    return {str(symbol).strip() for symbol in symbols if symbol is not None and str(symbol).strip()}


def format_symbols(symbols: Iterable[str]) -> str:
    """Serialize *symbols* as a sorted, de-duplicated, semicolon-joined string."""

    return SEPARATOR.join(sorted(_clean(symbols)))


def reconcile_symbols(
    current: Iterable[str] | None,
    managed: Iterable[str] | None,
    desired: Iterable[str] | None,
) -> set[str]:
    """Drop every managed symbol from *current*, then add *desired*.

    Symbols the pipeline does not manage are left alone, and no managed
    symbol survives unless it is also desired.
    """

    result = _clean(current)
    result.difference_update(_clean(managed))
    result.update(_clean(desired))
    return result


def apply_managed_symbols(
    store: "SymbolStore",
    group: str | None,
    managed: Iterable[str] | None,
    desired: Iterable[str] | None,
) -> set[str]:
    """Reconcile the symbols stored for *group* and write the result back.

    A platform without a symbol group has nothing to read or write; the
    reconciled set is still returned so callers can report it.
    """

    current = parse_symbols(store.get_symbols_raw(group)) if group else set()
    result = reconcile_symbols(current, managed, desired)
    if group:
        store.set_symbols(group, result)
    return result


__all__ = ["SEPARATOR", "apply_managed_symbols", "format_symbols", "parse_symbols", "reconcile_symbols"]
