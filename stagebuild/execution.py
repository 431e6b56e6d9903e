"""Process-wide marker for builds driven by the pipeline itself.

Concurrent pipeline invocations in one process are unsupported: the marker
is a plain counter with no locking.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

_scope_depth = 0


@contextmanager
def internal_build_scope() -> Iterator[None]:
    global _scope_depth
    _scope_depth += 1
    try:
        yield
    finally:
        _scope_depth = _scope_depth - 1 if _scope_depth > 0 else 0


def is_internal_build_in_progress() -> bool:
    return _scope_depth > 0


__all__ = ["internal_build_scope", "is_internal_build_in_progress"]
