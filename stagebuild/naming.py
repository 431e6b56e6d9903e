"""Build name templating.

Templates are literal text with ``{token}`` placeholders. Tokens are
case-insensitive:

``product``            product name (``Game`` when blank)
``version``            version string (``0.0.0`` when blank)
``profile``            profile display name
``profileid``          profile id
``platform``/``target`` target platform id
``flags``              enabled flag ids joined with ``-`` (``none`` if none)
``flag:<id>``          ``true``/``false`` for a single flag
``date[:fmt]``         ``now`` formatted with strftime, default ``%Y%m%d``
``time[:fmt]``         default ``%H%M%S``
``datetime[:fmt]``     default ``%Y%m%d_%H%M%S``

Unknown tokens render as an empty string. The result is made safe for use
as a file name.
"""
from __future__ import annotations

from datetime import datetime
from typing import Mapping, TYPE_CHECKING
import re

if TYPE_CHECKING:  # pragma: no cover
    from .models import ProfileConfig

DEFAULT_TEMPLATE = "{product}_{profile}_{version}"
FALLBACK_NAME = "build"

_TOKEN_PATTERN = re.compile(r"\{([^{}]+)\}")
_INVALID_CHARACTERS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

_TIMESTAMP_DEFAULTS = {
    "datetime": "%Y%m%d_%H%M%S",
    "date": "%Y%m%d",
    "time": "%H%M%S",
}


def make_safe_file_name(value: str | None) -> str:
    """Replace characters that are invalid in file names with ``_``.

    Trailing dots and spaces are dropped. Blank input, or input made only of
    invalid characters or dots, yields ``build`` so the name never points at
    the current or parent directory.
    """

    if value is None or not value.strip():
        return FALLBACK_NAME
    text = value.strip()
    if not _INVALID_CHARACTERS.sub("", text).strip(". "):
        return FALLBACK_NAME
    return _INVALID_CHARACTERS.sub("_", text).rstrip(". ")


def _format_timestamp(token: str, now: datetime) -> str | None:
    lowered = token.lower()
    for kind, default_format in _TIMESTAMP_DEFAULTS.items():
        if lowered == kind:
            return now.strftime(default_format)
        if lowered.startswith(kind + ":"):
            custom = token[len(kind) + 1:].strip()
            return now.strftime(custom or default_format)
    return None


def _flags_token(flags: Mapping[str, bool]) -> str:
    enabled = [make_safe_file_name(flag_id) for flag_id, state in flags.items() if state and flag_id.strip()]
    if not enabled:
        return "none"
    return "-".join(sorted(enabled, key=str.lower))


def _flag_state(flags: Mapping[str, bool], flag_id: str) -> bool:
    key = flag_id.strip().lower()
    return any(state for name, state in flags.items() if name.lower() == key)


def _resolve_token(
    token: str,
    *,
    profile: "ProfileConfig",
    product_name: str,
    version: str,
    flags: Mapping[str, bool],
    now: datetime,
) -> str:
    token = token.strip()
    if not token:
        return ""

    if token.lower().startswith("flag:"):
        return "true" if _flag_state(flags, token[len("flag:"):]) else "false"

    timestamp = _format_timestamp(token, now)
    if timestamp is not None:
        return timestamp

    key = token.lower()
    if key == "product":
        return product_name.strip() or "Game"
    if key == "version":
        return version.strip() or "0.0.0"
    if key == "profile":
        return profile.display_name
    if key == "profileid":
        return profile.id
    if key in {"platform", "target"}:
        return profile.platform
    if key == "flags":
        return _flags_token(flags)
    return ""


def resolve_build_name(
    template: str | None,
    profile: "ProfileConfig",
    product_name: str,
    version: str,
    flags: Mapping[str, bool],
    now: datetime,
) -> str:
    """Render *template* for *profile* and return a safe file name."""

    if template is None or not template.strip():
        template = DEFAULT_TEMPLATE

    rendered = _TOKEN_PATTERN.sub(
        lambda match: _resolve_token(
            match.group(1),
            profile=profile,
            product_name=product_name or "",
            version=version or "",
            flags=flags or {},
            now=now,
        ),
        template,
    )
    return make_safe_file_name(rendered)


def build_name_for(
    profile: "ProfileConfig",
    product_name: str,
    version: str,
    flags: Mapping[str, bool],
    now: datetime,
) -> str:
    return resolve_build_name(profile.name_template, profile, product_name, version, flags, now)


__all__ = [
    "DEFAULT_TEMPLATE",
    "FALLBACK_NAME",
    "build_name_for",
    "make_safe_file_name",
    "resolve_build_name",
]
