"""Stage actions and their registration table."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Protocol, runtime_checkable
import importlib
import json

from core.console import Console

from .compiler import CompileReport
from .models import PipelineConfig, ProfileConfig, Stage

BUILD_INFO_FILE = "build_info.json"

ActionFactory = Callable[[], Any]


def _discard(message: str) -> None:
    return None


@dataclass
class ActionContext:
    """State shared with actions while a build runs.

    ``config``, ``profile`` and ``flags`` are read-only for actions. The
    pipeline updates ``stage`` before every checkpoint, ``version_after``
    after versioning, ``symbols`` after symbol reconciliation and ``report``
    once the compiler returns.
    """

    config: PipelineConfig
    profile: ProfileConfig
    flags: Mapping[str, bool]
    build_name: str = ""
    output_root: Path | None = None
    build_dir: Path | None = None
    archive_path: Path | None = None
    version_before: str = ""
    version_after: str = ""
    symbols: List[str] = field(default_factory=list)
    stage: Stage | None = None
    report: CompileReport | None = None
    log_info: Callable[[str], None] = _discard
    log_error: Callable[[str], None] = _discard


@runtime_checkable
class Action(Protocol):
    id: str
    description: str

    def execute(self, context: ActionContext) -> None:
        ...


class LogContextAction:
    id = "log-context"
    description = "Logs the current stage, profile, version and output folder."

    def execute(self, context: ActionContext) -> None:
        stage = context.stage.value if context.stage else ""
        context.log_info(
            f"[Action:{self.id}] Stage={stage}, Profile={context.profile.id}, "
            f"Version={context.version_after}, BuildName={context.build_name}, "
            f"Output={context.build_dir}"
        )


class WriteBuildInfoAction:
    id = "write-build-info"
    description = f"Writes {BUILD_INFO_FILE} describing the build into the build folder."

    def execute(self, context: ActionContext) -> None:
        if context.build_dir is None or not context.build_dir.is_dir():
            context.log_info(f"[Action:{self.id}] Build folder does not exist yet, nothing written")
            return

        payload = {
            "build_name": context.build_name,
            "profile": context.profile.id,
            "platform": context.profile.platform,
            "version": context.version_after,
            "symbols": list(context.symbols),
            "flags": dict(context.flags),
            "stage": context.stage.value if context.stage else None,
        }
        target = context.build_dir / BUILD_INFO_FILE
        with target.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
            handle.write("\n")
        context.log_info(f"[Action:{self.id}] Wrote {target}")


BUILTIN_ACTIONS: tuple[ActionFactory, ...] = (LogContextAction, WriteBuildInfoAction)


class ActionRegistry:
    """Case-insensitive lookup table of actions keyed by id."""

    def __init__(self) -> None:
        self._actions: Dict[str, Any] = {}

    def register(self, factory: ActionFactory) -> bool:
        """Instantiate *factory* and add the action; unusable factories are skipped.

        Returns ``True`` when an action was registered. A later action with
        the same id replaces the earlier one.
        """

        try:
            action = factory()
        except Exception:
            return False

        action_id = getattr(action, "id", None)
        if not isinstance(action_id, str) or not action_id.strip():
            return False
        if not callable(getattr(action, "execute", None)):
            return False

        self._actions[action_id.strip().lower()] = action
        return True

    def register_all(self, factories: Iterable[ActionFactory]) -> int:
        return sum(1 for factory in factories if self.register(factory))

    def get(self, action_id: str | None) -> Any | None:
        if action_id is None or not action_id.strip():
            return None
        return self._actions.get(action_id.strip().lower())

    def __contains__(self, action_id: object) -> bool:
        return isinstance(action_id, str) and self.get(action_id) is not None

    def __iter__(self) -> Iterator[Any]:
        return iter(self._actions.values())

    def __len__(self) -> int:
        return len(self._actions)

    def ids(self) -> List[str]:
        return sorted(action.id.strip() for action in self._actions.values())


def import_factory(reference: str) -> ActionFactory:
    """Import ``"package.module:attribute"`` and return the attribute."""

    module_name, _, attribute = reference.partition(":")
    if not module_name.strip() or not attribute.strip():
        raise ValueError(f"Action factory '{reference}' must look like 'module:attribute'")
    module = importlib.import_module(module_name.strip())
    target: Any = module
    for part in attribute.strip().split("."):
        target = getattr(target, part)
    if not callable(target):
        raise TypeError(f"Action factory '{reference}' is not callable")
    return target


def default_registry(
    extra_factories: Iterable[str] = (),
    *,
    console: Console | None = None,
) -> ActionRegistry:
    """Registry with the built-in actions plus any importable extra factories."""

    registry = ActionRegistry()
    registry.register_all(BUILTIN_ACTIONS)
    for reference in extra_factories:
        try:
            factory = import_factory(reference)
        except (ImportError, AttributeError, ValueError, TypeError) as exc:
            if console is not None:
                console.debug(f"Skipping action factory '{reference}': {exc}")
            continue
        if not registry.register(factory) and console is not None:
            console.debug(f"Action factory '{reference}' did not produce a usable action")
    return registry


__all__ = [
    "BUILD_INFO_FILE",
    "BUILTIN_ACTIONS",
    "Action",
    "ActionContext",
    "ActionFactory",
    "ActionRegistry",
    "LogContextAction",
    "WriteBuildInfoAction",
    "default_registry",
    "import_factory",
]
