from __future__ import annotations

from pathlib import Path
import json
import tempfile
import unittest

from stagebuild.actions import (
    ActionContext,
    ActionRegistry,
    LogContextAction,
    WriteBuildInfoAction,
    default_registry,
    import_factory,
)
from stagebuild.models import PipelineConfig, ProfileConfig, Stage


class _Named:
    def __init__(self, action_id: object) -> None:
        self.id = action_id
        self.description = ""

    def execute(self, context: ActionContext) -> None:
        pass


class _NoExecute:
    id = "no-execute"


def _raising_factory() -> object:
    raise RuntimeError("broken action")


class ActionRegistryTests(unittest.TestCase):
    def test_register_and_case_insensitive_lookup(self) -> None:
        registry = ActionRegistry()
        self.assertTrue(registry.register(LogContextAction))
        self.assertIsInstance(registry.get("LOG-CONTEXT"), LogContextAction)
        self.assertIn(" log-context ", registry)
        self.assertIsNone(registry.get("missing"))
        self.assertIsNone(registry.get(""))

    def test_bad_factories_are_skipped(self) -> None:
        registry = ActionRegistry()
        self.assertFalse(registry.register(_raising_factory))
        self.assertFalse(registry.register(lambda: _Named("  ")))
        self.assertFalse(registry.register(lambda: _Named(None)))
        self.assertFalse(registry.register(_NoExecute))
        self.assertFalse(registry.register(lambda name: _Named(name)))  # type: ignore[misc]
        self.assertEqual(len(registry), 0)

    def test_later_duplicates_overwrite(self) -> None:
        first = _Named("dup")
        second = _Named("DUP")
        registry = ActionRegistry()
        registry.register_all([lambda: first, lambda: second])
        self.assertIs(registry.get("dup"), second)
        self.assertEqual(len(registry), 1)

    def test_default_registry_includes_builtins_and_skips_bad_references(self) -> None:
        registry = default_registry(
            [
                "nonexistent_module_for_tests:Action",
                "collections:OrderedDict",
                "not-a-reference",
                "stagebuild.actions:LogContextAction",
            ]
        )
        self.assertEqual(registry.ids(), ["log-context", "write-build-info"])

    def test_import_factory(self) -> None:
        self.assertIs(import_factory("stagebuild.actions:WriteBuildInfoAction"), WriteBuildInfoAction)
        with self.assertRaises(ValueError):
            import_factory("stagebuild.actions")
        with self.assertRaises(AttributeError):
            import_factory("stagebuild.actions:Missing")


class BuiltinActionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.messages: list[str] = []
        profile = ProfileConfig(id="dev", name="Dev")
        self.context = ActionContext(
            config=PipelineConfig(profiles=[profile]),
            profile=profile,
            flags={"demo-content": True},
            build_name="Game_1.0.1",
            output_root=self.root,
            build_dir=self.root / "Game_1.0.1",
            archive_path=self.root / "Game_1.0.1.zip",
            version_before="1.0.0",
            version_after="1.0.1",
            symbols=["BUILD_DEV"],
            stage=Stage.BEFORE_BUILD,
            log_info=self.messages.append,
        )

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_log_context(self) -> None:
        LogContextAction().execute(self.context)
        self.assertEqual(len(self.messages), 1)
        message = self.messages[0]
        self.assertIn("[Action:log-context]", message)
        self.assertIn("Stage=before-build", message)
        self.assertIn("Profile=dev", message)
        self.assertIn("Version=1.0.1", message)
        self.assertIn("BuildName=Game_1.0.1", message)

    def test_write_build_info_skips_missing_directory(self) -> None:
        WriteBuildInfoAction().execute(self.context)
        self.assertFalse((self.root / "Game_1.0.1").exists())
        self.assertIn("does not exist", self.messages[0])

    def test_write_build_info(self) -> None:
        assert self.context.build_dir is not None
        self.context.build_dir.mkdir()
        self.context.stage = Stage.AFTER_BUILD
        WriteBuildInfoAction().execute(self.context)

        data = json.loads((self.context.build_dir / "build_info.json").read_text(encoding="utf-8"))
        self.assertEqual(data["build_name"], "Game_1.0.1")
        self.assertEqual(data["profile"], "dev")
        self.assertEqual(data["version"], "1.0.1")
        self.assertEqual(data["symbols"], ["BUILD_DEV"])
        self.assertEqual(data["flags"], {"demo-content": True})
        self.assertEqual(data["stage"], "after-build")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
