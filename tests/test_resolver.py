from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List
import unittest

from stagebuild.errors import ResolutionError
from stagebuild.models import PipelineConfig
from stagebuild.resolver import default_flag_state, resolve_options
from stagebuild.stores import MemorySettingsStore

NOW = datetime(2024, 1, 2, 3, 4, 5)
ROOT = Path("/project")

DEFAULT_FLAGS: List[Dict[str, Any]] = [
    {"id": "demo-content", "symbols": ["BUILD_DEMO"]},
    {"id": "skip-zip", "overrides": {"zip_after_build": False}},
    {"id": "skip-version-bump", "overrides": {"increment_version": False}},
]


def make_config(
    *,
    profile: Dict[str, Any] | None = None,
    flags: List[Dict[str, Any]] | None = None,
) -> PipelineConfig:
    profile_data: Dict[str, Any] = {
        "id": "dev",
        "name": "Dev",
        "platform": "windows64",
        "name_template": "{product}_{version}",
        "version_mode": "patch",
        "symbols": ["BUILD_DEV"],
        "flags": ["demo-content", "skip-zip", "skip-version-bump"],
    }
    profile_data.update(profile or {})
    return PipelineConfig.from_mapping(
        {"profiles": [profile_data], "flags": DEFAULT_FLAGS if flags is None else flags}
    )


class ResolveOptionsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = MemorySettingsStore(product_name="", version="1.2.3")

    def resolve(self, config: PipelineConfig, overrides: Dict[str, bool] | None = None, force_zip: bool = False):
        return resolve_options(
            config,
            config.profiles[0],
            settings=self.settings,
            project_root=ROOT,
            flag_overrides=overrides,
            force_zip=force_zip,
            now=NOW,
        )

    def test_dev_profile_end_to_end(self) -> None:
        resolved = self.resolve(make_config(), {"demo-content": False})

        self.assertEqual(resolved.build_name, "Game_1.2.4")
        self.assertEqual(resolved.version_before, "1.2.3")
        self.assertEqual(resolved.version_after, "1.2.4")
        self.assertEqual(resolved.output_root, ROOT / "BUILD")
        self.assertEqual(resolved.build_dir, ROOT / "BUILD" / "Game_1.2.4")
        self.assertEqual(resolved.archive_path, ROOT / "BUILD" / "Game_1.2.4.zip")
        self.assertTrue(resolved.increment_version)
        self.assertTrue(resolved.apply_symbols)
        self.assertTrue(resolved.zip_after_build)
        self.assertTrue(resolved.remove_excluded_dirs)
        self.assertEqual(resolved.symbols, ["BUILD_DEV"])
        self.assertEqual(
            resolved.flag_states,
            {"demo-content": False, "skip-zip": False, "skip-version-bump": False},
        )

    def test_skip_version_bump_keeps_version(self) -> None:
        resolved = self.resolve(make_config(), {"skip-version-bump": True})
        self.assertFalse(resolved.increment_version)
        self.assertEqual(resolved.version_after, "1.2.3")
        self.assertEqual(resolved.build_name, "Game_1.2.3")

    def test_resolution_does_not_touch_the_store(self) -> None:
        self.resolve(make_config())
        self.assertEqual(self.settings.version, "1.2.3")

    def test_enabled_flag_adds_symbols_sorted_and_deduplicated(self) -> None:
        config = make_config(profile={"symbols": ["BUILD_DEV", "BUILD_DEMO"]})
        resolved = self.resolve(config, {"DEMO-CONTENT": True})
        self.assertTrue(resolved.flag_states["demo-content"])
        self.assertEqual(resolved.symbols, ["BUILD_DEMO", "BUILD_DEV"])
        self.assertEqual(resolved.symbols_text, "BUILD_DEMO;BUILD_DEV")

    def test_overrides_for_unexposed_flags_are_ignored(self) -> None:
        config = make_config(profile={"flags": ["skip-zip"]})
        resolved = self.resolve(config, {"demo-content": True, "unknown": True})
        self.assertEqual(resolved.flag_states, {"skip-zip": False})
        self.assertEqual(resolved.symbols, ["BUILD_DEV"])

    def test_flag_defaults_apply_without_overrides(self) -> None:
        flags = [dict(DEFAULT_FLAGS[1], default=True)]
        config = make_config(profile={"flags": ["skip-zip"]}, flags=flags)
        self.assertFalse(self.resolve(config).zip_after_build)

    def test_flag_without_override_does_not_change_decision(self) -> None:
        flags = [
            {"id": "a"},
            {"id": "b", "overrides": {"zip_after_build": False}},
            {"id": "c", "overrides": {"zip_after_build": {"present": False, "value": True}}},
        ]
        enabled = {"a": True, "b": True, "c": True}

        config = make_config(profile={"flags": ["a", "b"]}, flags=flags)
        self.assertFalse(self.resolve(config, enabled).zip_after_build)

        config = make_config(profile={"flags": ["b", "a"]}, flags=flags)
        self.assertFalse(self.resolve(config, enabled).zip_after_build)

        config = make_config(profile={"flags": ["b", "a", "c"]}, flags=flags)
        self.assertFalse(self.resolve(config, enabled).zip_after_build)

        config = make_config(profile={"flags": ["c"]}, flags=flags)
        self.assertTrue(self.resolve(config, enabled).zip_after_build)

    def test_last_enabled_flag_in_profile_order_wins(self) -> None:
        flags = [
            {"id": "zip-on", "overrides": {"zip_after_build": True}},
            {"id": "zip-off", "overrides": {"zip_after_build": False}},
        ]
        enabled = {"zip-on": True, "zip-off": True}

        config = make_config(profile={"flags": ["zip-on", "zip-off"], "zip_after_build": True}, flags=flags)
        self.assertFalse(self.resolve(config, enabled).zip_after_build)

        config = make_config(profile={"flags": ["zip-off", "zip-on"], "zip_after_build": False}, flags=flags)
        self.assertTrue(self.resolve(config, enabled).zip_after_build)

    def test_force_zip_always_wins(self) -> None:
        config = make_config(profile={"zip_after_build": False})
        resolved = self.resolve(config, {"skip-zip": True}, force_zip=True)
        self.assertTrue(resolved.zip_after_build)

    def test_platform_without_symbol_group_disables_symbols(self) -> None:
        resolved = self.resolve(make_config(profile={"platform": "ps5"}))
        self.assertFalse(resolved.apply_symbols)
        self.assertEqual(resolved.symbols, ["BUILD_DEV"])

    def test_version_mode_none_leaves_version(self) -> None:
        resolved = self.resolve(make_config(profile={"version_mode": "none"}))
        self.assertTrue(resolved.increment_version)
        self.assertEqual(resolved.version_after, "1.2.3")

    def test_product_name_and_archive_format(self) -> None:
        self.settings.product_name = "Space Game"
        config = make_config(profile={"archive_format": "tar.zst"})
        resolved = self.resolve(config)
        self.assertEqual(resolved.build_name, "Space Game_1.2.4")
        self.assertEqual(resolved.archive_path, ROOT / "BUILD" / "Space Game_1.2.4.tar.zst")

    def test_resolution_is_deterministic(self) -> None:
        config = make_config(profile={"name_template": "{product}_{datetime}_{flags}"})
        first = self.resolve(config, {"demo-content": True})
        second = self.resolve(config, {"demo-content": True})
        self.assertEqual(first.build_name, "Game_20240102_030405_demo-content")
        self.assertEqual(first.build_name, second.build_name)

    def test_missing_config_or_profile(self) -> None:
        config = make_config()
        with self.assertRaises(ResolutionError):
            resolve_options(None, config.profiles[0], settings=self.settings, project_root=ROOT)
        with self.assertRaises(ResolutionError):
            resolve_options(config, None, settings=self.settings, project_root=ROOT)


class DefaultFlagStateTests(unittest.TestCase):
    def test_follows_profile_order_and_skips_undefined_flags(self) -> None:
        flags = [dict(DEFAULT_FLAGS[0], default=True), DEFAULT_FLAGS[1]]
        config = make_config(profile={"flags": ["skip-zip", "ghost", "demo-content"]}, flags=flags)
        state = default_flag_state(config, config.profiles[0])
        self.assertEqual(list(state.items()), [("skip-zip", False), ("demo-content", True)])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
