from __future__ import annotations

from pathlib import Path
import io
import tempfile
import textwrap
import unittest
from unittest.mock import patch

from core.config_loader import (
    coerce_bool,
    config_candidates,
    decode_config,
    find_config_file,
    load_config_file,
    normalize_string_list,
)

try:  # PyYAML is optional
    import yaml  # type: ignore
except ModuleNotFoundError:  # pragma: no cover - optional dependency absent
    yaml = None


class ConfigLoaderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_loads_toml(self) -> None:
        path = self.root / "stagebuild.toml"
        path.write_text(
            textwrap.dedent(
                """
                [pipeline]
                output_root = "OUT"
                """
            )
        )
        self.assertEqual(load_config_file(path), {"pipeline": {"output_root": "OUT"}})

    def test_loads_json(self) -> None:
        path = self.root / "stagebuild.json"
        path.write_text('{"pipeline": {"output_root": "OUT"}}')
        self.assertEqual(load_config_file(path)["pipeline"]["output_root"], "OUT")

    @unittest.skipIf(yaml is None, "PyYAML not installed")
    def test_loads_yaml_and_treats_empty_file_as_empty_mapping(self) -> None:
        path = self.root / "stagebuild.yaml"
        path.write_text("pipeline:\n  output_root: OUT\n")
        self.assertEqual(load_config_file(path)["pipeline"]["output_root"], "OUT")

        empty = self.root / "empty.yml"
        empty.write_text("")
        self.assertEqual(load_config_file(empty), {})

    def test_rejects_unknown_extension(self) -> None:
        path = self.root / "stagebuild.ini"
        path.write_text("[pipeline]\n")
        with self.assertRaises(ValueError):
            load_config_file(path)

    def test_rejects_non_mapping_root(self) -> None:
        path = self.root / "stagebuild.json"
        path.write_text("[1, 2]")
        with self.assertRaises(TypeError):
            load_config_file(path)

    def test_decode_errors_are_value_errors(self) -> None:
        with self.assertRaises(ValueError):
            decode_config(io.StringIO("[pipeline\n"), ".toml")
        with self.assertRaises(ValueError):
            decode_config(io.StringIO("{"), ".json")
        self.assertEqual(decode_config(io.StringIO(""), ".toml"), {})

    def test_yaml_without_pyyaml_is_a_value_error(self) -> None:
        with patch("core.config_loader.yaml", None):
            with self.assertRaises(ValueError) as ctx:
                decode_config(io.StringIO("pipeline: {}\n"), ".yaml")
        self.assertIn("PyYAML is required", str(ctx.exception))

    def test_duplicate_formats_for_one_stem_are_rejected(self) -> None:
        (self.root / "stagebuild.toml").write_text("")
        (self.root / "stagebuild.json").write_text("{}")
        with self.assertRaises(ValueError):
            find_config_file(self.root, "stagebuild")
        self.assertEqual(
            config_candidates(self.root, "stagebuild"),
            [self.root / "stagebuild.toml", self.root / "stagebuild.json"],
        )

    def test_find_config_file(self) -> None:
        self.assertIsNone(find_config_file(self.root, "stagebuild"))
        self.assertIsNone(find_config_file(self.root / "missing", "stagebuild"))
        (self.root / "stagebuild.json").write_text("{}")
        (self.root / "other.toml").write_text("")
        self.assertEqual(find_config_file(self.root, "stagebuild"), self.root / "stagebuild.json")


class CoercionTests(unittest.TestCase):
    def test_normalize_string_list(self) -> None:
        self.assertEqual(normalize_string_list(None), [])
        self.assertEqual(normalize_string_list("  one "), ["one"])
        self.assertEqual(normalize_string_list([" a ", "", "b"]), ["a", "b"])
        with self.assertRaises(TypeError):
            normalize_string_list([1, 2], field_name="symbols")
        with self.assertRaises(TypeError):
            normalize_string_list(5)

    def test_coerce_bool(self) -> None:
        self.assertTrue(coerce_bool(None, default=True))
        self.assertFalse(coerce_bool("off", default=True))
        self.assertTrue(coerce_bool("Yes", default=False))
        self.assertFalse(coerce_bool(False, default=True))
        with self.assertRaises(TypeError) as ctx:
            coerce_bool("maybe", default=False, field_name="profiles.dev.zip_after_build")
        self.assertIn("profiles.dev.zip_after_build", str(ctx.exception))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
