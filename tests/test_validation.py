from __future__ import annotations

import unittest

from stagebuild.actions import default_registry
from stagebuild.models import ActionBinding, FlagConfig, PipelineConfig, ProfileConfig, Stage
from stagebuild.validation import validate_config, validate_profile


class ValidateConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = default_registry()

    def test_no_profiles_stops_early(self) -> None:
        config = PipelineConfig(flags=[FlagConfig(id=""), FlagConfig(id="")])
        report = validate_config(config, self.registry)
        self.assertFalse(report.is_valid)
        self.assertEqual(report.errors, ["No build profiles are configured"])

    def test_unknown_compile_placeholder(self) -> None:
        config = PipelineConfig(
            profiles=[ProfileConfig(id="dev")],
            compile_command=["tool", "{{build.target}}", "--out={{build.outdir}}"],
        )
        report = validate_config(config, self.registry)
        self.assertEqual(report.errors, ["compile.command references unknown placeholder '{{build.outdir}}'"])

    def test_missing_config(self) -> None:
        self.assertFalse(validate_config(None, self.registry).is_valid)

    def test_duplicate_and_blank_ids(self) -> None:
        config = PipelineConfig(
            profiles=[ProfileConfig(id="dev"), ProfileConfig(id="DEV"), ProfileConfig(id="", name="Nameless")],
            flags=[FlagConfig(id="x"), FlagConfig(id="X"), FlagConfig(id="")],
        )
        report = validate_config(config, self.registry)
        self.assertEqual(
            report.errors,
            [
                "Duplicate profile id: 'DEV'",
                "Profile 'Nameless' has no id",
                "Duplicate flag id: 'X'",
                "A flag has no id",
            ],
        )

    def test_action_bindings(self) -> None:
        config = PipelineConfig(
            profiles=[
                ProfileConfig(
                    id="dev",
                    actions=[
                        ActionBinding("upload", Stage.ON_SUCCESS),
                        ActionBinding("", Stage.ON_SUCCESS),
                        ActionBinding("", Stage.ON_SUCCESS, enabled=False),
                        ActionBinding("ghost", Stage.ON_SUCCESS, enabled=False),
                    ],
                )
            ],
            actions=[ActionBinding("log-context", Stage.BEFORE_BUILD)],
        )
        report = validate_config(config, self.registry)
        self.assertEqual(report.errors, ["Profile 'dev': action binding without an id"])
        self.assertEqual(len(report.warnings), 1)
        self.assertIn("'upload'", report.warnings[0])


class ValidateProfileTests(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = default_registry()

    def test_missing_flag_is_an_error(self) -> None:
        profile = ProfileConfig(id="dev", name="Dev", flags=["demo", "ghost"])
        config = PipelineConfig(profiles=[profile], flags=[FlagConfig(id="demo")])
        report = validate_profile(config, profile, self.registry)
        self.assertEqual(report.errors, ["Profile 'Dev' references missing flag 'ghost'"])

    def test_platform_without_symbol_group_is_a_warning(self) -> None:
        profile = ProfileConfig(id="dev", platform="ps5")
        config = PipelineConfig(profiles=[profile])
        report = validate_profile(config, profile, self.registry)
        self.assertTrue(report.is_valid)
        self.assertEqual(len(report.warnings), 1)
        self.assertIn("no symbol group", report.warnings[0])

    def test_config_errors_come_first(self) -> None:
        config = PipelineConfig()
        report = validate_profile(config, ProfileConfig(id="dev"), self.registry)
        self.assertEqual(report.errors, ["No build profiles are configured"])

    def test_missing_profile(self) -> None:
        config = PipelineConfig(profiles=[ProfileConfig(id="dev")])
        report = validate_profile(config, None, self.registry)
        self.assertEqual(report.errors, ["No build profile selected"])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
