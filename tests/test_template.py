from __future__ import annotations

import unittest

from core.template import TemplateError, TemplateResolver, extract_placeholders


class TemplateResolverTests(unittest.TestCase):
    def setUp(self) -> None:
        self.context = {
            "build": {
                "target": "windows64",
                "location": "/out/Game_1.0.1/Game.exe",
                "scenes": ["scenes/main", "scenes/menu"],
                "options": [],
            }
        }
        self.resolver = TemplateResolver(self.context)

    def test_resolve_placeholder(self) -> None:
        result = self.resolver.resolve("--target={{build.target}}")
        self.assertEqual(result, "--target=windows64")

    def test_single_placeholder_keeps_list_values(self) -> None:
        self.assertEqual(self.resolver.resolve("{{build.scenes}}"), ["scenes/main", "scenes/menu"])
        self.assertEqual(self.resolver.resolve(" {{ build.options }} "), [])

    def test_embedded_list_is_space_joined(self) -> None:
        self.assertEqual(self.resolver.resolve("scenes: {{build.scenes}}"), "scenes: scenes/main scenes/menu")

    def test_nested_values_are_resolved(self) -> None:
        context = {
            "paths": {
                "root": "/out",
                "build": "{{paths.root}}/Game",
                "exe": "{{paths.build}}/Game.exe",
            }
        }
        resolver = TemplateResolver(context)
        self.assertEqual(resolver.resolve(["{{paths.exe}}", "x"]), ["/out/Game/Game.exe", "x"])

    def test_non_recursive_resolution_keeps_values_verbatim(self) -> None:
        context = {"build": {"scenes": ["scenes/{{odd}}"], "option": "-D{{x}}"}}
        resolver = TemplateResolver(context, recursive=False)
        self.assertEqual(resolver.resolve("{{build.scenes}}"), ["scenes/{{odd}}"])
        self.assertEqual(resolver.resolve("--opt={{build.option}}"), "--opt=-D{{x}}")

    def test_index_lookup(self) -> None:
        self.assertEqual(self.resolver.resolve("{{build.scenes.1}}"), "scenes/menu")
        with self.assertRaises(TemplateError):
            self.resolver.resolve("{{build.scenes.5}}")

    def test_unknown_path_raises(self) -> None:
        with self.assertRaises(TemplateError):
            self.resolver.resolve("{{build.missing}}")

    def test_cycle_detection(self) -> None:
        context = {"a": {"value": "{{b.value}}"}, "b": {"value": "{{a.value}}"}}
        resolver = TemplateResolver(context)
        with self.assertRaises(TemplateError) as ctx:
            resolver.resolve("{{a.value}}")
        self.assertIn("Circular dependency", str(ctx.exception))

    def test_extract_placeholders(self) -> None:
        found = extract_placeholders(["tool", "{{build.target}}", {"out": "{{ build.location }}"}])
        self.assertEqual(found, {"build.target", "build.location"})


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
