from __future__ import annotations

from datetime import datetime
import unittest

from stagebuild.models import ProfileConfig
from stagebuild.naming import build_name_for, make_safe_file_name, resolve_build_name


NOW = datetime(2024, 5, 6, 7, 8, 9)


class BuildNameTests(unittest.TestCase):
    def setUp(self) -> None:
        self.profile = ProfileConfig(id="dev", name="Dev", platform="windows64", name_template="{product}_{version}")

    def resolve(self, template: str | None, flags: dict[str, bool] | None = None, product: str = "Game") -> str:
        return resolve_build_name(template, self.profile, product, "1.2.4", flags or {}, NOW)

    def test_profile_template(self) -> None:
        self.assertEqual(build_name_for(self.profile, "Game", "1.2.4", {}, NOW), "Game_1.2.4")

    def test_default_template(self) -> None:
        self.assertEqual(self.resolve(None), "Game_Dev_1.2.4")
        self.assertEqual(self.resolve("   "), "Game_Dev_1.2.4")

    def test_tokens_are_case_insensitive(self) -> None:
        self.assertEqual(self.resolve("{PRODUCT}-{ProfileId}-{Target}-{platform}"), "Game-dev-windows64-windows64")

    def test_blank_product_falls_back_to_game(self) -> None:
        self.assertEqual(self.resolve("{product}", product="  "), "Game")

    def test_flags_token(self) -> None:
        flags = {"b-flag": True, "A": True, "c": False}
        self.assertEqual(self.resolve("{flags}", flags), "A-b-flag")
        self.assertEqual(self.resolve("{product}_{flags}", {"c": False}), "Game_none")

    def test_single_flag_token(self) -> None:
        self.assertEqual(self.resolve("{flag:Demo}", {"demo": True}), "true")
        self.assertEqual(self.resolve("{flag:missing}", {"demo": True}), "false")

    def test_timestamp_tokens_use_supplied_instant(self) -> None:
        self.assertEqual(self.resolve("{date}"), "20240506")
        self.assertEqual(self.resolve("{time}"), "070809")
        self.assertEqual(self.resolve("{datetime}"), "20240506_070809")
        self.assertEqual(self.resolve("{date:%Y-%m}"), "2024-05")

    def test_unknown_tokens_render_empty(self) -> None:
        self.assertEqual(self.resolve("{product}{bogus}"), "Game")

    def test_resolution_is_deterministic(self) -> None:
        template = "{product}_{profile}_{datetime}_{flags}"
        flags = {"x": True}
        self.assertEqual(self.resolve(template, flags), self.resolve(template, flags))

    def test_invalid_characters_from_tokens_are_replaced(self) -> None:
        self.profile.name = "Review/Demo"
        self.assertEqual(self.resolve("{profile}"), "Review_Demo")


class SafeFileNameTests(unittest.TestCase):
    def test_replaces_invalid_characters(self) -> None:
        self.assertEqual(make_safe_file_name('a<b>c:d"e|f?g*h'), "a_b_c_d_e_f_g_h")
        self.assertEqual(make_safe_file_name("  Game 1.0  "), "Game 1.0")

    def test_empty_or_all_invalid_yields_build(self) -> None:
        self.assertEqual(make_safe_file_name(""), "build")
        self.assertEqual(make_safe_file_name("   "), "build")
        self.assertEqual(make_safe_file_name(None), "build")
        self.assertEqual(make_safe_file_name('<>:"/\\|?*'), "build")

    def test_dot_names_never_point_outside_the_folder(self) -> None:
        self.assertEqual(make_safe_file_name("."), "build")
        self.assertEqual(make_safe_file_name(".."), "build")
        self.assertEqual(make_safe_file_name("..."), "build")
        self.assertEqual(make_safe_file_name(" . . "), "build")
        self.assertEqual(make_safe_file_name("<.>"), "build")

    def test_trailing_dots_and_spaces_are_dropped(self) -> None:
        self.assertEqual(make_safe_file_name("Game. "), "Game")
        self.assertEqual(make_safe_file_name("Game_1.0..."), "Game_1.0")
        self.assertEqual(make_safe_file_name(".hidden"), ".hidden")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
