import unittest
from pathlib import Path

from doorprize.config import ROOT_DIR, DrawSettings, load_settings


class LoadSettingsTests(unittest.TestCase):
    def test_defaults_when_environment_is_empty(self) -> None:
        settings = load_settings({})
        self.assertEqual(settings.preview_timeout_seconds, 120)
        self.assertEqual(settings.reel_count, 4)
        self.assertEqual(settings.reel_length, 40)
        self.assertEqual(settings.reel_stagger_ms, 1000)
        self.assertEqual(settings.final_spin_ms, 1000)
        self.assertEqual(settings.exclusivity_policy, "event")
        self.assertEqual(
            Path(settings.database_url[len("sqlite:///"):]),
            (ROOT_DIR / "dev.db").resolve(),
        )

    def test_environment_overrides(self) -> None:
        settings = load_settings(
            {
                "DB_URL": "postgresql+psycopg://draw@localhost/doorprize",
                "DRAW_PREVIEW_TIMEOUT_SECONDS": "30",
                "DRAW_REEL_COUNT": "6",
                "DRAW_REEL_STAGGER_MS": "250",
                "DRAW_EXCLUSIVITY_POLICY": " category ",
            }
        )
        self.assertEqual(settings.database_url, "postgresql+psycopg://draw@localhost/doorprize")
        self.assertEqual(settings.preview_timeout_seconds, 30)
        self.assertEqual(settings.reel_count, 6)
        self.assertEqual(settings.reel_stagger_ms, 250)
        self.assertEqual(settings.exclusivity_policy, "category")

    def test_blank_values_fall_back_to_defaults(self) -> None:
        settings = load_settings({"DRAW_REEL_COUNT": "  "})
        self.assertEqual(settings.reel_count, DrawSettings().reel_count)

    def test_invalid_values_name_the_variable(self) -> None:
        with self.assertRaisesRegex(ValueError, "DRAW_REEL_COUNT"):
            load_settings({"DRAW_REEL_COUNT": "four"})
        with self.assertRaisesRegex(ValueError, "DRAW_PREVIEW_TIMEOUT_SECONDS"):
            load_settings({"DRAW_PREVIEW_TIMEOUT_SECONDS": "0"})
        with self.assertRaisesRegex(ValueError, "DRAW_REEL_STAGGER_MS"):
            load_settings({"DRAW_REEL_STAGGER_MS": "0"})


if __name__ == "__main__":
    unittest.main()
