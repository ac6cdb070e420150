"""
Tests for config loading and validation.
"""

import yaml

from willhaben_cli.config import Config, UserConfig, config_file, next_in_cycle
from willhaben_cli.config import willhaben_home as home_dir


class TestUserConfig:
    def test_defaults(self):
        settings = UserConfig()
        assert settings.ascii_width == "auto"
        assert settings.ascii_contrast == "rotate"
        assert settings.preferred_location is None
        assert settings.cookies == ""

    def test_invalid_values_fall_back(self):
        settings = UserConfig(ascii_width=333, ascii_contrast="blinding", preferred_location=42)
        assert settings.ascii_width == "auto"
        assert settings.ascii_contrast == "rotate"
        assert settings.preferred_location is None

    def test_numeric_strings(self):
        settings = UserConfig(ascii_width="100", preferred_location="900")
        assert settings.ascii_width == 100
        assert settings.preferred_location == 900
        assert settings.location_name == "Wien"

    def test_contrast_case_insensitive(self):
        assert UserConfig(ascii_contrast=" HIGH ").ascii_contrast == "high"


class TestConfig:
    def test_home_override(self, willhaben_home):
        assert home_dir() == willhaben_home
        assert config_file() == willhaben_home / "config.yaml"

    def test_missing_file(self):
        assert Config().get() == UserConfig()

    def test_reads_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"ascii_width": 120, "ascii_contrast": "low", "unknown": 1}))
        settings = Config(path).get()
        assert settings.ascii_width == 120
        assert settings.ascii_contrast == "low"

    def test_broken_yaml(self, tmp_path, capsys):
        path = tmp_path / "config.yaml"
        path.write_text("ascii_width: [unclosed")
        assert Config(path).get() == UserConfig()
        assert "Could not read" in capsys.readouterr().err

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"ascii_contrast": "low"}))
        monkeypatch.setenv("WILLHABEN_ASCII_CONTRAST", "high")
        monkeypatch.setenv("WILLHABEN_COOKIES", "session=abc")
        settings = Config(path).get()
        assert settings.ascii_contrast == "high"
        assert settings.cookies == "session=abc"

    def test_set_persists(self, tmp_path):
        path = tmp_path / "config.yaml"
        config = Config(path)
        updated = config.set(ascii_width=80)
        assert updated.ascii_width == 80
        assert Config(path).get().ascii_width == 80

    def test_set_validates(self, tmp_path):
        config = Config(tmp_path / "config.yaml")
        assert config.set(ascii_contrast="nope").ascii_contrast == "rotate"

    def test_env_cookies_not_written(self, tmp_path, monkeypatch):
        monkeypatch.setenv("WILLHABEN_COOKIES", "session=secret")
        path = tmp_path / "config.yaml"
        Config(path).set(ascii_width=100)
        assert "secret" not in path.read_text()


class TestNextInCycle:
    def test_wraps(self):
        assert next_in_cycle((80, 100, 120, "auto"), "auto") == 80

    def test_unknown_starts_over(self):
        assert next_in_cycle(("low", "high"), "medium") == "low"
