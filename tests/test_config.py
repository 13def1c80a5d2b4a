from pathlib import Path

import pytest

from config import ConfigurationManager, get_config


class TestConfigurationManager:

    def test_singleton(self):
        assert ConfigurationManager() is ConfigurationManager()

    def test_dot_notation_lookup(self):
        assert get_config("extraction.provider") == "gemini"
        assert get_config("extraction.fallback_provider") == "openrouter"
        assert get_config("extraction.max_output_tokens") == 256

    def test_missing_key_returns_default(self):
        assert get_config("extraction.nothing.here", "fallback") == "fallback"
        assert get_config("extraction.provider.deeper") is None

    def test_relative_paths_resolved_against_project_root(self):
        test_images = Path(get_config("paths.test_images"))
        assert test_images.is_absolute()
        assert test_images.parts[-2:] == ("data", "test-images")

    def test_config_file_from_environment(self, tmp_path, monkeypatch):
        custom = tmp_path / "custom.yaml"
        custom.write_text("extraction:\n  provider: openrouter\n", encoding="utf-8")
        monkeypatch.setenv("VOUCHER_OCR_CONFIG", str(custom))
        ConfigurationManager.reset()

        assert get_config("extraction.provider") == "openrouter"
        assert get_config("classification.accept_defaulted_expiry", False) is False

    def test_empty_file_gives_empty_config(self, tmp_path):
        empty = tmp_path / "empty.yaml"
        empty.write_text("", encoding="utf-8")

        config = ConfigurationManager(str(empty))
        assert config.get_all() == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigurationManager(str(tmp_path / "absent.yaml"))

    def test_reload_picks_up_changes(self, tmp_path):
        custom = tmp_path / "settings.yaml"
        custom.write_text("evaluation:\n  max_workers: 2\n", encoding="utf-8")
        config = ConfigurationManager(str(custom))
        assert config.get("evaluation.max_workers") == 2

        custom.write_text("evaluation:\n  max_workers: 4\n", encoding="utf-8")
        config.reload()
        assert config.get("evaluation.max_workers") == 4

    def test_scalar_override_from_environment(self, monkeypatch):
        monkeypatch.setenv("VOUCHER_OCR__EXTRACTION__PROVIDER", "openrouter")
        monkeypatch.setenv("VOUCHER_OCR__EVALUATION__MAX_WORKERS", "2")
        monkeypatch.setenv("VOUCHER_OCR__CLASSIFICATION__ACCEPT_DEFAULTED_EXPIRY", "true")

        assert get_config("extraction.provider") == "openrouter"
        assert get_config("evaluation.max_workers") == 2
        assert get_config("classification.accept_defaulted_expiry") is True
        # untouched siblings survive
        assert get_config("extraction.fallback_provider") == "openrouter"
        assert get_config("evaluation.report_format") == "json"

    def test_override_creates_missing_sections(self, monkeypatch):
        monkeypatch.setenv("VOUCHER_OCR__EXPERIMENTS__SHADOW__ENABLED", "yes")
        assert get_config("experiments.shadow.enabled") is True

    def test_section_returns_copy(self):
        config = ConfigurationManager()
        classification = config.section("classification")
        classification["accept_defaulted_expiry"] = True

        assert config.get("classification.accept_defaulted_expiry") is False
        assert config.section("no_such_section") == {}
        assert config.section("extraction.provider") == {}
