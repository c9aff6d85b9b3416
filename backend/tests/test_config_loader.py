"""
Tests for the YAML settings loader.
"""
import textwrap

import pytest

from msarchive.config_loader import AppSettings, get_config_path, load_settings


def _write(tmp_path, text):
    path = tmp_path / "settings.yaml"
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


class TestLoadSettings:
    """Test settings.yaml parsing and defaults."""

    def test_missing_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CAPTCHA_MODE", raising=False)
        assert load_settings(tmp_path / "absent.yaml") == AppSettings()

    def test_defaults(self):
        settings = AppSettings()
        assert settings.captcha_mode == "permissive"
        assert settings.allow_self_removal is True
        assert settings.suspect_write_mode == "atomic"
        assert settings.strict_correction_transitions is False
        assert settings.corrections_list_limit == 100

    def test_full_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CAPTCHA_MODE", raising=False)
        path = _write(tmp_path, """
            captcha:
              mode: ENFORCE
              timeout_seconds: 2.5
            admin:
              allow_self_removal: false
              bootstrap_emails:
                - Founder@Example.org
                - ""
            suspects:
              write_mode: best_effort
            corrections:
              strict_transitions: true
              list_limit: 25
        """)
        settings = load_settings(path)
        assert settings.captcha_mode == "enforce"
        assert settings.captcha_timeout_seconds == 2.5
        assert settings.allow_self_removal is False
        assert settings.bootstrap_emails == ["founder@example.org"]
        assert settings.suspect_write_mode == "best_effort"
        assert settings.strict_correction_transitions is True
        assert settings.corrections_list_limit == 25

    def test_environment_overrides_captcha_mode(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CAPTCHA_MODE", "enforce")
        path = _write(tmp_path, "captcha:\n  mode: permissive\n")
        assert load_settings(path).captcha_mode == "enforce"

    @pytest.mark.parametrize("text", [
        "captcha:\n  mode: lenient\n",
        "suspects:\n  write_mode: sometimes\n",
        "admin: [not, a, mapping]\n",
    ])
    def test_invalid_values_rejected(self, tmp_path, monkeypatch, text):
        monkeypatch.delenv("CAPTCHA_MODE", raising=False)
        with pytest.raises(ValueError):
            load_settings(_write(tmp_path, text))

    def test_config_path_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MSARCHIVE_CONFIG", str(tmp_path / "custom.yaml"))
        assert get_config_path() == tmp_path / "custom.yaml"

    def test_shipped_settings_file_loads(self, monkeypatch):
        monkeypatch.delenv("MSARCHIVE_CONFIG", raising=False)
        monkeypatch.delenv("CAPTCHA_MODE", raising=False)
        assert get_config_path().exists()
        assert load_settings().suspect_write_mode == "atomic"
