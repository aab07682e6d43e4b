"""Tests for settings loading."""
from pathlib import Path

import pytest
from pydantic import ValidationError

from wilson.config import WilsonSettings, load_settings
from wilson.core.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's environment and home directory out of these tests."""
    for name in (
        "WILSON_SETTINGS",
        "WILSON_API_URL",
        "WILSON_MAX_PARALLEL_TOOLS",
        "WILSON_RETRY__MAX_RETRIES",
        "WILSON_ACCESS_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)


class TestWilsonSettings:
    """Tests for defaults and environment overrides."""

    def test_defaults(self) -> None:
        settings = WilsonSettings()
        assert settings.api_url == "http://localhost:54321"
        assert settings.max_parallel_tools == 8
        assert settings.file_read_ttl_seconds == 30.0
        assert settings.max_loop_depth == 500
        assert settings.history_limit == 20
        assert settings.skip_permissions is False
        assert settings.retry.max_retries == 3

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WILSON_API_URL", "https://api.example.com")
        monkeypatch.setenv("WILSON_MAX_PARALLEL_TOOLS", "4")
        monkeypatch.setenv("WILSON_RETRY__MAX_RETRIES", "1")
        settings = WilsonSettings()
        assert settings.api_url == "https://api.example.com"
        assert settings.max_parallel_tools == 4
        assert settings.retry.max_retries == 1

    def test_invalid_parallelism_rejected(self) -> None:
        with pytest.raises(ValidationError):
            WilsonSettings(max_parallel_tools=0)


class TestLoadSettings:
    """Tests for load_settings resolution."""

    def test_missing_default_file_uses_defaults(self) -> None:
        assert load_settings() == WilsonSettings()

    def test_reads_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("api_url: https://yaml.example.com\nhistory_limit: 5\nretry:\n  max_retries: 0\n")
        settings = load_settings(path)
        assert settings.api_url == "https://yaml.example.com"
        assert settings.history_limit == 5
        assert settings.retry.max_retries == 0

    def test_env_wins_over_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("api_url: https://yaml.example.com\n")
        monkeypatch.setenv("WILSON_API_URL", "https://env.example.com")
        assert load_settings(path).api_url == "https://env.example.com"

    def test_settings_env_variable(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "custom.yaml"
        path.write_text("store_id: store-9\n")
        monkeypatch.setenv("WILSON_SETTINGS", str(path))
        assert load_settings().store_id == "store-9"

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            load_settings(tmp_path / "absent.yaml")

    def test_non_mapping_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            load_settings(path)

    def test_empty_yaml_uses_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("")
        assert load_settings(path).api_url == "http://localhost:54321"
