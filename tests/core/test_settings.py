"""Tests for assetspine.core.settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from assetspine.core.settings import AssetSpineSettings, clear_settings_cache, get_settings


class TestAssetSpineSettings:
    def test_defaults(self):
        settings = AssetSpineSettings()
        assert settings.build_dir_name == "build"
        assert settings.stream_buffer_size == 16
        assert settings.js_compiler_command is None
        assert settings.log_format == "console"
        assert settings.output_root == Path.cwd()

    def test_env_prefix(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ASSETSPINE_OUTPUT_ROOT", str(tmp_path))
        monkeypatch.setenv("ASSETSPINE_STREAM_BUFFER_SIZE", "4")
        monkeypatch.setenv("ASSETSPINE_LOG_FORMAT", "JSON")
        settings = AssetSpineSettings()
        assert settings.output_root == tmp_path
        assert settings.stream_buffer_size == 4
        assert settings.log_format == "json"

    def test_buffer_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            AssetSpineSettings(stream_buffer_size=0)

    def test_rejects_unknown_log_format(self):
        with pytest.raises(ValidationError):
            AssetSpineSettings(log_format="xml")

    def test_js_compiler_argv(self):
        settings = AssetSpineSettings(js_compiler_command="npx babel --env-name '{target}'")
        assert settings.js_compiler_argv() == ["npx", "babel", "--env-name", "{target}"]
        assert AssetSpineSettings().js_compiler_argv() is None


class TestGetSettings:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_clear_cache(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("ASSETSPINE_BUILD_DIR_NAME", "dist")
        clear_settings_cache()
        second = get_settings()
        assert second is not first
        assert second.build_dir_name == "dist"
