"""Tests for config module."""

import pytest

from src.uploadwatch.config import (
    WatcherConfig,
    MIN_COMPLETION_TIMEOUT,
    DEFAULT_COMPLETION_TIMEOUT,
)


class TestWatcherConfig:
    """Tests for WatcherConfig class."""

    def test_default_values(self):
        config = WatcherConfig()
        assert config.video_enabled is True
        assert config.image_enabled is False
        assert config.audio_enabled is False
        assert config.doc_enabled is False
        assert config.archive_enabled is False
        assert config.custom_exts == ""
        assert config.monitor_subdirs is True
        assert config.completion_timeout == 30
        assert config.notify_on_start is True
        assert config.notify_on_complete is True
        assert config.save_history is True
        assert config.max_history == 100

    def test_custom_values(self):
        config = WatcherConfig(
            image_enabled=True,
            completion_timeout=45,
            monitor_subdirs=False,
        )
        assert config.image_enabled is True
        assert config.completion_timeout == 45
        assert config.monitor_subdirs is False

    def test_ignore_folders_default(self):
        config = WatcherConfig()
        assert "node_modules" in config.ignore_folders
        assert ".git" in config.ignore_folders
        assert "__pycache__" in config.ignore_folders


class TestCustomExtensions:
    """Tests for custom extension normalization."""

    def test_empty(self):
        assert WatcherConfig().custom_extensions() == []

    def test_comma_separated_string(self):
        config = WatcherConfig(custom_exts=" .PSD, ai ,,sketch ")
        assert config.custom_extensions() == [".psd", ".ai", ".sketch"]

    def test_list(self):
        config = WatcherConfig(custom_exts=["RAW", " .Dng "])
        assert config.custom_extensions() == [".raw", ".dng"]

    def test_blank_entries_dropped(self):
        config = WatcherConfig(custom_exts=" , ,")
        assert config.custom_extensions() == []


class TestEffectiveTimeout:
    """Tests for completion timeout clamping."""

    def test_value_above_floor_kept(self):
        assert WatcherConfig(completion_timeout=45).effective_completion_timeout() == 45.0

    def test_floor_itself_kept(self):
        config = WatcherConfig(completion_timeout=MIN_COMPLETION_TIMEOUT)
        assert config.effective_completion_timeout() == float(MIN_COMPLETION_TIMEOUT)

    @pytest.mark.parametrize("timeout", [0, 1, 5, 9, -3])
    def test_below_floor_replaced_by_default(self, timeout):
        config = WatcherConfig(completion_timeout=timeout)
        assert config.effective_completion_timeout() == float(DEFAULT_COMPLETION_TIMEOUT)

    def test_lowered_floor(self):
        config = WatcherConfig(completion_timeout=5, min_completion_timeout=1)
        assert config.effective_completion_timeout() == 5.0


class TestSerialization:
    """Tests for to_dict/from_dict."""

    def test_to_dict_contains_fields(self):
        data = WatcherConfig(audio_enabled=True).to_dict()
        assert data["audio_enabled"] is True
        assert data["completion_timeout"] == 30
        assert isinstance(data["ignore_folders"], list)

    def test_to_dict_copies_lists(self):
        config = WatcherConfig()
        data = config.to_dict()
        data["ignore_folders"].append("extra")
        assert "extra" not in config.ignore_folders

    def test_from_dict(self):
        config = WatcherConfig.from_dict({"doc_enabled": True, "completion_timeout": 60})
        assert config.doc_enabled is True
        assert config.completion_timeout == 60
        assert config.video_enabled is True

    def test_from_dict_ignores_unknown_keys(self):
        config = WatcherConfig.from_dict({"sound_enabled": False, "auto_start": True})
        assert config == WatcherConfig(case_insensitive_folders=config.case_insensitive_folders)
