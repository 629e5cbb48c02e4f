"""Tests for classifier module."""

import pytest
from pathlib import Path

from src.uploadwatch.config import WatcherConfig
from src.uploadwatch.classifier import (
    CATEGORY_EXTENSIONS,
    EventClassifier,
    enabled_categories,
    enabled_extensions,
    is_ignored_folder,
    is_monitored_file,
    is_temporary_artifact,
)


class TestIsTemporaryArtifact:
    """Tests for is_temporary_artifact function."""

    @pytest.mark.parametrize("name", [
        "video.mp4.tmp",
        "notes.txt.tmp",
        "clip.TEMP",
        "movie.mp4.part",
        "movie.mp4.partial",
        "setup.exe.crdownload",
        "~$report.docx",
        ".file.swp",
        "db.lock",
        "UPLOAD.MP4.PART",
    ])
    def test_temporary(self, name):
        assert is_temporary_artifact(Path("/up") / name) is True

    @pytest.mark.parametrize("name", [
        "video.mp4",
        "photo.jpg",
        "report.docx",
        "archive.tar.gz",
    ])
    def test_not_temporary(self, name):
        assert is_temporary_artifact(Path("/up") / name) is False

    def test_marker_in_folder_name_ignored(self):
        assert is_temporary_artifact("/up/.tmp/video.mp4") is False

    def test_accepts_strings(self):
        assert is_temporary_artifact("/up/a.mp4.part") is True


class TestEnabledExtensions:
    """Tests for enabled_extensions function."""

    def test_default_is_video_only(self):
        exts = enabled_extensions(WatcherConfig())
        assert exts == set(CATEGORY_EXTENSIONS["video"])

    def test_multiple_categories(self):
        config = WatcherConfig(video_enabled=False, image_enabled=True, archive_enabled=True)
        exts = enabled_extensions(config)
        assert ".jpg" in exts
        assert ".zip" in exts
        assert ".mp4" not in exts

    def test_all_disabled(self):
        config = WatcherConfig(video_enabled=False)
        assert enabled_extensions(config) == set()

    def test_custom_added(self):
        config = WatcherConfig(video_enabled=False, custom_exts="PSD, .ai")
        assert enabled_extensions(config) == {".psd", ".ai"}

    def test_enabled_categories(self):
        config = WatcherConfig(audio_enabled=True, doc_enabled=True)
        assert enabled_categories(config) == ["video", "audio", "doc"]


class TestIsMonitoredFile:
    """Tests for is_monitored_file function."""

    def test_enabled_extension(self):
        assert is_monitored_file("/up/video.mp4", WatcherConfig()) is True

    def test_case_insensitive(self):
        config = WatcherConfig()
        assert is_monitored_file("/up/video.MP4", config) is True
        assert is_monitored_file("/up/video.mp4", config) is True
        assert is_monitored_file("/up/Video.Mkv", config) is True

    def test_disabled_extension(self):
        assert is_monitored_file("/up/photo.jpg", WatcherConfig()) is False

    def test_no_extension(self):
        assert is_monitored_file("/up/README", WatcherConfig()) is False

    def test_temp_overrides_extension(self):
        config = WatcherConfig(doc_enabled=True)
        assert is_monitored_file("/up/notes.txt", config) is True
        assert is_monitored_file("/up/notes.txt.tmp", config) is False
        assert is_monitored_file("/up/~$notes.txt", config) is False

    def test_temp_rejected_even_when_custom_enabled(self):
        config = WatcherConfig(custom_exts=".tmp")
        assert is_monitored_file("/up/data.tmp", config) is False

    def test_custom_extension(self):
        config = WatcherConfig(video_enabled=False, custom_exts="sketch")
        assert is_monitored_file("/up/design.SKETCH", config) is True

    def test_live_config_change(self):
        config = WatcherConfig()
        assert is_monitored_file("/up/photo.png", config) is False
        config.image_enabled = True
        assert is_monitored_file("/up/photo.png", config) is True


class TestIsIgnoredFolder:
    """Tests for is_ignored_folder function."""

    def test_ignored_parent(self):
        assert is_ignored_folder("/up/node_modules/pkg/video.mp4", WatcherConfig()) is True

    def test_regular_parent(self):
        assert is_ignored_folder("/up/clients/video.mp4", WatcherConfig()) is False

    def test_file_name_not_matched(self):
        assert is_ignored_folder("/up/target", WatcherConfig()) is False

    def test_empty_list(self):
        config = WatcherConfig(ignore_folders=[])
        assert is_ignored_folder("/up/.git/video.mp4", config) is False


class TestEventClassifier:
    """Tests for EventClassifier class."""

    def test_accepts(self):
        classifier = EventClassifier(WatcherConfig())
        assert classifier.accepts("/up/a.mp4") is True
        assert classifier.accepts("/up/a.jpg") is False
        assert classifier.accepts("/up/a.mp4.part") is False
        assert classifier.accepts("/up/.git/a.mp4") is False

    def test_follows_config_changes(self):
        config = WatcherConfig()
        classifier = EventClassifier(config)
        config.video_enabled = False
        assert classifier.accepts("/up/a.mp4") is False
