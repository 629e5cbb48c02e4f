"""Tests for filesystem watcher module."""

import pytest
import time
from pathlib import Path

from watchdog.events import (
    DirCreatedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from src.uploadwatch import fs_watcher
from src.uploadwatch.exceptions import (
    SessionAlreadyActiveError,
    SessionNotActiveError,
    WatchStartError,
)
from src.uploadwatch.fs_watcher import FSEventHandler, WatchSession
from src.uploadwatch.models import EventKind


def wait_for(predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


class TestFSEventHandler:
    """Tests for FSEventHandler class."""

    def test_created(self, tmp_path):
        events = []
        handler = FSEventHandler(events.append)

        handler.dispatch(FileCreatedEvent(str(tmp_path / "a.mp4")))

        assert len(events) == 1
        assert events[0].kind == EventKind.CREATE
        assert events[0].path == tmp_path / "a.mp4"
        assert events[0].is_directory is False

    def test_modified(self, tmp_path):
        events = []
        handler = FSEventHandler(events.append)

        handler.dispatch(FileModifiedEvent(str(tmp_path / "a.mp4")))

        assert events[0].kind == EventKind.WRITE

    def test_moved_uses_destination(self, tmp_path):
        events = []
        handler = FSEventHandler(events.append)

        handler.dispatch(FileMovedEvent(str(tmp_path / "a.mp4.part"), str(tmp_path / "a.mp4")))

        assert events[0].kind == EventKind.RENAME
        assert events[0].path == tmp_path / "a.mp4"

    def test_directory_created(self, tmp_path):
        events = []
        handler = FSEventHandler(events.append)

        handler.dispatch(DirCreatedEvent(str(tmp_path / "sub")))

        assert events[0].kind == EventKind.CREATE
        assert events[0].is_directory is True

    def test_deleted_ignored(self, tmp_path):
        events = []
        handler = FSEventHandler(events.append)

        handler.dispatch(FileDeletedEvent(str(tmp_path / "a.mp4")))

        assert events == []


class TestWatchSession:
    """Tests for WatchSession class."""

    def test_initial_state(self):
        session = WatchSession(lambda e: None)
        assert session.is_active is False
        assert len(session) == 0
        assert session.root is None

    def test_start_non_recursive(self, tmp_path):
        (tmp_path / "sub").mkdir()
        session = WatchSession(lambda e: None)

        session.start(tmp_path, recursive=False)
        try:
            assert session.is_active
            assert len(session) == 1
            assert session.is_watching(tmp_path.resolve())
            assert not session.is_watching((tmp_path / "sub").resolve())
        finally:
            session.stop()

    def test_start_recursive(self, tmp_path):
        (tmp_path / "a" / "b").mkdir(parents=True)
        (tmp_path / "c").mkdir()
        session = WatchSession(lambda e: None)

        session.start(tmp_path, recursive=True)
        try:
            assert len(session) == 4
            assert session.is_watching((tmp_path / "a" / "b").resolve())
        finally:
            session.stop()

    def test_start_missing_path(self, tmp_path):
        session = WatchSession(lambda e: None)

        with pytest.raises(WatchStartError):
            session.start(tmp_path / "missing", recursive=True)

        assert session.is_active is False

    def test_start_on_file(self, tmp_path):
        f = tmp_path / "a.mp4"
        f.write_bytes(b"x")
        session = WatchSession(lambda e: None)

        with pytest.raises(WatchStartError):
            session.start(f, recursive=False)

    def test_start_twice(self, tmp_path):
        session = WatchSession(lambda e: None)
        session.start(tmp_path, recursive=False)
        try:
            with pytest.raises(SessionAlreadyActiveError):
                session.start(tmp_path, recursive=False)
        finally:
            session.stop()

    def test_stop_idempotent(self, tmp_path):
        session = WatchSession(lambda e: None)
        session.start(tmp_path, recursive=False)

        assert session.stop() is True
        assert session.stop() is False
        assert len(session) == 0

    def test_restart_after_stop(self, tmp_path):
        session = WatchSession(lambda e: None)
        session.start(tmp_path, recursive=False)
        session.stop()

        session.start(tmp_path, recursive=False)
        assert session.is_active
        session.stop()

    def test_detects_new_file(self, tmp_path):
        events = []
        session = WatchSession(events.append)
        session.start(tmp_path, recursive=False)
        try:
            target = tmp_path.resolve() / "a.mp4"
            target.write_bytes(b"x" * 10)

            assert wait_for(lambda: any(e.path == target for e in events))
        finally:
            session.stop()

    def test_detects_file_in_subdirectory(self, tmp_path):
        sub = tmp_path / "sub"
        sub.mkdir()
        events = []
        session = WatchSession(events.append)
        session.start(tmp_path, recursive=True)
        try:
            target = sub.resolve() / "a.mp4"
            target.write_bytes(b"x")

            assert wait_for(lambda: any(e.path == target for e in events))
        finally:
            session.stop()

    def test_add_directory(self, tmp_path):
        events = []
        session = WatchSession(events.append)
        session.start(tmp_path, recursive=True)
        try:
            new_dir = tmp_path.resolve() / "new"
            (new_dir / "inner").mkdir(parents=True)

            assert session.add_directory(new_dir) is True
            assert session.add_directory(new_dir) is False
            assert session.is_watching(new_dir / "inner")

            time.sleep(0.3)
            target = new_dir / "inner" / "a.mp4"
            target.write_bytes(b"x")
            assert wait_for(lambda: any(e.path == target for e in events))
        finally:
            session.stop()

    def test_add_directory_non_recursive(self, tmp_path):
        session = WatchSession(lambda e: None)
        session.start(tmp_path, recursive=False)
        try:
            new_dir = tmp_path / "new"
            new_dir.mkdir()
            assert session.add_directory(new_dir) is False
        finally:
            session.stop()

    def test_add_directory_when_stopped(self, tmp_path):
        session = WatchSession(lambda e: None)
        with pytest.raises(SessionNotActiveError):
            session.add_directory(tmp_path)

        session.start(tmp_path, recursive=True)
        session.stop()
        with pytest.raises(SessionNotActiveError):
            session.add_directory(tmp_path)

    def test_deletion_not_forwarded(self, tmp_path):
        target = tmp_path.resolve() / "a.mp4"
        target.write_bytes(b"x")
        events = []
        session = WatchSession(events.append)
        session.start(tmp_path, recursive=False)
        try:
            target.unlink()
            time.sleep(0.5)

            assert not any(e.path == target for e in events)
        finally:
            session.stop()

    def test_no_events_after_stop(self, tmp_path):
        events = []
        session = WatchSession(events.append)
        session.start(tmp_path, recursive=False)
        session.stop()

        (tmp_path / "a.mp4").write_bytes(b"x")
        time.sleep(0.3)

        assert events == []

    def test_large_tree_uses_one_watch(self, tmp_path):
        for i in range(200):
            (tmp_path / f"d{i}").mkdir()
        events = []
        session = WatchSession(events.append)

        session.start(tmp_path, recursive=True)
        try:
            assert len(session) == 201
            assert session.watch_count == 1
            assert session.per_directory is False

            target = tmp_path.resolve() / "d199" / "a.mp4"
            target.write_bytes(b"x")
            assert wait_for(lambda: any(e.path == target for e in events))
        finally:
            session.stop()


def observer_refusing(*names):
    """Observer class whose recursive watches and named directories fail to schedule."""

    class RefusingObserver(fs_watcher.Observer):
        def schedule(self, event_handler, path, recursive=False, **kwargs):
            if recursive or Path(path).name in names:
                raise OSError(f"cannot watch {path}")
            return super().schedule(event_handler, path, recursive=recursive, **kwargs)

    return RefusingObserver


class TestPerDirectoryFallback:
    """Tests for the per-directory watches used when a recursive watch fails."""

    def test_falls_back_when_recursive_refused(self, tmp_path, monkeypatch):
        (tmp_path / "a").mkdir()
        (tmp_path / "b").mkdir()
        monkeypatch.setattr(fs_watcher, "Observer", observer_refusing())
        session = WatchSession(lambda e: None)

        session.start(tmp_path, recursive=True)
        try:
            assert session.per_directory is True
            assert len(session) == 3
            assert session.watch_count == 3
        finally:
            session.stop()

    def test_failing_subdirectory_skipped(self, tmp_path, monkeypatch):
        for name in ("good", "broken", "other"):
            (tmp_path / name).mkdir()
        monkeypatch.setattr(fs_watcher, "Observer", observer_refusing("broken"))
        events = []
        session = WatchSession(events.append)

        session.start(tmp_path, recursive=True)
        try:
            root = tmp_path.resolve()
            assert session.is_active
            assert session.is_watching(root / "good")
            assert session.is_watching(root / "other")
            assert not session.is_watching(root / "broken")
            assert len(session) == 3

            target = root / "other" / "a.mp4"
            target.write_bytes(b"x")
            assert wait_for(lambda: any(e.path == target for e in events))
        finally:
            session.stop()

    def test_failing_new_directory_not_registered(self, tmp_path, monkeypatch):
        monkeypatch.setattr(fs_watcher, "Observer", observer_refusing("broken"))
        session = WatchSession(lambda e: None)
        session.start(tmp_path, recursive=True)
        try:
            broken = tmp_path.resolve() / "broken"
            broken.mkdir()
            assert session.add_directory(broken) is False
            assert not session.is_watching(broken)
        finally:
            session.stop()

    def test_root_refused(self, tmp_path, monkeypatch):
        monkeypatch.setattr(fs_watcher, "Observer", observer_refusing(tmp_path.resolve().name))
        session = WatchSession(lambda e: None)

        with pytest.raises(WatchStartError):
            session.start(tmp_path, recursive=True)

        assert session.is_active is False
