import os

import pytest

from database.snapshot_store import DB_FILE
from scanner.ignore import IgnoreMatcher
from watcher import FileWatcherManager, Op, SnapshotPoller, WatchOption


@pytest.fixture
def manager(coordinator):
    return FileWatcherManager(coordinator)


def test_add_rejects_missing_and_non_directory(manager, tmp_path):
    with pytest.raises(FileNotFoundError):
        manager.add(str(tmp_path / "nope"))

    path = tmp_path / "file.txt"
    path.write_text("x")
    with pytest.raises(NotADirectoryError):
        manager.add(str(path))

    assert manager.roots == []


def test_watch_reports_changes_and_emits(manager, root):
    (root / "a.txt").write_text("a")
    manager.add(str(root))
    emitted = []
    manager.changes_detected.connect(lambda r, events: emitted.append((r, events)))

    results = manager.watch()

    assert list(results) == [str(root)]
    assert list(results[str(root)].created) == [str(root / "a.txt")]
    assert len(emitted) == 1
    assert [e.op for e in emitted[0][1]] == [Op.CREATE]


def test_snapshot_database_never_reported(manager, root):
    (root / "a.txt").write_text("a")
    option = WatchOption(ignore_hidden=False, ignore=IgnoreMatcher())
    manager.add(str(root), option)
    manager.watch()
    assert (root / DB_FILE).exists()

    results = manager.watch()

    assert not results[str(root)].has_changes


def test_events_filtered_by_actions(manager, root):
    (root / "a.txt").write_text("a")
    (root / "b.txt").write_text("b")
    manager.add(str(root), WatchOption(op=Op.parse(["remove"])))
    manager.watch()
    emitted = []
    manager.changes_detected.connect(lambda r, events: emitted.append(events))

    (root / "c.txt").write_text("new content")
    os.remove(root / "a.txt")
    results = manager.watch()

    assert len(results[str(root)].created) == 1
    assert len(emitted) == 1
    assert [(e.op, e.path) for e in emitted[0]] == [(Op.REMOVE, str(root / "a.txt"))]


def test_failed_root_does_not_stop_others(manager, tmp_path, root):
    other = tmp_path / "other"
    other.mkdir()
    (root / "a.txt").write_text("a")
    (other / "b.txt").write_text("b")
    manager.add(str(root))
    manager.add(str(other))

    os.rename(other, tmp_path / "gone")
    results = manager.watch()

    assert list(results) == [str(root)]


def test_parallel_roots(coordinator, tmp_path):
    manager = FileWatcherManager(coordinator, max_workers=4)
    roots = []
    for i in range(3):
        path = tmp_path / f"r{i}"
        path.mkdir()
        (path / "f.txt").write_text(str(i))
        roots.append(manager.add(str(path)))

    results = manager.watch()

    assert sorted(results) == sorted(roots)
    assert all(len(c.created) == 1 for c in results.values())


def test_remove_root(manager, root):
    manager.add(str(root))

    assert manager.remove(str(root))
    assert not manager.remove(str(root))
    assert manager.watch() == {}


def test_poller_runs_one_cycle(manager, root):
    (root / "a.txt").write_text("a")
    manager.add(str(root))
    poller = SnapshotPoller(manager)
    cycles = []
    poller.cycle_finished.connect(cycles.append)

    results = poller.poll()

    assert not poller.is_running()
    assert len(cycles) == 1
    assert results[str(root)].has_changes
