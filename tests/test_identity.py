from database.models import FileCollection
from watcher.identity import resolve_identity, same_file

from conftest import DIR_MODE, make_entry


def test_rename_in_same_directory():
    deleted = FileCollection([make_entry("/r/a.txt", size=10, hash_sum=b"H1")])
    created = FileCollection([make_entry("/r/c.txt", size=10, hash_sum=b"H1")])

    moved, renamed = resolve_identity(deleted, created)

    assert not moved
    assert renamed.get("/r/a.txt").path == "/r/c.txt"
    assert not deleted
    assert not created


def test_move_to_other_directory():
    deleted = FileCollection([make_entry("/r/a.txt", hash_sum=b"H1")])
    created = FileCollection([make_entry("/r/sub/a.txt", hash_sum=b"H1")])

    moved, renamed = resolve_identity(deleted, created)

    assert not renamed
    assert moved.get("/r/a.txt").path == "/r/sub/a.txt"


def test_identity_signal_alone_is_enough():
    deleted = FileCollection([make_entry("/r/a", size=1, hash_sum=b"old", file_id=(5, 99))])
    created = FileCollection([make_entry("/r/b/a", size=2, hash_sum=b"new", file_id=(5, 99))])

    assert same_file(deleted.get("/r/a"), created.get("/r/b/a")) == (True, False)

    moved, renamed = resolve_identity(deleted, created)

    assert list(moved) == ["/r/a"]


def test_missing_hash_never_matches():
    a = make_entry("/r/a", hash_sum=b"")
    b = make_entry("/r/b", hash_sum=b"")

    assert same_file(a, b) == (False, False)


def test_different_size_never_matches_content():
    a = make_entry("/r/a", size=1, hash_sum=b"H")
    b = make_entry("/r/b", size=2, hash_sum=b"H")

    assert same_file(a, b) == (False, False)


def test_directories_compare_metadata():
    a = make_entry("/r/old", size=4096, mode=DIR_MODE, mtime_ns=5)
    b = make_entry("/r/new", size=4096, mode=DIR_MODE, mtime_ns=5)
    c = make_entry("/r/other", size=4096, mode=DIR_MODE, mtime_ns=6)
    f = make_entry("/r/file", size=4096, mtime_ns=5, hash_sum=b"H")

    assert same_file(a, b) == (False, True)
    assert same_file(a, c) == (False, False)
    assert same_file(a, f) == (False, False)


def test_each_entry_paired_once():
    deleted = FileCollection([
        make_entry("/r/a", hash_sum=b"H"),
        make_entry("/r/b", hash_sum=b"H"),
        make_entry("/r/x", hash_sum=b"X"),
    ])
    created = FileCollection([
        make_entry("/r/c", hash_sum=b"H"),
        make_entry("/r/d", hash_sum=b"H"),
        make_entry("/r/y", hash_sum=b"Y"),
    ])

    moved, renamed = resolve_identity(deleted, created)

    # 按路径顺序取第一个匹配
    assert renamed.get("/r/a").path == "/r/c"
    assert renamed.get("/r/b").path == "/r/d"
    assert list(deleted) == ["/r/x"]
    assert list(created) == ["/r/y"]

    paired_targets = {e.path for e in renamed.values()} | {e.path for e in moved.values()}
    assert not set(renamed) & set(deleted)
    assert not paired_targets & set(created)


def test_same_directory_wins_only_by_order():
    deleted = FileCollection([make_entry("/r/a", hash_sum=b"H")])
    created = FileCollection([
        make_entry("/r/a-sub/a", hash_sum=b"H"),
        make_entry("/r/b", hash_sum=b"H"),
    ])

    moved, renamed = resolve_identity(deleted, created)

    assert moved.get("/r/a").path == "/r/a-sub/a"
    assert not renamed
    assert list(created) == ["/r/b"]
