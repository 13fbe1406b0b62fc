import os

import pytest

from database.snapshot_store import DB_FILE
from scanner.file_scanner import FileScanner, is_hidden
from scanner.ignore import IgnoreMatcher


@pytest.fixture
def tree(root):
    (root / "docs").mkdir()
    (root / "docs" / "readme.md").write_text("hi")
    (root / "build").mkdir()
    (root / "build" / "out.o").write_bytes(b"\0")
    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref")
    (root / ".env").write_text("x=1")
    (root / "a.txt").write_text("a")
    (root / "tmp.tmp").write_text("t")
    (root / DB_FILE).write_bytes(b"")
    return root


def _names(files, root):
    return sorted(os.path.relpath(p, root) for p in files)


def test_recursive_listing_excludes_root_and_hidden(tree):
    files = FileScanner().list_files(str(tree), ignore=IgnoreMatcher())

    assert _names(files, tree) == [
        "a.txt", "build", os.path.join("build", "out.o"),
        "docs", os.path.join("docs", "readme.md"), "tmp.tmp",
    ]
    assert str(tree) not in files
    assert files.get(str(tree / "docs")).is_dir


def test_ignored_directory_is_pruned(tree):
    files = FileScanner().list_files(
        str(tree), ignore=IgnoreMatcher(["build/", "*.tmp"]), include_hidden=True
    )

    names = _names(files, tree)
    assert "build" not in names
    assert os.path.join("build", "out.o") not in names
    assert "tmp.tmp" not in names
    assert DB_FILE not in names
    assert os.path.join(".git", "HEAD") in names
    assert ".env" in names


def test_non_recursive_lists_direct_children(tree):
    files = FileScanner().list_files(str(tree), recursive=False, ignore=IgnoreMatcher())

    assert _names(files, tree) == ["a.txt", "build", "docs", "tmp.tmp"]


def test_entries_carry_identity(tree):
    files = FileScanner().list_files(str(tree))

    assert all(e.has_identity for e in files.values())
    assert all(e.hash_sum == b"" for e in files.values())


def test_symlink_classified_not_followed(tree):
    os.symlink(tree / "docs", tree / "docs-link")

    files = FileScanner().list_files(str(tree))

    link = files.get(str(tree / "docs-link"))
    assert link.is_symlink
    assert str(tree / "docs-link" / "readme.md") not in files


def test_missing_root_raises(tmp_path):
    with pytest.raises(OSError):
        FileScanner().list_files(str(tmp_path / "nope"))


def test_unreadable_entry_reported(tree, monkeypatch):
    scanner = FileScanner()
    messages = []
    scanner.error.connect(messages.append)
    real_lstat = os.lstat

    def flaky_lstat(path, *args, **kwargs):
        if str(path).endswith("a.txt"):
            raise PermissionError("denied")
        return real_lstat(path, *args, **kwargs)

    monkeypatch.setattr(os, "lstat", flaky_lstat)

    files = scanner.list_files(str(tree))

    assert str(tree / "a.txt") not in files
    assert len(messages) == 1


def test_ignore_matcher_rules():
    matcher = IgnoreMatcher(["*.log", "cache/", "!keep.log"])

    assert matcher.matches("x.log")
    assert not matcher.matches("keep.log")
    assert matcher.matches("cache", is_dir=True)
    assert not matcher.matches("cache")
    assert matcher.matches(DB_FILE)
    assert matcher.matches(f"{DB_FILE}-journal")
    assert not matcher.matches("a.txt")


def test_is_hidden():
    assert is_hidden(".env")
    assert not is_hidden("env")
