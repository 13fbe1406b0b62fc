import os
import stat

import pytest

from database.models import FileEntry
from database.snapshot_store import HashCacheStore, SnapshotStore
from scanner.hasher import ContentHasher
from watcher.coordinator import RootCoordinator

FILE_MODE = stat.S_IFREG | 0o644
DIR_MODE = stat.S_IFDIR | 0o755
LINK_MODE = stat.S_IFLNK | 0o777


def make_entry(path, size=10, mtime_ns=1_700_000_000_000_000_000, hash_sum=b"",
               mode=FILE_MODE, file_id=None):
    return FileEntry(
        name=os.path.basename(path),
        path=path,
        size=size,
        mode=mode,
        mtime_ns=mtime_ns,
        hash_sum=hash_sum,
        file_id=file_id,
    )


@pytest.fixture
def entry():
    return make_entry


@pytest.fixture
def store():
    return SnapshotStore(timeout=1)


@pytest.fixture
def cache(tmp_path):
    return HashCacheStore(tmp_path / "cache" / "hashing.db", timeout=1)


@pytest.fixture
def hasher(cache):
    return ContentHasher("md5", cache)


@pytest.fixture
def coordinator(store, hasher):
    return RootCoordinator(store, hasher)


@pytest.fixture
def root(tmp_path):
    path = tmp_path / "root"
    path.mkdir()
    return path
