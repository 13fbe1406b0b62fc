from datetime import datetime

from database.models import (
    FileCollection, FileStats, RootSetting, entry_from_stat, format_size, normalize_path,
)

from conftest import DIR_MODE, LINK_MODE, make_entry


def test_collection_normalizes_keys():
    files = FileCollection()
    files.put("/data/sub/../a.txt", make_entry("/data/a.txt"))

    assert "/data/a.txt" in files
    assert files.get("/data//a.txt").name == "a.txt"
    assert files.keys() == [normalize_path("/data/a.txt")]

    files.delete("/data/./a.txt")
    assert len(files) == 0
    assert not files


def test_merge_later_collections_win():
    first = FileCollection([make_entry("/r/a", size=1), make_entry("/r/b", size=2)])
    second = FileCollection([make_entry("/r/b", size=20), make_entry("/r/c", size=3)])

    merged = FileCollection().merge(first, second)

    assert sorted(merged.keys()) == sorted(normalize_path(p) for p in ("/r/a", "/r/b", "/r/c"))
    assert merged.get("/r/b").size == 20
    assert len(first) == 2


def test_stats_counts_by_kind():
    files = FileCollection([
        make_entry("/r/a", size=100),
        make_entry("/r/b", size=28),
        make_entry("/r/dir", size=4096, mode=DIR_MODE),
        make_entry("/r/link", size=5, mode=LINK_MODE),
    ])

    assert files.stats() == FileStats(file_count=2, dir_count=1, link_count=1, total_size=128)


def test_entry_serialization_drops_identity():
    original = make_entry("/r/a.txt", hash_sum=b"\x01\x02", file_id=(1, 2))

    data = original.to_dict()
    restored = type(original).from_dict(data)

    assert "file_id" not in data
    assert data["hash_sum"] == "0102"
    assert restored == original
    assert not restored.has_identity


def test_entry_from_stat(tmp_path):
    path = tmp_path / "f.bin"
    path.write_bytes(b"12345")

    entry = entry_from_stat(str(path), path.stat())

    assert entry.name == "f.bin"
    assert entry.size == 5
    assert not entry.is_dir
    assert entry.has_identity
    assert entry.hash_sum == b""


def test_root_setting_round_trip():
    setting = RootSetting(
        root_path="/r",
        at=datetime(2024, 5, 1, 12, 30),
        hash_algorithm="sha256",
        stats=FileStats(file_count=3, total_size=10),
    )

    assert RootSetting.from_dict(setting.to_dict()) == setting
    assert RootSetting.from_dict(None) == RootSetting()


def test_format_size():
    assert format_size(0) == "0 B"
    assert format_size(1023) == "1023 B"
    assert format_size(1024) == "1.0 KiB"
    assert format_size(1536) == "1.5 KiB"
    assert format_size(5 * 1024 ** 3) == "5.0 GiB"
