"""
快照数据模型
FileEntry / FileCollection / FileStats / RootSetting
"""
import os
import stat
from datetime import datetime
from typing import Iterable, Iterator, Optional
from dataclasses import dataclass, field


def normalize_path(path: str) -> str:
    """标准化路径作为集合的键（统一分隔符，Windows 下忽略大小写）"""
    return os.path.normcase(os.path.normpath(str(path)))


def format_size(size_bytes: int) -> str:
    """格式化字节数（IEC 单位，如 1.5 MiB）"""
    unit = 1024
    if size_bytes < unit:
        return f"{size_bytes} B"
    div, exp = unit, 0
    n = size_bytes // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size_bytes / div:.1f} {'KMGTPE'[exp]}iB"


@dataclass
class FileStats:
    """快照统计"""
    file_count: int = 0
    dir_count: int = 0
    link_count: int = 0
    total_size: int = 0

    def to_dict(self) -> dict:
        return {
            'file_count': self.file_count,
            'dir_count': self.dir_count,
            'link_count': self.link_count,
            'total_size': self.total_size,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "FileStats":
        data = data or {}
        return cls(
            file_count=int(data.get('file_count', 0)),
            dir_count=int(data.get('dir_count', 0)),
            link_count=int(data.get('link_count', 0)),
            total_size=int(data.get('total_size', 0)),
        )


@dataclass
class FileEntry:
    """
    一次扫描中的单个文件系统对象

    file_id 为 (st_dev, st_ino)，只在本进程内比较使用，不持久化
    """
    name: str
    path: str
    size: int = 0
    mode: int = 0
    mtime_ns: int = 0
    hash_sum: bytes = b""
    file_id: Optional[tuple] = field(default=None, compare=False, repr=False)

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.mode)

    @property
    def is_symlink(self) -> bool:
        return stat.S_ISLNK(self.mode)

    @property
    def has_identity(self) -> bool:
        """是否带有系统级文件标识（设备号 + inode）"""
        return self.file_id is not None

    @property
    def parent(self) -> str:
        return os.path.dirname(self.path)

    def to_dict(self) -> dict:
        """序列化（不含 file_id）"""
        return {
            'name': self.name,
            'path': self.path,
            'size': self.size,
            'mode': self.mode,
            'mtime_ns': self.mtime_ns,
            'hash_sum': self.hash_sum.hex(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileEntry":
        return cls(
            name=data['name'],
            path=data['path'],
            size=int(data.get('size', 0)),
            mode=int(data.get('mode', 0)),
            mtime_ns=int(data.get('mtime_ns', 0)),
            hash_sum=bytes.fromhex(data.get('hash_sum') or ""),
        )


def entry_from_stat(path: str, st: os.stat_result) -> FileEntry:
    """由 lstat 结果构造 FileEntry"""
    file_id = (st.st_dev, st.st_ino) if st.st_ino else None
    return FileEntry(
        name=os.path.basename(path),
        path=str(path),
        size=st.st_size,
        mode=st.st_mode,
        mtime_ns=st.st_mtime_ns,
        file_id=file_id,
    )


class FileCollection:
    """路径 -> FileEntry 的映射，键在写入时标准化"""

    def __init__(self, entries: Iterable[FileEntry] = ()):
        self._entries: dict[str, FileEntry] = {}
        for entry in entries:
            self.put(entry.path, entry)

    def __contains__(self, path) -> bool:
        return normalize_path(path) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __eq__(self, other) -> bool:
        if not isinstance(other, FileCollection):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"FileCollection({len(self._entries)} entries)"

    def get(self, path: str) -> Optional[FileEntry]:
        return self._entries.get(normalize_path(path))

    def put(self, path: str, entry: FileEntry) -> None:
        self._entries[normalize_path(path)] = entry

    def delete(self, path: str) -> None:
        self._entries.pop(normalize_path(path), None)

    def keys(self) -> list[str]:
        return list(self._entries.keys())

    def values(self) -> list[FileEntry]:
        return list(self._entries.values())

    def items(self) -> list[tuple[str, FileEntry]]:
        return list(self._entries.items())

    def merge(self, *others: "FileCollection") -> "FileCollection":
        """把其他集合并入当前集合（后者覆盖前者），返回自身"""
        for other in others:
            for key, entry in other.items():
                self._entries[key] = entry
        return self

    def stats(self) -> FileStats:
        """统计文件数、目录数、链接数和文件总大小"""
        stats = FileStats()
        for entry in self._entries.values():
            if entry.is_dir:
                stats.dir_count += 1
            elif entry.is_symlink:
                stats.link_count += 1
            else:
                stats.file_count += 1
                stats.total_size += entry.size
        return stats


@dataclass
class RootSetting:
    """监控根目录的持久化元数据"""
    root_path: str = ""
    at: Optional[datetime] = None
    hash_algorithm: str = ""
    stats: FileStats = field(default_factory=FileStats)

    def to_dict(self) -> dict:
        return {
            'root_path': self.root_path,
            'at': self.at.isoformat() if self.at else None,
            'hash_algorithm': self.hash_algorithm,
            'stats': self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "RootSetting":
        data = data or {}
        at = data.get('at')
        return cls(
            root_path=data.get('root_path', ""),
            at=datetime.fromisoformat(at) if at else None,
            hash_algorithm=data.get('hash_algorithm', ""),
            stats=FileStats.from_dict(data.get('stats')),
        )
