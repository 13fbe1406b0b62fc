"""
文件内容哈希模块
计算文件摘要，并通过全局哈希缓存避免重复读取未变化的文件
"""
import hashlib
import zlib
from typing import Optional

from PySide6.QtCore import QObject, Signal

from database.errors import SnapshotError
from database.models import FileCollection, FileEntry, format_size
from database.snapshot_store import HashCacheStore
from logger import get_logger

logger = get_logger("hasher")

# 每次读取的块大小
BLOCK_SIZE = 1024 * 1024


class _Crc32:
    """zlib.crc32 的 hashlib 风格包装（大端 4 字节摘要）"""

    name = "crc32"

    def __init__(self):
        self._value = 0

    def update(self, data: bytes) -> None:
        self._value = zlib.crc32(data, self._value)

    def digest(self) -> bytes:
        return self._value.to_bytes(4, "big")


_FACTORIES = {
    "md5": hashlib.md5,
    "sha1": hashlib.sha1,
    "sha256": hashlib.sha256,
    "sha512": hashlib.sha512,
    "crc32": _Crc32,
}


def new_hasher(algorithm: str):
    """
    创建一个新的哈希对象，每次调用都是独立实例，可在多线程下使用

    Raises:
        ValueError: 不支持的算法
    """
    try:
        return _FACTORIES[algorithm.lower()]()
    except KeyError:
        raise ValueError(f"不支持的哈希算法: {algorithm}") from None


def hash_file(path: str, algorithm: str) -> bytes:
    """
    流式读取整个文件并计算摘要

    Raises:
        OSError: 文件无法读取
    """
    digest = new_hasher(algorithm)
    with open(path, 'rb') as f:
        while True:
            chunk = f.read(BLOCK_SIZE)
            if not chunk:
                break
            digest.update(chunk)
    return digest.digest()


def _same_fingerprint(cached: FileEntry, current: FileEntry) -> bool:
    """缓存记录与当前文件的权限、修改时间、大小都一致"""
    return (
        cached.mode == current.mode
        and cached.mtime_ns == current.mtime_ns
        and cached.size == current.size
    )


class ContentHasher(QObject):
    """内容哈希计算器"""

    # (root, 已处理字节, 总字节)
    progress = Signal(str, object, object)

    def __init__(self, algorithm: str = "md5", cache: Optional[HashCacheStore] = None,
                 flush_every: int = 100):
        """
        Args:
            algorithm: 哈希算法，进程启动时确定
            cache: 哈希缓存，None 表示每次都重新计算
            flush_every: 每新计算多少个哈希写一次缓存
        """
        super().__init__()
        new_hasher(algorithm)  # 提前校验算法名
        self.algorithm = algorithm.lower()
        self.cache = cache
        self.flush_every = max(1, flush_every)

    def hash_and_cache(self, root: str, entries: FileCollection) -> int:
        """
        为缺少哈希的普通文件计算哈希（原地写入 hash_sum）

        目录和符号链接不计算哈希（不跟随链接读取目标）

        单个文件读取失败只记录日志，该条目 hash_sum 保持为空

        Returns:
            新计算（非缓存复用）的哈希数量
        """
        targets = sorted(
            (e for e in entries.values()
             if not e.is_dir and not e.is_symlink and not e.hash_sum),
            key=lambda e: e.path
        )
        if not targets:
            return 0

        total_size = sum(e.size for e in targets)
        cached = self._read_cache(root, [e.path for e in targets])

        pending = FileCollection()
        hashed_size = 0
        computed = 0

        for entry in targets:
            hit = cached.get(entry.path) if cached is not None else None
            if hit is not None and hit.hash_sum and _same_fingerprint(hit, entry):
                entry.hash_sum = hit.hash_sum
            else:
                try:
                    entry.hash_sum = hash_file(entry.path, self.algorithm)
                except OSError as e:
                    logger.error(f"计算哈希失败: {entry.path} - {e}")
                else:
                    computed += 1
                    pending.put(entry.path, entry)

            hashed_size += entry.size
            self.progress.emit(root, hashed_size, total_size)

            if len(pending) >= self.flush_every:
                self._flush(root, pending)
                pending = FileCollection()
                self._log_progress(root, hashed_size, total_size)

        self._flush(root, pending)
        self._log_progress(root, hashed_size, total_size)
        return computed

    def _read_cache(self, root: str, paths: list[str]) -> Optional[FileCollection]:
        if self.cache is None:
            return None
        try:
            return self.cache.read(root, paths, self.algorithm)
        except SnapshotError as e:
            logger.warning(f"哈希缓存不可用，将全部重新计算: {e}")
            return None

    def _flush(self, root: str, pending: FileCollection) -> None:
        if self.cache is None or not pending:
            return
        try:
            self.cache.write(root, pending, self.algorithm)
        except SnapshotError as e:
            logger.warning(f"写入哈希缓存失败: {e}")

    @staticmethod
    def _log_progress(root: str, done: int, total: int) -> None:
        percent = done / total * 100 if total else 100.0
        logger.info(
            f"计算哈希 \"{root}\": {percent:.2f}% ({format_size(done)}/{format_size(total)})"
        )
