"""
SnapWatch - 目录快照变化监控

快照存储模块 - 使用 SQLite 保存每个监控根目录的文件快照，
以及全局共享的哈希缓存
"""
import json
import sqlite3
from datetime import datetime
from pathlib import Path
from contextlib import contextmanager
from typing import Iterable, Iterator

from logger import get_logger
from .models import FileCollection, FileEntry, RootSetting, normalize_path
from .errors import ErrorCollector, StoreUnavailableError

logger = get_logger("database")

# 每个根目录下的快照文件名
DB_FILE = ".watch.db"

# SQLite 单条语句的参数个数上限较低，IN 查询需分组
_IN_QUERY_SIZE = 500


def _chunked(items: list, size: int) -> Iterator[list]:
    """按 size 切分列表"""
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _serialize(entries: Iterable[tuple[str, FileEntry]]) -> list[tuple[str, str]]:
    """序列化为 (key, json) 行，序列化失败的记录直接跳过"""
    rows = []
    for key, entry in entries:
        if entry is None:
            continue
        try:
            rows.append((key, json.dumps(entry.to_dict(), ensure_ascii=False)))
        except (TypeError, ValueError, AttributeError) as e:
            logger.debug(f"序列化失败，跳过: {key} - {e}")
    return rows


def _deserialize(value: str) -> FileEntry | None:
    try:
        return FileEntry.from_dict(json.loads(value))
    except (TypeError, ValueError, KeyError) as e:
        logger.debug(f"反序列化失败，跳过记录: {e}")
        return None


@contextmanager
def _open_database(db_path: Path, timeout: float, schema: list[str]):
    """
    打开数据库连接并确保表结构存在

    timeout 为其他进程持有写锁时的最长等待时间，超时抛出 StoreUnavailableError。
    事务由调用方用 ``with conn:`` 控制，每个 with 块为一次原子提交。
    """
    try:
        conn = sqlite3.connect(str(db_path), timeout=timeout)
    except sqlite3.Error as e:
        raise StoreUnavailableError(f"无法打开数据库 {db_path}: {e}") from e

    try:
        try:
            # 网络文件系统不支持 WAL，保持默认的回滚日志
            conn.execute("PRAGMA synchronous=NORMAL")
            with conn:
                for statement in schema:
                    conn.execute(statement)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"无法初始化数据库 {db_path}: {e}") from e
        yield conn
    finally:
        conn.close()


class SnapshotStore:
    """
    根目录快照存储

    每个根目录一个数据库文件（<root>/.watch.db），包含两个命名空间：
    setting 表保存 RootSetting，files 表按 (root, path) 保存 FileEntry；
    两者都以根目录路径为命名空间，目录被重新挂载到其他路径后不会读到旧路径的记录
    """

    SCHEMA = [
        """
        CREATE TABLE IF NOT EXISTS setting (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS files (
            root TEXT NOT NULL,
            path TEXT NOT NULL,
            value TEXT NOT NULL,
            PRIMARY KEY (root, path)
        )
        """,
    ]

    def __init__(self, timeout: float = 5.0, chunk_size: int = 1000):
        """
        Args:
            timeout: 数据库被锁定时的最长等待(秒)
            chunk_size: 保存时每个事务写入的记录数
        """
        self.timeout = timeout
        self.chunk_size = chunk_size

    def db_path(self, root: str) -> Path:
        return Path(root) / DB_FILE

    def load(self, root: str) -> tuple[RootSetting, FileCollection]:
        """
        读取根目录的历史快照

        数据库不存在时返回空快照（首次运行）。

        Raises:
            StoreUnavailableError: 数据库存在但无法打开
        """
        db_path = self.db_path(root)
        if not db_path.exists():
            logger.debug(f"没有历史快照: {db_path}")
            return RootSetting(), FileCollection()

        entries = FileCollection()
        setting = RootSetting()
        with _open_database(db_path, self.timeout, self.SCHEMA) as conn:
            try:
                row = conn.execute(
                    "SELECT value FROM setting WHERE key = ?", (normalize_path(root),)
                ).fetchone()
                if row:
                    setting = RootSetting.from_dict(json.loads(row[0]))

                cursor = conn.execute(
                    "SELECT path, value FROM files WHERE root = ?", (normalize_path(root),)
                )
                for path, value in cursor:
                    entry = _deserialize(value)
                    if entry is not None:
                        entries.put(path, entry)
            except (sqlite3.Error, ValueError) as e:
                raise StoreUnavailableError(f"读取快照失败 {db_path}: {e}") from e

        logger.info(f"已加载快照: {db_path} ({len(entries)} 条)")
        return setting, entries

    def save(self, root: str, setting: RootSetting, entries: FileCollection) -> int:
        """
        全量替换保存快照

        先清空该根目录的全部记录，再按 chunk_size 分块写入，每块一个事务；
        某块失败不影响后续块，所有错误在最后统一抛出

        Returns:
            实际写入的记录数

        Raises:
            StoreUnavailableError: 数据库无法打开或无法清空旧快照
            BatchWriteError: 部分块写入失败
        """
        db_path = self.db_path(root)
        root_key = normalize_path(root)
        errors = ErrorCollector()
        written = 0

        with _open_database(db_path, self.timeout, self.SCHEMA) as conn:
            try:
                with conn:
                    conn.execute("DELETE FROM files WHERE root = ?", (root_key,))
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"清空旧快照失败 {db_path}: {e}") from e

            items = sorted(entries.items())
            for chunk in _chunked(items, self.chunk_size):
                rows = [(root_key, path, value) for path, value in _serialize(chunk)]
                try:
                    with conn:
                        conn.executemany(
                            "INSERT OR REPLACE INTO files (root, path, value) VALUES (?, ?, ?)", rows
                        )
                    written += len(rows)
                except sqlite3.Error as e:
                    errors.append(e)
                logger.debug(f"已写入 {written}/{len(items)} 条文件信息到 {db_path}")

            try:
                with conn:
                    conn.execute(
                        "INSERT OR REPLACE INTO setting (key, value) VALUES (?, ?)",
                        (root_key, json.dumps(setting.to_dict(), ensure_ascii=False))
                    )
            except sqlite3.Error as e:
                errors.append(e)

        logger.info(f"已保存 {written}/{len(entries)} 条文件信息到 {db_path}")
        errors.raise_if_any(f"保存快照失败 {db_path}")
        return written


class HashCacheStore:
    """
    全局哈希缓存

    所有根目录共用一个数据库，以 (root, path) 为键，
    只做增量写入，不会删除其他记录；可随时删除该文件
    """

    SCHEMA = [
        """
        CREATE TABLE IF NOT EXISTS hashes (
            root TEXT NOT NULL,
            path TEXT NOT NULL,
            algorithm TEXT NOT NULL,
            value TEXT NOT NULL,
            updated_at TEXT,
            PRIMARY KEY (root, path)
        )
        """,
    ]

    def __init__(self, db_path: str | Path, timeout: float = 5.0, chunk_size: int = 1000):
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.chunk_size = chunk_size

    @contextmanager
    def _get_connection(self):
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreUnavailableError(f"无法创建缓存目录 {self.db_path.parent}: {e}") from e
        with _open_database(self.db_path, self.timeout, self.SCHEMA) as conn:
            yield conn

    def read(self, root: str, paths: Iterable[str], algorithm: str) -> FileCollection:
        """
        按路径读取缓存记录，只返回与 algorithm 相同算法计算的记录

        Raises:
            StoreUnavailableError: 缓存数据库无法打开
        """
        root_key = normalize_path(root)
        keys = [normalize_path(p) for p in paths]
        cached = FileCollection()
        if not keys:
            return cached

        with self._get_connection() as conn:
            try:
                for group in _chunked(keys, _IN_QUERY_SIZE):
                    placeholders = ",".join("?" * len(group))
                    cursor = conn.execute(
                        f"SELECT path, value FROM hashes "
                        f"WHERE root = ? AND algorithm = ? AND path IN ({placeholders})",
                        [root_key, algorithm, *group]
                    )
                    for path, value in cursor:
                        entry = _deserialize(value)
                        if entry is not None:
                            cached.put(path, entry)
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"读取哈希缓存失败: {e}") from e
        return cached

    def write(self, root: str, entries: FileCollection, algorithm: str) -> int:
        """
        增量写入缓存记录

        Returns:
            写入的记录数

        Raises:
            StoreUnavailableError: 缓存数据库无法打开
            BatchWriteError: 部分块写入失败
        """
        if not entries:
            return 0

        root_key = normalize_path(root)
        now = datetime.now().isoformat()
        errors = ErrorCollector()
        written = 0

        with self._get_connection() as conn:
            for chunk in _chunked(sorted(entries.items()), self.chunk_size):
                rows = [
                    (root_key, path, algorithm, value, now)
                    for path, value in _serialize(chunk)
                ]
                try:
                    with conn:
                        conn.executemany("""
                            INSERT OR REPLACE INTO hashes (root, path, algorithm, value, updated_at)
                            VALUES (?, ?, ?, ?, ?)
                        """, rows)
                    written += len(rows)
                except sqlite3.Error as e:
                    errors.append(e)

        errors.raise_if_any(f"写入哈希缓存失败 {self.db_path}")
        return written
