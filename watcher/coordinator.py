"""
SnapWatch - 目录快照变化监控

根目录协调器 - 加载历史快照、对比、计算哈希、识别移动/重命名、保存
"""
import threading
from datetime import datetime
from dataclasses import dataclass, field

from database.errors import SnapshotError
from database.models import FileCollection, RootSetting, format_size, normalize_path
from database.snapshot_store import SnapshotStore
from scanner.hasher import ContentHasher
from logger import get_logger

from .diff import compare_changes
from .events import FileEvent, Op
from .identity import resolve_identity

logger = get_logger("watcher")


@dataclass
class ChangeSet:
    """一个根目录一次对比的结果"""
    root: str
    created: FileCollection = field(default_factory=FileCollection)
    updated: FileCollection = field(default_factory=FileCollection)
    deleted: FileCollection = field(default_factory=FileCollection)
    moved: FileCollection = field(default_factory=FileCollection)    # 旧路径 -> 新条目
    renamed: FileCollection = field(default_factory=FileCollection)  # 旧路径 -> 新条目

    @property
    def total_changes(self) -> int:
        return (len(self.created) + len(self.updated) + len(self.deleted)
                + len(self.moved) + len(self.renamed))

    @property
    def has_changes(self) -> bool:
        return self.total_changes > 0

    @property
    def summary(self) -> str:
        return (f"created: {len(self.created)}, updated: {len(self.updated)}, "
                f"deleted: {len(self.deleted)}, moved: {len(self.moved)}, "
                f"renamed: {len(self.renamed)}")

    def events(self, op: Op = Op.ALL) -> list[FileEvent]:
        """按 op 过滤生成事件列表，按路径排序"""
        events = []
        if op & Op.CREATE:
            events += [FileEvent(Op.CREATE, e.path, entry=e) for e in self.created.values()]
        if op & Op.WRITE:
            events += [FileEvent(Op.WRITE, e.path, entry=e) for e in self.updated.values()]
        if op & Op.REMOVE:
            events += [FileEvent(Op.REMOVE, e.path, entry=e) for e in self.deleted.values()]
        if op & Op.RENAME:
            events += [FileEvent(Op.RENAME, e.path, old, e) for old, e in self.renamed.items()]
        if op & Op.MOVE:
            events += [FileEvent(Op.MOVE, e.path, old, e) for old, e in self.moved.items()]
        return sorted(events, key=lambda ev: (ev.path, ev.op))


class RootCoordinator:
    """
    根目录协调器

    内存中保存每个根目录最近一次的快照；持久化副本由 SnapshotStore 管理。
    不同根目录之间互不影响，可并行调用。
    """

    def __init__(self, store: SnapshotStore, hasher: ContentHasher):
        self.store = store
        self.hasher = hasher
        self._file_lists: dict[str, FileCollection] = {}
        self._settings: dict[str, RootSetting] = {}
        self._roots: dict[str, str] = {}  # 规范化路径 -> 原始根目录路径
        self._lock = threading.Lock()

    @property
    def hash_algorithm(self) -> str:
        return self.hasher.algorithm

    def load_all(self, *roots: str) -> None:
        """加载多个根目录，某个根目录不可读只影响它自己"""
        for root in roots:
            self.load(root)

    def is_loaded(self, root: str) -> bool:
        with self._lock:
            return normalize_path(root) in self._file_lists

    def load(self, root: str) -> FileCollection:
        """
        加载历史快照

        数据库不可用时按首次运行处理（空快照），只记录警告
        """
        try:
            setting, entries = self.store.load(root)
        except SnapshotError as e:
            logger.warning(f"无法加载历史快照，按首次扫描处理: {e}")
            setting, entries = RootSetting(), FileCollection()

        if setting.hash_algorithm and setting.hash_algorithm != self.hash_algorithm:
            logger.warning(
                f"{root}: 历史快照使用 {setting.hash_algorithm}，当前为 {self.hash_algorithm}，"
                f"移动/重命名识别可能不准确"
            )

        with self._lock:
            self._roots[normalize_path(root)] = root
            self._settings[normalize_path(root)] = setting
            self._file_lists[normalize_path(root)] = entries
        return entries

    def snapshot(self, root: str) -> FileCollection:
        """当前内存中的快照"""
        with self._lock:
            return self._file_lists.get(normalize_path(root)) or FileCollection()

    def setting(self, root: str) -> RootSetting:
        with self._lock:
            return self._settings.get(normalize_path(root)) or RootSetting()

    def compare(self, root: str, current: FileCollection) -> ChangeSet:
        """
        对比当前快照与历史快照

        未变化的条目沿用历史哈希；只为新增和修改的条目计算哈希，
        然后从删除/新增中识别出移动和重命名
        """
        with self._lock:
            previous = self._file_lists.get(normalize_path(root))

        created, updated, deleted = compare_changes(previous, current)
        self.hasher.hash_and_cache(root, FileCollection().merge(created, updated))
        moved, renamed = resolve_identity(deleted, created)

        return ChangeSet(root, created, updated, deleted, moved, renamed)

    def save(self, root: str, entries: FileCollection) -> bool:
        """
        保存快照（全量替换），失败只记录日志

        Returns:
            是否完整保存成功
        """
        stats = entries.stats()
        setting = RootSetting(
            root_path=root,
            at=datetime.now(),
            hash_algorithm=self.hash_algorithm,
            stats=stats,
        )

        with self._lock:
            self._roots[normalize_path(root)] = root
            self._settings[normalize_path(root)] = setting
            self._file_lists[normalize_path(root)] = entries

        try:
            self.store.save(root, setting, entries)
        except SnapshotError as e:
            logger.error(f"保存快照失败 \"{root}\": {e}")
            return False
        return True

    def save_all(self) -> int:
        """
        保存内存中的所有根目录快照

        Returns:
            保存成功的根目录数
        """
        with self._lock:
            items = [(self._roots[key], entries) for key, entries in self._file_lists.items()]
        return sum(self.save(root, entries) for root, entries in items)

    def process(self, root: str, current: FileCollection) -> ChangeSet:
        """
        完整处理一个根目录: 对比 -> 哈希 -> 识别 -> 有变化时保存

        没有任何变化时不写数据库
        """
        stats = current.stats()
        logger.info(
            f"\"{root}\": 总大小 {format_size(stats.total_size)}, 文件 {stats.file_count}, "
            f"目录 {stats.dir_count}, 链接 {stats.link_count}"
        )

        changes = self.compare(root, current)
        logger.info(f"{changes.summary} of \"{root}\"")

        if changes.has_changes:
            self.save(root, current)
        else:
            with self._lock:
                self._roots[normalize_path(root)] = root
                self._file_lists[normalize_path(root)] = current
        return changes
