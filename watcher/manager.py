"""
SnapWatch - 目录快照变化监控

监控管理器 - 管理监控根目录，逐个（或并行）执行扫描与对比
"""
import os
from typing import Optional
from concurrent.futures import ThreadPoolExecutor

from PySide6.QtCore import QObject, Signal

from database.models import normalize_path
from scanner.file_scanner import FileScanner
from logger import get_logger

from .coordinator import ChangeSet, RootCoordinator
from .events import WatchOption

logger = get_logger("watcher")


class FileWatcherManager(QObject):
    """
    监控管理器
    每个根目录独立处理：遍历 -> 对比 -> 保存
    """

    # (root, events)
    changes_detected = Signal(str, object)

    def __init__(self, coordinator: RootCoordinator, scanner: Optional[FileScanner] = None,
                 max_workers: int = 1, parent=None):
        """
        Args:
            coordinator: 根目录协调器
            scanner: 目录遍历器
            max_workers: 并行处理的根目录数，1 为顺序处理
        """
        super().__init__(parent)
        self.coordinator = coordinator
        self.scanner = scanner or FileScanner()
        self.max_workers = max(1, max_workers)
        self._options: dict[str, tuple[str, WatchOption]] = {}

    @property
    def roots(self) -> list[str]:
        return [root for root, _ in self._options.values()]

    def add(self, path: str, option: Optional[WatchOption] = None) -> str:
        """
        添加监控根目录；尚未加载过的根目录同时加载其历史快照

        Returns:
            根目录绝对路径

        Raises:
            FileNotFoundError: 路径不存在
            NotADirectoryError: 路径不是目录
        """
        root = os.path.abspath(path)
        if not os.path.exists(root):
            raise FileNotFoundError(f"路径不存在: {root}")
        if not os.path.isdir(root):
            raise NotADirectoryError(f"不是目录: {root}")

        self._options[normalize_path(root)] = (root, option or WatchOption())
        if not self.coordinator.is_loaded(root):
            self.coordinator.load(root)
        logger.info(f"添加监控目录: {root}")
        return root

    def remove(self, path: str) -> bool:
        """移除监控根目录"""
        removed = self._options.pop(normalize_path(os.path.abspath(path)), None)
        if removed:
            logger.info(f"移除监控目录: {removed[0]}")
        return removed is not None

    def watch(self) -> dict[str, ChangeSet]:
        """
        执行一轮扫描

        单个根目录失败不影响其他根目录；changes_detected 信号在调用线程中发出

        Returns:
            {root: ChangeSet}，扫描失败的根目录不在结果中
        """
        targets = list(self._options.values())
        if self.max_workers > 1 and len(targets) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(executor.map(lambda t: self._watch_root(*t), targets))
        else:
            results = [self._watch_root(root, option) for root, option in targets]

        changes_by_root = {}
        for (root, option), changes in zip(targets, results):
            if changes is None:
                continue
            changes_by_root[root] = changes
            events = changes.events(option.op)
            if events:
                self.changes_detected.emit(root, events)
        return changes_by_root

    def _watch_root(self, root: str, option: WatchOption) -> Optional[ChangeSet]:
        logger.info(f"扫描 \"{root}\"...")
        try:
            current = self.scanner.list_files(
                root,
                recursive=option.recursive,
                ignore=option.ignore,
                include_hidden=not option.ignore_hidden,
            )
        except OSError as e:
            logger.error(f"扫描失败 \"{root}\": {e}")
            return None

        changes = self.coordinator.process(root, current)
        for event in changes.events(option.op):
            logger.debug(str(event))
        return changes
