"""
定时轮询
按固定间隔重复执行一轮快照对比（不依赖系统文件通知，适用于网络目录）
"""
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal

from logger import get_logger

from .manager import FileWatcherManager

logger = get_logger("watcher")


class SnapshotPoller(QObject):
    """快照轮询器"""

    # 一轮结束: {root: ChangeSet}
    cycle_finished = Signal(object)

    def __init__(self, manager: FileWatcherManager, parent=None):
        super().__init__(parent)
        self.manager = manager
        self._timer: Optional[QTimer] = None
        self._running = False

    def start(self, interval_minutes: float) -> None:
        """启动轮询，并立即执行一轮"""
        if self._timer is not None:
            logger.debug("轮询已在运行中")
            return

        interval_ms = max(1, int(interval_minutes * 60 * 1000))
        self._timer = QTimer(self)
        self._timer.timeout.connect(self.poll)
        self._timer.start(interval_ms)
        logger.info(f"开始轮询 {len(self.manager.roots)} 个目录 (间隔 {interval_minutes} 分钟)")

        QTimer.singleShot(0, self.poll)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None
            logger.info("停止轮询")

    def is_running(self) -> bool:
        return self._timer is not None

    def poll(self) -> dict:
        """执行一轮；上一轮尚未结束时跳过"""
        if self._running:
            logger.debug("上一轮尚未结束，跳过")
            return {}

        self._running = True
        try:
            results = self.manager.watch()
        finally:
            self._running = False

        self.cycle_finished.emit(results)
        return results
