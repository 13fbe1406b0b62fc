"""
目录快照监控模块
周期性扫描目录树，与上次保存的快照对比，识别新增/修改/删除/移动/重命名
"""
from .events import Op, WatchOption, FileEvent
from .diff import compare_changes
from .identity import same_file, resolve_identity
from .coordinator import RootCoordinator, ChangeSet
from .manager import FileWatcherManager
from .poller import SnapshotPoller

__all__ = [
    'Op',
    'WatchOption',
    'FileEvent',
    'compare_changes',
    'same_file',
    'resolve_identity',
    'RootCoordinator',
    'ChangeSet',
    'FileWatcherManager',
    'SnapshotPoller'
]
