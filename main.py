"""
SnapWatch - 目录快照变化监控
程序入口
"""
import argparse
import os
import sys
from pathlib import Path

# 添加项目根目录到路径
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from PySide6.QtCore import QCoreApplication

from config import Config
from database.snapshot_store import HashCacheStore, SnapshotStore
from logger import get_logger, setup_logging
from scanner.hasher import ContentHasher
from watcher import FileWatcherManager, RootCoordinator, SnapshotPoller, WatchOption

logger = get_logger("main")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="snapwatch",
        description="周期性扫描目录并识别新增/修改/删除/移动/重命名"
    )
    parser.add_argument("paths", nargs="*", help="额外的监控目录（使用默认选项）")
    parser.add_argument("-c", "--config", help="配置文件路径，默认为程序目录下的 config.json")
    parser.add_argument("-i", "--interval", type=float, default=None,
                        help="轮询间隔(分钟)，0 表示只执行一轮")
    parser.add_argument("-w", "--workers", type=int, default=1, help="并行处理的根目录数")
    parser.add_argument("--log-level", default=None, help="控制台日志级别")
    return parser.parse_args(argv)


def build_manager(config: Config, workers: int = 1) -> FileWatcherManager:
    """按配置组装存储、哈希、协调器和管理器"""
    store = SnapshotStore(timeout=config.lock_timeout, chunk_size=config.chunk_size)
    cache = HashCacheStore(config.hash_cache_path, timeout=config.lock_timeout,
                           chunk_size=config.chunk_size)
    hasher = ContentHasher(config.hash_algorithm, cache, config.flush_every)
    return FileWatcherManager(RootCoordinator(store, hasher), max_workers=workers)


def main(argv=None) -> int:
    """主函数"""
    args = parse_args(argv)
    config = Config(args.config)
    setup_logging(console_level=args.log_level or config.get("logging", "level", default="INFO"))

    try:
        groups = config.watch_groups
        manager = build_manager(config, args.workers)
        manager.coordinator.load_all(
            *[os.path.abspath(p) for p in config.watch_paths if os.path.isdir(p)]
        )
        for paths, option in groups:
            for path in paths:
                manager.add(path, option)
        for path in args.paths:
            manager.add(path, WatchOption())
    except (ValueError, OSError) as e:
        logger.error(f"启动失败: {e}")
        return 1

    if not manager.roots:
        logger.error("没有配置任何监控目录")
        return 1

    interval = args.interval if args.interval is not None else config.poll_interval_minutes
    if interval <= 0:
        manager.watch()
        return 0

    app = QCoreApplication(sys.argv[:1])
    # 退出前补写上次保存失败的快照
    app.aboutToQuit.connect(manager.coordinator.save_all)
    poller = SnapshotPoller(manager)
    poller.start(interval)
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
