"""
SnapWatch - 目录快照变化监控

统一日志模块
"""
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

ROOT_LOGGER = "SnapWatch"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _to_level(level) -> int:
    """将 "info"/"DEBUG" 等级别名称转换为 logging 常量，数字原样返回"""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(log_dir: Path = None, console_level="INFO", file_level=logging.DEBUG,
                  to_file: bool = True):
    """
    初始化日志系统

    Args:
        log_dir: 日志目录，默认为程序目录下的 data/
        console_level: 控制台日志级别，可为名称或数字，默认 INFO
        file_level: 文件日志级别，默认 DEBUG
        to_file: 是否写入滚动日志文件

    Returns:
        根 logger 实例
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(logging.DEBUG)

    # 避免重复添加 handler
    if root.handlers:
        return root

    fmt = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(_to_level(console_level))
    console.setFormatter(fmt)
    root.addHandler(console)

    if not to_file:
        return root

    if log_dir is None:
        if getattr(sys, 'frozen', False):
            base_dir = Path(sys.executable).parent
        else:
            base_dir = Path(__file__).parent
        log_dir = base_dir / "data"
    log_dir.mkdir(parents=True, exist_ok=True)

    # 5MB 滚动, 保留 3 份
    file_handler = RotatingFileHandler(
        log_dir / "snapwatch.log", maxBytes=5*1024*1024, backupCount=3, encoding="utf-8"
    )
    file_handler.setLevel(_to_level(file_level))
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    return root


def get_logger(name: str):
    """
    获取子 logger

    Args:
        name: 子系统名称，如 "watcher", "scanner", "hasher", "database"
    """
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
