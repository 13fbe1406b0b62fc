"""
SnapWatch 目录遍历模块
将监控根目录下的文件系统条目转换为 FileCollection
"""
import os
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal

from database.models import FileCollection, entry_from_stat
from logger import get_logger

logger = get_logger("scanner")


def is_hidden(name: str) -> bool:
    """以 . 开头的文件/目录视为隐藏"""
    return name.startswith('.')


class FileScanner(QObject):
    """目录遍历器"""

    error = Signal(str)  # 单个条目读取失败

    def list_files(self, root: str, recursive: bool = True,
                   ignore: Optional[Callable[..., bool]] = None,
                   include_hidden: bool = False) -> FileCollection:
        """
        列出根目录下的所有条目（不含根目录本身）

        被忽略的目录不会继续深入。单个条目读取失败只记录错误并跳过。

        Args:
            root: 根目录绝对路径
            recursive: 是否递归子目录
            ignore: 忽略判断函数 ignore(相对路径, is_dir) -> bool
            include_hidden: 是否包含隐藏文件

        Raises:
            OSError: 根目录本身无法访问
        """
        root = os.path.abspath(root)
        # 根目录不可访问时直接失败，避免误判为全部删除
        with os.scandir(root):
            pass

        entries = FileCollection()

        def excluded(path: str, name: str, is_dir: bool) -> bool:
            if not include_hidden and is_hidden(name):
                return True
            if ignore is not None and ignore(os.path.relpath(path, root), is_dir):
                return True
            return False

        def add(path: str) -> None:
            try:
                entries.put(path, entry_from_stat(path, os.lstat(path)))
            except OSError as e:
                self._report(f"无法读取文件信息: {path} - {e}")

        if not recursive:
            with os.scandir(root) as it:
                for item in it:
                    try:
                        is_dir = item.is_dir(follow_symlinks=False)
                    except OSError:
                        is_dir = False
                    if not excluded(item.path, item.name, is_dir):
                        add(item.path)
            return entries

        def on_error(e: OSError) -> None:
            self._report(f"无法读取目录: {e.filename} - {e}")

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            kept = []
            for dirname in dirnames:
                path = os.path.join(dirpath, dirname)
                if excluded(path, dirname, True):
                    continue
                kept.append(dirname)
                add(path)
            # 剪枝：被忽略的目录不再深入
            dirnames[:] = kept

            for filename in filenames:
                path = os.path.join(dirpath, filename)
                if not excluded(path, filename, False):
                    add(path)

        entries.delete(root)
        return entries

    def _report(self, message: str) -> None:
        logger.warning(message)
        self.error.emit(message)
