"""
忽略规则匹配
使用 gitignore 语法，路径为相对监控根目录的路径
"""
from typing import Iterable

from pathspec import GitIgnoreSpec

from database.snapshot_store import DB_FILE

# 快照数据库及 SQLite 的临时日志文件始终忽略
ALWAYS_IGNORED = (f"{DB_FILE}", f"{DB_FILE}-*")


class IgnoreMatcher:
    """忽略规则匹配器"""

    def __init__(self, patterns: Iterable[str] = ()):
        self.patterns = [p for p in patterns if p and p.strip()]
        self._spec = GitIgnoreSpec.from_lines([*ALWAYS_IGNORED, *self.patterns])

    def matches(self, rel_path: str, is_dir: bool = False) -> bool:
        """
        检查相对路径是否应忽略

        Args:
            rel_path: 相对根目录的路径
            is_dir: 是否为目录（以 "/" 结尾的规则只匹配目录）
        """
        rel_path = str(rel_path).replace("\\", "/")
        if is_dir and not rel_path.endswith("/"):
            rel_path += "/"
        return self._spec.match_file(rel_path)

    def __call__(self, rel_path: str, is_dir: bool = False) -> bool:
        return self.matches(rel_path, is_dir)

    def __repr__(self) -> str:
        return f"IgnoreMatcher({self.patterns!r})"
