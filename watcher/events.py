"""
变化事件
变化类别标志、每个监控组的选项，以及由对比结果生成的事件
"""
from enum import IntFlag
from typing import Iterable, Optional
from dataclasses import dataclass, field

from database.models import FileEntry
from scanner.ignore import IgnoreMatcher


class Op(IntFlag):
    """变化类别，可按位组合"""
    CREATE = 1
    WRITE = 2
    REMOVE = 4
    RENAME = 8
    MOVE = 32

    ALL = CREATE | WRITE | REMOVE | RENAME | MOVE

    @classmethod
    def parse(cls, actions: Iterable[str]) -> "Op":
        """
        解析配置中的动作名称（忽略大小写），空列表表示全部

        Raises:
            ValueError: 未知的动作名称
        """
        op = cls(0)
        for action in actions or []:
            name = str(action).strip().upper()
            if name not in cls.__members__:
                raise ValueError(f"未知的监控动作: {action}")
            op |= cls[name]
        return op or cls.ALL


@dataclass
class WatchOption:
    """监控组选项"""
    recursive: bool = True
    ignore_hidden: bool = True
    ignore: IgnoreMatcher = field(default_factory=IgnoreMatcher)
    op: Op = Op.ALL

    @classmethod
    def from_dict(cls, data: dict) -> "WatchOption":
        return cls(
            recursive=bool(data.get("recursive", True)),
            ignore_hidden=bool(data.get("ignore_hidden", True)),
            ignore=IgnoreMatcher(data.get("ignore", [])),
            op=Op.parse(data.get("actions", [])),
        )


@dataclass
class FileEvent:
    """单个文件变化事件"""
    op: Op
    path: str
    old_path: str = ""  # 仅 rename / move
    entry: Optional[FileEntry] = field(default=None, repr=False)

    def __str__(self) -> str:
        if self.entry is None:
            return "???"
        path_type = "DIRECTORY" if self.entry.is_dir else "FILE"
        return f'{path_type} "{self.entry.name}" {self.op.name} [{self.path}]'
