"""
快照对比
按路径比较两次扫描结果，得到新增 / 修改 / 删除
"""
from typing import Optional

from database.models import FileCollection


def compare_changes(previous: Optional[FileCollection], current: FileCollection
                    ) -> tuple[FileCollection, FileCollection, FileCollection]:
    """
    对比历史快照与当前快照

    只比较修改时间与大小，不读取内容。未变化的条目会沿用历史快照中的
    hash_sum（这是唯一的副作用），之后无需再计算哈希。

    Args:
        previous: 历史快照，None 视为空（首次扫描）
        current: 当前快照

    Returns:
        (created, updated, deleted)
    """
    if previous is None:
        previous = FileCollection()

    created = FileCollection()
    updated = FileCollection()
    deleted = FileCollection()

    for key, entry in current.items():
        old = previous.get(key)
        if old is None:
            created.put(key, entry)
        elif entry.mtime_ns != old.mtime_ns or entry.size != old.size:
            updated.put(key, entry)
        else:
            entry.hash_sum = old.hash_sum

    for key, old in previous.items():
        if key not in current:
            deleted.put(key, old)

    return created, updated, deleted
