"""
移动 / 重命名识别
从删除和新增集合中找出同一个文件，配对后从两个集合中移除
"""
from database.models import FileCollection, FileEntry


def same_file(a: FileEntry, b: FileEntry) -> tuple[bool, bool]:
    """
    判断两个条目是否为同一文件

    Returns:
        (same_identity, same_content)
        same_identity: 设备号 + inode 相同（仅本进程内扫描得到的条目才有）
        same_content: 文件大小相同且哈希相同；目录则比较修改时间、大小和权限
    """
    same_identity = a.has_identity and b.has_identity and a.file_id == b.file_id

    same_content = False
    if a.is_dir == b.is_dir:
        if not a.is_dir:
            if a.size == b.size and a.hash_sum and b.hash_sum:
                same_content = a.hash_sum == b.hash_sum
        else:
            same_content = (
                a.mtime_ns == b.mtime_ns
                and a.size == b.size
                and a.mode == b.mode
            )
    return same_identity, same_content


def resolve_identity(deleted: FileCollection, created: FileCollection
                     ) -> tuple[FileCollection, FileCollection]:
    """
    识别移动和重命名

    对每个删除条目按路径顺序扫描新增条目，任一信号成立即配对，取第一个匹配：
    父目录相同为重命名，否则为移动。结果以删除侧路径为键、新条目为值。
    配对成功的条目会从 deleted 和 created 中移除。

    Returns:
        (moved, renamed)
    """
    moved = FileCollection()
    renamed = FileCollection()

    candidates = sorted(created.keys())

    for deleted_key in sorted(deleted.keys()):
        old = deleted.get(deleted_key)
        for created_key in candidates:
            new = created.get(created_key)
            if new is None:  # 已被配对
                continue
            same_identity, same_content = same_file(old, new)
            if not (same_identity or same_content):
                continue

            if old.parent == new.parent:
                renamed.put(deleted_key, new)
            else:
                moved.put(deleted_key, new)

            deleted.delete(deleted_key)
            created.delete(created_key)
            break

    return moved, renamed
