"""
存储层错误类型
"""


class SnapshotError(Exception):
    """快照存储相关错误的基类"""


class StoreUnavailableError(SnapshotError):
    """数据库文件无法打开（权限不足、被其他进程锁定超时等）"""


class BatchWriteError(SnapshotError):
    """分块写入时部分块失败，errors 中保留每个块的原始异常"""

    def __init__(self, message: str, errors: list[Exception]):
        super().__init__(f"{message}: {len(errors)} 个错误")
        self.errors = list(errors)

    def __str__(self) -> str:
        details = "; ".join(str(e) for e in self.errors)
        return f"{self.args[0]} ({details})"


class ErrorCollector:
    """
    错误累积器

    对多个相互独立的操作逐个执行，失败时只记录，
    全部执行完后再通过 raise_if_any 统一抛出
    """

    def __init__(self):
        self.errors: list[Exception] = []

    def append(self, error: Exception) -> None:
        self.errors.append(error)

    def __bool__(self) -> bool:
        return bool(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def raise_if_any(self, message: str) -> None:
        if self.errors:
            raise BatchWriteError(message, self.errors)
