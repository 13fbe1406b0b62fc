"""
SnapWatch 配置管理模块
"""
import copy
import json
import sys
from pathlib import Path

from logger import get_logger

logger = get_logger("config")

# 可选的哈希算法，第一个为默认值
HASH_ALGORITHMS = ("md5", "sha1", "sha256", "sha512", "crc32")
DEFAULT_HASH_ALGORITHM = HASH_ALGORITHMS[0]


class Config:
    """应用程序配置管理"""

    DEFAULTS = {
        "hashing": {
            "algorithm": DEFAULT_HASH_ALGORITHM,
            "flush_every": 100       # 每计算多少个哈希写一次缓存
        },
        "storage": {
            "hash_cache_path": "data/hashing.db",
            "lock_timeout": 5,       # 数据库被占用时的最长等待(秒)
            "chunk_size": 1000       # 快照分块写入大小
        },
        # 监控组: [{"paths": [...], "recursive": true, "ignore_hidden": true,
        #          "ignore": ["*.tmp"], "actions": ["create", "remove"]}]
        "watch": [],
        "poll": {
            "interval_minutes": 0    # 0 = 只执行一轮
        },
        "logging": {
            "level": "INFO"
        }
    }

    def __init__(self, config_path: str | Path = None):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径，默认为程序目录下的 config.json
        """
        if getattr(sys, 'frozen', False):
            self.base_dir = Path(sys.executable).parent
        else:
            self.base_dir = Path(__file__).parent

        if config_path:
            self.config_path = Path(config_path)
        else:
            self.config_path = self.base_dir / "config.json"

        self._config = copy.deepcopy(self.DEFAULTS)
        self.load()

    def load(self) -> None:
        """从文件加载配置"""
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    saved_config = json.load(f)
                    self._deep_update(self._config, saved_config)
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"加载配置失败: {e}，使用默认配置")

    def save(self) -> None:
        """保存配置到文件"""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(self._config, f, indent=4, ensure_ascii=False)

    def get(self, *keys, default=None):
        """
        获取配置值

        Args:
            keys: 配置键路径，如 get("hashing", "algorithm")
            default: 默认值
        """
        value = self._config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, *keys, value) -> None:
        """设置配置值"""
        if len(keys) < 1:
            return

        config = self._config
        for key in keys[:-1]:
            if key not in config:
                config[key] = {}
            config = config[key]
        config[keys[-1]] = value

    def _deep_update(self, base: dict, update: dict) -> None:
        """深度更新字典"""
        for key, value in update.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_update(base[key], value)
            else:
                base[key] = value

    def _resolve(self, path_value: str) -> Path:
        path = Path(path_value)
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    @property
    def hash_algorithm(self) -> str:
        """当前生效的哈希算法，未识别的值回退为 md5"""
        name = str(self.get("hashing", "algorithm", default="") or "").lower()
        if name not in HASH_ALGORITHMS:
            logger.warning(f"未知的哈希算法 {name!r}，使用 {DEFAULT_HASH_ALGORITHM}")
            return DEFAULT_HASH_ALGORITHM
        return name

    @property
    def hash_cache_path(self) -> Path:
        """哈希缓存数据库完整路径"""
        return self._resolve(self.get("storage", "hash_cache_path"))

    @property
    def lock_timeout(self) -> float:
        return float(self.get("storage", "lock_timeout", default=5))

    @property
    def chunk_size(self) -> int:
        return int(self.get("storage", "chunk_size", default=1000))

    @property
    def flush_every(self) -> int:
        return int(self.get("hashing", "flush_every", default=100))

    @property
    def poll_interval_minutes(self) -> float:
        return float(self.get("poll", "interval_minutes", default=0) or 0)

    @property
    def watch_groups(self) -> list:
        """
        解析监控组配置

        Returns:
            [(paths, WatchOption), ...]
        """
        from watcher.events import WatchOption

        groups = []
        for group in self.get("watch", default=[]) or []:
            if not isinstance(group, dict):
                raise ValueError(f"监控组配置格式错误: {group!r}")
            option = WatchOption.from_dict(group)
            groups.append((list(group.get("paths", [])), option))
        return groups

    @property
    def watch_paths(self) -> list[str]:
        """所有监控组中的路径"""
        return [path for paths, _ in self.watch_groups for path in paths]
