"""
配置管理器

从 TOML 文件和环境变量加载配置。
优先级：环境变量 > TOML 配置文件 > 默认值

配置环境切换：
    通过 CONFIG_ENV 环境变量选择配置文件：
    - CONFIG_ENV=dev  -> configs/config.dev.toml (默认)
    - CONFIG_ENV=prod -> configs/config.prod.toml
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml


class ConfigManager:
    """配置管理器类"""

    ENV_TO_FILE = {
        "dev": "configs/config.dev.toml",
        "prod": "configs/config.prod.toml",
    }

    def __init__(self, config_file: Optional[str] = None):
        """
        初始化配置管理器

        Args:
            config_file: 配置文件路径，为 None 时根据 CONFIG_ENV 环境变量选择
        """
        if config_file is None:
            config_env = os.environ.get("CONFIG_ENV", "dev").lower()
            self.config_file = self.ENV_TO_FILE.get(config_env, self.ENV_TO_FILE["dev"])
            self.config_env = config_env
        else:
            self.config_file = config_file
            self.config_env = "custom"

        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self):
        """加载配置文件"""
        config_path = Path(self.config_file)

        if not config_path.is_absolute():
            # 相对路径从项目根目录查找（此文件位于 devmate/core/ 下）
            project_root = Path(__file__).parent.parent.parent
            config_path = project_root / self.config_file

        if not config_path.exists():
            # 日志系统此时尚未初始化
            print(f"警告: 配置文件 {config_path} 不存在，使用默认配置")
            self._config = {}
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                self._config = toml.load(f)
        except (OSError, toml.TomlDecodeError) as e:
            print(f"警告: 无法加载配置文件 {config_path}: {e}")
            self._config = {}

    def get(self, key_path: str, default: Any = None, env_var: Optional[str] = None) -> Any:
        """
        获取配置值

        Args:
            key_path: 点号分隔的配置键路径，如 "cache.default_ttl"
            default: 默认值
            env_var: 对应的环境变量名，存在时优先使用

        Returns:
            配置值

        Example:
            >>> config = ConfigManager()
            >>> ttl = config.get("cache.default_ttl", default=300)
            >>> url = config.get("redis.url", env_var="REDIS_URL")
        """
        if env_var and env_var in os.environ:
            return self._convert_type(os.environ[env_var], type(default) if default is not None else str)

        current_value: Any = self._config
        for key in key_path.split("."):
            if isinstance(current_value, dict) and key in current_value:
                current_value = current_value[key]
            else:
                return default

        return current_value

    def _convert_type(self, value: str, target_type: type) -> Any:
        """将环境变量的字符串值转换为目标类型"""
        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")
        elif target_type == int:
            return int(value)
        elif target_type == float:
            return float(value)
        elif target_type == list:
            return [item.strip() for item in value.split(",") if item.strip()]
        else:
            return value

    def get_int(self, key_path: str, default: int = 0, env_var: Optional[str] = None) -> int:
        """获取整数配置值"""
        value = self.get(key_path, default, env_var)
        return int(value) if value is not None else default

    def get_float(self, key_path: str, default: float = 0.0, env_var: Optional[str] = None) -> float:
        """获取浮点数配置值"""
        value = self.get(key_path, default, env_var)
        return float(value) if value is not None else default

    def get_bool(self, key_path: str, default: bool = False, env_var: Optional[str] = None) -> bool:
        """获取布尔配置值"""
        value = self.get(key_path, default, env_var)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "1", "yes", "on")
        return bool(value) if value is not None else default

    def get_list(self, key_path: str, default: Optional[List] = None, env_var: Optional[str] = None) -> List:
        """获取列表配置值"""
        if default is None:
            default = []
        value = self.get(key_path, default, env_var)
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return default

    def get_current_env(self) -> str:
        """获取当前配置环境 (dev/prod/custom)"""
        return self.config_env


@lru_cache(maxsize=1)
def get_config_manager() -> ConfigManager:
    """获取全局配置管理器实例"""
    return ConfigManager()


config_manager = get_config_manager()
