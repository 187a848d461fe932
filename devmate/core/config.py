"""
应用配置管理模块

使用 Pydantic Settings 从环境变量和 TOML 文件加载配置项。
优先级：环境变量 > configs/config.<env>.toml > 默认值

列表类型的配置项（如 CACHE_PATHS）通过环境变量覆盖时使用 JSON 格式。
"""

from typing import Any, Dict, List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from devmate.core.config_manager import config_manager


class Settings(BaseSettings):
    """应用配置类，从环境变量和 TOML 文件加载配置"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="allow")

    # 应用配置
    APP_NAME: str = config_manager.get("app.name", "DevMate API")
    APP_VERSION: str = config_manager.get("app.version", "1.0.0")
    HOST: str = config_manager.get("app.host", "0.0.0.0")
    PORT: int = config_manager.get_int("app.port", 5000)

    # 数据库配置（未配置时健康检查报告 unknown）
    DATABASE_URL: Optional[str] = config_manager.get("database.url", None)

    # JWT 配置
    JWT_SECRET_KEY: Optional[str] = None
    JWT_ALGORITHM: str = config_manager.get("jwt.algorithm", "HS256")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = config_manager.get_int("jwt.access_token_expire_minutes", 60 * 24 * 7)

    # 日志配置
    LOG_LEVEL: str = config_manager.get("logging.level", "INFO")
    LOG_DIR: str = config_manager.get("logging.dir", "logs")

    # CORS 配置
    CORS_ORIGINS: List[str] = config_manager.get_list("cors.origins", ["*"])

    # Redis 连接配置：REDIS_URL 优先，否则使用 host/port/password
    REDIS_URL: Optional[str] = config_manager.get("redis.url", None)
    REDIS_HOST: str = config_manager.get("redis.host", "localhost")
    REDIS_PORT: int = config_manager.get_int("redis.port", 6379)
    REDIS_PASSWORD: Optional[str] = config_manager.get("redis.password", None)
    REDIS_DB: int = config_manager.get_int("redis.db", 0)

    # 缓存配置
    CACHE_ENABLED: bool = config_manager.get_bool("cache.enabled", True)
    CACHE_KEY_PREFIX: str = config_manager.get("cache.key_prefix", "devmate")
    CACHE_DEFAULT_TTL: int = config_manager.get_int("cache.default_ttl", 300)
    CACHE_MAX_RETRIES: int = config_manager.get_int("cache.max_retries", 3)
    CACHE_SOCKET_TIMEOUT: float = config_manager.get_float("cache.socket_timeout", 5.0)
    CACHE_RECONNECT_INTERVAL: float = config_manager.get_float("cache.reconnect_interval", 5.0)
    CACHE_PATHS: List[str] = config_manager.get_list("cache.paths", ["/api"])
    CACHE_EXCLUDED_PATHS: List[str] = config_manager.get_list(
        "cache.excluded_paths", ["/api/auth", "/api/health", "/api/db-status"]
    )
    CACHE_INVALIDATION_RULES: List[Dict[str, Any]] = config_manager.get("cache.invalidation", [])


settings = Settings()
