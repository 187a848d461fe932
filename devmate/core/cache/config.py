"""
缓存配置模型

定义 Redis 缓存的连接与行为参数，并提供配置校验。
"""

import logging
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class CacheConfig(BaseModel):
    """缓存配置模型

    连接信息优先使用完整的 url（如 REDIS_URL），未提供时由 host/port/password/db 拼接。
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "enabled": True,
                "url": "redis://:secret@redis.internal:6379/0",
                "key_prefix": "devmate",
                "default_ttl": 300,
                "max_retries": 3,
                "reconnect_interval": 5.0,
            }
        }
    )

    enabled: bool = Field(default=True, description="缓存开关，False 时缓存层退化为直通")
    url: str | None = Field(default=None, description="完整的 Redis 连接串，优先于 host/port")
    host: str = Field(default="localhost", description="Redis 服务器地址")
    port: int = Field(default=6379, description="Redis 服务器端口")
    db: int = Field(default=0, description="Redis 数据库编号")
    password: str | None = Field(default=None, description="Redis 密码（可选）")
    key_prefix: str = Field(default="devmate", description="缓存键命名空间前缀")
    default_ttl: int = Field(default=300, description="默认过期时间（秒）")
    max_retries: int = Field(default=3, description="单次命令的最大重试次数")
    socket_timeout: float = Field(default=5.0, description="Socket 超时时间（秒）")
    reconnect_interval: float = Field(default=5.0, description="断线后重连探测间隔（秒），0 表示不自动重连")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError("端口号必须在 1-65535 范围内")
        return v

    @field_validator("db")
    @classmethod
    def validate_db(cls, v: int) -> int:
        if v < 0:
            raise ValueError("数据库编号必须为非负整数")
        return v

    @field_validator("default_ttl")
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("TTL 必须为正整数")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("重试次数不能为负数")
        return v

    @field_validator("reconnect_interval")
    @classmethod
    def validate_reconnect_interval(cls, v: float) -> float:
        if v < 0:
            raise ValueError("重连间隔不能为负数")
        return v

    def resolve_connection_url(self) -> str:
        """解析最终使用的连接串

        Returns:
            str: redis:// 或 rediss:// 连接串
        """
        if self.url:
            return self.url

        auth = f":{quote(self.password, safe='')}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"


def validate_cache_config(config: CacheConfig) -> list[str]:
    """检查配置的合理性

    Args:
        config: 缓存配置实例

    Returns:
        list[str]: 警告信息列表
    """
    warnings = []

    if not config.enabled:
        warnings.append("缓存已禁用，所有请求将直接由业务处理器响应")
        return warnings

    if not config.url and not config.host:
        warnings.append("Redis 主机地址为空，可能导致连接失败")

    if config.default_ttl < 10:
        warnings.append(f"默认 TTL ({config.default_ttl}秒) 过短，缓存几乎不会命中")
    elif config.default_ttl > 86400:
        warnings.append(f"默认 TTL ({config.default_ttl}秒) 过长，可能导致数据长时间不一致")

    if not config.key_prefix:
        warnings.append("缓存键前缀为空，可能与同一 Redis 中的其他应用冲突")

    if config.max_retries > 10:
        warnings.append(f"重试次数 ({config.max_retries}) 过多，Redis 故障时请求延迟会显著增加")

    if config.reconnect_interval == 0:
        warnings.append("自动重连已关闭，Redis 断开后缓存将保持直通直到进程重启")

    if "prod" in config.key_prefix.lower() and not config.password and not config.url:
        warnings.append("生产环境建议设置 Redis 密码")

    return warnings


def create_cache_config_from_settings(settings) -> CacheConfig:
    """从应用配置创建缓存配置实例，并记录校验警告

    Args:
        settings: devmate.core.config.Settings 实例

    Returns:
        CacheConfig: 缓存配置实例
    """
    config = CacheConfig(
        enabled=settings.CACHE_ENABLED,
        url=settings.REDIS_URL or None,
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        db=settings.REDIS_DB,
        password=settings.REDIS_PASSWORD or None,
        key_prefix=settings.CACHE_KEY_PREFIX,
        default_ttl=settings.CACHE_DEFAULT_TTL,
        max_retries=settings.CACHE_MAX_RETRIES,
        socket_timeout=settings.CACHE_SOCKET_TIMEOUT,
        reconnect_interval=settings.CACHE_RECONNECT_INTERVAL,
    )

    if config.enabled:
        source = "REDIS_URL" if config.url else f"{config.host}:{config.port}"
        logger.info(f"缓存配置已加载: source={source}, prefix={config.key_prefix}, ttl={config.default_ttl}s")
    else:
        logger.info("缓存已禁用")

    for warning in validate_cache_config(config):
        logger.warning(f"缓存配置警告: {warning}")

    return config
