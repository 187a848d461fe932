"""
缓存失效模块

写操作成功（2xx）后，按声明的键模式清除相关缓存。
失效在响应发送给客户端之后以后台任务执行，失败只记录日志，不重试。
"""

import logging
import re
import string
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr, field_validator, model_validator
from starlette.background import BackgroundTask, BackgroundTasks
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.routing import compile_path

from devmate.core.cache.monitor import MonitoredCache

logger = logging.getLogger(__name__)

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Redis glob 元字符，代入路径参数时按字符类转义为字面量
_GLOB_ESCAPES = {"*": "[*]", "?": "[?]", "[": "[[]", "\\": "[\\\\]"}


def escape_glob(value: str) -> str:
    """转义 Redis glob 元字符，使请求路径中的 * ? [ \\ 只按字面匹配"""
    return "".join(_GLOB_ESCAPES.get(char, char) for char in value)


class InvalidationRule(BaseModel):
    """失效规则：某个写接口成功后需要清除的缓存键模式

    path 使用 Starlette 路由语法，路径参数可以在模式中引用。

    Example:
        InvalidationRule(path="/api/posts/{post_id}", patterns=["/api/posts/{post_id}*", "/api/posts?*"])
    """

    path: str
    patterns: list[str] = Field(min_length=1)
    methods: frozenset[str] = MUTATING_METHODS

    _path_regex: re.Pattern = PrivateAttr()

    @field_validator("methods", mode="before")
    @classmethod
    def normalize_methods(cls, v: Any) -> frozenset[str]:
        methods = frozenset(method.upper() for method in v)
        unsupported = methods - MUTATING_METHODS
        if unsupported:
            raise ValueError(f"失效规则只适用于写操作，不支持: {sorted(unsupported)}")
        return methods

    @model_validator(mode="after")
    def check_placeholders(self) -> "InvalidationRule":
        """模式中的占位符只能引用 path 中声明的路径参数"""
        _, _, param_convertors = compile_path(self.path)
        for pattern in self.patterns:
            try:
                fields = [field for _, field, _, _ in string.Formatter().parse(pattern) if field is not None]
            except ValueError as e:
                raise ValueError(f"失效模式格式错误 {pattern!r}: {e}") from e

            unknown = [field for field in fields if field not in param_convertors]
            if unknown:
                raise ValueError(f"失效模式 {pattern!r} 引用了未声明的路径参数: {unknown}")
        return self

    def model_post_init(self, __context: Any) -> None:
        self._path_regex, _, _ = compile_path(self.path)

    def resolve(self, method: str, path: str) -> list[str]:
        """匹配请求，返回代入路径参数后的模式列表；不匹配时返回空列表"""
        if method not in self.methods:
            return []

        match = self._path_regex.match(path)
        if match is None:
            return []

        params = {name: escape_glob(value) for name, value in match.groupdict().items()}
        return [pattern.format(**params) for pattern in self.patterns]


class InvalidationMiddleware(BaseHTTPMiddleware):
    """写操作缓存失效中间件"""

    def __init__(self, app, cache: MonitoredCache, rules: list[InvalidationRule] | None = None):
        """初始化失效中间件

        Args:
            app: ASGI 应用
            cache: 缓存门面实例
            rules: 失效规则列表
        """
        super().__init__(app)
        self.cache = cache
        self.rules = rules or []

        logger.info(f"缓存失效中间件已初始化: rules={len(self.rules)}")

    def _patterns_for(self, request: Request) -> list[str]:
        patterns: list[str] = []
        for rule in self.rules:
            for pattern in rule.resolve(request.method, request.url.path):
                if pattern not in patterns:
                    patterns.append(pattern)
        return patterns

    async def dispatch(self, request: Request, call_next):
        if request.method not in MUTATING_METHODS:
            return await call_next(request)

        patterns = self._patterns_for(request)
        if not patterns:
            return await call_next(request)

        response = await call_next(request)

        if 200 <= response.status_code < 300:
            task = BackgroundTask(self.invalidate, patterns)
            if response.background is None:
                response.background = task
            else:
                tasks = BackgroundTasks()
                tasks.add_task(response.background)
                tasks.add_task(task)
                response.background = tasks
        else:
            logger.debug(f"写操作未成功 (status={response.status_code})，保留缓存: {request.url.path}")

        return response

    async def invalidate(self, patterns: list[str]) -> None:
        """逐个清除模式匹配的缓存，单个模式失败不影响其余模式"""
        for pattern in patterns:
            try:
                if await self.cache.delete_pattern(pattern):
                    logger.info(f"已清除缓存: pattern={pattern}")
                else:
                    logger.warning(f"清除缓存失败或缓存不可用: pattern={pattern}")
            except Exception as e:
                logger.error(f"清除缓存异常 (pattern={pattern}): {e}")
