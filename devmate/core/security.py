"""
安全工具模块

提供 JWT 令牌的签发与校验，以及把 Bearer 令牌解析为请求用户的认证后端。
"""

import logging
import secrets
import warnings
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from starlette.authentication import AuthCredentials, AuthenticationBackend, BaseUser
from starlette.requests import HTTPConnection

from devmate.core.config import settings

logger = logging.getLogger(__name__)

SECRET_KEY = settings.JWT_SECRET_KEY
if not SECRET_KEY:
    SECRET_KEY = secrets.token_urlsafe(32)
    warnings.warn(
        "警告：JWT_SECRET_KEY 环境变量未设置！已生成临时密钥，生产环境必须设置强随机密钥！",
        UserWarning,
    )

ALGORITHM = settings.JWT_ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    创建 JWT 访问令牌。

    Args:
        data: 要编码到令牌中的载荷数据，用户 ID 放在 "sub"
        expires_delta: 可选的自定义过期时间

    Returns:
        str: 编码后的 JWT 令牌
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    验证并解码 JWT 令牌。

    Args:
        token: JWT 令牌字符串

    Returns:
        Optional[Dict[str, Any]]: 有效则返回解码后的载荷，否则返回 None
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.PyJWTError:
        return None


class DevMateUser(BaseUser):
    """已认证的请求用户，identity 为用户 ID"""

    def __init__(self, user_id: str, username: Optional[str] = None, role: str = "user"):
        self.user_id = user_id
        self.username = username
        self.role = role

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def display_name(self) -> str:
        return self.username or self.user_id

    @property
    def identity(self) -> str:
        return self.user_id


class JWTAuthBackend(AuthenticationBackend):
    """从 Authorization: Bearer <token> 解析用户

    没有令牌或令牌无效时返回 None，请求以匿名身份继续；
    是否必须登录由具体路由决定。
    """

    async def authenticate(self, conn: HTTPConnection):
        auth_header = conn.headers.get("Authorization")
        if not auth_header:
            return None

        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() != "bearer" or not token:
            return None

        payload = verify_token(token)
        if not payload or not payload.get("sub"):
            logger.debug("无效的访问令牌，按匿名用户处理")
            return None

        role = payload.get("role", "user")
        user = DevMateUser(user_id=str(payload["sub"]), username=payload.get("username"), role=role)
        return AuthCredentials(["authenticated", role]), user
