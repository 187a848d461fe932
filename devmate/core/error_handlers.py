"""
错误处理模块

提供统一的错误响应格式、请求日志中间件和 FastAPI 异常处理器。
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from devmate.core.logging import app_logger, log_api_request, log_exception

ROUTE_NOT_FOUND_MESSAGE = "Route not found"
INTERNAL_ERROR_MESSAGE = "Something went wrong!"


def error_body(
    status_code: int,
    error_type: str,
    message: str,
    request_id: str,
    path: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """构建统一的错误响应体"""
    error: Dict[str, Any] = {
        "status": status_code,
        "type": error_type,
        "message": message,
        "request_id": request_id,
        "path": path,
        "timestamp": datetime.now().isoformat(),
    }
    if details:
        error["details"] = details
    return {"success": False, "message": message, "error": error}


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """请求日志与兜底异常处理中间件

    为每个请求生成 X-Request-ID；未被处理的异常转为 JSON 500 响应，
    不向客户端暴露内部错误细节。
    """

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        start_time = datetime.now()
        method = request.method
        path = request.url.path

        try:
            response = await call_next(request)
        except Exception as exc:
            log_exception(app_logger, f"未捕获的异常 {method} {path} - ID={request_id}", exception=exc)
            return JSONResponse(
                status_code=500,
                content=error_body(500, "INTERNAL_SERVER_ERROR", INTERNAL_ERROR_MESSAGE, request_id, path),
                headers={"X-Request-ID": request_id},
            )

        processing_time = (datetime.now() - start_time).total_seconds() * 1000
        user = request.scope.get("user")
        user_id = user.identity if user is not None and getattr(user, "is_authenticated", False) else None
        log_api_request(app_logger, method, path, user_id, response.status_code, processing_time)

        response.headers["X-Request-ID"] = request_id
        return response


class APIError(Exception):
    """自定义 API 错误类"""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_type: str = "API_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details or {}
        super().__init__(self.message)


class AuthenticationError(APIError):
    """认证错误"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message=message, status_code=401, error_type="AUTHENTICATION_ERROR")


class AuthorizationError(APIError):
    """授权错误"""

    def __init__(self, message: str = "Access denied"):
        super().__init__(message=message, status_code=403, error_type="AUTHORIZATION_ERROR")


def setup_exception_handlers(app):
    """设置 FastAPI 异常处理器"""

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        """处理自定义 API 错误"""
        request_id = str(uuid.uuid4())
        app_logger.warning(
            f"API 错误: {request.method} {request.url.path} - ID={request_id} - "
            f"Type={exc.error_type} - Message={exc.message}"
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, exc.error_type, exc.message, request_id, request.url.path, exc.details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """处理 HTTP 异常，未匹配到路由时返回统一的 404 消息"""
        request_id = str(uuid.uuid4())
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = ROUTE_NOT_FOUND_MESSAGE
        else:
            message = str(exc.detail)

        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, "HTTP_EXCEPTION", message, request_id, request.url.path),
            headers=getattr(exc, "headers", None),
        )
