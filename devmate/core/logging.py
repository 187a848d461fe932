"""
日志配置模块

提供控制台和文件日志功能，支持彩色输出和日志轮转。
"""

import logging
import logging.handlers
import os
import sys
import traceback
from pathlib import Path

from devmate.core.config import settings


class ColoredFormatter(logging.Formatter):
    """彩色日志格式化器，用于控制台输出"""

    COLORS = {
        "DEBUG": "\033[36m",  # 青色
        "INFO": "\033[32m",  # 绿色
        "WARNING": "\033[33m",  # 黄色
        "ERROR": "\033[31m",  # 红色
        "CRITICAL": "\033[35m",  # 紫色
    }
    RESET = "\033[0m"

    def format(self, record):
        # 复制记录，避免颜色码泄漏到文件处理器
        record = logging.makeLogRecord(record.__dict__)
        if record.levelname in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logger(
    name: str = "devmate",
    level: str = "INFO",
    log_dir: str = "./logs",
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    console_output: bool = True,
) -> logging.Logger:
    """
    配置日志记录器，支持控制台和文件输出。

    模块内通过 logging.getLogger(__name__) 获取的 "devmate.*" 子记录器
    会冒泡到这里配置的处理器。

    Args:
        name: 日志记录器名称
        level: 日志级别（DEBUG、INFO、WARNING、ERROR、CRITICAL）
        log_dir: 日志文件目录
        max_file_size: 单个日志文件最大大小
        backup_count: 保留的备份日志文件数量
        console_output: 是否输出到控制台

    Returns:
        配置好的日志记录器实例
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # 避免重复添加处理器
    if logger.handlers:
        return logger

    detailed_format = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
    simple_format = "%(asctime)s - %(levelname)s - %(message)s"

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(ColoredFormatter(simple_format))
        logger.addHandler(console_handler)

    # 文件处理器 - 全部日志
    file_handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, f"{name}.log"), maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(detailed_format))
    logger.addHandler(file_handler)

    # 文件处理器 - 仅错误日志
    error_handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, f"{name}_error.log"), maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(detailed_format))
    logger.addHandler(error_handler)

    return logger


def log_exception(logger: logging.Logger, message: str, exception: Exception | None = None) -> None:
    """记录异常信息，完整堆栈只写入 DEBUG 级别"""
    if exception is None:
        logger.error(message)
        return

    logger.error(f"{message}: {type(exception).__name__}: {exception}")
    logger.debug("".join(traceback.format_exception(type(exception), exception, exception.__traceback__)))


def log_api_request(
    logger: logging.Logger,
    method: str,
    path: str,
    user_id: str | None = None,
    status_code: int = 200,
    processing_time: float | None = None,
) -> None:
    """
    记录 API 请求日志。

    Args:
        logger: 日志记录器实例
        method: HTTP 方法
        path: 请求路径
        user_id: 用户 ID
        status_code: 响应状态码
        processing_time: 处理时间（毫秒）
    """
    user_info = f"user={user_id}" if user_id else "anonymous"
    time_info = f"time={processing_time:.2f}ms" if processing_time is not None else ""

    logger.info(f"API 请求: {method} {path} - {user_info} - status={status_code} {time_info}")


app_logger = setup_logger("devmate", level=settings.LOG_LEVEL, log_dir=settings.LOG_DIR)
app_logger.info(f"日志系统已初始化 (级别: {settings.LOG_LEVEL})")
