"""DevMate API 服务"""

__version__ = "1.0.0"
