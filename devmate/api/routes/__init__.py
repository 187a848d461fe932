from devmate.api.routes import health, metrics, status

__all__ = ["health", "metrics", "status"]
