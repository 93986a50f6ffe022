"""URL shortening HTTP service with file and SQL storage."""

__version__ = "1.0.0"

__all__ = [
    "app",
    "base62",
    "config",
    "errors",
    "handler",
    "models",
    "service",
    "storage",
    "transport",
]