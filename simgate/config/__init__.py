"""
simgate Configuration

Environment-driven settings validated with pydantic.
"""

from .schemas import LOG_LEVELS, AppSettings

__all__ = [
    "AppSettings",
    "LOG_LEVELS",
]
