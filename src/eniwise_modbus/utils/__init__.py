"""
工具模块
========

包含日志记录和重试等工具功能。
"""

from .logger import get_logger, setup_logger, set_level, log_frame
from .retry import retry_call, exponential_backoff

__all__ = [
    "get_logger",
    "setup_logger",
    "set_level",
    "log_frame",
    "retry_call",
    "exponential_backoff"
]
