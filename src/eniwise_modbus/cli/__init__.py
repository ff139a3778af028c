"""
命令行接口模块
==============

提供设备轮询器和命令行入口使用的功能。
"""

from .poller import S6Poller

__all__ = [
    "S6Poller"
]
