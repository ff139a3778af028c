"""
配置模块
=======

包含系统常量定义和配置管理功能。
"""

from .constants import *
from .settings import *

__all__ = [
    # 常量
    "FunctionCode",
    "ByteOrder",
    "DEFAULT_BAUDRATE",
    "DEFAULT_RESPONSE_TIMEOUT",
    "BUFFER_MAX_SIZE",
    "FRAME_HEADER_SIZE",
    "FRAME_CRC_SIZE",
    "MODBUS_EXCEPTION_NAMES",
    "exception_name",
    # 配置
    "SerialConfig",
    "ConnectionConfig",
    "PollerConfig",
]
