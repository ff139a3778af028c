"""
EniWise Modbus RTU 通信库
========================

通过Modbus RTU串口链路与EniWise电能计量设备通信：构造请求帧、
发送并等待应答、重组与校验应答帧，并把解码后的数据交给上层。

主要功能：
- CRC16校验与寄存器编解码
- 请求帧构造
- 应答帧逐字节重组
- 半双工单请求的同步收发周期
- 事件订阅通知
"""

__version__ = "1.0.0"
__description__ = "EniWise电能计量设备的Modbus RTU通信库"

# 导出主要类
from .core.connection import ModbusRtuConnection
from .core.frame_handler import FrameHandler, ModbusFrame
from .core.listeners import ModbusEventListener
from .core.exceptions import (
    ModbusRtuError,
    TransportError,
    NotConnectedError,
    BusyError,
    ResponseTimeoutError,
    SerialIoError,
    MalformedRequestError,
)

__all__ = [
    "ModbusRtuConnection",
    "FrameHandler",
    "ModbusFrame",
    "ModbusEventListener",
    "ModbusRtuError",
    "TransportError",
    "NotConnectedError",
    "BusyError",
    "ResponseTimeoutError",
    "SerialIoError",
    "MalformedRequestError",
]
