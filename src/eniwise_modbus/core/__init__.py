"""
核心模块
========

包含CRC校验、寄存器编解码、数据帧构造与重组、串口管理和Modbus RTU连接等核心功能。
"""

from .checksum import crc16, verify_crc, calculate_lrc
from .frame_handler import FrameHandler, ModbusFrame
from .frame_assembler import FrameAssembler, AssemblerState
from .serial_manager import SerialManager
from .listeners import ModbusEventListener, ListenerRegistry
from .connection import ModbusRtuConnection
from .exceptions import (
    ModbusRtuError,
    TransportError,
    NotConnectedError,
    BusyError,
    ResponseTimeoutError,
    SerialIoError,
    MalformedRequestError,
)

__all__ = [
    "crc16",
    "verify_crc",
    "calculate_lrc",
    "FrameHandler",
    "ModbusFrame",
    "FrameAssembler",
    "AssemblerState",
    "SerialManager",
    "ModbusEventListener",
    "ListenerRegistry",
    "ModbusRtuConnection",
    "ModbusRtuError",
    "TransportError",
    "NotConnectedError",
    "BusyError",
    "ResponseTimeoutError",
    "SerialIoError",
    "MalformedRequestError",
]
