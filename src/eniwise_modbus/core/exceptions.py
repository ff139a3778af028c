"""
异常定义模块
============

Modbus RTU收发过程中的异常类型。

- NotConnectedError: 串口未打开
- BusyError: 已有请求在等待应答（半双工，只允许一个未完成请求）
- ResponseTimeoutError: 超时内未收到地址匹配且CRC正确的应答
- SerialIoError: 串口读写失败，连接随之关闭
- MalformedRequestError: 请求参数越界，在任何IO之前抛出
"""

from typing import Optional


class ModbusRtuError(Exception):
    """所有本项目异常的基类"""
    pass


class TransportError(ModbusRtuError):
    """
    收发周期异常的基类

    Attributes:
        port: 发生错误的串口号
        operation: 失败的操作（如 'send', 'write'）
        original_error: 引起该异常的底层异常
    """

    def __init__(
        self,
        message: str,
        port: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.port = port
        self.operation = operation
        self.original_error = original_error


class NotConnectedError(TransportError):
    """串口未打开，或等待应答期间连接被关闭"""
    pass


class BusyError(TransportError):
    """已有请求处于等待应答状态"""
    pass


class ResponseTimeoutError(TransportError):
    """
    应答超时

    包括所有候选帧CRC均校验失败的情况。

    Attributes:
        timeout: 本次等待的超时时间(秒)
    """

    def __init__(self, message: str, timeout: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.timeout = timeout


class SerialIoError(TransportError):
    """串口读写失败，连接已被关闭"""
    pass


class MalformedRequestError(ModbusRtuError, ValueError):
    """请求参数越界"""
    pass
