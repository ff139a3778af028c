"""
串口管理模块
============

提供串口的统一管理和操作接口，是收发层下方的物理通道。
"""

import threading
import serial
from serial.tools import list_ports
from typing import List, Optional, Dict

from ..config.settings import SerialConfig
from .exceptions import SerialIoError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class SerialManager:
    """串口管理器"""

    def __init__(self, config: SerialConfig):
        """
        初始化串口管理器

        Args:
            config: 串口配置对象
        """
        self.config = config
        self._port: Optional[serial.Serial] = None
        self._write_lock = threading.Lock()

    @property
    def port(self) -> Optional[serial.Serial]:
        """获取串口对象"""
        return self._port

    @property
    def is_open(self) -> bool:
        """检查串口是否已打开"""
        return self._port is not None and self._port.is_open

    @property
    def in_waiting(self) -> int:
        """接收缓冲区中等待读取的字节数，串口未打开时为0"""
        try:
            return self._port.in_waiting if self.is_open else 0
        except (serial.SerialException, OSError) as e:
            raise SerialIoError(f"查询接收缓冲区失败: {e}", port=self.config.port,
                                operation="in_waiting", original_error=e) from e

    def open(self) -> bool:
        """
        打开串口连接

        Returns:
            成功返回True，失败返回False
        """
        try:
            if self.is_open:
                logger.warning(f"串口 {self.config.port} 已经打开")
                return True

            self._port = serial.Serial(**self.config.to_serial_kwargs())

            logger.info(f"成功打开串口 {self.config.port} @ {self.config.baudrate}")
            return True

        except (serial.SerialException, OSError, ValueError) as e:
            logger.error(f"打开串口失败: {e}")
            self._port = None
            return False

    def close(self) -> None:
        """关闭串口连接"""
        try:
            if self._port and self._port.is_open:
                self._port.close()
                logger.info(f"已关闭串口 {self.config.port}")
        except Exception as e:
            logger.error(f"关闭串口失败: {e}")
        finally:
            self._port = None

    def write(self, data: bytes) -> None:
        """
        向串口写入数据并刷新

        多个写入者之间互斥，一帧数据作为一次原子写入。

        Args:
            data: 要写入的字节数据

        Raises:
            SerialIoError: 串口未打开或写入失败
        """
        with self._write_lock:
            if not self.is_open:
                raise SerialIoError("串口未打开，无法写入数据", port=self.config.port, operation="write")
            try:
                bytes_written = self._port.write(data)
                self._port.flush()
            except (serial.SerialException, OSError) as e:
                raise SerialIoError(f"写入数据失败: {e}", port=self.config.port,
                                    operation="write", original_error=e) from e

        if bytes_written is not None and bytes_written != len(data):
            raise SerialIoError(
                f"写入不完整: {bytes_written}/{len(data)}", port=self.config.port, operation="write"
            )

    def read(self, size: int) -> bytes:
        """
        从串口读取最多size字节，最长阻塞一个读超时周期

        Args:
            size: 最多读取的字节数

        Returns:
            读取到的数据，超时无数据时返回空bytes

        Raises:
            SerialIoError: 串口未打开或读取失败
        """
        port = self._port
        if port is None or not port.is_open:
            raise SerialIoError("串口未打开，无法读取数据", port=self.config.port, operation="read")
        try:
            return port.read(size)
        except (serial.SerialException, OSError, TypeError) as e:
            # 串口在读取过程中被关闭时pyserial可能抛出TypeError
            raise SerialIoError(f"读取数据失败: {e}", port=self.config.port,
                                operation="read", original_error=e) from e

    @staticmethod
    def list_available_ports() -> List[Dict[str, str]]:
        """
        获取系统可用的串口列表

        Returns:
            串口信息列表，每个元素包含device、description等字段
        """
        try:
            ports = []
            for port_info in list_ports.comports():
                ports.append({
                    'device': port_info.device,
                    'description': port_info.description or '未知设备',
                    'hwid': port_info.hwid or '未知硬件ID'
                })
            return ports
        except Exception as e:
            logger.error(f"获取串口列表失败: {e}")
            return []

    def __enter__(self):
        """支持with语句"""
        if not self.open():
            raise RuntimeError(f"无法打开串口 {self.config.port}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """支持with语句"""
        self.close()
