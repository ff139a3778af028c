"""
配置管理
========

提供串口、连接和轮询相关的配置类。
"""

from dataclasses import dataclass
import serial

from .constants import (
    DEFAULT_BAUDRATE,
    DEFAULT_SERIAL_TIMEOUT,
    DEFAULT_READ_CHUNK_SIZE,
    DEFAULT_RESPONSE_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RETRY_COUNT,
    DEFAULT_BACKOFF_BASE,
    MB_ADDRESS_BROADCAST,
    MB_ADDRESS_MAX,
)


@dataclass
class SerialConfig:
    """串口配置类"""

    port: str  # 串口号
    baudrate: int = DEFAULT_BAUDRATE  # 波特率
    bytesize: int = serial.EIGHTBITS  # 数据位
    parity: str = serial.PARITY_NONE  # 校验位
    stopbits: float = serial.STOPBITS_ONE  # 停止位
    timeout: float = DEFAULT_SERIAL_TIMEOUT  # 读超时时间

    def to_serial_kwargs(self) -> dict:
        """转换为serial.Serial的参数字典"""
        return {
            "port": self.port,
            "baudrate": self.baudrate,
            "bytesize": self.bytesize,
            "parity": self.parity,
            "stopbits": self.stopbits,
            "timeout": self.timeout,
        }


@dataclass
class ConnectionConfig:
    """连接配置类"""

    response_timeout: float = DEFAULT_RESPONSE_TIMEOUT  # 默认应答超时(秒)
    read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE  # IO线程单次读取上限

    def __post_init__(self):
        """参数验证"""
        if self.response_timeout <= 0:
            raise ValueError("response_timeout必须大于0")
        if self.read_chunk_size <= 0:
            raise ValueError("read_chunk_size必须大于0")


@dataclass
class PollerConfig:
    """轮询配置类"""

    address: int  # 设备Modbus地址
    interval: float = DEFAULT_POLL_INTERVAL  # 轮询间隔(秒)
    retry_count: int = DEFAULT_RETRY_COUNT  # 超时后的重试次数
    backoff_base: float = DEFAULT_BACKOFF_BASE  # 指数退避基础秒数

    def __post_init__(self):
        """参数验证"""
        if not MB_ADDRESS_BROADCAST < self.address <= MB_ADDRESS_MAX:
            raise ValueError(f"address必须在1到{MB_ADDRESS_MAX}之间")
        if self.interval <= 0:
            raise ValueError("interval必须大于0")
        if self.retry_count < 0:
            raise ValueError("retry_count不能为负数")
        if self.backoff_base <= 0:
            raise ValueError("backoff_base必须大于0")
