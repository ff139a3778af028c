"""
系统常量定义
============

定义Modbus RTU通信协议中使用的各种常量。
"""

from enum import IntEnum
from typing import Final, Dict, FrozenSet


class FunctionCode(IntEnum):
    """Modbus功能码枚举"""

    READ_COILS = 1  # 读线圈
    READ_INPUT_DISCRETES = 2  # 读离散输入
    READ_HOLDING_REGISTERS = 3  # 读保持寄存器
    READ_INPUT_REGISTERS = 4  # 读输入寄存器
    WRITE_COIL = 5  # 写单个线圈
    WRITE_SINGLE_REGISTER = 6  # 写单个寄存器
    WRITE_MULTIPLE_COILS = 15  # 写多个线圈
    WRITE_MULTIPLE_REGISTERS = 16  # 写多个寄存器
    REPORT_SLAVE_ID = 17  # 报告从站ID


class ByteOrder(IntEnum):
    """多寄存器数值的字节序"""

    BIG = 0  # 大端: AB CD
    LITTLE = 1  # 小端: DC BA
    MIDDLE = 2  # 中端(字交换): CD AB


# 帧内字段位置
MB_ADDR_POS: Final[int] = 0  # 地址
MB_FUNC_POS: Final[int] = 1  # 功能码
MB_RESP_LENGTH_POS: Final[int] = 2  # 应答数据长度/异常码
MB_RESP_DATA_POS: Final[int] = 3  # 应答数据起始

# 帧大小
FRAME_HEADER_SIZE: Final[int] = 3  # 地址 + 功能码 + 长度
FRAME_CRC_SIZE: Final[int] = 2  # CRC低字节 + CRC高字节
EXCEPTION_FLAG: Final[int] = 0x80  # 异常应答功能码最高位
BUFFER_MAX_SIZE: Final[int] = 1024  # 接收缓冲区最大长度

# 地址范围
MB_ADDRESS_BROADCAST: Final[int] = 0
MB_ADDRESS_MIN: Final[int] = 1
MB_ADDRESS_MAX: Final[int] = 247

# 寄存器相关限制
REGISTER_MAX_VALUE: Final[int] = 0xFFFF
MAX_READ_REGISTERS: Final[int] = 125  # 单次读取寄存器上限
MAX_WRITE_REGISTERS: Final[int] = 123  # 单次写入寄存器上限

# 串口配置默认值
DEFAULT_BAUDRATE: Final[int] = 9600  # 默认波特率
DEFAULT_SERIAL_TIMEOUT: Final[float] = 0.05  # 串口读超时(秒)，决定IO线程的唤醒粒度
DEFAULT_READ_CHUNK_SIZE: Final[int] = 256  # IO线程单次最大读取字节数

# 收发周期默认值
DEFAULT_RESPONSE_TIMEOUT: Final[float] = 1.8  # 默认应答超时时间(秒)

# 轮询默认值
DEFAULT_POLL_INTERVAL: Final[float] = 10.0  # 默认轮询间隔(秒)
DEFAULT_RETRY_COUNT: Final[int] = 2  # 默认重试次数
DEFAULT_BACKOFF_BASE: Final[float] = 0.2  # 指数退避基础秒数

# Modbus标准异常码名称，仅用于日志
MODBUS_EXCEPTION_NAMES: Final[Dict[int, str]] = {
    0x01: "ILLEGAL_FUNCTION",
    0x02: "ILLEGAL_DATA_ADDRESS",
    0x03: "ILLEGAL_DATA_VALUE",
    0x04: "SLAVE_DEVICE_FAILURE",
    0x05: "ACKNOWLEDGE",
    0x06: "SLAVE_DEVICE_BUSY",
    0x08: "MEMORY_PARITY_ERROR",
    0x0A: "GATEWAY_PATH_UNAVAILABLE",
    0x0B: "GATEWAY_TARGET_FAILED_TO_RESPOND",
}


def exception_name(code: int) -> str:
    """
    获取异常码对应的名称

    Args:
        code: Modbus异常码

    Returns:
        异常名称，未知异常码返回 UNKNOWN(0xNN)
    """
    return MODBUS_EXCEPTION_NAMES.get(code, f"UNKNOWN(0x{code:02X})")


# 这些功能码的正常应答是请求的回显，没有字节数字段，功能码后固定4字节
ECHO_FUNCTION_CODES: Final[FrozenSet[int]] = frozenset(
    (
        FunctionCode.WRITE_COIL,
        FunctionCode.WRITE_SINGLE_REGISTER,
        FunctionCode.WRITE_MULTIPLE_COILS,
        FunctionCode.WRITE_MULTIPLE_REGISTERS,
    )
)
ECHO_BODY_SIZE: Final[int] = 4
