"""
数据帧处理模块
==============

负责Modbus RTU请求帧的构造以及应答帧的解析。

请求帧格式：| 地址(1B) | 功能码(1B) | 功能相关字段(NB) | CRC低(1B) | CRC高(1B) |
正常应答：  | 地址(1B) | 功能码(1B) | 字节数(1B) | 数据(NB) | CRC低(1B) | CRC高(1B) |
异常应答：  | 地址(1B) | 功能码|0x80(1B) | 异常码(1B) | CRC低(1B) | CRC高(1B) |
"""

import struct
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from ..config.constants import (
    FunctionCode,
    MB_ADDR_POS,
    MB_FUNC_POS,
    FRAME_CRC_SIZE,
    EXCEPTION_FLAG,
    ECHO_FUNCTION_CODES,
    REGISTER_MAX_VALUE,
    MAX_READ_REGISTERS,
    MAX_WRITE_REGISTERS,
    exception_name,
)
from .checksum import crc16, append_crc
from .exceptions import MalformedRequestError
from ..utils.logger import get_logger

logger = get_logger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]


def to_hex_string(data: BytesLike, offset: int = 0, length: Optional[int] = None) -> str:
    """
    把字节数据转换为大写十六进制字符串（无分隔符）

    Examples:
        >>> to_hex_string(b'\\x01\\x03\\xab')
        '0103AB'
    """
    if length is None:
        length = len(data) - offset
    return bytes(data[offset:offset + length]).hex().upper()


def get_address(packet: BytesLike) -> int:
    """获取帧中的从站地址"""
    return packet[MB_ADDR_POS] & 0xFF


def get_function_code(packet: BytesLike) -> int:
    """获取帧中的功能码"""
    return packet[MB_FUNC_POS] & 0xFF


@dataclass(frozen=True)
class ModbusFrame:
    """
    不可变的Modbus RTU帧

    payload 为功能码之后、CRC之前的全部字节（应答帧含长度字节）。
    """

    address: int
    function: int
    payload: bytes
    crc: int

    @classmethod
    def from_bytes(cls, raw: BytesLike) -> "ModbusFrame":
        """
        从原始字节构造帧（不校验CRC）

        Raises:
            ValueError: 长度不足4字节
        """
        raw = bytes(raw)
        if len(raw) < 2 + FRAME_CRC_SIZE:
            raise ValueError(f"帧长度不足: {len(raw)}")
        crc = raw[-2] | (raw[-1] << 8)
        return cls(address=raw[MB_ADDR_POS], function=raw[MB_FUNC_POS], payload=raw[2:-2], crc=crc)

    @property
    def raw(self) -> bytes:
        """完整的线上字节序列"""
        return (
            bytes((self.address, self.function))
            + self.payload
            + struct.pack("<H", self.crc)
        )

    @property
    def is_valid(self) -> bool:
        """CRC是否与帧内容一致"""
        lo, hi = crc16(bytes((self.address, self.function)) + self.payload)
        return self.crc == (hi << 8) | lo

    @property
    def is_exception(self) -> bool:
        """是否为异常应答"""
        return (self.function & 0xF0) == EXCEPTION_FLAG

    @property
    def exception_code(self) -> Optional[int]:
        """异常应答的异常码，正常帧返回None"""
        if not self.is_exception or not self.payload:
            return None
        return self.payload[0]

    @property
    def data(self) -> bytes:
        """
        正常应答的数据部分

        读类应答为长度字节之后的数据；写类应答为回显的起始寄存器和值/数量。
        """
        if self.is_exception or not self.payload:
            return b""
        if self.function in ECHO_FUNCTION_CODES:
            return self.payload
        return self.payload[1:1 + self.payload[0]]

    def __len__(self) -> int:
        return 2 + len(self.payload) + FRAME_CRC_SIZE

    def __str__(self) -> str:
        if self.is_exception:
            code = self.exception_code
            return (
                f"ModbusFrame(addr={self.address}, func=0x{self.function:02X}, "
                f"exception={exception_name(code) if code is not None else '?'})"
            )
        return f"ModbusFrame(addr={self.address}, func={self.function}, raw={to_hex_string(self.raw)})"


def _check_u8(name: str, value: int) -> None:
    if not 0 <= value <= 0xFF:
        raise MalformedRequestError(f"{name}必须在0到255之间: {value}")


def _check_u16(name: str, value: int) -> None:
    if not 0 <= value <= REGISTER_MAX_VALUE:
        raise MalformedRequestError(f"{name}必须在0到{REGISTER_MAX_VALUE}之间: {value}")


def _check_count(count: int, limit: int) -> None:
    if not 1 <= count <= limit:
        raise MalformedRequestError(f"寄存器数量必须在1到{limit}之间: {count}")


class FrameHandler:
    """Modbus RTU数据帧处理器"""

    @staticmethod
    def build_read_registers(function: int, address: int, offset: int, count: int) -> bytes:
        """
        构造读寄存器请求（功能码3或4）

        Args:
            function: 功能码，READ_HOLDING_REGISTERS 或 READ_INPUT_REGISTERS
            address: 从站地址
            offset: 起始寄存器
            count: 寄存器数量

        Returns:
            8字节请求帧

        Raises:
            MalformedRequestError: 参数越界
        """
        if function not in (FunctionCode.READ_HOLDING_REGISTERS, FunctionCode.READ_INPUT_REGISTERS):
            raise MalformedRequestError(f"不是读寄存器功能码: {function}")
        _check_u8("address", address)
        _check_u16("offset", offset)
        _check_count(count, MAX_READ_REGISTERS)
        return append_crc(struct.pack(">BBHH", address, int(function), offset, count))

    @staticmethod
    def build_read_holding_registers(address: int, offset: int, count: int) -> bytes:
        """构造READ_HOLDING_REGISTERS(3)请求"""
        return FrameHandler.build_read_registers(
            FunctionCode.READ_HOLDING_REGISTERS, address, offset, count
        )

    @staticmethod
    def build_read_input_registers(address: int, offset: int, count: int) -> bytes:
        """构造READ_INPUT_REGISTERS(4)请求"""
        return FrameHandler.build_read_registers(
            FunctionCode.READ_INPUT_REGISTERS, address, offset, count
        )

    @staticmethod
    def build_write_single_register(address: int, offset: int, value: int) -> bytes:
        """
        构造WRITE_SINGLE_REGISTER(6)请求

        Args:
            address: 从站地址
            offset: 寄存器地址
            value: 写入值(0~0xFFFF)
        """
        _check_u8("address", address)
        _check_u16("offset", offset)
        _check_u16("value", value)
        return append_crc(
            struct.pack(">BBHH", address, int(FunctionCode.WRITE_SINGLE_REGISTER), offset, value)
        )

    @staticmethod
    def build_write_multiple_registers(address: int, offset: int, values: Sequence[int]) -> bytes:
        """
        构造WRITE_MULTIPLE_REGISTERS(16)请求

        帧格式：地址 | 16 | 起始寄存器(2B) | 数量(2B) | 字节数(1B) | 值(2B * 数量) | CRC

        Args:
            address: 从站地址
            offset: 起始寄存器
            values: 要写入的寄存器值序列
        """
        _check_u8("address", address)
        _check_u16("offset", offset)
        count = len(values)
        _check_count(count, MAX_WRITE_REGISTERS)
        for value in values:
            _check_u16("value", value)

        header = struct.pack(
            ">BBHHB", address, int(FunctionCode.WRITE_MULTIPLE_REGISTERS), offset, count, count * 2
        )
        body = struct.pack(f">{count}H", *values)
        return append_crc(header + body)

    @staticmethod
    def build_report_slave_id(address: int) -> bytes:
        """构造REPORT_SLAVE_ID(17)请求，无数据字段"""
        _check_u8("address", address)
        return append_crc(bytes((address, int(FunctionCode.REPORT_SLAVE_ID))))

    @staticmethod
    def parse_frame(raw: BytesLike) -> Optional[ModbusFrame]:
        """
        解析并校验一个完整的应答帧

        Args:
            raw: 接收到的完整帧字节

        Returns:
            校验通过返回ModbusFrame，失败返回None
        """
        try:
            frame = ModbusFrame.from_bytes(raw)
        except ValueError as e:
            logger.debug(f"解析数据帧失败: {e}")
            return None

        if not frame.is_valid:
            logger.debug(f"CRC校验失败: {to_hex_string(raw)}")
            return None

        if frame.is_exception:
            code = frame.exception_code
            logger.debug(
                f"设备#{frame.address} 返回异常应答: "
                f"{exception_name(code) if code is not None else '?'}"
            )

        return frame
