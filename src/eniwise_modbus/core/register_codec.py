"""
寄存器编解码模块
================

在2/4/8字节的寄存器数据与有符号/无符号整数、IEEE单/双精度浮点数之间转换。

支持三种字节序：
- BIG: 大端，高位字在前，字内高字节在前（AB CD）
- LITTLE: 小端，整段字节完全反转（DC BA）
- MIDDLE: 中端，低位字在前，字内高字节在前（CD AB）
"""

import struct
from typing import Union

from ..config.constants import ByteOrder

BytesLike = Union[bytes, bytearray, memoryview]

# 宽度 -> struct格式字符（有符号/无符号/浮点）
_INT_FORMATS = {2: ("h", "H"), 4: ("i", "I"), 8: ("q", "Q")}
_FLOAT_FORMATS = {4: "f", 8: "d"}


def _to_big_endian(raw: bytes, order: ByteOrder) -> bytes:
    """把任意字节序的寄存器数据规整为大端字节序（自身互逆）"""
    order = ByteOrder(order)
    if order == ByteOrder.BIG:
        return raw
    if order == ByteOrder.LITTLE:
        return raw[::-1]
    # MIDDLE: 按16位字反转顺序，字内字节保持不变
    words = [raw[i:i + 2] for i in range(0, len(raw), 2)]
    return b"".join(reversed(words))


def _slice(data: BytesLike, idx: int, width: int) -> bytes:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError("输入数据必须是bytes类型")
    if idx < 0 or idx + width > len(data):
        raise ValueError(f"数据长度不足: 需要{idx + width}字节, 实际{len(data)}字节")
    return bytes(data[idx:idx + width])


def decode_integer(
    data: BytesLike,
    idx: int = 0,
    width: int = 2,
    signed: bool = True,
    order: ByteOrder = ByteOrder.BIG,
) -> int:
    """
    从寄存器数据中解码整数

    Args:
        data: 寄存器字节数据
        idx: 起始偏移
        width: 字节宽度，2、4或8
        signed: 是否为有符号数
        order: 字节序

    Returns:
        解码后的整数
    """
    if width not in _INT_FORMATS:
        raise ValueError(f"不支持的整数宽度: {width}")
    fmt = _INT_FORMATS[width][0 if signed else 1]
    raw = _to_big_endian(_slice(data, idx, width), order)
    return struct.unpack(">" + fmt, raw)[0]


def encode_integer(
    value: int,
    width: int = 2,
    signed: bool = True,
    order: ByteOrder = ByteOrder.BIG,
) -> bytes:
    """
    把整数编码为寄存器数据

    Raises:
        ValueError: 数值超出该宽度的表示范围
    """
    if width not in _INT_FORMATS:
        raise ValueError(f"不支持的整数宽度: {width}")
    fmt = _INT_FORMATS[width][0 if signed else 1]
    try:
        raw = struct.pack(">" + fmt, value)
    except struct.error as e:
        raise ValueError(f"数值{value}超出{width * 8}位范围") from e
    return _to_big_endian(raw, order)


def decode_float(
    data: BytesLike, idx: int = 0, width: int = 4, order: ByteOrder = ByteOrder.BIG
) -> float:
    """从寄存器数据中解码单精度(4字节)或双精度(8字节)浮点数"""
    if width not in _FLOAT_FORMATS:
        raise ValueError(f"不支持的浮点宽度: {width}")
    raw = _to_big_endian(_slice(data, idx, width), order)
    return struct.unpack(">" + _FLOAT_FORMATS[width], raw)[0]


def encode_float(value: float, width: int = 4, order: ByteOrder = ByteOrder.BIG) -> bytes:
    """把浮点数编码为寄存器数据"""
    if width not in _FLOAT_FORMATS:
        raise ValueError(f"不支持的浮点宽度: {width}")
    raw = struct.pack(">" + _FLOAT_FORMATS[width], value)
    return _to_big_endian(raw, order)


# 常用宽度的快捷函数

def registers_to_short(data: BytesLike, idx: int = 0, order: ByteOrder = ByteOrder.BIG) -> int:
    return decode_integer(data, idx, 2, True, order)


def registers_to_ushort(data: BytesLike, idx: int = 0, order: ByteOrder = ByteOrder.BIG) -> int:
    return decode_integer(data, idx, 2, False, order)


def registers_to_int(data: BytesLike, idx: int = 0, order: ByteOrder = ByteOrder.BIG) -> int:
    return decode_integer(data, idx, 4, True, order)


def registers_to_uint(data: BytesLike, idx: int = 0, order: ByteOrder = ByteOrder.BIG) -> int:
    return decode_integer(data, idx, 4, False, order)


def registers_to_long(data: BytesLike, idx: int = 0, order: ByteOrder = ByteOrder.BIG) -> int:
    return decode_integer(data, idx, 8, True, order)


def registers_to_ulong(data: BytesLike, idx: int = 0, order: ByteOrder = ByteOrder.BIG) -> int:
    return decode_integer(data, idx, 8, False, order)


def registers_to_float(data: BytesLike, idx: int = 0, order: ByteOrder = ByteOrder.BIG) -> float:
    return decode_float(data, idx, 4, order)


def registers_to_double(data: BytesLike, idx: int = 0, order: ByteOrder = ByteOrder.BIG) -> float:
    return decode_float(data, idx, 8, order)


def short_to_registers(value: int, order: ByteOrder = ByteOrder.BIG) -> bytes:
    return encode_integer(value, 2, True, order)


def ushort_to_registers(value: int, order: ByteOrder = ByteOrder.BIG) -> bytes:
    return encode_integer(value, 2, False, order)


def int_to_registers(value: int, order: ByteOrder = ByteOrder.BIG) -> bytes:
    return encode_integer(value, 4, True, order)


def uint_to_registers(value: int, order: ByteOrder = ByteOrder.BIG) -> bytes:
    return encode_integer(value, 4, False, order)


def long_to_registers(value: int, order: ByteOrder = ByteOrder.BIG) -> bytes:
    return encode_integer(value, 8, True, order)


def ulong_to_registers(value: int, order: ByteOrder = ByteOrder.BIG) -> bytes:
    return encode_integer(value, 8, False, order)


def float_to_registers(value: float, order: ByteOrder = ByteOrder.BIG) -> bytes:
    return encode_float(value, 4, order)


def double_to_registers(value: float, order: ByteOrder = ByteOrder.BIG) -> bytes:
    return encode_float(value, 8, order)
