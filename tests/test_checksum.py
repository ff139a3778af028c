#!/usr/bin/env python3
"""
校验算法测试
============

测试 eniwise_modbus.core.checksum 模块中的CRC16和LRC校验。

CRC16的期望值来自Modbus协议文档中的示例帧，
随机数据则与逐位移位的参考实现（多项式0xA001）对比。
"""

import random

import pytest

from eniwise_modbus.core.checksum import (
    crc16,
    crc16_value,
    append_crc,
    verify_crc,
    calculate_lrc,
)


def reference_crc16(data: bytes) -> int:
    """逐位计算的Modbus CRC16，用于对照查表实现"""
    crc = 0xFFFF
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ 0xA001
            else:
                crc >>= 1
    return crc


class TestCrc16:
    """测试CRC16查表计算"""

    @pytest.mark.parametrize("data,expected", [
        (bytes.fromhex("01030000000A"), (0xC5, 0xCD)),
        (bytes.fromhex("010300000001"), (0x84, 0x0A)),
        (bytes.fromhex("1103006B0003"), (0x76, 0x87)),
    ])
    def test_known_frames(self, data, expected):
        """
        测试协议文档中的已知请求帧

        返回值为线上发送顺序：(低字节, 高字节)
        """
        assert crc16(data) == expected

    def test_check_value(self):
        """CRC-16/MODBUS 标准校验值"""
        assert crc16_value(b"123456789") == 0x4B37

    def test_empty_data(self):
        """空数据返回初值0xFFFF"""
        assert crc16(b"") == (0xFF, 0xFF)
        assert crc16_value(b"") == 0xFFFF

    def test_matches_bitwise_reference(self):
        """随机数据与逐位参考实现一致"""
        rng = random.Random(20240601)
        for size in (1, 2, 7, 64, 255, 1024):
            data = bytes(rng.randrange(256) for _ in range(size))
            assert crc16_value(data) == reference_crc16(data), f"长度{size}的数据CRC不一致"

    def test_accepts_bytearray_and_memoryview(self):
        """支持bytes-like输入"""
        data = bytes.fromhex("01030000000A")
        assert crc16(bytearray(data)) == crc16(data)
        assert crc16(memoryview(data)) == crc16(data)

    def test_offset_and_length(self):
        """
        测试只计算数据中的一段

        length为参与计算的字节数
        """
        frame = b"\xAA\xBB" + bytes.fromhex("01030000000A") + b"\xCC"
        assert crc16(frame, 2, 6) == (0xC5, 0xCD)
        assert crc16(frame, 2, 0) == (0xFF, 0xFF)

    def test_offset_without_length_runs_to_end(self):
        """只给offset时计算到数据末尾"""
        data = b"\x00" + bytes.fromhex("010300000001")
        assert crc16(data, 1) == (0x84, 0x0A)

    @pytest.mark.parametrize("offset,length", [
        (-1, 2),
        (0, 7),
        (5, 2),
        (2, -1),
    ])
    def test_out_of_range(self, offset, length):
        """越界的offset/length抛出ValueError"""
        with pytest.raises(ValueError):
            crc16(b"\x01\x02\x03\x04\x05\x06", offset, length)

    @pytest.mark.parametrize("invalid_input", ["string", 123, None, [1, 2, 3]])
    def test_invalid_input_type(self, invalid_input):
        """非字节类型输入抛出TypeError"""
        with pytest.raises(TypeError):
            crc16(invalid_input)


class TestCrcFrames:
    """测试整帧的CRC追加与校验"""

    def test_append_crc(self):
        """CRC以低字节在前追加到末尾"""
        frame = append_crc(bytes.fromhex("01030000000A"))
        assert frame == bytes.fromhex("01030000000AC5CD")

    def test_verify_valid_frame(self):
        assert verify_crc(bytes.fromhex("1103006B00037687")) is True

    def test_verify_too_short(self):
        """不足3字节的数据无法构成帧"""
        assert verify_crc(b"") is False
        assert verify_crc(b"\xFF\xFF") is False

    def test_any_single_bit_flip_detected(self):
        """
        翻转帧中任意一位都会使校验失败

        CRC16能检测所有单比特错误
        """
        frame = append_crc(bytes.fromhex("0503B3B1006C"))
        for index in range(len(frame)):
            for bit in range(8):
                corrupted = bytearray(frame)
                corrupted[index] ^= 1 << bit
                assert verify_crc(bytes(corrupted)) is False, f"第{index}字节第{bit}位翻转未被检测"


class TestCalculateLrc:
    """测试LRC校验"""

    def test_known_value(self):
        """01 03 00 00 00 0A 的字节和为0x0E，补码为0xF2"""
        assert calculate_lrc(bytes.fromhex("01030000000A")) == 0xF2

    def test_empty_data(self):
        assert calculate_lrc(b"") == 0

    def test_sum_with_lrc_is_zero(self):
        """数据与LRC之和的低8位为0"""
        data = bytes(range(1, 200))
        assert (sum(data) + calculate_lrc(data)) & 0xFF == 0

    def test_offset_and_length(self):
        data = b"\xFF" + bytes.fromhex("01030000000A")
        assert calculate_lrc(data, 1, 6) == 0xF2
