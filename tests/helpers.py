"""
测试辅助工具
============

内存串口通道 LoopbackChannel、记录型订阅者以及应答构造函数，
用于在没有硬件的情况下驱动 ModbusRtuConnection。
"""

import struct
import threading
import time
from typing import Callable, List, Optional

from eniwise_modbus.core.checksum import append_crc
from eniwise_modbus.core.exceptions import SerialIoError
from eniwise_modbus.devices.scpm_s6 import (
    MBREG_S6_LENGTH,
    OFFSET_S6_A,
    OFFSET_S6_HZ,
    OFFSET_S6_KVARH_EXPORT,
    OFFSET_S6_KW,
    OFFSET_S6_KWH,
    OFFSET_S6_MCFG_DATA_SCALAR,
    OFFSET_S6_PF,
    OFFSET_S6_V,
)

Responder = Callable[[bytes], Optional[bytes]]


class LoopbackChannel:
    """
    内存串口通道

    - write() 记录写出的帧，并用 responder 生成应答字节放入接收缓冲
    - read() 最多阻塞 read_timeout 秒，每次最多返回 chunk_limit 字节
    """

    def __init__(self, responder: Optional[Responder] = None, chunk_limit: Optional[int] = None,
                 read_timeout: float = 0.01):
        self.responder = responder
        self.chunk_limit = chunk_limit
        self.read_timeout = read_timeout
        self.config = None

        self.written: List[bytes] = []
        self.open_count = 0
        self.fail_open = False
        self.fail_write = False
        self.fail_read = False

        self._rx = bytearray()
        self._open = False
        self._cond = threading.Condition()

    def __call__(self, config):
        """作为 channel_factory 使用"""
        self.config = config
        return self

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def in_waiting(self) -> int:
        with self._cond:
            return len(self._rx)

    def open(self) -> bool:
        if self.fail_open:
            return False
        self.open_count += 1
        self._open = True
        return True

    def close(self) -> None:
        with self._cond:
            self._open = False
            self._cond.notify_all()

    def write(self, data: bytes) -> None:
        if self.fail_write or not self._open:
            raise SerialIoError("模拟写入失败", operation="write")
        self.written.append(bytes(data))
        if self.responder is not None:
            reply = self.responder(bytes(data))
            if reply:
                self.inject(reply)

    def inject(self, data: bytes) -> None:
        """模拟设备发送字节"""
        with self._cond:
            self._rx.extend(data)
            self._cond.notify_all()

    def read(self, size: int) -> bytes:
        with self._cond:
            if not self._open:
                raise SerialIoError("模拟串口未打开", operation="read")
            if not self._rx and not self.fail_read:
                self._cond.wait(self.read_timeout)
            if self.fail_read:
                raise SerialIoError("模拟读取失败", operation="read")
            limit = size if self.chunk_limit is None else min(size, self.chunk_limit)
            data = bytes(self._rx[:limit])
            del self._rx[:limit]
            return data

    def break_reads(self) -> None:
        """让下一次读取失败"""
        with self._cond:
            self.fail_read = True
            self._cond.notify_all()


class RecordingListener:
    """记录收到的事件"""

    def __init__(self):
        self.received: List[bytes] = []
        self.received_threads: List[threading.Thread] = []
        self.closed = 0

    def on_received(self, packet: bytes) -> None:
        self.received.append(packet)
        self.received_threads.append(threading.current_thread())

    def on_closed(self) -> None:
        self.closed += 1


def make_read_reply(address: int, registers: List[int], function: int = 3) -> bytes:
    """构造读寄存器正常应答"""
    data = struct.pack(f">{len(registers)}H", *[r & 0xFFFF for r in registers])
    return append_crc(bytes((address, function, len(data))) + data)


def echo_read_responder(registers: List[int]) -> Responder:
    """按请求地址和功能码返回固定寄存器值的应答器"""
    def responder(request: bytes) -> bytes:
        return make_read_reply(request[0], registers, request[1])
    return responder


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """轮询等待条件成立"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()




def sample_registers(data_scalar: int = 1) -> List[int]:
    """构造一组SCPM-S6计量数据寄存器"""
    regs = [0] * MBREG_S6_LENGTH
    regs[OFFSET_S6_MCFG_DATA_SCALAR] = data_scalar
    # CH1 kWh = 0x00010000
    regs[OFFSET_S6_KWH] = 0x0001
    regs[OFFSET_S6_KWH + 1] = 0x0000
    # CH6 kVARh(export) = 12345
    regs[OFFSET_S6_KVARH_EXPORT + 10 + 1] = 12345
    regs[OFFSET_S6_KW] = 1234
    regs[OFFSET_S6_A + 1] = -150
    regs[OFFSET_S6_PF] = 98
    regs[OFFSET_S6_V] = 2300
    regs[OFFSET_S6_HZ] = 5000
    return regs
