"""
帧重组模块
==========

逐字节消费串口字节流，重组出一个完整的Modbus RTU应答帧并校验CRC。

状态按顺序推进，帧完成、地址不匹配或CRC错误时回到 AWAIT_ADDRESS：

    AWAIT_ADDRESS -> AWAIT_FUNCTION -> AWAIT_LENGTH -> AWAIT_DATA -> AWAIT_CRC

字节可能任意切分到达（最少每次1字节），状态机在每个字节上都可恢复。
本模块不是线程安全的，由调用方（连接对象）加锁保护。
"""

from enum import Enum
from typing import List, Optional

from ..config.constants import (
    ECHO_FUNCTION_CODES,
    ECHO_BODY_SIZE,
    BUFFER_MAX_SIZE,
    EXCEPTION_FLAG,
    FRAME_CRC_SIZE,
    FRAME_HEADER_SIZE,
)
from .checksum import crc16
from .frame_handler import to_hex_string
from ..utils.logger import get_logger, log_frame

logger = get_logger(__name__)


class AssemblerState(Enum):
    """帧重组状态"""

    AWAIT_ADDRESS = "await_address"
    AWAIT_FUNCTION = "await_function"
    AWAIT_LENGTH = "await_length"
    AWAIT_DATA = "await_data"
    AWAIT_CRC = "await_crc"


class FrameAssembler:
    """
    Modbus RTU应答帧重组器

    expected_address 为当前等待应答的从站地址，为None时丢弃所有字节。
    """

    def __init__(self, buffer_size: int = BUFFER_MAX_SIZE):
        self.buffer_size = buffer_size
        self.expected_address: Optional[int] = None

        self._buffer = bytearray()
        self._state = AssemblerState.AWAIT_ADDRESS
        self._expected_length = 0
        self._is_exception_reply = False

        # 统计信息
        self.frames_completed = 0
        self.crc_errors = 0
        self.bytes_discarded = 0

    @property
    def state(self) -> AssemblerState:
        """当前状态"""
        return self._state

    @property
    def write_offset(self) -> int:
        """已写入缓冲区的字节数"""
        return len(self._buffer)

    @property
    def expected_length(self) -> int:
        """应答声明的数据长度"""
        return self._expected_length

    @property
    def is_exception_reply(self) -> bool:
        """当前帧是否为异常应答"""
        return self._is_exception_reply

    def reset(self) -> None:
        """清空缓冲区并回到 AWAIT_ADDRESS"""
        self._buffer.clear()
        self._state = AssemblerState.AWAIT_ADDRESS
        self._expected_length = 0
        self._is_exception_reply = False

    def expect(self, address: Optional[int]) -> None:
        """设置等待应答的从站地址并复位状态机"""
        self.expected_address = address
        self.reset()

    def feed(self, data: bytes) -> List[bytes]:
        """
        输入一段字节

        Args:
            data: 新到达的字节，长度任意

        Returns:
            本段数据中完成并校验通过的帧列表（通常最多一个）
        """
        frames = []
        for byte in data:
            frame = self.feed_byte(byte)
            if frame is not None:
                frames.append(frame)
        return frames

    def feed_byte(self, byte: int) -> Optional[bytes]:
        """
        输入单个字节

        Returns:
            字节使帧完整且CRC正确时返回帧的原始字节，否则返回None
        """
        state = self._state

        if state == AssemblerState.AWAIT_ADDRESS:
            if self.expected_address is None or byte != self.expected_address:
                self.bytes_discarded += 1
                self.reset()
                return None
            self._buffer.append(byte)
            self._state = AssemblerState.AWAIT_FUNCTION

        elif state == AssemblerState.AWAIT_FUNCTION:
            self._buffer.append(byte)
            self._is_exception_reply = (byte & 0xF0) == EXCEPTION_FLAG
            self._state = AssemblerState.AWAIT_LENGTH

        elif state == AssemblerState.AWAIT_LENGTH:
            self._buffer.append(byte)
            if self._is_exception_reply:
                # 该字节为异常码，已计入固定头部
                self._expected_length = 0
                logger.debug(f"收到异常码: 0x{byte:02X}")
            elif self._buffer[1] in ECHO_FUNCTION_CODES:
                self._expected_length = ECHO_BODY_SIZE - 1
            else:
                self._expected_length = byte
            if FRAME_HEADER_SIZE + self._expected_length + FRAME_CRC_SIZE > self.buffer_size:
                logger.debug(f"声明长度超出缓冲区: {self._expected_length}")
                self.bytes_discarded += len(self._buffer)
                self.reset()
                return None
            self._state = (
                AssemblerState.AWAIT_DATA if self._expected_length > 0 else AssemblerState.AWAIT_CRC
            )

        elif state == AssemblerState.AWAIT_DATA:
            self._buffer.append(byte)
            if len(self._buffer) == FRAME_HEADER_SIZE + self._expected_length:
                self._state = AssemblerState.AWAIT_CRC

        else:
            self._buffer.append(byte)
            if len(self._buffer) == FRAME_HEADER_SIZE + self._expected_length + FRAME_CRC_SIZE:
                return self._complete()

        return None

    def _complete(self) -> Optional[bytes]:
        """校验CRC，完成一帧并复位"""
        body_length = FRAME_HEADER_SIZE + self._expected_length
        frame = bytes(self._buffer)
        expected_crc = crc16(frame, 0, body_length)
        self.reset()

        log_frame(logger, "收到数据", frame)
        if expected_crc != (frame[-2], frame[-1]):
            self.crc_errors += 1
            logger.debug(
                f"CRC校验失败: 期望={to_hex_string(bytes(expected_crc))} "
                f"实际={to_hex_string(frame, len(frame) - 2, 2)}"
            )
            return None

        self.frames_completed += 1
        return frame

    def get_statistics(self) -> dict:
        """获取重组统计信息"""
        return {
            "state": self._state.value,
            "frames_completed": self.frames_completed,
            "crc_errors": self.crc_errors,
            "bytes_discarded": self.bytes_discarded,
        }
