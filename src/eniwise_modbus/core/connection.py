"""
Modbus RTU连接模块
==================

管理一个串口上的Modbus RTU主站连接，实现同步的“发送-等待应答”周期。

串口是半双工介质，任何时刻最多只有一个未完成的请求：
- 发送方线程调用 send()，登记等待中的交换(PendingExchange)后写出请求帧，
  然后在条件变量上等待，直到应答到达、超时或连接关闭。
- IO线程把收到的字节交给 FrameAssembler，帧完整且CRC正确时
  把结果写入交换并唤醒发送方。
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from ..config.constants import DEFAULT_BAUDRATE, FRAME_CRC_SIZE
from ..config.settings import SerialConfig, ConnectionConfig
from .exceptions import (
    NotConnectedError,
    BusyError,
    ResponseTimeoutError,
    SerialIoError,
    MalformedRequestError,
    TransportError,
)
from .frame_assembler import FrameAssembler
from .frame_handler import FrameHandler, ModbusFrame, get_address
from .io_thread import IoThread
from .listeners import ListenerRegistry, ModbusEventListener
from .serial_manager import SerialManager
from ..utils.logger import get_logger, log_frame

logger = get_logger(__name__)


class ExchangeOutcome(Enum):
    """一次请求-应答交换的结果"""

    PENDING = "pending"
    MATCHED = "matched"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass
class PendingExchange:
    """等待应答中的交换，只在连接的状态锁内读写"""

    expected_address: int
    deadline: float
    outcome: ExchangeOutcome = ExchangeOutcome.PENDING
    response: Optional[bytes] = None
    error: Optional[TransportError] = None


class ModbusRtuConnection:
    """
    Modbus RTU串口连接

    Examples:
        >>> connection = ModbusRtuConnection('/dev/ttyUSB0', 9600)
        >>> connection.connect()
        True
        >>> frame = connection.read_holding_registers(5, 46001, 108)
        >>> connection.close()
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        config: Optional[ConnectionConfig] = None,
        serial_config: Optional[SerialConfig] = None,
        channel_factory: Callable[[SerialConfig], SerialManager] = SerialManager,
    ):
        """
        初始化连接（不打开串口）

        Args:
            port: 串口号
            baudrate: 波特率
            config: 连接配置，None使用默认值
            serial_config: 完整串口配置，提供时忽略port和baudrate
            channel_factory: 根据串口配置创建物理通道的工厂
        """
        self.serial_config = serial_config or SerialConfig(port=port, baudrate=baudrate)
        self.config = config or ConnectionConfig()
        self._channel_factory = channel_factory

        self._channel: Optional[SerialManager] = None
        self._io_thread: Optional[IoThread] = None
        self._assembler = FrameAssembler()
        self._listeners = ListenerRegistry()

        # 保护 _is_open、_pending 和 _assembler
        self._state_lock = threading.Lock()
        self._response_ready = threading.Condition(self._state_lock)
        self._write_lock = threading.Lock()
        self._is_open = False
        self._pending: Optional[PendingExchange] = None

        # 统计信息
        self.err_count = 0
        self.requests_sent = 0
        self.responses_received = 0
        self.timeouts = 0

    @property
    def port(self) -> str:
        return self.serial_config.port

    @property
    def baudrate(self) -> int:
        return self.serial_config.baudrate

    @property
    def is_connected(self) -> bool:
        """检查连接是否已打开"""
        with self._state_lock:
            return self._is_open

    @property
    def is_busy(self) -> bool:
        """是否有请求正在等待应答"""
        with self._state_lock:
            return self._pending is not None

    def subscribe(self, listener: ModbusEventListener) -> None:
        """添加事件订阅者"""
        self._listeners.subscribe(listener)

    def unsubscribe(self, listener: ModbusEventListener) -> None:
        """移除事件订阅者"""
        self._listeners.unsubscribe(listener)

    def connect(self) -> bool:
        """
        打开串口并启动IO线程

        已连接时直接返回True。

        Returns:
            成功返回True，失败返回False
        """
        with self._state_lock:
            if self._is_open:
                return True

            channel = self._channel_factory(self.serial_config)
            if not channel.open():
                self.err_count += 1
                logger.error(f"连接串口 {self.port} 失败 (errCount={self.err_count})")
                return False

            io_thread = IoThread(
                channel,
                on_data=self._on_data,
                on_error=self._on_io_error,
                read_chunk_size=self.config.read_chunk_size,
                name=f"modbus-io-{self.port}",
            )
            if not io_thread.start():
                channel.close()
                self.err_count += 1
                return False

            self._channel = channel
            self._io_thread = io_thread
            self._pending = None
            self._assembler.expect(None)
            self._is_open = True

        logger.debug(f"已连接串口: {self.port}")
        return True

    def close(self) -> None:
        """
        关闭连接

        已关闭时不做任何事；每次真正的关闭只通知订阅者一次。
        等待中的交换以 NotConnectedError 结束。
        """
        self._shutdown(None)

    def send(self, frame: bytes, timeout: Optional[float] = None) -> ModbusFrame:
        """
        发送请求帧并等待应答

        Args:
            frame: 完整的请求帧（含CRC）
            timeout: 应答超时时间(秒)，None使用连接配置的默认值

        Returns:
            地址匹配且CRC正确的应答帧

        Raises:
            MalformedRequestError: 请求帧或超时参数非法
            NotConnectedError: 连接未打开，或等待期间连接被关闭
            BusyError: 已有请求在等待应答
            ResponseTimeoutError: 超时内未收到有效应答
            SerialIoError: 串口读写失败，连接已关闭
        """
        if timeout is None:
            timeout = self.config.response_timeout
        if timeout <= 0:
            raise MalformedRequestError(f"timeout必须大于0: {timeout}")
        if len(frame) < 2 + FRAME_CRC_SIZE:
            raise MalformedRequestError(f"请求帧长度不足: {len(frame)}")

        frame = bytes(frame)
        address = get_address(frame)

        with self._state_lock:
            if not self._is_open:
                raise NotConnectedError(f"串口 {self.port} 未连接", port=self.port, operation="send")
            if self._pending is not None:
                raise BusyError(f"串口 {self.port} 正忙", port=self.port, operation="send")
            exchange = PendingExchange(
                expected_address=address, deadline=time.monotonic() + timeout
            )
            self._pending = exchange
            self._assembler.expect(address)
            channel = self._channel

        try:
            with self._write_lock:
                channel.write(frame)
        except SerialIoError as e:
            logger.error(f"发送数据失败: {e}")
            with self._state_lock:
                self.err_count += 1
                if self._pending is exchange:
                    self._pending = None
            self._shutdown(e)
            raise

        self.requests_sent += 1
        log_frame(logger, "发送数据", frame)

        with self._response_ready:
            while exchange.outcome is ExchangeOutcome.PENDING:
                remaining = exchange.deadline - time.monotonic()
                if remaining <= 0:
                    exchange.outcome = ExchangeOutcome.TIMED_OUT
                    break
                self._response_ready.wait(remaining)

            if self._pending is exchange:
                self._pending = None
                self._assembler.expect(None)

            if exchange.outcome is ExchangeOutcome.TIMED_OUT:
                self.err_count += 1
                self.timeouts += 1
            elif exchange.outcome is ExchangeOutcome.MATCHED:
                self.err_count = 0
                self.responses_received += 1

        if exchange.outcome is ExchangeOutcome.MATCHED:
            self._listeners.notify_received(exchange.response)
            return ModbusFrame.from_bytes(exchange.response)

        if exchange.outcome is ExchangeOutcome.TIMED_OUT:
            logger.warning(
                f"设备#{address} 应答超时 ({timeout:.3f}s, errCount={self.err_count})"
            )
            raise ResponseTimeoutError(
                f"设备#{address} 在{timeout:.3f}秒内无有效应答",
                timeout=timeout, port=self.port, operation="send",
            )

        raise exchange.error

    # 常用请求的快捷方法

    def read_holding_registers(
        self, address: int, offset: int, count: int, timeout: Optional[float] = None
    ) -> ModbusFrame:
        return self.send(FrameHandler.build_read_holding_registers(address, offset, count), timeout)

    def read_input_registers(
        self, address: int, offset: int, count: int, timeout: Optional[float] = None
    ) -> ModbusFrame:
        return self.send(FrameHandler.build_read_input_registers(address, offset, count), timeout)

    def write_single_register(
        self, address: int, offset: int, value: int, timeout: Optional[float] = None
    ) -> ModbusFrame:
        return self.send(FrameHandler.build_write_single_register(address, offset, value), timeout)

    def write_multiple_registers(
        self, address: int, offset: int, values: Sequence[int], timeout: Optional[float] = None
    ) -> ModbusFrame:
        return self.send(
            FrameHandler.build_write_multiple_registers(address, offset, values), timeout
        )

    def report_slave_id(self, address: int, timeout: Optional[float] = None) -> ModbusFrame:
        return self.send(FrameHandler.build_report_slave_id(address), timeout)

    def get_statistics(self) -> dict:
        """获取连接统计信息"""
        with self._state_lock:
            stats = {
                "connected": self._is_open,
                "busy": self._pending is not None,
                "err_count": self.err_count,
                "requests_sent": self.requests_sent,
                "responses_received": self.responses_received,
                "timeouts": self.timeouts,
            }
            stats.update(self._assembler.get_statistics())
        return stats

    def _on_data(self, data: bytes) -> None:
        """IO线程回调：把字节交给帧重组器，帧完成时唤醒发送方"""
        with self._response_ready:
            exchange = self._pending
            if not self._is_open or exchange is None or exchange.outcome is not ExchangeOutcome.PENDING:
                self._assembler.bytes_discarded += len(data)
                return

            for byte in data:
                packet = self._assembler.feed_byte(byte)
                if packet is not None:
                    exchange.response = packet
                    exchange.outcome = ExchangeOutcome.MATCHED
                    # 之后到达的字节不再属于本次交换
                    self._assembler.expect(None)
                    self._response_ready.notify_all()
                    break

    def _on_io_error(self, error: SerialIoError) -> None:
        """IO线程回调：串口读取失败，关闭连接"""
        with self._state_lock:
            self.err_count += 1
        self._shutdown(error)

    def _shutdown(self, cause: Optional[SerialIoError]) -> bool:
        """
        关闭连接并结束等待中的交换

        Args:
            cause: 引起关闭的IO异常，主动关闭时为None

        Returns:
            发生了真正的关闭返回True，已关闭返回False
        """
        with self._response_ready:
            if not self._is_open:
                return False
            self._is_open = False
            channel, io_thread = self._channel, self._io_thread
            self._channel = None
            self._io_thread = None
            self._assembler.expect(None)

            exchange = self._pending
            self._pending = None
            if exchange is not None and exchange.outcome is ExchangeOutcome.PENDING:
                exchange.outcome = ExchangeOutcome.FAILED
                if cause is not None:
                    exchange.error = SerialIoError(
                        f"串口 {self.port} IO错误: {cause}",
                        port=self.port, operation="send", original_error=cause,
                    )
                else:
                    exchange.error = NotConnectedError(
                        f"等待应答期间串口 {self.port} 被关闭", port=self.port, operation="send"
                    )
            self._response_ready.notify_all()

        if io_thread is not None:
            io_thread.stop()
        if channel is not None:
            channel.close()

        if cause is not None:
            logger.error(f"串口 {self.port} 因IO错误关闭: {cause}")
        else:
            logger.debug(f"已关闭串口连接: {self.port}")

        self._listeners.notify_closed()
        return True

    def __enter__(self):
        """支持with语句"""
        if not self.connect():
            raise NotConnectedError(f"无法打开串口 {self.port}", port=self.port, operation="connect")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """支持with语句"""
        self.close()
