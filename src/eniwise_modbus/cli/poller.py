"""
周期轮询模块
============

按固定间隔查询SCPM-S6设备，应答超时时按指数退避重试，
通过连接的事件通知解码读数并维护设备在线状态。
"""

import threading
from typing import Callable, Optional

from ..config.constants import FunctionCode
from ..config.settings import PollerConfig
from ..core.connection import ModbusRtuConnection
from ..core.exceptions import BusyError, ResponseTimeoutError, TransportError
from ..core.frame_handler import get_address, get_function_code
from ..devices.scpm_s6 import S6Readings, build_s6_query, decode_s6_readings
from ..utils.logger import get_logger
from ..utils.retry import retry_call

logger = get_logger(__name__)

ReadingsCallback = Callable[[S6Readings], None]


class S6Poller:
    """SCPM-S6轮询器，同时作为连接的事件订阅者"""

    def __init__(
        self,
        connection: ModbusRtuConnection,
        config: PollerConfig,
        on_readings: Optional[ReadingsCallback] = None,
        timeout: Optional[float] = None,
    ):
        """
        初始化轮询器

        Args:
            connection: Modbus RTU连接（可未打开，轮询时自动连接）
            config: 轮询配置
            on_readings: 每次解码出新读数时的回调
            timeout: 单次请求的应答超时(秒)，None使用连接默认值
        """
        self.connection = connection
        self.config = config
        self.on_readings = on_readings
        self.timeout = timeout

        self.online = False
        self.last_readings: Optional[S6Readings] = None
        self._fresh: Optional[S6Readings] = None
        self._stop_event = threading.Event()

        # 统计信息
        self.polls = 0
        self.failures = 0

        connection.subscribe(self)

    def on_received(self, packet: bytes) -> None:
        """连接回调：解码本设备的计量数据应答"""
        if get_address(packet) != self.config.address:
            return
        func = get_function_code(packet)
        if func != FunctionCode.READ_HOLDING_REGISTERS:
            logger.debug(f"忽略设备#{self.config.address} 的应答 (功能码={func})")
            return

        try:
            readings = decode_s6_readings(packet)
        except ValueError as e:
            logger.warning(f"解码设备#{self.config.address} 计量数据失败: {e}")
            return

        self._fresh = readings
        self.last_readings = readings
        if self.on_readings is not None:
            self.on_readings(readings)

    def on_closed(self) -> None:
        """连接回调：连接关闭，设备视为离线"""
        self.online = False
        logger.warning(f"与串口 {self.connection.port} 的连接已断开")

    def poll_once(self) -> Optional[S6Readings]:
        """
        查询一次设备

        Returns:
            本次查询解码出的读数，失败返回None
        """
        self.polls += 1
        self._fresh = None

        if not self.connection.is_connected and not self.connection.connect():
            self._mark_failed("串口无法打开")
            return None

        query = build_s6_query(self.config.address)
        try:
            frame = retry_call(
                lambda: self.connection.send(query, self.timeout),
                max_retry=self.config.retry_count,
                base_delay=self.config.backoff_base,
                retry_on=(ResponseTimeoutError, BusyError),
                stop_event=self._stop_event,
                logger=logger,
            )
        except TransportError as e:
            self._mark_failed(str(e))
            return None

        self.online = True
        if frame.is_exception:
            logger.warning(f"设备#{self.config.address} 返回异常应答: {frame}")
        return self._fresh

    def run(self, count: Optional[int] = None) -> None:
        """
        按固定间隔轮询，直到 stop() 被调用或完成 count 次

        Args:
            count: 轮询次数，None表示一直运行
        """
        self._stop_event.clear()
        done = 0
        while not self._stop_event.is_set():
            self.poll_once()
            done += 1
            if count is not None and done >= count:
                break
            self._stop_event.wait(self.config.interval)

    def stop(self) -> None:
        """停止轮询"""
        self._stop_event.set()

    def _mark_failed(self, reason: str) -> None:
        self.online = False
        self.failures += 1
        logger.warning(f"查询设备#{self.config.address} 失败: {reason}")
