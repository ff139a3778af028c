"""
IO线程模块
==========

串口字节投递线程：持续从串口读取字节，按到达的批次回调给连接对象。

pyserial没有“数据可读”事件，这里用带读超时的阻塞读取代替，
每批数据可能只有1个字节，帧的重组交给连接中的FrameAssembler。
"""

import threading
from typing import Callable, Optional

from .exceptions import SerialIoError
from ..config.constants import DEFAULT_READ_CHUNK_SIZE
from ..utils.logger import get_logger

logger = get_logger(__name__)

DataCallback = Callable[[bytes], None]
ErrorCallback = Callable[[SerialIoError], None]


class IoThread:
    """
    串口读取线程

    on_data 在本线程中被调用，不得阻塞等待发送方。
    读取失败时调用 on_error 并结束线程。
    """

    def __init__(
        self,
        channel,
        on_data: DataCallback,
        on_error: Optional[ErrorCallback] = None,
        read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
        name: str = "modbus-io",
    ):
        """
        初始化IO线程

        Args:
            channel: 提供 read(size)/in_waiting 的串口通道（如SerialManager）
            on_data: 收到字节时的回调
            on_error: 读取失败时的回调
            read_chunk_size: 单次最多读取的字节数
            name: 线程名
        """
        self.channel = channel
        self.on_data = on_data
        self.on_error = on_error
        self.read_chunk_size = read_chunk_size
        self.name = name

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        # 统计信息
        self.bytes_received = 0
        self.read_errors = 0

    def start(self) -> bool:
        """
        启动IO线程

        Returns:
            启动成功返回True，失败返回False
        """
        if self.is_running:
            logger.warning("IO线程已经在运行")
            return True

        if not self.channel.is_open:
            logger.error("串口未打开，无法启动IO线程")
            return False

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._io_loop, name=self.name, daemon=True)
        self._thread.start()
        logger.debug("IO线程已启动")
        return True

    def stop(self, timeout: float = 2.0) -> bool:
        """
        停止IO线程

        在IO线程自身中调用时只设置停止标志，不等待自己结束。

        Args:
            timeout: 等待线程结束的超时时间(秒)

        Returns:
            停止成功返回True，超时返回False
        """
        self._stop_event.set()
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True

        if thread.is_alive():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning(f"IO线程未在{timeout}秒内结束")
                return False

        self._thread = None
        logger.debug("IO线程已停止")
        return True

    @property
    def is_running(self) -> bool:
        """检查IO线程是否在运行"""
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def get_statistics(self) -> dict:
        """获取IO线程统计信息"""
        return {
            "running": self.is_running,
            "bytes_received": self.bytes_received,
            "read_errors": self.read_errors,
        }

    def _io_loop(self) -> None:
        """IO线程主循环"""
        logger.debug("IO线程开始运行")

        while not self._stop_event.is_set():
            try:
                size = max(1, min(self.channel.in_waiting, self.read_chunk_size))
                data = self.channel.read(size)
            except SerialIoError as e:
                if self._stop_event.is_set():
                    # 正常关闭过程中串口被关掉
                    break
                self.read_errors += 1
                logger.error(f"IO线程读取异常: {e}")
                self._stop_event.set()
                if self.on_error is not None:
                    self.on_error(e)
                break

            if data and not self._stop_event.is_set():
                self.bytes_received += len(data)
                self.on_data(data)

        logger.debug("IO线程已结束")
