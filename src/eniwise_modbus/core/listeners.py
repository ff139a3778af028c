"""
事件监听模块
============

Modbus事件订阅者接口以及向多个订阅者分发通知的注册表。
"""

import threading
from typing import List, Protocol, runtime_checkable

from ..utils.logger import get_logger

logger = get_logger(__name__)


@runtime_checkable
class ModbusEventListener(Protocol):
    """Modbus事件订阅者需要实现的接口"""

    def on_received(self, packet: bytes) -> None:
        """收到一个完整且CRC正确的应答帧"""
        ...

    def on_closed(self) -> None:
        """连接已关闭"""
        ...


class ListenerRegistry:
    """
    订阅者注册表

    按订阅顺序在触发事件的线程中同步调用每个订阅者。
    单个订阅者抛出的异常会被记录并隔离，不影响后续订阅者。
    """

    def __init__(self):
        self._listeners: List[ModbusEventListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: ModbusEventListener) -> None:
        """追加订阅者"""
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ModbusEventListener) -> None:
        """移除订阅者，未订阅的对象忽略"""
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _snapshot(self) -> List[ModbusEventListener]:
        with self._lock:
            return list(self._listeners)

    def notify_received(self, packet: bytes) -> None:
        """通知所有订阅者收到应答帧"""
        for listener in self._snapshot():
            try:
                listener.on_received(packet)
            except Exception as e:
                logger.error(f"订阅者 {listener!r} 处理应答帧失败: {e}")

    def notify_closed(self) -> None:
        """通知所有订阅者连接已关闭"""
        for listener in self._snapshot():
            try:
                listener.on_closed()
            except Exception as e:
                logger.error(f"订阅者 {listener!r} 处理连接关闭失败: {e}")
