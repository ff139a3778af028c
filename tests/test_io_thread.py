"""
IO线程测试
==========

测试 eniwise_modbus.core.io_thread 把串口字节投递给回调，以及读取失败时的处理。
"""

import threading

import pytest

from eniwise_modbus.core.io_thread import IoThread

from .helpers import LoopbackChannel, wait_until


@pytest.fixture
def channel():
    ch = LoopbackChannel()
    ch.open()
    yield ch
    ch.close()


class TestIoThread:
    """测试IoThread"""

    def test_start_requires_open_channel(self):
        thread = IoThread(LoopbackChannel(), on_data=lambda data: None)
        assert thread.start() is False
        assert thread.is_running is False

    def test_delivers_bytes(self, channel):
        received = []
        thread = IoThread(channel, on_data=received.append)
        assert thread.start() is True
        assert thread.is_running is True

        channel.inject(b"\x01\x02\x03")
        assert wait_until(lambda: b"".join(received) == b"\x01\x02\x03")

        assert thread.stop() is True
        assert thread.is_running is False
        assert thread.get_statistics()["bytes_received"] == 3

    def test_start_twice(self, channel):
        thread = IoThread(channel, on_data=lambda data: None)
        assert thread.start() is True
        assert thread.start() is True
        thread.stop()

    def test_read_chunk_size(self, channel):
        """每批数据不超过read_chunk_size"""
        chunks = []
        thread = IoThread(channel, on_data=chunks.append, read_chunk_size=2)
        thread.start()

        channel.inject(b"\x01\x02\x03\x04\x05")
        assert wait_until(lambda: sum(len(c) for c in chunks) == 5)
        thread.stop()

        assert all(len(c) <= 2 for c in chunks)

    def test_read_error_calls_on_error(self, channel):
        """读取失败时回调on_error并结束线程"""
        errors = []
        thread = IoThread(channel, on_data=lambda data: None, on_error=errors.append)
        thread.start()

        channel.break_reads()

        assert wait_until(lambda: len(errors) == 1)
        assert wait_until(lambda: not thread.is_running)
        assert thread.get_statistics()["read_errors"] == 1

    def test_channel_closed_after_stop_is_not_an_error(self, channel):
        errors = []
        thread = IoThread(channel, on_data=lambda data: None, on_error=errors.append)
        thread.start()

        thread.stop()
        channel.close()

        assert errors == []

    def test_stop_from_own_thread(self, channel):
        """在回调中停止自身不会死锁"""
        stopped = threading.Event()
        holder = {}

        def on_data(data):
            holder["result"] = holder["thread"].stop()
            stopped.set()

        thread = IoThread(channel, on_data=on_data)
        holder["thread"] = thread
        thread.start()

        channel.inject(b"\x01")
        assert stopped.wait(2.0)
        assert holder["result"] is True
        assert wait_until(lambda: not thread.is_running)
        thread.stop()
