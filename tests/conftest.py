"""
pytest公共fixture
=================
"""

import pytest

from eniwise_modbus.core.connection import ModbusRtuConnection
from eniwise_modbus.config.settings import ConnectionConfig

from .helpers import LoopbackChannel, RecordingListener


@pytest.fixture
def loopback():
    """内存串口通道"""
    return LoopbackChannel()


@pytest.fixture
def connection(loopback):
    """已连接到内存串口的Modbus连接，测试结束时自动关闭"""
    conn = ModbusRtuConnection(
        "LOOP0", 9600, config=ConnectionConfig(response_timeout=0.5), channel_factory=loopback
    )
    assert conn.connect() is True
    yield conn
    conn.close()


@pytest.fixture
def listener(connection):
    """订阅到连接上的记录型订阅者"""
    recorder = RecordingListener()
    connection.subscribe(recorder)
    return recorder
