"""
配置测试
========

测试 eniwise_modbus.config.settings 中的配置类。
"""

import pytest
import serial

from eniwise_modbus.config.constants import (
    DEFAULT_BAUDRATE,
    DEFAULT_RESPONSE_TIMEOUT,
    DEFAULT_SERIAL_TIMEOUT,
)
from eniwise_modbus.config.settings import ConnectionConfig, PollerConfig, SerialConfig


class TestSerialConfig:
    """测试串口配置"""

    def test_defaults(self):
        config = SerialConfig(port="COM1")
        assert config.baudrate == DEFAULT_BAUDRATE
        assert config.bytesize == serial.EIGHTBITS
        assert config.parity == serial.PARITY_NONE
        assert config.stopbits == serial.STOPBITS_ONE
        assert config.timeout == DEFAULT_SERIAL_TIMEOUT

    def test_to_serial_kwargs(self):
        config = SerialConfig(port="/dev/ttyUSB0", baudrate=19200, parity=serial.PARITY_EVEN)
        assert config.to_serial_kwargs() == {
            "port": "/dev/ttyUSB0",
            "baudrate": 19200,
            "bytesize": serial.EIGHTBITS,
            "parity": serial.PARITY_EVEN,
            "stopbits": serial.STOPBITS_ONE,
            "timeout": DEFAULT_SERIAL_TIMEOUT,
        }


class TestConnectionConfig:
    """测试连接配置"""

    def test_defaults(self):
        config = ConnectionConfig()
        assert config.response_timeout == DEFAULT_RESPONSE_TIMEOUT
        assert config.read_chunk_size > 0

    @pytest.mark.parametrize("kwargs", [
        {"response_timeout": 0},
        {"response_timeout": -1.0},
        {"read_chunk_size": 0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            ConnectionConfig(**kwargs)


class TestPollerConfig:
    """测试轮询配置"""

    def test_valid(self):
        config = PollerConfig(address=247, interval=1.0, retry_count=0)
        assert config.address == 247
        assert config.retry_count == 0

    @pytest.mark.parametrize("kwargs", [
        {"address": 0},
        {"address": 248},
        {"address": 1, "interval": 0},
        {"address": 1, "retry_count": -1},
        {"address": 1, "backoff_base": 0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            PollerConfig(**kwargs)
