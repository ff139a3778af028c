"""
SCPM-S6设备测试
===============

测试 eniwise_modbus.devices.scpm_s6 中的请求构造和计量数据解码。
"""

import pytest

from eniwise_modbus.core.frame_handler import ModbusFrame
from eniwise_modbus.devices.scpm_s6 import (
    build_device_config_query,
    build_factory_reset,
    build_s6_query,
    build_save_reboot,
    decode_device_config,
    decode_s6_readings,
)

from .helpers import make_read_reply, sample_registers


class TestBuilders:
    """测试设备请求构造"""

    def test_s6_query(self):
        assert build_s6_query(5)[:6] == bytes.fromhex("0503B3B1006C")

    def test_device_config_query(self):
        assert build_device_config_query(5)[:6] == bytes.fromhex("05039C41000A")

    def test_save_reboot(self):
        assert build_save_reboot(5)[:6] == bytes.fromhex("05069CA40001")

    def test_factory_reset(self):
        assert build_factory_reset(5)[:6] == bytes.fromhex("05069CA30001")


class TestDecodeReadings:
    """测试计量数据解码"""

    def test_decode(self):
        readings = decode_s6_readings(make_read_reply(5, sample_registers()))

        assert readings.address == 5
        assert readings.data_scalar == 1
        assert readings.voltage == pytest.approx(230.0)
        assert readings.frequency == pytest.approx(50.0)
        assert len(readings.channels) == 6

        ch1, ch2, ch6 = readings.channels[0], readings.channels[1], readings.channels[5]
        assert ch1.channel == 1
        assert ch1.kwh == pytest.approx(65.536)
        assert ch1.kw == pytest.approx(12.34)
        assert ch1.power_factor == pytest.approx(0.98)
        assert ch2.current == pytest.approx(-1.5)
        assert ch2.kwh == 0
        assert ch6.kvarh_export == pytest.approx(12.345)

    def test_decode_from_frame(self):
        frame = ModbusFrame.from_bytes(make_read_reply(9, sample_registers()))
        assert decode_s6_readings(frame).address == 9

    @pytest.mark.parametrize("data_scalar,expected_kwh,expected_kw", [
        (0, 6.5536, 1.234),
        (1, 65.536, 12.34),
        (2, 655.36, 123.4),
        (3, 6553.6, 1234.0),
    ])
    def test_data_scalar(self, data_scalar, expected_kwh, expected_kw):
        readings = decode_s6_readings(make_read_reply(5, sample_registers(data_scalar)))
        assert readings.channels[0].kwh == pytest.approx(expected_kwh)
        assert readings.channels[0].kw == pytest.approx(expected_kw)

    def test_data_scalar_out_of_range(self):
        with pytest.raises(ValueError):
            decode_s6_readings(make_read_reply(5, sample_registers(data_scalar=4)))

    def test_wrong_function(self):
        with pytest.raises(ValueError):
            decode_s6_readings(make_read_reply(5, sample_registers(), function=4))

    def test_short_data(self):
        with pytest.raises(ValueError):
            decode_s6_readings(make_read_reply(5, [1] * 10))


class TestDecodeDeviceConfig:
    def test_decode(self):
        regs = [0xE1E1, 3, 5, 9600, 0, 0, 0, 0, 0, 0]
        config = decode_device_config(make_read_reply(5, regs))

        assert config.magic_code == 0xE1E1
        assert config.network_id == 3
        assert config.address == 5
        assert config.baudrate == 9600
