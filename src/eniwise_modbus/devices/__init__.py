"""
设备模块
========

EniWise各型号设备的寄存器表和应答解码。
"""

from .scpm_s6 import (
    S6Readings,
    S6ChannelReadings,
    DeviceConfig,
    build_s6_query,
    build_device_config_query,
    build_save_reboot,
    build_factory_reset,
    decode_s6_readings,
    decode_device_config,
)

__all__ = [
    "S6Readings",
    "S6ChannelReadings",
    "DeviceConfig",
    "build_s6_query",
    "build_device_config_query",
    "build_save_reboot",
    "build_factory_reset",
    "decode_s6_readings",
    "decode_device_config",
]
