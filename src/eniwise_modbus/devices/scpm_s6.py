"""
EniWise SCPM-S6 设备模块
========================

SCPM-S6 六路电能计量模块的寄存器表、请求构造和应答解码。

计量数据块从寄存器46001开始共108个寄存器：
- 0~9: 计量配置（CT类型、CT额定值、数据倍率、需量窗口、状态……）
- 10~81: 各通道电能累计值，32位无符号，高位字在前
- 82~105: 各通道有功功率、无功功率、电流、功率因数
- 106/107: 电压、频率
"""

from dataclasses import dataclass, field
from typing import List, Tuple, Union

from ..config.constants import FunctionCode
from ..core.frame_handler import FrameHandler, ModbusFrame
from ..core.register_codec import registers_to_short, registers_to_ushort, registers_to_uint
from ..utils.logger import get_logger

logger = get_logger(__name__)

# ----- 设备控制寄存器
MBREG_FACTORY_RESET = 40099
MBREG_SAVE_REBOOT = 40100

# ----- 设备配置寄存器
MBREG_DEVCFG_BASE = 40001
MBREG_DEVCFG_LENGTH = 10

OFFSET_DEVCFG_MAGICCODE = 0
OFFSET_DEVCFG_NETWORKID = 1
OFFSET_DEVCFG_ADDRESS = 2
OFFSET_DEVCFG_BAUDRATE = 3

# ----- 数据倍率，按计量配置中的数据倍率寄存器取值
DATA_SCALAR_ENERGY: Tuple[float, ...] = (0.0001, 0.001, 0.01, 0.1)
DATA_SCALAR_POWER: Tuple[float, ...] = (0.001, 0.01, 0.1, 1.0)
DATA_SCALAR_CURRENT: Tuple[float, ...] = (0.001, 0.01, 0.1, 1.0)
DATA_SCALAR_PF = 0.01
DATA_SCALAR_V = 0.1
DATA_SCALAR_HZ = 0.01

# ----- SCPM-S6 计量数据块
MBREG_S6_BASE = 46001
MBREG_S6_LENGTH = 108
MBREG_S6_MCFG_LENGTH = 10
S6_CHANNEL_COUNT = 6

OFFSET_S6_MCFG_CT_TYPE = 0
OFFSET_S6_MCFG_CT_RATING = 1
OFFSET_S6_MCFG_DATA_SCALAR = 2
OFFSET_S6_MCFG_DEMAND_WINDOW = 3
OFFSET_S6_MCFG_STATUS = 4
OFFSET_S6_MCFG_RESET_ACC = 9

# 每类电能占6个通道 x 2个寄存器，给出第1通道高位字的偏移
OFFSET_S6_KWH = 10
OFFSET_S6_KWH_IMPORT = 22
OFFSET_S6_KWH_EXPORT = 34
OFFSET_S6_KVARH = 46
OFFSET_S6_KVARH_IMPORT = 58
OFFSET_S6_KVARH_EXPORT = 70
# 每类瞬时量占6个通道 x 1个寄存器
OFFSET_S6_KW = 82
OFFSET_S6_KVAR = 88
OFFSET_S6_A = 94
OFFSET_S6_PF = 100
OFFSET_S6_V = 106
OFFSET_S6_HZ = 107


@dataclass
class S6ChannelReadings:
    """单个计量通道的读数"""

    channel: int
    kwh: float
    kwh_import: float
    kwh_export: float
    kvarh: float
    kvarh_import: float
    kvarh_export: float
    kw: float
    kvar: float
    current: float
    power_factor: float


@dataclass
class S6Readings:
    """一次完整查询得到的SCPM-S6读数"""

    address: int
    data_scalar: int
    voltage: float
    frequency: float
    channels: List[S6ChannelReadings] = field(default_factory=list)


@dataclass
class DeviceConfig:
    """设备配置块"""

    magic_code: int
    network_id: int
    address: int
    baudrate: int


def build_s6_query(address: int) -> bytes:
    """构造读取完整计量数据块的请求"""
    return FrameHandler.build_read_holding_registers(address, MBREG_S6_BASE, MBREG_S6_LENGTH)


def build_device_config_query(address: int) -> bytes:
    """构造读取设备配置块的请求"""
    return FrameHandler.build_read_holding_registers(address, MBREG_DEVCFG_BASE, MBREG_DEVCFG_LENGTH)


def build_save_reboot(address: int) -> bytes:
    """构造“保存并重启”请求"""
    return FrameHandler.build_write_single_register(address, MBREG_SAVE_REBOOT, 1)


def build_factory_reset(address: int) -> bytes:
    """构造“恢复出厂设置”请求"""
    return FrameHandler.build_write_single_register(address, MBREG_FACTORY_RESET, 1)


def _register_data(frame: Union[ModbusFrame, bytes], length: int) -> Tuple[int, bytes]:
    if not isinstance(frame, ModbusFrame):
        frame = ModbusFrame.from_bytes(frame)
    if frame.function != FunctionCode.READ_HOLDING_REGISTERS:
        raise ValueError(f"不是读保持寄存器应答: 功能码={frame.function}")
    data = frame.data
    if len(data) < length * 2:
        raise ValueError(f"应答数据不足: 需要{length * 2}字节, 实际{len(data)}字节")
    return frame.address, data


def decode_s6_readings(frame: Union[ModbusFrame, bytes]) -> S6Readings:
    """
    解码SCPM-S6计量数据块应答

    Args:
        frame: 读取46001起108个寄存器的应答帧（ModbusFrame或原始字节）

    Returns:
        解码后的读数

    Raises:
        ValueError: 功能码不符、数据长度不足或数据倍率越界
    """
    address, data = _register_data(frame, MBREG_S6_LENGTH)

    def reg(offset: int) -> int:
        return offset * 2

    ds = registers_to_short(data, reg(OFFSET_S6_MCFG_DATA_SCALAR))
    if not 0 <= ds < len(DATA_SCALAR_ENERGY):
        raise ValueError(f"数据倍率越界: {ds}")
    logger.debug(f"解码设备#{address} 计量数据, 数据倍率={ds}")

    energy_scalar = DATA_SCALAR_ENERGY[ds]
    power_scalar = DATA_SCALAR_POWER[ds]
    current_scalar = DATA_SCALAR_CURRENT[ds]

    def energy(base: int, ch: int) -> float:
        return registers_to_uint(data, reg(base + ch * 2)) * energy_scalar

    channels = []
    for ch in range(S6_CHANNEL_COUNT):
        channels.append(S6ChannelReadings(
            channel=ch + 1,
            kwh=energy(OFFSET_S6_KWH, ch),
            kwh_import=energy(OFFSET_S6_KWH_IMPORT, ch),
            kwh_export=energy(OFFSET_S6_KWH_EXPORT, ch),
            kvarh=energy(OFFSET_S6_KVARH, ch),
            kvarh_import=energy(OFFSET_S6_KVARH_IMPORT, ch),
            kvarh_export=energy(OFFSET_S6_KVARH_EXPORT, ch),
            kw=registers_to_short(data, reg(OFFSET_S6_KW + ch)) * power_scalar,
            kvar=registers_to_short(data, reg(OFFSET_S6_KVAR + ch)) * power_scalar,
            current=registers_to_short(data, reg(OFFSET_S6_A + ch)) * current_scalar,
            power_factor=registers_to_ushort(data, reg(OFFSET_S6_PF + ch)) * DATA_SCALAR_PF,
        ))

    return S6Readings(
        address=address,
        data_scalar=ds,
        voltage=registers_to_ushort(data, reg(OFFSET_S6_V)) * DATA_SCALAR_V,
        frequency=registers_to_ushort(data, reg(OFFSET_S6_HZ)) * DATA_SCALAR_HZ,
        channels=channels,
    )


def decode_device_config(frame: Union[ModbusFrame, bytes]) -> DeviceConfig:
    """解码设备配置块应答"""
    _, data = _register_data(frame, MBREG_DEVCFG_LENGTH)
    return DeviceConfig(
        magic_code=registers_to_ushort(data, OFFSET_DEVCFG_MAGICCODE * 2),
        network_id=registers_to_ushort(data, OFFSET_DEVCFG_NETWORKID * 2),
        address=registers_to_ushort(data, OFFSET_DEVCFG_ADDRESS * 2),
        baudrate=registers_to_ushort(data, OFFSET_DEVCFG_BAUDRATE * 2),
    )
