#!/usr/bin/env python3
"""
EniWise Modbus RTU 工具 - 模块CLI入口
=====================================

支持通过 python -m eniwise_modbus 调用
"""

import sys
import argparse
import logging
from typing import Optional, Sequence

from . import __version__
from .config.constants import DEFAULT_BAUDRATE, DEFAULT_POLL_INTERVAL, DEFAULT_RESPONSE_TIMEOUT
from .config.settings import ConnectionConfig, PollerConfig
from .core.connection import ModbusRtuConnection
from .core.exceptions import ModbusRtuError
from .core.frame_handler import to_hex_string
from .core.serial_manager import SerialManager
from .cli.poller import S6Poller
from .devices.scpm_s6 import S6Readings
from .utils.logger import get_logger, set_level

logger = get_logger(__name__)

PROGRAM_NAME = "EniWise Modbus RTU 工具"


def create_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog="eniwise-modbus",
        description=f"{PROGRAM_NAME} v{__version__}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用示例：
  # 列出可用串口
  python -m eniwise_modbus ports

  # 每10秒轮询一次地址为5的SCPM-S6，共3次
  python -m eniwise_modbus poll --port /dev/ttyUSB0 --address 5 --count 3

  # 读取设备ID
  python -m eniwise_modbus slave-id --port COM3 --address 5
        """,
    )

    parser.add_argument(
        "--version", action="version", version=f"{PROGRAM_NAME} v{__version__}"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")

    subparsers = parser.add_subparsers(dest="command", help="可用命令")

    subparsers.add_parser("ports", help="列出可用串口")

    def add_link_arguments(sub):
        sub.add_argument("--port", required=True, help="串口号（如 COM3, /dev/ttyUSB0）")
        sub.add_argument("--baudrate", type=int, default=DEFAULT_BAUDRATE,
                         help=f"波特率（默认{DEFAULT_BAUDRATE}）")
        sub.add_argument("--address", type=int, required=True, help="设备Modbus地址(1-247)")
        sub.add_argument("--timeout", type=float, default=DEFAULT_RESPONSE_TIMEOUT,
                         help=f"应答超时秒数（默认{DEFAULT_RESPONSE_TIMEOUT}）")

    poll_parser = subparsers.add_parser("poll", help="周期轮询SCPM-S6计量数据")
    add_link_arguments(poll_parser)
    poll_parser.add_argument("--interval", type=float, default=DEFAULT_POLL_INTERVAL,
                             help=f"轮询间隔秒数（默认{DEFAULT_POLL_INTERVAL}）")
    poll_parser.add_argument("--count", type=int, default=None, help="轮询次数（默认一直运行）")

    slave_parser = subparsers.add_parser("slave-id", help="发送REPORT_SLAVE_ID并打印应答")
    add_link_arguments(slave_parser)

    return parser


def format_readings(readings: S6Readings) -> str:
    """把读数格式化为多行文本"""
    lines = [
        f"设备#{readings.address}  电压 {readings.voltage:.1f} V  频率 {readings.frequency:.2f} Hz",
        "通道      kWh      kVARh       kW     kVAR        A     PF",
    ]
    for ch in readings.channels:
        lines.append(
            f"CH{ch.channel}  {ch.kwh:10.3f} {ch.kvarh:10.3f} {ch.kw:8.3f} "
            f"{ch.kvar:8.3f} {ch.current:8.3f} {ch.power_factor:6.2f}"
        )
    return "\n".join(lines)


def print_ports() -> None:
    """打印系统可用的串口信息"""
    ports = SerialManager.list_available_ports()

    if not ports:
        print("没有找到可用的串口。")
        return

    print("可用的串口：")
    for port in ports:
        print(f"  {port['device']} - {port['description']}")


def run_poll(args) -> int:
    """执行轮询命令"""
    connection = ModbusRtuConnection(
        args.port, args.baudrate, config=ConnectionConfig(response_timeout=args.timeout)
    )
    poller = S6Poller(
        connection,
        PollerConfig(address=args.address, interval=args.interval),
        on_readings=lambda readings: print(format_readings(readings)),
    )
    try:
        poller.run(count=args.count)
    except KeyboardInterrupt:
        poller.stop()
    finally:
        connection.close()

    return 0 if poller.last_readings is not None else 1


def run_slave_id(args) -> int:
    """执行读取设备ID命令"""
    with ModbusRtuConnection(args.port, args.baudrate) as connection:
        frame = connection.report_slave_id(args.address, timeout=args.timeout)
    print(to_hex_string(frame.raw))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """主函数"""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        set_level(logging.DEBUG)

    if not args.command:
        parser.print_help()
        return 0

    try:
        if args.command == "ports":
            print_ports()
            return 0
        if args.command == "poll":
            return run_poll(args)
        if args.command == "slave-id":
            return run_slave_id(args)
    except ModbusRtuError as e:
        logger.error(f"通信失败: {e}")
        return 1
    except ValueError as e:
        logger.error(f"参数错误: {e}")
        return 2
    except KeyboardInterrupt:
        print("\n\n👋 用户中断程序，退出")
        return 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
