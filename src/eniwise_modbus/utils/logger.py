"""
日志记录模块
============

包内所有模块通过 get_logger(__name__) 取得挂在 "eniwise_modbus" 根日志器下的子日志器，
由根日志器统一输出。控制台输出带颜色、线程名和调用位置，便于对照IO线程和发送方线程的日志。
"""

import datetime
import logging
import sys
from typing import Optional, Union

ROOT_LOGGER_NAME = "eniwise_modbus"

BytesLike = Union[bytes, bytearray, memoryview]

# 日志级别 -> ANSI颜色
LEVEL_COLORS = {
    logging.DEBUG: '\033[36m',     # 青色
    logging.INFO: '\033[0m',       # 默认色
    logging.WARNING: '\033[33m',   # 黄色
    logging.ERROR: '\033[31m',     # 红色
    logging.CRITICAL: '\033[35m',  # 紫色
}
RESET_COLOR = '\033[0m'

FILE_LOG_FORMAT = '%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s'


class ColoredFormatter(logging.Formatter):
    """
    彩色控制台格式化器

    输出形如：[2024-06-01 12:00:00.123] [modbus-io-COM3] 消息 [connection.py._on_data():321]
    """

    def formatTime(self, record, datefmt=None):
        created = datetime.datetime.fromtimestamp(record.created)
        return created.strftime("%Y-%m-%d %H:%M:%S.") + f"{created.microsecond // 1000:03d}"

    def format(self, record):
        color = LEVEL_COLORS.get(record.levelno, RESET_COLOR)
        message = (
            f"{color}[{self.formatTime(record)}] [{record.threadName}] {record.getMessage()} "
            f"[{record.filename}.{record.funcName}():{record.lineno}]{RESET_COLOR}"
        )
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    console_output: bool = True,
) -> logging.Logger:
    """
    配置日志器的处理器和级别

    重复调用会替换已有的处理器。

    Args:
        name: 日志器名称
        level: 日志级别
        log_file: 日志文件路径，None表示不写入文件
        console_output: 是否输出到控制台

    Returns:
        配置好的日志器
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColoredFormatter())
        logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
        logger.addHandler(file_handler)

    # 防止重复输出
    logger.propagate = False
    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    获取日志器

    包内模块的日志器直接返回，由根日志器统一输出；
    包外名称首次获取时单独配置一次。

    Args:
        name: 日志器名称，通常为 __name__
    """
    logger = logging.getLogger(name)
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logger
    if not logger.handlers:
        setup_logger(name)
    return logger


def set_level(level: int) -> None:
    """调整根日志器的级别，命令行 --verbose 时切换到DEBUG"""
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(level)


def log_frame(logger: logging.Logger, prefix: str, data: BytesLike) -> None:
    """以大写十六进制在DEBUG级别记录一帧，未开启DEBUG时不做转换"""
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"{prefix}: {bytes(data).hex().upper()}", stacklevel=2)


# 默认设置根日志器
setup_logger()
