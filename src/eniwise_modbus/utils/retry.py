"""重试与退避工具
====================

提供带指数退避的同步重试调用，供轮询器在应答超时后重发请求。
收发核心本身从不重试。
"""

from __future__ import annotations

import random
import threading
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

_T = TypeVar("_T")


def exponential_backoff(base: float, attempt: int, jitter_ratio: float = 0.1) -> float:
    """计算指数退避时间

    Args:
        base: 基础延时（秒）
        attempt: 第 *attempt* 次重试（从 0 开始）
        jitter_ratio: 抖动比例，默认 10%

    Returns:
        等待时间，秒
    """
    delay = base * (2 ** attempt)
    jitter = random.uniform(0, delay * jitter_ratio)
    return delay + jitter


def retry_call(
    func: Callable[[], _T],
    *,
    max_retry: int,
    base_delay: float,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    stop_event: Optional[threading.Event] = None,
    logger=None,
) -> _T:
    """带退避的同步重试调用

    Args:
        func: 无参可调用对象，正常返回即视为成功
        max_retry: 最大重试次数（总调用次数为 max_retry + 1）
        base_delay: 指数退避基础时间，秒
        retry_on: 触发重试的异常类型，其他异常直接抛出
        stop_event: 可选停止事件，置位后不再重试
        logger: 可选日志记录器

    Returns:
        func 的返回值

    Raises:
        最后一次调用抛出的异常；max_retry为负数时抛出ValueError
    """
    if max_retry < 0:
        raise ValueError("max_retry不能为负数")

    for attempt in range(max_retry + 1):
        try:
            return func()
        except retry_on as e:
            if attempt == max_retry or (stop_event is not None and stop_event.is_set()):
                raise
            wait = exponential_backoff(base_delay, attempt)
            if logger:
                logger.debug(f"调用失败({e})，第{attempt + 1}次重试将在 {wait:.2f}s 后进行 …")
            if stop_event is not None:
                if stop_event.wait(wait):
                    raise
            else:
                time.sleep(wait)
    raise AssertionError("unreachable")
