#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
配置加载

环境变量为唯一配置来源，支持 .env 文件
"""
import os
import logging
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

from .exceptions import MutexConfigError

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "y")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise MutexConfigError(f"环境变量 {name} 必须是整数: {raw!r}")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in _TRUE_VALUES


@dataclass(frozen=True)
class MutexSettings:
    """互斥锁与Redis连接配置"""

    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str = ""
    redis_use_ssl: bool = False

    # 锁的最大存活时间（秒），0表示永不过期
    max_ttl: int = 0
    # 阻塞获取锁时的轮询间隔（毫秒）
    poll_interval_ms: int = 250
    # 阻塞获取锁的超时时间（秒），0表示一直等待
    lock_timeout: int = 0

    monitor_host: str = "0.0.0.0"
    monitor_port: int = 9100

    def __post_init__(self):
        validate_lock_params(self.max_ttl, self.lock_timeout, self.poll_interval_ms)

    @classmethod
    def from_env(cls) -> "MutexSettings":
        """从环境变量读取配置

        当前工作目录（或其上级目录）中的 .env 文件会先被加载，已有的环境变量优先。

        Returns:
            配置实例

        Raises:
            MutexConfigError: 数值格式错误或取值非法
        """
        load_dotenv(find_dotenv(usecwd=True), override=False)
        settings = cls(
            redis_host=os.getenv("REDIS_HOST", "localhost"),
            redis_port=_env_int("REDIS_PORT", 6379),
            redis_db=_env_int("REDIS_DB", 0),
            redis_password=os.getenv("REDIS_PASSWORD", ""),
            redis_use_ssl=_env_bool("REDIS_USE_SSL"),
            max_ttl=_env_int("MUTEX_MAX_TTL", 0),
            poll_interval_ms=_env_int("MUTEX_POLL_INTERVAL_MS", 250),
            lock_timeout=_env_int("MUTEX_LOCK_TIMEOUT", 0),
            monitor_host=os.getenv("MUTEX_MONITOR_HOST", "0.0.0.0"),
            monitor_port=_env_int("MUTEX_MONITOR_PORT", 9100),
        )
        logger.debug(
            f"互斥锁配置: redis={settings.redis_host}:{settings.redis_port}/{settings.redis_db}, "
            f"max_ttl={settings.max_ttl}, poll_interval_ms={settings.poll_interval_ms}"
        )
        return settings


def validate_lock_params(max_ttl: float = 0, timeout: float = 0, poll_interval_ms: float = 250) -> None:
    """校验锁参数

    Raises:
        MutexConfigError: 参数非法
    """
    if max_ttl < 0:
        raise MutexConfigError(f"max_ttl 不能为负数: {max_ttl}")
    if timeout < 0:
        raise MutexConfigError(f"timeout 不能为负数: {timeout}")
    if poll_interval_ms <= 0:
        raise MutexConfigError(f"poll_interval_ms 必须大于0: {poll_interval_ms}")
