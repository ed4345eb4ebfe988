#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
键值存储接口
互斥锁只依赖这里定义的五个原子操作
"""
import time
import threading
from typing import Callable, Dict, Optional, Protocol, Tuple


class KeyValueStore(Protocol):
    """互斥锁所需的存储接口

    实现必须保证 set_if_absent 在存储端是原子的，这是互斥的唯一保证。
    所有操作在存储不可用时应抛出 MutexStoreError。
    """

    def set_if_absent(self, key: str, value: str, ttl_seconds: int = 0) -> bool:
        """键不存在时设置值，ttl_seconds > 0 时同时原子地设置过期时间"""

    def get(self, key: str) -> Optional[str]:
        """获取值，键不存在返回None"""

    def expire(self, key: str, ttl_seconds: int) -> bool:
        """为已存在的键设置过期时间，键不存在返回False"""

    def delete(self, key: str) -> None:
        """删除键"""

    def exists(self, key: str) -> bool:
        """检查键是否存在"""


class MemoryStore:
    """进程内的键值存储

    线程安全，适用于测试和单进程场景；过期的键在访问时惰性清理。
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """初始化存储

        Args:
            clock: 时钟函数，测试时可注入假时钟
        """
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()

    def _purge(self, key: str) -> None:
        entry = self._data.get(key)
        if entry is not None and entry[1] is not None and entry[1] <= self._clock():
            del self._data[key]

    def set_if_absent(self, key: str, value: str, ttl_seconds: int = 0) -> bool:
        with self._lock:
            self._purge(key)
            if key in self._data:
                return False
            expires_at = self._clock() + ttl_seconds if ttl_seconds > 0 else None
            self._data[key] = (str(value), expires_at)
            return True

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            self._purge(key)
            entry = self._data.get(key)
            return entry[0] if entry is not None else None

    def expire(self, key: str, ttl_seconds: int) -> bool:
        with self._lock:
            self._purge(key)
            if key not in self._data:
                return False
            value, _ = self._data[key]
            self._data[key] = (value, self._clock() + ttl_seconds)
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def exists(self, key: str) -> bool:
        with self._lock:
            self._purge(key)
            return key in self._data

    def ttl(self, key: str) -> int:
        """获取键的剩余生存时间

        诊断用，不属于 KeyValueStore 接口，互斥锁本身不依赖它。

        Returns:
            剩余秒数，-1表示永久，-2表示不存在
        """
        with self._lock:
            self._purge(key)
            entry = self._data.get(key)
            if entry is None:
                return -2
            if entry[1] is None:
                return -1
            return int(entry[1] - self._clock())
