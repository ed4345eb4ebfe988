#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
基于Redis的分布式互斥锁

接口参考 C++11 std::mutex（lock / try_lock / unlock），另外提供：
- 锁的最大存活时间（TTL），持有者崩溃后锁可以被回收
- 带超时的阻塞获取
- 上下文管理器和装饰器
"""
import time
import logging
import weakref
import functools
import contextlib
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union

from .config import validate_lock_params
from .exceptions import MutexConfigError, MutexStoreError, MutexTimeoutError
from .store import KeyValueStore

logger = logging.getLogger(__name__)

# 锁键前缀，与已有部署使用同一命名空间
KEY_PREFIX = "//mutex/"

# 默认轮询间隔（毫秒）
DEFAULT_POLL_INTERVAL_MS = 250

T = TypeVar('T')


def _release_abandoned(store: KeyValueStore, key: str, ownership: Dict[str, bool]) -> None:
    """句柄被回收或解释器退出时释放仍由该句柄持有的锁"""
    if not ownership["held"]:
        return
    ownership["held"] = False
    try:
        store.delete(key)
        logger.debug(f"句柄回收时自动释放锁: {key}")
    except MutexStoreError as e:
        logger.warning(f"句柄回收时释放锁失败: {key}, {str(e)}")


class Mutex:
    """分布式互斥锁句柄

    锁本身是存储中的一个键，值为获取锁时的时间戳（秒）。
    句柄不缓存"是否已加锁"的状态，所有查询都直接读取存储，
    因此任何持有相同存储连接和锁名称的进程都可以观察或回收这把锁。

    注意：
    - 这不是公平锁，等待者之间没有先后顺序
    - unlock() 不校验持有者，对未持有的锁调用 unlock() 会释放别人的锁
    """

    def __init__(
        self,
        store: KeyValueStore,
        name: str,
        max_ttl: int = 0,
        atomic_ttl: bool = True,
        clock: Callable[[], float] = time.time
    ):
        """初始化互斥锁

        Args:
            store: 键值存储，主从部署时建议使用主节点连接
            name: 锁名称，同名的锁互斥
            max_ttl: 锁的最大存活时间（秒），0表示永不过期。
                     若进程异常退出，锁会一直保留到TTL过期，
                     建议设置为临界区预期最长执行时间的4~5倍
            atomic_ttl: 为True时使用存储的"不存在则设置并附带过期时间"原子操作；
                        为False时先设置再单独设置过期时间（两次调用，非原子）。
                        两次调用之间进程崩溃，或设置过期时间和随后的删除都失败时，
                        键会没有过期时间，只能靠 unlock() 或后续 try_lock() 的过期回收清理
            clock: 时钟函数，返回自纪元以来的秒数
        """
        if not name:
            raise MutexConfigError("锁名称不能为空")
        validate_lock_params(max_ttl=max_ttl)

        self.store = store
        self.name = name
        self.key = f"{KEY_PREFIX}{name}"
        self.max_ttl = int(max_ttl)
        self.atomic_ttl = atomic_ttl
        self._clock = clock

        # 仅用于回收句柄时的兜底释放，不参与任何锁状态查询
        self._ownership = {"held": False}
        self._finalizer = weakref.finalize(self, _release_abandoned, store, self.key, self._ownership)

    def __repr__(self) -> str:
        return f"Mutex(name={self.name!r}, max_ttl={self.max_ttl})"

    def _now(self) -> int:
        return int(self._clock())

    def try_lock(self) -> bool:
        """尝试获取锁，不阻塞

        已有锁超过 max_ttl 仍未释放时视为被遗弃，会被删除并重新获取一次。
        因此即使获取失败，也可能修改了存储。

        Returns:
            当前进程是否获得了锁

        Raises:
            MutexStoreError: 存储不可用
        """
        ttl = self.max_ttl if self.atomic_ttl else 0
        acquired = self.store.set_if_absent(self.key, str(self._now()), ttl)

        if self.max_ttl:
            if acquired:
                if not self.atomic_ttl and not self._apply_ttl():
                    acquired = False
            elif self._is_abandoned():
                logger.debug(f"回收过期的锁: {self.name}")
                self.store.delete(self.key)
                acquired = self.store.set_if_absent(self.key, str(self._now()), ttl)

        if acquired:
            self._ownership["held"] = True
            logger.debug(f"成功获取锁: {self.name}")
        return acquired

    def _apply_ttl(self) -> bool:
        """为刚设置的锁单独设置过期时间，失败时删除键

        Raises:
            MutexStoreError: 设置过期时间时存储不可用，此时已尽量删除键
        """
        try:
            applied = self.store.expire(self.key, self.max_ttl)
        except MutexStoreError:
            try:
                self.store.delete(self.key)
            except MutexStoreError as e:
                logger.warning(f"设置过期时间失败后删除锁失败，键可能不会过期: {self.key}, {str(e)}")
            raise
        if not applied:
            # 设置过期时间前键已消失，删除以免留下永不过期的键
            self.store.delete(self.key)
        return applied

    def _is_abandoned(self) -> bool:
        """锁记录已消失或已超过 max_ttl"""
        locked_at = self.locked_since()
        if locked_at is None:
            return True
        return self._now() - locked_at > self.max_ttl

    def lock(self, timeout: float = 0, poll_interval_ms: float = DEFAULT_POLL_INTERVAL_MS) -> bool:
        """获取锁，锁被占用时轮询等待

        Args:
            timeout: 最长等待时间（秒），0表示一直等待
            poll_interval_ms: 两次尝试之间的间隔（毫秒）

        Returns:
            是否获得了锁，返回False只表示超时；timeout为0时只会返回True
        """
        validate_lock_params(timeout=timeout, poll_interval_ms=poll_interval_ms)
        lock_start = time.monotonic()
        poll_seconds = poll_interval_ms / 1000.0

        while not self.try_lock():
            if timeout and time.monotonic() - lock_start > timeout:
                logger.debug(f"获取锁超时: {self.name} ({timeout}s)")
                return False
            time.sleep(poll_seconds)

        return True

    def unlock(self) -> None:
        """释放锁（删除存储中的键）

        不校验调用方是否为持有者，多次调用不会出错。
        """
        self.store.delete(self.key)
        self._ownership["held"] = False
        logger.debug(f"释放锁: {self.name}")

    def is_locked(self) -> bool:
        """检查锁是否已被（任何人）持有

        仅用于监控和观察，不要用它代替 try_lock()。检查和获取不是原子的，
        下面的用法存在竞态，绝对不要这样写：

            if not mutex.is_locked():
                mutex.try_lock()
                ...  # 临界区

        Returns:
            锁键是否存在
        """
        return self.store.exists(self.key)

    def locked_since(self) -> Optional[int]:
        """获取锁被获取时的时间戳

        Returns:
            时间戳（秒），锁不存在或值无法解析时返回None
        """
        value = self.store.get(self.key)
        if value is None:
            return None
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return None

    @contextlib.contextmanager
    def hold(
        self,
        timeout: float = 0,
        poll_interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
        raise_on_timeout: bool = False
    ) -> Iterator[bool]:
        """在作用域内持有锁，退出作用域时释放

        只有在本次获取成功时才会释放，超时不会删除别人的锁。

        Args:
            timeout: 最长等待时间（秒），0表示一直等待
            poll_interval_ms: 轮询间隔（毫秒）
            raise_on_timeout: 超时时抛出 MutexTimeoutError 而不是返回False

        Yields:
            是否获得了锁
        """
        acquired = self.lock(timeout, poll_interval_ms)
        if not acquired and raise_on_timeout:
            raise MutexTimeoutError(f"在 {timeout} 秒内未能获取锁: {self.name}")
        try:
            yield acquired
        finally:
            if acquired:
                self.unlock()

    def __enter__(self) -> 'Mutex':
        """上下文管理器入口，一直等待直到获得锁"""
        self.lock()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """上下文管理器退出"""
        self.unlock()


def with_mutex(
    store: KeyValueStore,
    lock_name_or_func: Union[str, Callable[..., str], None] = None,
    max_ttl: int = 0,
    timeout: float = 0,
    poll_interval_ms: float = DEFAULT_POLL_INTERVAL_MS
) -> Callable[[Callable[..., T]], Callable[..., Optional[T]]]:
    """互斥锁装饰器

    被装饰的函数在持有锁时执行，超时未获得锁则跳过执行并返回None

    Args:
        store: 键值存储
        lock_name_or_func: 锁名称，或根据调用参数生成锁名称的函数；为空时使用函数名
        max_ttl: 锁的最大存活时间（秒）
        timeout: 最长等待时间（秒），0表示一直等待
        poll_interval_ms: 轮询间隔（毫秒）

    Returns:
        装饰器函数
    """
    def decorator(func: Callable[..., T]) -> Callable[..., Optional[T]]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Optional[T]:
            if lock_name_or_func is None:
                lock_name = func.__name__
            elif callable(lock_name_or_func):
                lock_name = lock_name_or_func(*args, **kwargs)
            else:
                lock_name = str(lock_name_or_func)

            mutex = Mutex(store, lock_name, max_ttl=max_ttl)
            with mutex.hold(timeout, poll_interval_ms) as acquired:
                if not acquired:
                    logger.warning(f"无法获取锁: {lock_name}，跳过执行 {func.__name__}")
                    return None
                return func(*args, **kwargs)

        return wrapper

    return decorator
