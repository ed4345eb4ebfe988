"""
分布式互斥锁
基于Redis的跨进程互斥锁实现
"""

from .exceptions import MutexError, MutexStoreError, MutexTimeoutError, MutexConfigError
from .config import MutexSettings
from .store import KeyValueStore, MemoryStore
from .redis_client import RedisStore, create_redis_client
from .mutex import Mutex, with_mutex, KEY_PREFIX

# 版本信息
__version__ = "0.1.0"

__all__ = [
    'Mutex', 'with_mutex', 'KEY_PREFIX',
    'KeyValueStore', 'MemoryStore', 'RedisStore', 'create_redis_client',
    'MutexSettings',
    'MutexError', 'MutexStoreError', 'MutexTimeoutError', 'MutexConfigError',
]
