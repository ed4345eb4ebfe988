#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Redis存储适配器
将 redis-py 客户端包装为互斥锁使用的 KeyValueStore
"""
import logging
import functools
from typing import Optional

import redis

from .config import MutexSettings
from .exceptions import MutexStoreError

logger = logging.getLogger(__name__)


def create_redis_client(settings: MutexSettings) -> redis.Redis:
    """根据配置创建Redis客户端并测试连接

    Args:
        settings: 连接配置

    Returns:
        已连通的Redis客户端

    Raises:
        MutexStoreError: 认证失败或无法连接
    """
    logger.info(
        f"Redis连接配置: host={settings.redis_host}, port={settings.redis_port}, "
        f"db={settings.redis_db}, use_ssl={settings.redis_use_ssl}"
    )

    connection_params = {
        'host': settings.redis_host,
        'port': settings.redis_port,
        'db': settings.redis_db,
        'ssl': settings.redis_use_ssl,
        'decode_responses': True  # 自动将响应解码为字符串
    }

    # 只有当密码不为空字符串时才传递
    if settings.redis_password:
        connection_params['password'] = settings.redis_password
        logger.info("使用密码认证连接Redis")

    client = redis.Redis(**connection_params)
    try:
        client.ping()
    except redis.exceptions.AuthenticationError as e:
        logger.error(f"Redis认证失败: {str(e)}")
        raise MutexStoreError(f"Redis认证失败: {e}") from e
    except redis.exceptions.RedisError as e:
        logger.error(f"Redis连接错误: {str(e)}")
        raise MutexStoreError(f"Redis连接错误: {e}") from e

    logger.info("成功连接到Redis服务器")
    return client


def _store_call(func):
    """将 RedisError 记录日志后转换为 MutexStoreError"""
    @functools.wraps(func)
    def wrapper(self, key, *args, **kwargs):
        try:
            return func(self, key, *args, **kwargs)
        except redis.exceptions.RedisError as e:
            logger.error(f"Redis {func.__name__} error: key={key}, {str(e)}")
            raise MutexStoreError(f"Redis {func.__name__} 失败 ({key}): {e}") from e
    return wrapper


class RedisStore:
    """基于Redis的键值存储

    Redis客户端由外部注入，本类不持有全局连接；
    若客户端不能在多线程间共享，每个线程应使用各自的 RedisStore。
    """

    def __init__(self, client: redis.Redis):
        """初始化存储

        Args:
            client: Redis客户端，建议在主从部署中使用主节点连接
        """
        self.client = client

    @classmethod
    def from_settings(cls, settings: Optional[MutexSettings] = None) -> "RedisStore":
        """根据配置（默认读取环境变量）创建存储"""
        return cls(create_redis_client(settings or MutexSettings.from_env()))

    @_store_call
    def set_if_absent(self, key: str, value: str, ttl_seconds: int = 0) -> bool:
        # SET NX [EX]，带过期时间时设置与过期在同一条命令内完成
        if ttl_seconds > 0:
            return bool(self.client.set(key, value, nx=True, ex=ttl_seconds))
        return bool(self.client.set(key, value, nx=True))

    @_store_call
    def get(self, key: str) -> Optional[str]:
        return self.client.get(key)

    @_store_call
    def expire(self, key: str, ttl_seconds: int) -> bool:
        return bool(self.client.expire(key, ttl_seconds))

    @_store_call
    def delete(self, key: str) -> None:
        self.client.delete(key)

    @_store_call
    def exists(self, key: str) -> bool:
        return bool(self.client.exists(key))

    @_store_call
    def ttl(self, key: str) -> int:
        """获取键的剩余生存时间

        诊断用，不属于 KeyValueStore 接口，互斥锁本身不依赖它。

        Returns:
            剩余秒数，-1表示永久，-2表示不存在
        """
        return self.client.ttl(key)
