#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
互斥锁相关异常
"""


class MutexError(Exception):
    """互斥锁异常基类"""


class MutexStoreError(MutexError):
    """存储（Redis）访问失败

    连接失败、认证失败、超时等都会以此异常抛出，
    调用方可以据此区分"锁被别人持有"和"协调存储不可用"。
    """


class MutexTimeoutError(MutexError):
    """在超时时间内未能获取锁

    仅由 Mutex.hold(raise_on_timeout=True) 抛出，lock() 以返回 False 表示超时。
    """


class MutexConfigError(MutexError, ValueError):
    """配置参数不合法"""
