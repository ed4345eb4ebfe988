#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
互斥锁命令行工具

用法:
    mutexctl.py status NAME
    mutexctl.py unlock NAME
    mutexctl.py run NAME [--ttl N] [--timeout S] [--poll-ms MS] -- CMD...
    mutexctl.py serve
"""
import sys
import logging
import argparse
import subprocess
from datetime import datetime

from redmutex import Mutex, MutexConfigError, MutexSettings, MutexStoreError, RedisStore
from redmutex.monitor import create_app

# 配置日志
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("mutexctl")

EXIT_STORE_ERROR = 2
EXIT_TIMEOUT = 3


def cmd_status(store, args, settings):
    """打印锁状态"""
    mutex = Mutex(store, args.name)
    if not mutex.is_locked():
        print(f"{args.name}: unlocked")
        return 0
    locked_since = mutex.locked_since()
    if locked_since is None:
        print(f"{args.name}: locked")
    else:
        try:
            since = datetime.fromtimestamp(locked_since).isoformat()
        except (OverflowError, ValueError, OSError):
            # 时间戳超出范围时直接打印原始值
            since = str(locked_since)
        print(f"{args.name}: locked since {since}")
    return 0


def cmd_unlock(store, args, settings):
    """强制释放锁，不校验持有者"""
    Mutex(store, args.name).unlock()
    logger.warning(f"已强制释放锁: {args.name}")
    return 0


def cmd_run(store, args, settings):
    """持有锁执行命令"""
    command = args.command
    if not command:
        logger.error("未指定要执行的命令")
        return 1

    ttl = settings.max_ttl if args.ttl is None else args.ttl
    timeout = settings.lock_timeout if args.timeout is None else args.timeout
    poll_ms = settings.poll_interval_ms if args.poll_ms is None else args.poll_ms

    mutex = Mutex(store, args.name, max_ttl=ttl)
    with mutex.hold(timeout, poll_ms) as acquired:
        if not acquired:
            logger.error(f"获取锁超时: {args.name} ({timeout}s)")
            return EXIT_TIMEOUT
        logger.info(f"已获取锁 {args.name}，执行: {' '.join(command)}")
        return subprocess.call(command)


def cmd_serve(store, args, settings):
    """启动监控服务"""
    app = create_app(store)
    logger.info(f"启动锁监控服务，端口{settings.monitor_port}")
    app.run(host=settings.monitor_host, port=settings.monitor_port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Redis分布式互斥锁工具")
    subparsers = parser.add_subparsers(dest="action", required=True)

    status_parser = subparsers.add_parser("status", help="查看锁状态")
    status_parser.add_argument("name", help="锁名称")
    status_parser.set_defaults(handler=cmd_status)

    unlock_parser = subparsers.add_parser("unlock", help="强制释放锁")
    unlock_parser.add_argument("name", help="锁名称")
    unlock_parser.set_defaults(handler=cmd_unlock)

    run_parser = subparsers.add_parser("run", help="持有锁执行命令")
    run_parser.add_argument("name", help="锁名称")
    run_parser.add_argument("--ttl", type=int, default=None, help="锁的最大存活时间（秒），0表示永不过期")
    run_parser.add_argument("--timeout", type=float, default=None, help="最长等待时间（秒），0表示一直等待")
    run_parser.add_argument("--poll-ms", type=float, default=None, help="轮询间隔（毫秒）")
    run_parser.set_defaults(handler=cmd_run)

    serve_parser = subparsers.add_parser("serve", help="启动锁监控HTTP服务")
    serve_parser.set_defaults(handler=cmd_serve)

    return parser


def main(argv=None, store=None):
    argv = list(sys.argv[1:] if argv is None else argv)
    # "--" 之后是 run 要执行的命令，不交给 argparse 解析
    command = []
    if "--" in argv:
        index = argv.index("--")
        argv, command = argv[:index], argv[index + 1:]
    args = build_parser().parse_args(argv)
    args.command = command
    try:
        settings = MutexSettings.from_env()
        if store is None:
            store = RedisStore.from_settings(settings)
        return args.handler(store, args, settings)
    except MutexStoreError as e:
        logger.error(f"Redis不可用: {str(e)}")
        return EXIT_STORE_ERROR
    except MutexConfigError as e:
        logger.error(f"配置错误: {str(e)}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
