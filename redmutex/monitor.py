#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
锁状态监控接口
只读取存储，不会修改任何锁
"""
import time
import logging

from flask import Flask, Blueprint, current_app, jsonify

from .exceptions import MutexStoreError
from .mutex import Mutex
from .store import KeyValueStore

logger = logging.getLogger(__name__)

# 创建蓝图
monitor_bp = Blueprint('mutex_monitor', __name__)


@monitor_bp.route("/health", methods=["GET"])
def health_check():
    """健康检查端点"""
    return jsonify({
        "status": "healthy",
        "timestamp": time.time()
    })


@monitor_bp.route("/mutex/<path:name>", methods=["GET"])
def mutex_status(name):
    """查询锁状态

    Args:
        name: 锁名称

    Returns:
        锁名称、存储键、是否被持有以及获取时间
    """
    mutex = Mutex(current_app.config["MUTEX_STORE"], name)
    try:
        locked = mutex.is_locked()
        locked_since = mutex.locked_since() if locked else None
    except MutexStoreError as e:
        logger.error(f"查询锁状态失败: {name}, {str(e)}")
        return jsonify({"error": str(e)}), 503

    return jsonify({
        "name": mutex.name,
        "key": mutex.key,
        "locked": locked,
        "locked_since": locked_since
    })


def create_app(store: KeyValueStore) -> Flask:
    """创建监控应用

    Args:
        store: 键值存储

    Returns:
        Flask应用
    """
    app = Flask(__name__)
    app.config["MUTEX_STORE"] = store
    app.register_blueprint(monitor_bp)
    return app
