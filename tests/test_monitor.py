import os
import sys
import unittest
from unittest.mock import MagicMock

# 添加项目根目录到Python路径
sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

from redmutex import MemoryStore, Mutex, MutexStoreError
from redmutex.monitor import create_app


class TestMonitor(unittest.TestCase):
    """测试锁状态监控接口"""

    def setUp(self):
        self.store = MemoryStore(clock=lambda: 1000)
        self.client = create_app(self.store).test_client()

    def test_health(self):
        """测试健康检查"""
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["status"], "healthy")

    def test_unlocked(self):
        """测试未加锁的状态"""
        response = self.client.get("/mutex/job-A")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {
            "name": "job-A",
            "key": "//mutex/job-A",
            "locked": False,
            "locked_since": None
        })

    def test_locked(self):
        """测试已加锁的状态"""
        holder = Mutex(self.store, "job-A", clock=lambda: 1000)
        holder.try_lock()

        data = self.client.get("/mutex/job-A").get_json()
        self.assertTrue(data["locked"])
        self.assertEqual(data["locked_since"], 1000)
        self.assertTrue(holder.is_locked())

    def test_read_only(self):
        """测试查询不会修改存储"""
        store = MagicMock()
        store.exists.return_value = True
        store.get.return_value = "1000"
        client = create_app(store).test_client()

        client.get("/mutex/job-A")
        self.assertEqual(sorted(c[0] for c in store.method_calls), ["exists", "get"])

    def test_store_error(self):
        """测试存储不可用时返回503"""
        store = MagicMock()
        store.exists.side_effect = MutexStoreError("down")
        client = create_app(store).test_client()

        response = client.get("/mutex/job-A")
        self.assertEqual(response.status_code, 503)
        self.assertIn("error", response.get_json())


if __name__ == "__main__":
    unittest.main()
