import os
import sys
import tempfile
import subprocess
import unittest
from unittest.mock import patch

# 添加项目根目录到Python路径
sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

from redmutex import MutexConfigError, MutexSettings


class TestMutexSettings(unittest.TestCase):
    """测试配置加载"""

    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        """测试默认配置"""
        settings = MutexSettings.from_env()
        self.assertEqual(settings.redis_host, "localhost")
        self.assertEqual(settings.redis_port, 6379)
        self.assertEqual(settings.redis_password, "")
        self.assertFalse(settings.redis_use_ssl)
        self.assertEqual(settings.max_ttl, 0)
        self.assertEqual(settings.poll_interval_ms, 250)
        self.assertEqual(settings.lock_timeout, 0)

    @patch.dict(os.environ, {
        "REDIS_HOST": "redis.internal",
        "REDIS_PORT": "6380",
        "REDIS_DB": "3",
        "REDIS_PASSWORD": "secret",
        "REDIS_USE_SSL": "true",
        "MUTEX_MAX_TTL": "300",
        "MUTEX_POLL_INTERVAL_MS": "100",
        "MUTEX_LOCK_TIMEOUT": "5",
        "MUTEX_MONITOR_PORT": "9200",
    }, clear=True)
    def test_from_env(self):
        """测试从环境变量读取"""
        settings = MutexSettings.from_env()
        self.assertEqual(settings.redis_host, "redis.internal")
        self.assertEqual(settings.redis_port, 6380)
        self.assertEqual(settings.redis_db, 3)
        self.assertEqual(settings.redis_password, "secret")
        self.assertTrue(settings.redis_use_ssl)
        self.assertEqual(settings.max_ttl, 300)
        self.assertEqual(settings.poll_interval_ms, 100)
        self.assertEqual(settings.lock_timeout, 5)
        self.assertEqual(settings.monitor_port, 9200)

    @patch.dict(os.environ, {"REDIS_PORT": "not-a-port"}, clear=True)
    def test_invalid_number(self):
        """测试数值格式错误"""
        with self.assertRaises(MutexConfigError):
            MutexSettings.from_env()

    @patch.dict(os.environ, {"MUTEX_MAX_TTL": "-1"}, clear=True)
    def test_negative_ttl(self):
        """测试负数TTL"""
        with self.assertRaises(MutexConfigError):
            MutexSettings.from_env()

    def test_invalid_poll_interval(self):
        """测试轮询间隔必须为正数"""
        with self.assertRaises(MutexConfigError):
            MutexSettings(poll_interval_ms=0)

    def test_config_error_is_value_error(self):
        """测试配置错误同时是 ValueError"""
        with self.assertRaises(ValueError):
            MutexSettings(lock_timeout=-5)


PROJECT_ROOT = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))


class TestDotenvLoading(unittest.TestCase):
    """测试从当前工作目录的 .env 读取配置"""

    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.workdir = tmp.name
        with open(os.path.join(self.workdir, ".env"), "w", encoding="utf-8") as f:
            f.write("MUTEX_MAX_TTL=300\nREDIS_HOST=redis.dotenv\n")

        cwd = os.getcwd()
        self.addCleanup(os.chdir, cwd)
        os.chdir(self.workdir)

    @patch.dict(os.environ, {}, clear=True)
    def test_dotenv_in_working_directory(self):
        """测试加载工作目录中的 .env"""
        settings = MutexSettings.from_env()
        self.assertEqual(settings.max_ttl, 300)
        self.assertEqual(settings.redis_host, "redis.dotenv")

    @patch.dict(os.environ, {"MUTEX_MAX_TTL": "60"}, clear=True)
    def test_environment_overrides_dotenv(self):
        """测试已有环境变量优先于 .env"""
        settings = MutexSettings.from_env()
        self.assertEqual(settings.max_ttl, 60)
        self.assertEqual(settings.redis_host, "redis.dotenv")

    def test_script_in_working_directory(self):
        """测试工作目录中的脚本读取 .env"""
        with open(os.path.join(self.workdir, "app.py"), "w", encoding="utf-8") as f:
            f.write(
                "from redmutex import MutexSettings\n"
                "settings = MutexSettings.from_env()\n"
                "print(settings.max_ttl, settings.redis_host)\n"
            )

        env = {k: v for k, v in os.environ.items()
               if not k.startswith(("MUTEX_", "REDIS_"))}
        env["PYTHONPATH"] = PROJECT_ROOT
        result = subprocess.run(
            [sys.executable, "app.py"],
            cwd=self.workdir, env=env, capture_output=True, text=True
        )

        self.assertEqual(result.returncode, 0, result.stderr)
        self.assertEqual(result.stdout.strip(), "300 redis.dotenv")


if __name__ == "__main__":
    unittest.main()
