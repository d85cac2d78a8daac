import os
import unittest
from unittest import mock

from pica_mcp.config import ConfigurationError, load_settings
from pica_mcp.passthrough.catalog import DEFAULT_BASE_URL


class TestLoadSettings(unittest.TestCase):

    def test_secret_is_required(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ConfigurationError):
                load_settings()

    def test_defaults(self):
        with mock.patch.dict(os.environ, {"PICA_SECRET": "sk_test"}, clear=True):
            settings = load_settings()
        self.assertEqual(settings.secret, "sk_test")
        self.assertEqual(settings.base_url, DEFAULT_BASE_URL)
        self.assertEqual(settings.host, "0.0.0.0")
        self.assertEqual(settings.port, 8080)
        self.assertIsNone(settings.request_timeout)
        self.assertIsNone(settings.catalog_ttl)
        self.assertEqual(settings.log_level, "INFO")

    def test_overrides(self):
        env = {
            "PICA_SECRET": "sk_test",
            "PICA_BASE_URL": "http://localhost:3000",
            "HOST": "127.0.0.1",
            "PORT": "9000",
            "PICA_REQUEST_TIMEOUT": "2.5",
            "PICA_CATALOG_TTL": "60",
            "PICA_LOG_LEVEL": "debug",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = load_settings()
        self.assertEqual(settings.base_url, "http://localhost:3000")
        self.assertEqual(settings.port, 9000)
        self.assertEqual(settings.request_timeout, 2.5)
        self.assertEqual(settings.catalog_ttl, 60.0)
        self.assertEqual(settings.log_level, "DEBUG")

    def test_malformed_numbers(self):
        for name, value in (("PORT", "eighty"), ("PICA_REQUEST_TIMEOUT", "soon")):
            with self.subTest(name=name):
                with mock.patch.dict(os.environ, {"PICA_SECRET": "sk_test", name: value}, clear=True):
                    with self.assertRaises(ConfigurationError):
                        load_settings()


if __name__ == '__main__':
    unittest.main()
