"""
Unit tests for configuration resolution.

Tests per-workspace credentials and shared-setting fallbacks.
"""

import unittest

import pytest

from proofage.config import DEFAULT_CONFIG, ConfigResolver, SigningConfig


class TestConfigResolver(unittest.TestCase):
    """Test prefix-based resolution."""

    def setUp(self):
        self.resolver = ConfigResolver(
            {
                "proofage": {
                    "api_key": "test-api-key",
                    "secret_key": "test-secret-key",
                    "base_url": "https://api.test.com",
                    "version": "v1",
                    "timeout": 30,
                },
                "services.proofage_seller": {
                    "api_key": "seller-api-key",
                    "secret_key": "seller-secret-key",
                },
            }
        )

    def test_resolve_default_prefix(self):
        """Test resolving the default workspace."""
        config = self.resolver.resolve()

        self.assertEqual(config.api_key, "test-api-key")
        self.assertEqual(config.secret_key, "test-secret-key")
        self.assertEqual(config.base_url, "https://api.test.com")
        self.assertEqual(config.version, "v1")

    def test_resolve_custom_prefix_reads_own_keys(self):
        """Test a custom workspace reads its own credentials."""
        config = self.resolver.resolve("services.proofage_seller")

        self.assertEqual(config.api_key, "seller-api-key")
        self.assertEqual(config.secret_key, "seller-secret-key")

    def test_shared_settings_fallback_to_default_config(self):
        """Test shared settings come from the default prefix."""
        config = self.resolver.resolve("services.proofage_seller")

        self.assertEqual(config.base_url, "https://api.test.com")
        self.assertEqual(config.version, "v1")
        self.assertEqual(config.timeout, 30)

    def test_custom_prefix_can_override_shared_settings(self):
        """Test per-workspace overrides of shared settings."""
        resolver = ConfigResolver(
            {
                "proofage": {"base_url": "https://api.test.com", "version": "v1"},
                "custom": {"base_url": "https://custom.test.com", "version": "v2", "timeout": 60},
            }
        )
        config = resolver.resolve("custom")

        self.assertEqual(config.base_url, "https://custom.test.com")
        self.assertEqual(config.version, "v2")
        self.assertEqual(config.timeout, 60)

    def test_tenant_keys_never_fall_back(self):
        """Test that a workspace without credentials does not inherit the default ones."""
        config = self.resolver.resolve("services.unknown")

        self.assertEqual(config.api_key, "")
        self.assertEqual(config.secret_key, "")
        self.assertEqual(config.base_url, "https://api.test.com")

    def test_webhook_tolerance_fallback(self):
        """Test tolerance inherited from the default prefix."""
        resolver = ConfigResolver(
            {
                "proofage": {"webhook_tolerance": 60},
                "custom": {"api_key": "k", "secret_key": "s"},
            }
        )
        self.assertEqual(resolver.resolve("custom").webhook_tolerance, 60)

    def test_webhook_tolerance_defaults_to_300(self):
        """Test tolerance default when unset anywhere."""
        self.assertEqual(ConfigResolver({}).resolve("custom").webhook_tolerance, 300)

    def test_defaults_when_nothing_configured(self):
        """Test built-in defaults for shared settings."""
        config = ConfigResolver().resolve()

        self.assertEqual(config.base_url, DEFAULT_CONFIG["base_url"])
        self.assertEqual(config.version, "v1")
        self.assertEqual(config.retry_attempts, 3)
        self.assertEqual(config.retry_delay, 1000)

    def test_integer_settings_are_coerced(self):
        """Test string integers from env-style sources."""
        resolver = ConfigResolver({"proofage": {"timeout": "15", "webhook_tolerance": "120"}})
        config = resolver.resolve()

        self.assertEqual(config.timeout, 15)
        self.assertEqual(config.webhook_tolerance, 120)

    def test_invalid_integer_setting(self):
        """Test unparsable integer settings."""
        resolver = ConfigResolver({"proofage": {"webhook_tolerance": "five minutes"}})
        with pytest.raises(ValueError, match="webhook_tolerance"):
            resolver.resolve()

    def test_resolved_config_is_immutable(self):
        """Test SigningConfig is frozen."""
        config = self.resolver.resolve()
        with self.assertRaises(AttributeError):
            config.secret_key = "changed"

    def test_prefixes(self):
        """Test listing known prefixes."""
        self.assertEqual(self.resolver.prefixes(), ["proofage", "services.proofage_seller"])


class TestConfigFromEnv(unittest.TestCase):
    """Test environment variable loading."""

    def test_from_env_default_prefix(self):
        """Test PROOFAGE_* variables."""
        environ = {
            "PROOFAGE_API_KEY": "env-api-key",
            "PROOFAGE_SECRET_KEY": "env-secret",
            "PROOFAGE_BASE_URL": "https://env.test.com",
            "PROOFAGE_WEBHOOK_TOLERANCE": "90",
        }
        config = ConfigResolver.from_env(environ=environ).resolve()

        self.assertEqual(config.api_key, "env-api-key")
        self.assertEqual(config.secret_key, "env-secret")
        self.assertEqual(config.base_url, "https://env.test.com")
        self.assertEqual(config.webhook_tolerance, 90)

    def test_from_env_dotted_prefix(self):
        """Test dotted prefixes map to underscored variable names."""
        environ = {
            "PROOFAGE_VERSION": "v2",
            "SERVICES_PROOFAGE_SELLER_API_KEY": "seller-api-key",
            "SERVICES_PROOFAGE_SELLER_SECRET_KEY": "seller-secret-key",
        }
        resolver = ConfigResolver.from_env(prefixes=["services.proofage_seller"], environ=environ)
        config = resolver.resolve("services.proofage_seller")

        self.assertEqual(config.api_key, "seller-api-key")
        self.assertEqual(config.secret_key, "seller-secret-key")
        self.assertEqual(config.version, "v2")

    def test_from_env_ignores_empty_values(self):
        """Test that empty variables count as unset."""
        environ = {"PROOFAGE_VERSION": "", "PROOFAGE_API_KEY": ""}
        config = ConfigResolver.from_env(environ=environ).resolve()

        self.assertEqual(config.version, "v1")
        self.assertEqual(config.api_key, "")


class TestSigningConfig(unittest.TestCase):
    """Test the SigningConfig record."""

    def test_missing_keys(self):
        """Test detection of empty required settings."""
        config = SigningConfig(api_key="key")
        self.assertEqual(config.missing_keys(), ["secret_key"])
        self.assertEqual(SigningConfig(base_url="").missing_keys(), ["api_key", "secret_key", "base_url"])

    def test_repr_hides_secret(self):
        """Test that the secret is excluded from repr."""
        config = SigningConfig(api_key="key", secret_key="super-secret")
        self.assertNotIn("super-secret", repr(config))
        self.assertIn("key", repr(config))


if __name__ == "__main__":
    unittest.main()
