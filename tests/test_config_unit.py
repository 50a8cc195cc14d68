"""
Unit tests for TroveConfig.

Run with: pytest tests/test_config_unit.py -v
"""

import pytest

from openstack_trove_provider.config import TroveConfig

SETTINGS = {
    "auth_url": "https://keystone.example.com:5000/v3",
    "username": "admin",
    "password": "secret",
}


class TestFromSettings:
    def test_missing_required_fields(self):
        """Missing credentials are reported by name."""
        with pytest.raises(ValueError) as exc_info:
            TroveConfig.from_settings({"auth_url": "https://keystone"})

        assert "username" in str(exc_info.value)
        assert "password" in str(exc_info.value)

    def test_unknown_keys_ignored(self):
        config = TroveConfig.from_settings({**SETTINGS, "backend_type": "trove"})

        assert config.username == "admin"

    def test_domain_names_default_to_domain(self):
        config = TroveConfig.from_settings({**SETTINGS, "domain_name": "corp"})

        assert config.user_domain_name == "corp"
        assert config.project_domain_name == "corp"

    def test_default_cadence(self):
        config = TroveConfig.from_settings(SETTINGS)

        assert config.create_timeout == 600
        assert config.delete_timeout == 600
        assert config.poll_delay == 10
        assert config.poll_min_interval == 3


class TestFromEnv:
    def test_reads_os_variables(self):
        environ = {
            "OS_AUTH_URL": "https://keystone.example.com:5000/v3",
            "OS_USERNAME": "demo",
            "OS_PASSWORD": "pw",
            "OS_PROJECT_NAME": "demo",
            "OS_REGION_NAME": "RegionTwo",
            "OS_FLAVOR_ID": "42",
            "OS_INSECURE": "true",
        }

        config = TroveConfig.from_env(environ)

        assert config.username == "demo"
        assert config.project_name == "demo"
        assert config.region_name == "RegionTwo"
        assert config.flavor_id == "42"
        assert config.verify_ssl is False

    def test_overrides_win(self):
        environ = {"OS_AUTH_URL": "https://a", "OS_USERNAME": "u", "OS_PASSWORD": "p"}

        config = TroveConfig.from_env(environ, region_name="Override")

        assert config.region_name == "Override"

    def test_region_defaults_from_process_environment(self, monkeypatch):
        monkeypatch.setenv("OS_REGION_NAME", "EnvRegion")
        monkeypatch.setenv("OS_FLAVOR_ID", "3")

        config = TroveConfig(**SETTINGS)

        assert config.region_name == "EnvRegion"
        assert config.flavor_id == "3"


class TestValidate:
    def test_valid(self):
        assert TroveConfig(**SETTINGS).validate() is True

    @pytest.mark.parametrize("overrides", [
        {"auth_url": "keystone.example.com"},
        {"password": ""},
        {"interface": "private"},
        {"create_timeout": -1},
        {"poll_min_interval": -3},
    ])
    def test_invalid(self, overrides):
        config = TroveConfig(**{**SETTINGS, **overrides})

        with pytest.raises(ValueError):
            config.validate()

    def test_sanitize_masks_password(self):
        sanitized = TroveConfig(**SETTINGS).sanitize_for_logging()

        assert sanitized["password"] == "***REDACTED***"
        assert "secret" not in sanitized.values()
