"""
Configuration management for the Trove provider.

The provider receives its settings either as a mapping handed over by the
host orchestration engine or from the standard OpenStack environment
variables.

Configuration Flow:
    provider settings / OS_* environment
    └── TroveConfig.from_settings(settings) or TroveConfig.from_env()
        └── TroveBackend(config) → TroveClient(config) → resource adapters
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from openstack_trove_provider.utils import setup_plugin_logger

logger = logging.getLogger(__name__)
setup_plugin_logger(logger)

# OS_* environment variable → TroveConfig field
ENV_VARIABLES = {
    "OS_AUTH_URL": "auth_url",
    "OS_USERNAME": "username",
    "OS_PASSWORD": "password",
    "OS_PROJECT_NAME": "project_name",
    "OS_USER_DOMAIN_NAME": "user_domain_name",
    "OS_PROJECT_DOMAIN_NAME": "project_domain_name",
    "OS_INTERFACE": "interface",
}


@dataclass
class TroveConfig:
    """
    Configuration for the Trove database service provider.

    Example settings:
        auth_url: "https://keystone.example.com:5000/v3"
        username: "admin"
        password: "secret"
        project_name: "admin"
        domain_name: "Default"
        region_name: "RegionOne"
        flavor_id: "7"
        create_timeout: 600
    """

    # Required Keystone authentication settings
    auth_url: str
    username: str
    password: str

    # Optional authentication settings (with defaults)
    project_name: str = "admin"
    domain_name: str = "Default"
    user_domain_name: Optional[str] = None
    project_domain_name: Optional[str] = None
    region_name: str = field(default_factory=lambda: os.environ.get("OS_REGION_NAME", ""))
    interface: str = "public"
    verify_ssl: bool = True

    # Default flavor for instances that do not declare one
    flavor_id: Optional[str] = field(default_factory=lambda: os.environ.get("OS_FLAVOR_ID"))

    # Poll cadence and per-operation windows, in seconds
    create_timeout: float = 600
    delete_timeout: float = 600
    poll_delay: float = 10
    poll_min_interval: float = 3

    def __post_init__(self):
        """Set default domain names if not provided."""
        if self.user_domain_name is None:
            self.user_domain_name = self.domain_name
        if self.project_domain_name is None:
            self.project_domain_name = self.domain_name

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "TroveConfig":
        """
        Create configuration from a settings mapping.

        Unknown keys are ignored so the engine can pass its whole provider block.

        Raises:
            ValueError: If required settings are missing
        """
        required_fields = ["auth_url", "username", "password"]
        missing_fields = [name for name in required_fields if not settings.get(name)]

        if missing_fields:
            raise ValueError(
                f"Missing required OpenStack configuration fields: {', '.join(missing_fields)}"
            )

        valid_fields = cls.__dataclass_fields__.keys()
        filtered_settings = {
            key: value
            for key, value in settings.items()
            if key in valid_fields
        }

        return cls(**filtered_settings)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "TroveConfig":
        """
        Create configuration from OS_* environment variables.

        Explicit keyword overrides win over the environment.
        """
        environ = os.environ if environ is None else environ
        settings: Dict[str, Any] = {
            field_name: environ[variable]
            for variable, field_name in ENV_VARIABLES.items()
            if environ.get(variable)
        }
        if environ.get("OS_REGION_NAME"):
            settings["region_name"] = environ["OS_REGION_NAME"]
        if environ.get("OS_FLAVOR_ID"):
            settings["flavor_id"] = environ["OS_FLAVOR_ID"]
        if environ.get("OS_INSECURE", "").lower() in ("1", "true", "yes"):
            settings["verify_ssl"] = False
        settings.update(overrides)
        return cls.from_settings(settings)

    def validate(self) -> bool:
        """
        Validate configuration parameters.

        Returns:
            True if configuration is valid

        Raises:
            ValueError: If configuration is invalid
        """
        if not self.auth_url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid auth_url format: {self.auth_url}")

        if not self.username or not self.password:
            raise ValueError("Username and password cannot be empty")

        valid_interfaces = ["public", "internal", "admin"]
        if self.interface not in valid_interfaces:
            raise ValueError(
                f"Invalid interface '{self.interface}'. "
                f"Must be one of: {', '.join(valid_interfaces)}"
            )

        for name in ("create_timeout", "delete_timeout", "poll_delay", "poll_min_interval"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

        logger.info("Trove configuration validated successfully")
        return True

    def get_keystone_auth_params(self) -> Dict[str, Any]:
        """
        Get authentication parameters for the keystone password plugin.

        Returns:
            Dictionary with auth parameters for keystoneauth1 v3.Password
        """
        return {
            "auth_url": self.auth_url,
            "username": self.username,
            "password": self.password,
            "project_name": self.project_name,
            "user_domain_name": self.user_domain_name,
            "project_domain_name": self.project_domain_name,
        }

    def sanitize_for_logging(self) -> Dict[str, Any]:
        """
        Get configuration dict with sensitive values masked for logging.

        Returns:
            Dictionary with masked sensitive values
        """
        return {
            "auth_url": self.auth_url,
            "username": self.username,
            "password": "***REDACTED***",
            "project_name": self.project_name,
            "domain_name": self.domain_name,
            "user_domain_name": self.user_domain_name,
            "project_domain_name": self.project_domain_name,
            "region_name": self.region_name,
            "interface": self.interface,
            "verify_ssl": self.verify_ssl,
            "flavor_id": self.flavor_id,
            "create_timeout": self.create_timeout,
            "delete_timeout": self.delete_timeout,
            "poll_delay": self.poll_delay,
            "poll_min_interval": self.poll_min_interval,
        }
