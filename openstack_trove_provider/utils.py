"""
Utility functions for the Trove provider.

This module provides helper functions for:
- Logging formatters
- OpenStack error formatting
- Composite identifier plumbing for databases and users
- Duration parsing for per-resource timeouts
- Connection testing
"""

import copy
import logging
import math
import re
from typing import Any, Tuple

import requests

logger = logging.getLogger(__name__)

CHILD_ID_SEPARATOR = "/"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(h|m|s)")
_DURATION_UNITS = {"h": 3600, "m": 60, "s": 1}


def setup_plugin_logger(logger_instance: logging.Logger, level: int = logging.INFO) -> None:
    """
    Configure a logger with console handler for provider visibility.

    This ensures provider logs are visible even if the host engine
    hasn't configured handlers for our loggers.

    Args:
        logger_instance: The logger to configure
        level: Logging level (default: INFO)
    """
    logger_instance.setLevel(level)

    if not logger_instance.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)

        # %(msecs)03d provides milliseconds since %f is not supported in datefmt
        formatter = logging.Formatter(
            '[%(levelname)s] [%(asctime)s,%(msecs)03d] [%(name)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        console_handler.setFormatter(formatter)
        logger_instance.addHandler(console_handler)

    # Prevent propagation to avoid duplicate logs
    logger_instance.propagate = False


setup_plugin_logger(logger)


def format_openstack_error(exception: Exception) -> str:
    """
    Format an OpenStack exception for logging.

    Args:
        exception: The exception to format

    Returns:
        Formatted error message
    """
    error_msg = str(exception)

    # troveclient exceptions expose the HTTP status as http_status (or code)
    status_code = getattr(exception, 'http_status', None) or getattr(exception, 'code', None)
    if isinstance(status_code, int):
        error_msg = f"[HTTP {status_code}] {error_msg}"

    details = getattr(exception, 'details', None)
    if details:
        error_msg = f"{error_msg} DETAILS: {details}"

    return error_msg


def validate_resource_id(resource_id: str, resource_type: str = "trove_resource") -> bool:
    """
    Validate a persisted resource identifier.

    Args:
        resource_id: The identifier to validate
        resource_type: Type of resource for error messages

    Returns:
        True if valid

    Raises:
        ValueError: If resource_id is invalid
    """
    if not resource_id:
        raise ValueError(f"{resource_type} id cannot be empty")

    if not isinstance(resource_id, str):
        raise ValueError(f"{resource_type} id must be a string")

    if len(resource_id) > 255:
        raise ValueError(f"{resource_type} id is too long (max 255 characters)")

    return True


def build_child_id(instance_id: str, name: str) -> str:
    """
    Build the persisted id of a database or user.

    Trove has no get-by-id for these objects, they are addressed by
    name inside their parent instance.

    Example:
        >>> build_child_id("8c2a", "app")
        '8c2a/app'
    """
    return f"{instance_id}{CHILD_ID_SEPARATOR}{name}"


def parse_child_id(resource_id: str, resource_type: str = "trove_child") -> Tuple[str, str]:
    """
    Split a composite child id into (instance_id, name).

    Raises:
        ValueError: If the id has no separator or one of the parts is empty
    """
    validate_resource_id(resource_id, resource_type)
    instance_id, sep, name = resource_id.partition(CHILD_ID_SEPARATOR)
    if not sep or not instance_id or not name:
        raise ValueError(
            f"{resource_type} id '{resource_id}' must have the form "
            f"'<instance_id>{CHILD_ID_SEPARATOR}<name>'"
        )
    return instance_id, name


def parse_duration(value: Any, field_name: str = "timeout") -> float:
    """
    Convert a timeout value to seconds.

    Accepts plain numbers (seconds), numeric strings and duration strings
    made of hour/minute/second parts such as "10m", "90s" or "1h30m".

    Raises:
        ValueError: If the value is negative or cannot be parsed
    """
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a number of seconds or a duration like '10m', got {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip()
        try:
            seconds = float(text)
        except ValueError:
            parts = _DURATION_PART.findall(text)
            if not parts or "".join(number + unit for number, unit in parts) != text:
                raise ValueError(
                    f"{field_name} must be a number of seconds or a duration like '10m', got {value!r}"
                ) from None
            seconds = sum(float(number) * _DURATION_UNITS[unit] for number, unit in parts)

    if not math.isfinite(seconds) or seconds < 0:
        raise ValueError(f"{field_name} must be a finite, non-negative duration, got {value!r}")
    return seconds


def get_safe_dict_value(data: Any, *keys: str, default: Any = None) -> Any:
    """
    Safely get a nested dictionary value.

    Args:
        data: The dictionary to query
        *keys: Keys to traverse (e.g., 'a', 'b' for data['a']['b'])
        default: Default value if key not found

    Returns:
        The value if found, otherwise default

    Example:
        >>> data = {'datastore': {'type': 'mysql', 'version': '5.7'}}
        >>> get_safe_dict_value(data, 'datastore', 'type')
        'mysql'
        >>> get_safe_dict_value(data, 'volume', 'size', default=0)
        0
    """
    current = data
    for key in keys:
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return default
    return current


def mask_passwords(payload: Any) -> Any:
    """Return a deep copy of a request payload with every 'password' value masked."""
    masked = copy.deepcopy(payload)

    def _walk(node):
        if isinstance(node, dict):
            for key, value in node.items():
                if key == "password" and value:
                    node[key] = "***REDACTED***"
                else:
                    _walk(value)
        elif isinstance(node, list):
            for item in node:
                _walk(item)

    _walk(masked)
    return masked


class TroveConnectionTester:
    """
    Helper class for testing OpenStack connectivity.

    This is useful for health checks and diagnostics.
    """

    def __init__(self, config):
        """
        Initialize connection tester.

        Args:
            config: TroveConfig instance
        """
        self.config = config

    def test_keystone_reachability(self) -> Tuple[bool, str]:
        """
        Test if the identity endpoint is reachable.

        Returns:
            Tuple of (success, message)
        """
        try:
            response = requests.get(
                self.config.auth_url,
                timeout=10,
                verify=self.config.verify_ssl,
            )

            if response.status_code == 200:
                return True, f"Keystone reachable (HTTP {response.status_code})"
            elif response.status_code < 500:
                return True, f"Keystone maybe reachable (HTTP {response.status_code})"
            else:
                return False, f"Keystone returned error (HTTP {response.status_code})"

        except requests.exceptions.ConnectionError as e:
            return False, f"Cannot connect to Keystone: {e}"
        except requests.exceptions.Timeout:
            return False, "Connection to Keystone timed out"
        except requests.exceptions.RequestException as e:
            return False, f"Unexpected error testing Keystone: {e}"

    def test_authentication(self, client) -> Tuple[bool, str]:
        """
        Test if authentication works.

        Args:
            client: TroveClient instance

        Returns:
            Tuple of (success, message)
        """
        try:
            token = client.get_token()
            if token:
                return True, "Authentication successful"
            return False, "Authentication returned no token"
        except Exception as e:
            return False, f"Authentication failed: {format_openstack_error(e)}"

    def run_full_diagnostics(self, client) -> dict:
        """
        Run full diagnostics and return results.

        Args:
            client: TroveClient instance

        Returns:
            Dictionary with diagnostic results
        """
        results = {
            "keystone_reachable": False,
            "authentication": False,
            "errors": [],
            "warnings": [],
        }

        reachable, msg = self.test_keystone_reachability()
        results["keystone_reachable"] = reachable
        if not reachable:
            results["errors"].append(msg)
            return results

        auth_ok, msg = self.test_authentication(client)
        results["authentication"] = auth_ok
        if not auth_ok:
            results["errors"].append(msg)
            return results

        if not self.config.verify_ssl:
            results["warnings"].append("SSL verification is disabled (not recommended for production)")

        return results
