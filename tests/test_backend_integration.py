"""
Integration tests for TroveBackend - Testing WITH a real OpenStack cloud.

These tests use a REAL Trove endpoint. Only the configuration group cycle
runs by default because it is cheap; the instance cycle also needs
OS_FLAVOR_ID and TROVE_TEST_NETWORK_ID.

Requirements:
- OpenStack with Trove (source your openrc first)
- pytest installed

Run with: pytest tests/test_backend_integration.py -v
"""

import os
from uuid import uuid4

import pytest

from openstack_trove_provider.backends import TroveBackend
from openstack_trove_provider.config import TroveConfig

# Skip all tests if OpenStack credentials not available
pytestmark = pytest.mark.skipif(
    not os.getenv("OS_AUTH_URL"),
    reason="OpenStack credentials not available (source openrc first)"
)

DATASTORE = {
    "type": os.getenv("TROVE_TEST_DATASTORE", "mysql"),
    "version": os.getenv("TROVE_TEST_DATASTORE_VERSION", "5.7"),
}


@pytest.fixture(scope="module")
def backend():
    """Create TroveBackend with a real OpenStack connection."""
    return TroveBackend(TroveConfig.from_env(delete_timeout=300))


class TestBackendHealthChecks:
    def test_ping_with_real_keystone(self, backend):
        assert backend.ping() is True, "Should authenticate against real Keystone"


class TestConfigurationGroupLifecycle:
    def test_create_read_delete(self, backend):
        """Create a configuration group, read it back, delete it."""
        name = f"tf-test-{uuid4().hex[:8]}"
        state = backend.create("openstack_db_configuration_group", {
            "name": name,
            "description": "created by integration test",
            "datastore": DATASTORE,
            "configuration": [{"name": "max_connections", "value": "150"}],
        })

        try:
            assert state.exists
            assert state.attributes["name"] == name
            assert {"name": "max_connections", "value": "150"} in state.attributes["configuration"]

            refreshed = backend.read("openstack_db_configuration_group", state)
            assert refreshed.id == state.id
        finally:
            deleted = backend.delete("openstack_db_configuration_group", state)

        assert deleted.id == ""
        assert backend.read("openstack_db_configuration_group", state).id == ""


@pytest.mark.skipif(
    not (os.getenv("OS_FLAVOR_ID") and os.getenv("TROVE_TEST_NETWORK_ID")),
    reason="OS_FLAVOR_ID and TROVE_TEST_NETWORK_ID are needed to build an instance"
)
class TestInstanceLifecycle:
    def test_instance_with_database_and_user(self, backend):
        """Instance, then a database and a user on it, then tear everything down."""
        instance = backend.create("openstack_db_instance", {
            "name": f"tf-test-{uuid4().hex[:8]}",
            "size": 1,
            "datastore": DATASTORE,
            "network": [{"uuid": os.environ["TROVE_TEST_NETWORK_ID"]}],
        })

        try:
            database = backend.create("openstack_db_database", {"name": "app", "instance": instance.id})
            user = backend.create("openstack_db_user", {
                "name": "app_user",
                "instance": instance.id,
                "password": uuid4().hex,
                "databases": ["app"],
            })
            assert user.attributes["databases"] == ["app"]

            assert backend.delete("openstack_db_user", user).id == ""
            assert backend.delete("openstack_db_database", database).id == ""
        finally:
            backend.delete("openstack_db_instance", instance)
