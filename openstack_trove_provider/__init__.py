"""
OpenStack Trove resource provider.

Manages Trove database-as-a-service objects (instances, databases, users,
configuration groups) for a declarative orchestration engine: each create or
delete submits a request and then polls until the object reaches its target
state, fails, or the operation times out.

Usage:
    backend = TroveBackend(TroveConfig.from_env())
    state = backend.create("openstack_db_instance", {
        "name": "db1", "size": 2, "flavor_id": "7",
        "datastore": {"type": "mysql", "version": "5.7"},
    })
    backend.delete("openstack_db_instance", state)
"""

__version__ = "0.1.0"

from openstack_trove_provider.backends import TroveBackend
from openstack_trove_provider.config import TroveConfig
from openstack_trove_provider.reconciler import ResourceState

__all__ = [
    "ResourceState",
    "TroveBackend",
    "TroveConfig",
]
