"""
Database resource (openstack_db_database).

Trove has no get-by-id for databases: they are listed per instance and
addressed by name. The persisted id is "<instance_id>/<name>" and every probe
scans the instance's database listing for the name.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from openstack_trove_provider.exceptions import NotFoundError
from openstack_trove_provider.models import DatabaseDefinition
from openstack_trove_provider.reconciler import Reconciler
from openstack_trove_provider.utils import build_child_id, parse_child_id, setup_plugin_logger
from openstack_trove_provider.waiter import ABSENT, ACTIVE, ProbeResult

logger = logging.getLogger(__name__)
setup_plugin_logger(logger)


def find_database(client, instance_id: str, name: str):
    """
    Return the listed database called ``name``.

    Raises:
        NotFoundError: If the instance or the database does not exist
    """
    for database in client.list_databases(instance_id):
        if database.name == name:
            return database
    raise NotFoundError("database", build_child_id(instance_id, name))


def database_status(client, instance_id: str, discriminator: Optional[str] = None) -> ProbeResult:
    """Listed means ACTIVE. A missing entry raises NotFoundError (ABSENT)."""
    return ProbeResult(ACTIVE, find_database(client, instance_id, discriminator))


class DatabaseReconciler(Reconciler):
    type_name = "openstack_db_database"
    kind = "database"
    child_kind = "database"

    # Not yet listed right after the create call
    create_pending = frozenset({ABSENT})

    probe = staticmethod(database_status)

    def build_create_request(self, attributes: Mapping[str, Any]) -> Tuple[str, DatabaseDefinition]:
        instance_id = attributes.get("instance")
        if not instance_id:
            raise ValueError("'database.instance' is required")
        return str(instance_id), DatabaseDefinition.from_block(attributes)

    def submit_create(self, client, request: Tuple[str, DatabaseDefinition]) -> str:
        instance_id, definition = request
        client.create_databases(instance_id, [definition.to_payload()])
        return build_child_id(instance_id, definition.name)

    def locate(self, resource_id: str) -> Tuple[str, Optional[str]]:
        return parse_child_id(resource_id, self.type_name)

    def read_remote(self, client, resource_id: str, attributes: Mapping[str, Any]) -> Dict[str, Any]:
        instance_id, name = self.locate(resource_id)
        database = find_database(client, instance_id, name)

        refreshed = dict(attributes)
        refreshed["name"] = database.name
        refreshed["instance"] = instance_id
        # The listing usually carries only the name
        for remote_key, key in (("character_set", "charset"), ("collate", "collate")):
            value = getattr(database, remote_key, None)
            if value:
                refreshed[key] = value
        return refreshed

    def submit_delete(self, client, resource_id: str, attributes: Mapping[str, Any]) -> None:
        instance_id, name = self.locate(resource_id)
        client.delete_database(instance_id, name)
