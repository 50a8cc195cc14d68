"""
Database instance resource (openstack_db_instance).

An instance is created in one request that may also carry its initial
databases and users. Only the instance itself is polled; the nested
databases and users are assumed to follow the instance to ACTIVE and are not
verified individually at creation time.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from openstack_trove_provider.models import InstanceDefinition
from openstack_trove_provider.reconciler import Reconciler
from openstack_trove_provider.utils import get_safe_dict_value, setup_plugin_logger
from openstack_trove_provider.waiter import ACTIVE, BUILD, ERROR, SHUTDOWN, SHUTOFF, ProbeResult

logger = logging.getLogger(__name__)
setup_plugin_logger(logger)


def instance_status(client, instance_id: str, discriminator: Optional[str] = None) -> ProbeResult:
    """Probe an instance by id. NotFoundError propagates to the poll driver."""
    instance = client.get_instance(instance_id)
    status = str(getattr(instance, "status", "") or "").upper()

    if status == ERROR:
        fault = get_safe_dict_value(getattr(instance, "fault", None), "message")
        message = "there was an error creating the instance"
        if fault:
            message = f"{message}: {fault}"
        return ProbeResult(status, instance, error=message)

    return ProbeResult(status, instance)


class InstanceReconciler(Reconciler):
    type_name = "openstack_db_instance"
    kind = "instance"

    delete_pending = frozenset({ACTIVE, SHUTOFF, SHUTDOWN, BUILD})

    probe = staticmethod(instance_status)

    def build_create_request(self, attributes: Mapping[str, Any]) -> Dict[str, Any]:
        definition = InstanceDefinition.from_attributes(attributes)
        flavor_id = definition.flavor_id or self.config.flavor_id
        if not flavor_id:
            raise ValueError("'instance.flavor_id' is required (or set OS_FLAVOR_ID)")

        request: Dict[str, Any] = {
            "name": definition.name,
            "flavor_id": flavor_id,
            "volume": {"size": definition.size},
            "datastore": definition.datastore.type,
            "datastore_version": definition.datastore.version,
        }
        if definition.networks:
            request["nics"] = [network.to_nic() for network in definition.networks]
        if definition.databases:
            request["databases"] = [database.to_payload() for database in definition.databases]
        if definition.users:
            request["users"] = [user.to_payload() for user in definition.users]
        return request

    def submit_create(self, client, request: Dict[str, Any]) -> str:
        return client.create_instance(request)

    def read_remote(self, client, resource_id: str, attributes: Mapping[str, Any]) -> Dict[str, Any]:
        instance = client.get_instance(resource_id)

        refreshed = dict(attributes)
        refreshed["name"] = instance.name
        refreshed["status"] = getattr(instance, "status", "")

        flavor_id = get_safe_dict_value(getattr(instance, "flavor", None), "id")
        if flavor_id:
            refreshed["flavor_id"] = flavor_id

        size = get_safe_dict_value(getattr(instance, "volume", None), "size")
        if size is not None:
            refreshed["size"] = int(size)

        datastore = getattr(instance, "datastore", None) or {}
        if datastore:
            refreshed["datastore"] = [{
                "type": datastore.get("type", ""),
                "version": datastore.get("version", ""),
            }]

        return refreshed

    def submit_delete(self, client, resource_id: str, attributes: Mapping[str, Any]) -> None:
        client.delete_instance(resource_id)
