"""
Configuration group resource (openstack_db_configuration_group).

Configuration groups have no build phase: a successful get means ACTIVE.
Declared values that look like integers are sent as integers.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from openstack_trove_provider.models import ConfigurationGroupDefinition, configuration_blocks
from openstack_trove_provider.reconciler import Reconciler
from openstack_trove_provider.utils import setup_plugin_logger
from openstack_trove_provider.waiter import ACTIVE, SHUTOFF, ProbeResult

logger = logging.getLogger(__name__)
setup_plugin_logger(logger)


def configuration_status(client, configuration_id: str, discriminator: Optional[str] = None) -> ProbeResult:
    return ProbeResult(ACTIVE, client.get_configuration(configuration_id))


class ConfigurationGroupReconciler(Reconciler):
    type_name = "openstack_db_configuration_group"
    kind = "configuration group"

    delete_pending = frozenset({ACTIVE, SHUTOFF})

    probe = staticmethod(configuration_status)

    def build_create_request(self, attributes: Mapping[str, Any]) -> ConfigurationGroupDefinition:
        return ConfigurationGroupDefinition.from_attributes(attributes)

    def submit_create(self, client, request: ConfigurationGroupDefinition) -> str:
        return client.create_configuration(
            request.name,
            request.values_payload(),
            description=request.description,
            datastore=request.datastore.type,
            datastore_version=request.datastore.version,
        )

    def read_remote(self, client, resource_id: str, attributes: Mapping[str, Any]) -> Dict[str, Any]:
        configuration = client.get_configuration(resource_id)

        refreshed = dict(attributes)
        refreshed["name"] = configuration.name
        refreshed["description"] = getattr(configuration, "description", None) or ""

        datastore_name = getattr(configuration, "datastore_name", None)
        datastore_version = getattr(configuration, "datastore_version_name", None)
        if datastore_name and datastore_version:
            refreshed["datastore"] = [{"type": datastore_name, "version": datastore_version}]

        values = getattr(configuration, "values", None)
        if isinstance(values, dict):
            refreshed["configuration"] = configuration_blocks(values)
        return refreshed

    def submit_delete(self, client, resource_id: str, attributes: Mapping[str, Any]) -> None:
        client.delete_configuration(resource_id)
