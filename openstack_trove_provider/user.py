"""
Database user resource (openstack_db_user).

Like databases, users only exist inside an instance listing. MySQL-family
datastores key users by name and host, so the persisted id is
"<instance_id>/<name>" for the default host and "<instance_id>/<name>@<host>"
when a host is declared. Trove never returns a password, so the declared one
is kept on read.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from openstack_trove_provider.exceptions import NotFoundError
from openstack_trove_provider.models import UserDefinition, database_names
from openstack_trove_provider.reconciler import Reconciler
from openstack_trove_provider.utils import build_child_id, parse_child_id, setup_plugin_logger
from openstack_trove_provider.waiter import ABSENT, ACTIVE, ProbeResult

logger = logging.getLogger(__name__)
setup_plugin_logger(logger)

HOST_SEPARATOR = "@"
# Host Trove assigns when none is given
DEFAULT_HOST = "%"


def user_key(name: str, host: Optional[str] = None) -> str:
    """Name part of a user id: "bob" or "bob@10.0.0.1"."""
    return f"{name}{HOST_SEPARATOR}{host}" if host else name


def split_user_key(key: str) -> Tuple[str, Optional[str]]:
    """Inverse of user_key. Hosts never contain "@", so the last one splits."""
    name, sep, host = key.rpartition(HOST_SEPARATOR)
    if not sep or not name or not host:
        return key, None
    return name, host


def find_user(client, instance_id: str, name: str, host: Optional[str] = None):
    """
    Return the listed user ``name`` on ``host``.

    Without a host the user on Trove's default host ("%") is matched.

    Raises:
        NotFoundError: If the instance or the user does not exist
    """
    wanted_host = host or DEFAULT_HOST
    for user in client.list_users(instance_id):
        if user.name == name and (getattr(user, "host", None) or DEFAULT_HOST) == wanted_host:
            return user
    raise NotFoundError("user", build_child_id(instance_id, user_key(name, host)))


def user_status(client, instance_id: str, discriminator: Optional[str] = None) -> ProbeResult:
    """Listed means ACTIVE. A missing entry raises NotFoundError (ABSENT)."""
    name, host = split_user_key(discriminator or "")
    return ProbeResult(ACTIVE, find_user(client, instance_id, name, host))


class UserReconciler(Reconciler):
    type_name = "openstack_db_user"
    kind = "user"
    child_kind = "user"

    create_pending = frozenset({ABSENT})

    probe = staticmethod(user_status)

    def build_create_request(self, attributes: Mapping[str, Any]) -> Tuple[str, UserDefinition]:
        instance_id = attributes.get("instance")
        if not instance_id:
            raise ValueError("'user.instance' is required")
        definition = UserDefinition.from_block(attributes)
        if not definition.password:
            raise ValueError("'user.password' is required")
        return str(instance_id), definition

    def submit_create(self, client, request: Tuple[str, UserDefinition]) -> str:
        instance_id, definition = request
        client.create_users(instance_id, [definition.to_payload()])
        return build_child_id(instance_id, user_key(definition.name, definition.host))

    def locate(self, resource_id: str) -> Tuple[str, Optional[str]]:
        return parse_child_id(resource_id, self.type_name)

    def read_remote(self, client, resource_id: str, attributes: Mapping[str, Any]) -> Dict[str, Any]:
        instance_id, key = self.locate(resource_id)
        name, host = split_user_key(key)
        user = find_user(client, instance_id, name, host)

        refreshed = dict(attributes)
        refreshed["name"] = user.name
        refreshed["instance"] = instance_id
        refreshed["databases"] = database_names(getattr(user, "databases", None))
        remote_host = getattr(user, "host", None)
        if remote_host:
            refreshed["host"] = remote_host
        return refreshed

    def submit_delete(self, client, resource_id: str, attributes: Mapping[str, Any]) -> None:
        instance_id, key = self.locate(resource_id)
        name, host = split_user_key(key)
        client.delete_user(instance_id, name, host=host or attributes.get("host"))
