"""
OpenStack Trove Client Wrapper.

This module provides a simplified interface to the Trove (database as a
service) v1 API. It handles authentication through a keystone session and
maps HTTP 404 answers to NotFoundError, which several callers branch on.

One TroveClient is built per backend and handed to every adapter call.
The underlying keystone session may be shared between reconciliations
running in parallel.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from keystoneauth1 import session
from keystoneauth1.identity import v3
from troveclient import exceptions as trove_exceptions
from troveclient.v1 import client as trove_client

from openstack_trove_provider.config import TroveConfig
from openstack_trove_provider.exceptions import (
    ClientConstructionError,
    CreateRequestError,
    DeleteRequestError,
    NotFoundError,
    TroveClientError,
)
from openstack_trove_provider.utils import format_openstack_error, mask_passwords, setup_plugin_logger

logger = logging.getLogger(__name__)
setup_plugin_logger(logger)


class TroveClient:
    """
    High-level wrapper for the OpenStack Trove API.

    Usage:
        config = TroveConfig.from_env()
        client = TroveClient(config)

        instance_id = client.create_instance({"name": "db1", "flavor_id": "7", ...})
        instance = client.get_instance(instance_id)
        client.create_databases(instance_id, [{"name": "app"}])
    """

    def __init__(self, config: TroveConfig, trove=None):
        """
        Initialize Trove client.

        Args:
            config: TroveConfig instance
            trove: Prebuilt troveclient Client (tests); built from config when omitted

        Raises:
            ClientConstructionError: If initialization fails
        """
        self.config = config
        self._session = None
        self._trove = trove

        if trove is not None:
            return

        try:
            self._initialize_session()
            logger.info(f"TroveClient initialized for {config.auth_url} (region='{config.region_name}')")
        except Exception as e:
            error_msg = f"Failed to initialize Trove client: {format_openstack_error(e)}"
            logger.error(error_msg)
            raise ClientConstructionError(error_msg) from e

    def _initialize_session(self):
        """Initialize keystone session and Trove client."""
        auth = v3.Password(**self.config.get_keystone_auth_params())

        self._session = session.Session(auth=auth, verify=self.config.verify_ssl)
        self._trove = trove_client.Client(
            session=self._session,
            region_name=self.config.region_name or None,
            endpoint_type=self.config.interface,
        )

    @property
    def trove(self):
        """Get troveclient instance."""
        if self._trove is None:
            self._initialize_session()
        return self._trove

    # ========================================================================
    # AUTHENTICATION
    # ========================================================================

    def get_token(self) -> str:
        """Get authentication token."""
        if self._session is None:
            self._initialize_session()
        try:
            return self._session.get_token()
        except Exception as e:
            raise TroveClientError(f"Failed to get token: {format_openstack_error(e)}") from e

    # ========================================================================
    # INSTANCE OPERATIONS
    # ========================================================================

    def create_instance(self, request: Dict[str, Any]) -> str:
        """
        Submit an instance create request.

        Args:
            request: Keyword arguments for troveclient instances.create

        Returns:
            Remote instance id

        Raises:
            CreateRequestError: If Trove rejects the request
        """
        logger.debug(f"[CREATE_INSTANCE] Request: {mask_passwords(request)}")
        try:
            instance = self.trove.instances.create(**request)
        except Exception as e:
            error_msg = f"Error creating database instance '{request.get('name')}': {format_openstack_error(e)}"
            logger.error(error_msg)
            raise CreateRequestError(error_msg) from e
        logger.info(f"[CREATE_INSTANCE] ✓ Submitted instance '{request.get('name')}' (id={instance.id})")
        return instance.id

    def get_instance(self, instance_id: str):
        """
        Get instance by id.

        Raises:
            NotFoundError: If the instance does not exist
            TroveClientError: On any other API error
        """
        try:
            return self.trove.instances.get(instance_id)
        except trove_exceptions.NotFound as e:
            raise NotFoundError("instance", instance_id) from e
        except Exception as e:
            raise TroveClientError(f"Error retrieving instance {instance_id}: {format_openstack_error(e)}") from e

    def delete_instance(self, instance_id: str) -> None:
        """
        Submit an instance delete request.

        Raises:
            NotFoundError: If the instance is already gone
            DeleteRequestError: On any other API error
        """
        try:
            self.trove.instances.delete(instance_id)
            logger.info(f"[DELETE_INSTANCE] ✓ Delete submitted for instance {instance_id}")
        except trove_exceptions.NotFound as e:
            raise NotFoundError("instance", instance_id) from e
        except Exception as e:
            error_msg = f"Error deleting database instance {instance_id}: {format_openstack_error(e)}"
            logger.error(error_msg)
            raise DeleteRequestError(error_msg) from e

    # ========================================================================
    # DATABASE OPERATIONS (scoped to an instance)
    # ========================================================================

    def list_databases(self, instance_id: str) -> List[Any]:
        """List every database on an instance, following pagination markers."""
        return self._list_all(self.trove.databases, "databases", instance_id)

    def create_databases(self, instance_id: str, databases: List[Dict[str, Any]]) -> None:
        """
        Create databases on an instance.

        Raises:
            CreateRequestError: If Trove rejects the request
        """
        names = [database["name"] for database in databases]
        logger.debug(f"[CREATE_DATABASE] Request on {instance_id}: {databases}")
        try:
            self.trove.databases.create(instance_id, databases)
        except Exception as e:
            error_msg = f"Error creating databases {names} on instance {instance_id}: {format_openstack_error(e)}"
            logger.error(error_msg)
            raise CreateRequestError(error_msg) from e
        logger.info(f"[CREATE_DATABASE] ✓ Submitted databases {names} on instance {instance_id}")

    def delete_database(self, instance_id: str, name: str) -> None:
        """
        Delete one database from an instance.

        Raises:
            NotFoundError: If the instance or the database is already gone
            DeleteRequestError: On any other API error
        """
        try:
            self.trove.databases.delete(instance_id, name)
            logger.info(f"[DELETE_DATABASE] ✓ Delete submitted for database '{name}' on {instance_id}")
        except trove_exceptions.NotFound as e:
            raise NotFoundError("database", f"{instance_id}/{name}") from e
        except Exception as e:
            error_msg = f"Error deleting database '{name}' on instance {instance_id}: {format_openstack_error(e)}"
            logger.error(error_msg)
            raise DeleteRequestError(error_msg) from e

    # ========================================================================
    # USER OPERATIONS (scoped to an instance)
    # ========================================================================

    def list_users(self, instance_id: str) -> List[Any]:
        """List every user on an instance, following pagination markers."""
        return self._list_all(self.trove.users, "users", instance_id)

    def create_users(self, instance_id: str, users: List[Dict[str, Any]]) -> None:
        """
        Create users on an instance.

        Raises:
            CreateRequestError: If Trove rejects the request
        """
        names = [user["name"] for user in users]
        logger.debug(f"[CREATE_USER] Request on {instance_id}: {mask_passwords(users)}")
        try:
            self.trove.users.create(instance_id, users)
        except Exception as e:
            error_msg = f"Error creating users {names} on instance {instance_id}: {format_openstack_error(e)}"
            logger.error(error_msg)
            raise CreateRequestError(error_msg) from e
        logger.info(f"[CREATE_USER] ✓ Submitted users {names} on instance {instance_id}")

    def delete_user(self, instance_id: str, name: str, host: Optional[str] = None) -> None:
        """
        Delete one user from an instance.

        Raises:
            NotFoundError: If the instance or the user is already gone
            DeleteRequestError: On any other API error
        """
        try:
            self.trove.users.delete(instance_id, name, hostname=host or None)
            logger.info(f"[DELETE_USER] ✓ Delete submitted for user '{name}' on {instance_id}")
        except trove_exceptions.NotFound as e:
            raise NotFoundError("user", f"{instance_id}/{name}") from e
        except Exception as e:
            error_msg = f"Error deleting user '{name}' on instance {instance_id}: {format_openstack_error(e)}"
            logger.error(error_msg)
            raise DeleteRequestError(error_msg) from e

    # ========================================================================
    # CONFIGURATION GROUP OPERATIONS
    # ========================================================================

    def create_configuration(
        self,
        name: str,
        values: Dict[str, Any],
        description: str = "",
        datastore: Optional[str] = None,
        datastore_version: Optional[str] = None,
    ) -> str:
        """
        Create a configuration group.

        Args:
            values: Parameter name → value, already coerced to wire types

        Returns:
            Remote configuration group id

        Raises:
            CreateRequestError: If Trove rejects the request
        """
        logger.debug(f"[CREATE_CONFIGURATION] Request '{name}': values={values}")
        try:
            # troveclient expects the values as a JSON document
            configuration = self.trove.configurations.create(
                name,
                json.dumps(values),
                description=description or None,
                datastore=datastore,
                datastore_version=datastore_version,
            )
        except Exception as e:
            error_msg = f"Error creating configuration group '{name}': {format_openstack_error(e)}"
            logger.error(error_msg)
            raise CreateRequestError(error_msg) from e
        logger.info(f"[CREATE_CONFIGURATION] ✓ Created configuration group '{name}' (id={configuration.id})")
        return configuration.id

    def get_configuration(self, configuration_id: str):
        """
        Get configuration group by id.

        Raises:
            NotFoundError: If the configuration group does not exist
            TroveClientError: On any other API error
        """
        try:
            return self.trove.configurations.get(configuration_id)
        except trove_exceptions.NotFound as e:
            raise NotFoundError("configuration", configuration_id) from e
        except Exception as e:
            raise TroveClientError(
                f"Error retrieving configuration {configuration_id}: {format_openstack_error(e)}"
            ) from e

    def delete_configuration(self, configuration_id: str) -> None:
        """
        Delete a configuration group.

        Raises:
            NotFoundError: If the configuration group is already gone
            DeleteRequestError: On any other API error
        """
        try:
            self.trove.configurations.delete(configuration_id)
            logger.info(f"[DELETE_CONFIGURATION] ✓ Delete submitted for configuration {configuration_id}")
        except trove_exceptions.NotFound as e:
            raise NotFoundError("configuration", configuration_id) from e
        except Exception as e:
            error_msg = f"Error deleting configuration {configuration_id}: {format_openstack_error(e)}"
            logger.error(error_msg)
            raise DeleteRequestError(error_msg) from e

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _list_all(self, manager, kind: str, instance_id: str) -> List[Any]:
        items: List[Any] = []
        marker = None
        try:
            while True:
                page = manager.list(instance_id, marker=marker)
                items.extend(page)
                marker = getattr(page, "next", None)
                if not marker:
                    break
        except trove_exceptions.NotFound as e:
            raise NotFoundError("instance", instance_id) from e
        except Exception as e:
            raise TroveClientError(
                f"Unable to retrieve {kind} of instance {instance_id}: {format_openstack_error(e)}"
            ) from e
        logger.debug(f"Found {len(items)} {kind} on instance {instance_id}")
        return items
