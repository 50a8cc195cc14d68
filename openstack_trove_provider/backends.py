"""
Trove backend for the host orchestration engine.

This module wires configuration, the Trove client and the four resource
reconcilers together. The engine addresses resources by type name:

    openstack_db_instance            → InstanceReconciler
    openstack_db_database            → DatabaseReconciler
    openstack_db_user                → UserReconciler
    openstack_db_configuration_group → ConfigurationGroupReconciler

Architecture:
    engine → TroveBackend → Reconciler → TroveClient → Trove API
"""

import dataclasses
import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional, Union

from openstack_trove_provider.config import TroveConfig
from openstack_trove_provider.configuration_group import ConfigurationGroupReconciler
from openstack_trove_provider.database import DatabaseReconciler
from openstack_trove_provider.exceptions import ClientConstructionError
from openstack_trove_provider.instance import InstanceReconciler
from openstack_trove_provider.reconciler import Reconciler, ResourceState
from openstack_trove_provider.trove_client import TroveClient
from openstack_trove_provider.user import UserReconciler
from openstack_trove_provider.utils import TroveConnectionTester, setup_plugin_logger

logger = logging.getLogger(__name__)
setup_plugin_logger(logger)

RECONCILER_CLASSES = (
    InstanceReconciler,
    DatabaseReconciler,
    UserReconciler,
    ConfigurationGroupReconciler,
)


class TroveBackend:
    """
    Entry point for the orchestration engine.

    Builds one TroveClient per region, starting with the provider region,
    and shares them between all reconcilers. Nothing is kept at module
    level; create as many backends as there are providers.
    """

    def __init__(
        self,
        settings: Union[TroveConfig, Mapping[str, Any]],
        client: Optional[TroveClient] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the Trove backend.

        Args:
            settings: TroveConfig or a settings mapping
            client: Prebuilt TroveClient (tests); built from settings when omitted
            sleep: Sleep function used by the poll loops
            clock: Monotonic clock used by the poll loops

        Raises:
            ClientConstructionError: If configuration or client construction fails
        """
        try:
            if isinstance(settings, TroveConfig):
                self.config = settings
            else:
                self.config = TroveConfig.from_settings(settings)
            self.config.validate()

            self.client = client if client is not None else TroveClient(self.config)
            self._regional_clients: Dict[str, TroveClient] = {self.config.region_name: self.client}

            logger.info(
                f"TroveBackend initialized successfully "
                f"(auth_url={self.config.auth_url}, region={self.config.region_name or '-'})"
            )
            logger.debug(f"Configuration: {self.config.sanitize_for_logging()}")

        except ClientConstructionError:
            raise
        except Exception as e:
            error_msg = f"Failed to initialize Trove backend: {e}"
            logger.error(error_msg, exc_info=True)
            raise ClientConstructionError(error_msg) from e

        self.reconcilers: Dict[str, Reconciler] = {
            cls.type_name: cls(
                self.client,
                self.config,
                sleep=sleep,
                clock=clock,
                client_factory=self.client_for_region,
            )
            for cls in RECONCILER_CLASSES
        }

    # ========================================================================
    # RESOURCE LIFECYCLE
    # ========================================================================

    def reconciler(self, type_name: str) -> Reconciler:
        """Get the reconciler for a resource type name."""
        try:
            return self.reconcilers[type_name]
        except KeyError:
            raise ValueError(
                f"Unknown resource type '{type_name}'. "
                f"Supported: {', '.join(sorted(self.reconcilers))}"
            ) from None

    def create(self, type_name: str, attributes: Mapping[str, Any]) -> ResourceState:
        return self.reconciler(type_name).create(attributes)

    def read(self, type_name: str, state: ResourceState) -> ResourceState:
        return self.reconciler(type_name).read(state)

    def delete(self, type_name: str, state: ResourceState) -> ResourceState:
        return self.reconciler(type_name).delete(state)

    def import_state(self, type_name: str, resource_id: str, region: Optional[str] = None) -> ResourceState:
        return self.reconciler(type_name).import_state(resource_id, region=region)

    def client_for_region(self, region: str) -> TroveClient:
        """
        Get the client for a region, building and caching it on first use.

        Raises:
            ClientConstructionError: If the client cannot be built
        """
        client = self._regional_clients.get(region)
        if client is None:
            logger.info(f"Building Trove client for region {region}")
            client = TroveClient(dataclasses.replace(self.config, region_name=region))
            self._regional_clients[region] = client
        return client

    # ========================================================================
    # HEALTH CHECKS
    # ========================================================================

    def ping(self) -> bool:
        """
        Check that keystone authentication works.

        Returns:
            True if a token could be obtained, False otherwise
        """
        try:
            if self.client.get_token():
                logger.debug("✓ Keystone ping successful")
                return True
            logger.error("Keystone ping failed: no token")
            return False
        except Exception as err:
            logger.error(f"Keystone ping failed: {err}")
            return False

    def diagnostics(self) -> bool:
        """
        Run diagnostics on the Trove backend.

        Returns:
            True if all checks pass, False otherwise
        """
        logger.info("=" * 60)
        logger.info("Trove Backend Diagnostics")
        logger.info("=" * 60)

        all_checks_passed = True

        logger.info("Check 1: Configuration validation")
        try:
            self.config.validate()
            logger.info("  ✓ Configuration is valid")
        except ValueError as e:
            logger.error(f"  ✗ Configuration validation failed: {e}")
            all_checks_passed = False

        logger.info("Check 2: Keystone reachability and authentication")
        results = TroveConnectionTester(self.config).run_full_diagnostics(self.client)
        for error in results["errors"]:
            logger.error(f"  ✗ {error}")
        for warning in results["warnings"]:
            logger.warning(f"  ⚠ {warning}")
        if results["keystone_reachable"] and results["authentication"]:
            logger.info("  ✓ Keystone is reachable and authentication works")
        else:
            all_checks_passed = False

        logger.info("=" * 60)
        if all_checks_passed:
            logger.info("✓ All diagnostic checks passed")
        else:
            logger.warning("⚠ Some diagnostic checks failed")
        logger.info("=" * 60)

        return all_checks_passed
