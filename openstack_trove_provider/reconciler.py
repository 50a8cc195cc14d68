"""
Create/poll/delete control loop shared by every Trove resource kind.

The host orchestration engine owns a ResourceState per managed object and
calls create, read, delete or import_state on the matching Reconciler. Each
call blocks its thread for the whole reconciliation: submit the request,
then poll the status probe through wait_for_state until a target state, an
error or the deadline.

Subclasses (one per resource kind) provide:
    build_create_request(attributes) → request
    submit_create(client, request) → remote id        (fire and proceed, no polling)
    probe(client, id, discriminator) → ProbeResult
    read_remote(client, id, attributes) → attributes  (raises NotFoundError)
    submit_delete(client, id, attributes)             (fire and proceed, no polling)

The client handed to the hooks serves the resource's own region (the
"region" attribute, defaulting to the provider region).
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Tuple

from openstack_trove_provider.config import TroveConfig
from openstack_trove_provider.exceptions import NotFoundError, PollError
from openstack_trove_provider.utils import parse_duration, setup_plugin_logger, validate_resource_id
from openstack_trove_provider.waiter import (
    ABSENT,
    ACTIVE,
    BUILD,
    PollOutcome,
    PollSpec,
    ProbeResult,
    wait_for_state,
)

logger = logging.getLogger(__name__)
setup_plugin_logger(logger)


@dataclass
class ResourceState:
    """
    Engine-side record of one managed object.

    ``id`` is the only persisted identity; an empty id means the object is not
    (or no longer) tracked. ``attributes`` holds the declared configuration
    and is refreshed from the remote side on every read.
    """

    id: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def exists(self) -> bool:
        return bool(self.id)


class Reconciler(ABC):
    """Base class for the per-kind adapters."""

    # Engine resource type name, e.g. "openstack_db_instance"
    type_name: str = ""
    # Human readable kind used in logs and errors
    kind: str = ""

    create_pending: FrozenSet[str] = frozenset({BUILD})
    create_target: FrozenSet[str] = frozenset({ACTIVE})
    delete_pending: FrozenSet[str] = frozenset({ACTIVE})
    delete_target: FrozenSet[str] = frozenset({ABSENT})

    # Set for kinds found by scanning their parent's listing
    child_kind: Optional[str] = None

    def __init__(
        self,
        client,
        config: TroveConfig,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        client_factory: Optional[Callable[[str], Any]] = None,
    ):
        """
        Args:
            client: TroveClient bound to ``config.region_name``
            config: Provider configuration
            sleep: Sleep function used by the poll loops
            clock: Monotonic clock used by the poll loops
            client_factory: Returns the client for another region; without it
                resources declared in a different region are rejected
        """
        self.client = client
        self.config = config
        self._sleep = sleep
        self._clock = clock
        self._client_factory = client_factory

    # ------------------------------------------------------------------
    # Per-kind hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def build_create_request(self, attributes: Mapping[str, Any]) -> Any:
        """Map declared attributes to the create payload. Raises ValueError when invalid."""

    @abstractmethod
    def submit_create(self, client, request: Any) -> str:
        """Send the create call and return the id to persist."""

    @staticmethod
    @abstractmethod
    def probe(client, resource_id: str, discriminator: Optional[str] = None) -> ProbeResult:
        """Observe the remote object once."""

    @abstractmethod
    def read_remote(self, client, resource_id: str, attributes: Mapping[str, Any]) -> Dict[str, Any]:
        """Fetch the remote object and return refreshed attributes. Raises NotFoundError."""

    @abstractmethod
    def submit_delete(self, client, resource_id: str, attributes: Mapping[str, Any]) -> None:
        """Send the delete call. May raise NotFoundError if already gone."""

    def locate(self, resource_id: str) -> Tuple[str, Optional[str]]:
        """Split a persisted id into (probe id, discriminator)."""
        return resource_id, None

    # ------------------------------------------------------------------
    # Operations driven by the engine
    # ------------------------------------------------------------------

    def create(self, attributes: Mapping[str, Any]) -> ResourceState:
        """
        Create the remote object and wait for it to become ready.

        The create call is not undone when the poll fails: the error
        propagates and the object is not adopted.

        Raises:
            ValueError: Declared attributes, region or timeouts are invalid
            CreateRequestError: Trove rejected the create call
            PollError: The object did not reach a target state
        """
        timeout = self._timeout(attributes, "create")
        # validated now, used on delete
        self._timeout(attributes, "delete")
        region, client = self._client_for(attributes)
        request = self.build_create_request(attributes)

        resource_id = self.submit_create(client, request)
        logger.info(f"[CREATE] {self.kind} id: {resource_id} (region={region or '-'})")

        probe_id, discriminator = self.locate(resource_id)
        spec = self._poll_spec(self.create_pending, self.create_target, timeout)
        logger.debug(f"[CREATE] Waiting for {self.kind} ({resource_id}) to become ready")
        try:
            self._wait(spec, client, probe_id, discriminator)
        except PollError as e:
            logger.error(f"[CREATE] ✗ Error waiting for {self.kind} ({resource_id}) to become ready: {e}")
            raise

        state = ResourceState(id=resource_id, attributes=dict(attributes))
        return self.read(state)

    def read(self, state: ResourceState) -> ResourceState:
        """
        Refresh attributes from the remote object.

        An object that disappeared out of band comes back with an empty id
        so the engine drops it from tracked state.
        """
        validate_resource_id(state.id, self.type_name)
        region, client = self._client_for(state.attributes)
        try:
            refreshed = self.read_remote(client, state.id, state.attributes)
        except NotFoundError:
            logger.warning(f"[READ] {self.kind} {state.id} not found, removing from state")
            return ResourceState(id="", attributes=dict(state.attributes))

        refreshed["region"] = region
        logger.debug(f"[READ] Retrieved {self.kind} {state.id}: {refreshed}")
        return ResourceState(id=state.id, attributes=refreshed)

    def delete(self, state: ResourceState) -> ResourceState:
        """
        Delete the remote object and wait until it is gone.

        Deleting an object that is already absent succeeds. The returned
        state has an empty id only once absence was confirmed.

        Raises:
            ValueError: Region or timeouts in the state are invalid
            DeleteRequestError: Trove rejected the delete call
            PollError: The object was still present when the window elapsed
        """
        validate_resource_id(state.id, self.type_name)
        timeout = self._timeout(state.attributes, "delete")
        _, client = self._client_for(state.attributes)
        probe_id, discriminator = self.locate(state.id)

        logger.debug(f"[DELETE] Deleting {self.kind} {state.id}")
        try:
            self.submit_delete(client, state.id, state.attributes)
        except NotFoundError:
            logger.info(f"[DELETE] {self.kind} {state.id} already absent")

        spec = self._poll_spec(self.delete_pending, self.delete_target, timeout)
        try:
            self._wait(spec, client, probe_id, discriminator)
        except PollError as e:
            logger.error(f"[DELETE] ✗ Error waiting for {self.kind} ({state.id}) to delete: {e}")
            raise

        logger.info(f"[DELETE] ✓ {self.kind} {state.id} deleted")
        return ResourceState(id="", attributes=dict(state.attributes))

    def import_state(self, resource_id: str, region: Optional[str] = None) -> ResourceState:
        """Adopt an existing remote object by id."""
        logger.info(f"[IMPORT] Importing {self.kind} {resource_id}")
        attributes = {"region": region} if region else {}
        return self.read(ResourceState(id=resource_id, attributes=attributes))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _client_for(self, attributes: Mapping[str, Any]) -> Tuple[str, Any]:
        """Resolve the resource region and the client that serves it."""
        region = attributes.get("region") or self.config.region_name
        if region == self.config.region_name:
            return region, self.client
        if self._client_factory is None:
            raise ValueError(
                f"{self.kind} region '{region}' differs from the provider region "
                f"'{self.config.region_name or '-'}'"
            )
        return region, self._client_factory(region)

    def _timeout(self, attributes: Mapping[str, Any], operation: str) -> float:
        timeouts = attributes.get("timeouts") or {}
        value = timeouts.get(operation)
        if value is None:
            return float(self.config.create_timeout if operation == "create" else self.config.delete_timeout)
        return parse_duration(value, f"timeouts.{operation}")

    def _poll_spec(self, pending, target, timeout: float) -> PollSpec:
        return PollSpec(
            pending=pending,
            target=target,
            probe=self.probe,
            timeout=timeout,
            delay=self.config.poll_delay,
            min_interval=self.config.poll_min_interval,
            child_kind=self.child_kind,
        )

    def _wait(self, spec: PollSpec, client, probe_id: str, discriminator: Optional[str]) -> PollOutcome:
        return wait_for_state(
            spec,
            client,
            probe_id,
            discriminator,
            sleep=self._sleep,
            clock=self._clock,
        )
