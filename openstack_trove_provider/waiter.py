"""
Poll-until-state driver.

A reconciliation submits a create or delete call and then blocks here until
the remote object reaches one of the target states. Polling is constant
cadence: ``delay`` before the second probe, ``min_interval`` between the
following ones, all bounded by ``timeout``.

Probes are plain functions ``probe(client, resource_id, discriminator)`` that
return a ProbeResult. A probe may raise NotFoundError, which the driver
records as the ABSENT state before applying the pending/target rules.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, Optional

from openstack_trove_provider.exceptions import (
    ChildNotFoundError,
    NotFoundError,
    PollStatusError,
    PollTimeoutError,
)
from openstack_trove_provider.utils import setup_plugin_logger

logger = logging.getLogger(__name__)
setup_plugin_logger(logger)

# Lifecycle states reported by Trove
BUILD = "BUILD"
ACTIVE = "ACTIVE"
SHUTOFF = "SHUTOFF"
SHUTDOWN = "SHUTDOWN"
ERROR = "ERROR"

# The object is gone (HTTP 404 or missing from its parent listing)
ABSENT = "ABSENT"


@dataclass
class ProbeResult:
    """One observation of a remote object."""

    state: str
    details: Any = None
    error: Optional[str] = None


Probe = Callable[[Any, str, Optional[str]], ProbeResult]


@dataclass
class PollSpec:
    """
    What to wait for and how often to look.

    ``pending`` and ``target`` must be disjoint. ``child_kind`` is set when
    the probe scans a parent listing for ``discriminator``; a timeout while
    the child was never listed is then reported as ChildNotFoundError.
    """

    pending: FrozenSet[str]
    target: FrozenSet[str]
    probe: Probe
    timeout: float = 600
    delay: float = 10
    min_interval: float = 3
    child_kind: Optional[str] = None

    def __post_init__(self):
        self.pending = frozenset(self.pending)
        self.target = frozenset(self.target)
        overlap = self.pending & self.target
        if overlap:
            raise ValueError(f"pending and target states overlap: {sorted(overlap)}")
        if not self.target:
            raise ValueError("target states cannot be empty")


@dataclass
class PollOutcome:
    state: str
    details: Any = None
    probes: int = 0
    elapsed: float = 0.0


def _observe(spec: PollSpec, client, resource_id: str, discriminator: Optional[str]) -> ProbeResult:
    try:
        return spec.probe(client, resource_id, discriminator)
    except NotFoundError as e:
        return ProbeResult(ABSENT, details=e)


def wait_for_state(
    spec: PollSpec,
    client,
    resource_id: str,
    discriminator: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> PollOutcome:
    """
    Probe until the object reaches a target state.

    Args:
        spec: States, probe and cadence
        client: Handle passed through to the probe
        resource_id: Remote id (parent instance id for child probes)
        discriminator: Child name for database/user probes
        sleep: Sleep function, injectable for tests
        clock: Monotonic clock, injectable for tests

    Returns:
        PollOutcome with the terminal state and the details of the last probe

    Raises:
        PollStatusError: Probe reported an error or a state outside pending and target
        PollTimeoutError: The window elapsed while the state was still pending
        ChildNotFoundError: Same, for a child that was never listed
    """
    subject = f"{resource_id}/{discriminator}" if discriminator else resource_id
    start = clock()
    wait = spec.delay
    probes = 0

    while True:
        result = _observe(spec, client, resource_id, discriminator)
        probes += 1
        elapsed = clock() - start
        logger.debug(f"[WAIT] {subject}: probe #{probes} state={result.state}")

        if result.error:
            raise PollStatusError(
                f"{subject} reported state '{result.state}': {result.error}", state=result.state
            )

        if result.state in spec.target:
            logger.info(
                f"[WAIT] {subject}: reached '{result.state}' after {probes} probe(s) "
                f"in {elapsed:.1f}s"
            )
            return PollOutcome(result.state, result.details, probes, elapsed)

        if result.state not in spec.pending:
            raise PollStatusError(
                f"{subject} reported unexpected state '{result.state}' "
                f"(pending: {sorted(spec.pending)}, target: {sorted(spec.target)})",
                state=result.state,
            )

        # A pending first observation always gets at least one more probe
        if probes > 1 and elapsed >= spec.timeout:
            if spec.child_kind and result.state == ABSENT:
                raise ChildNotFoundError(spec.child_kind, discriminator, resource_id, elapsed, spec.target)
            raise PollTimeoutError(elapsed, result.state, spec.target)

        pause = max(0.0, min(wait, spec.timeout - elapsed))
        logger.debug(f"[WAIT] {subject}: still '{result.state}', next probe in {pause:.1f}s")
        sleep(pause)
        wait = spec.min_interval
