"""
Error taxonomy for the Trove resource provider.

Every error raised by this package derives from TroveProviderError so callers
(the orchestration engine) can catch the whole family at once. The poll
errors carry enough context (elapsed time, last observed state) to be
surfaced to the user verbatim.
"""

from typing import Iterable, Optional


class TroveProviderError(Exception):
    """Base exception for Trove provider errors."""
    pass


class ClientConstructionError(TroveProviderError):
    """Session or Trove client could not be built. Raised before any remote call."""
    pass


class TroveClientError(TroveProviderError):
    """A Trove API call failed for a reason other than 404."""
    pass


class NotFoundError(TroveClientError):
    """The remote object does not exist (HTTP 404)."""

    def __init__(self, kind: str, resource_id: str, message: str = ""):
        self.kind = kind
        self.resource_id = resource_id
        super().__init__(message or f"{kind} '{resource_id}' not found")


class CreateRequestError(TroveClientError):
    """The remote side rejected a create call."""
    pass


class DeleteRequestError(TroveClientError):
    """The remote side rejected a delete call."""
    pass


class PollError(TroveProviderError):
    """Base exception for wait_for_state failures."""
    pass


class PollStatusError(PollError):
    """Probe reported a state outside pending and target, or an embedded error."""

    def __init__(self, message: str, state: Optional[str] = None):
        self.state = state
        super().__init__(message)


class PollTimeoutError(PollError):
    """Target state not reached within the configured window."""

    def __init__(
        self,
        elapsed: float,
        last_state: Optional[str],
        target: Iterable[str],
        message: str = "",
    ):
        self.elapsed = elapsed
        self.last_state = last_state
        self.target = sorted(target)
        super().__init__(
            message
            or (
                f"timeout while waiting for state to become {self.target} "
                f"(last state: '{last_state}', elapsed: {elapsed:.1f}s)"
            )
        )


class ChildNotFoundError(PollTimeoutError):
    """A named database or user never appeared in its parent instance listing."""

    def __init__(self, kind: str, name: str, parent_id: str, elapsed: float, target: Iterable[str]):
        self.kind = kind
        self.name = name
        self.parent_id = parent_id
        super().__init__(
            elapsed,
            None,
            target,
            message=(
                f"{kind} '{name}' status not found on instance '{parent_id}' "
                f"after {elapsed:.1f}s"
            ),
        )
