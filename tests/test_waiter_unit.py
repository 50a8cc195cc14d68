"""
Unit tests for wait_for_state - the poll-until-state driver.

Time never really passes: the loop gets a fake clock whose sleep advances it.

Run with: pytest tests/test_waiter_unit.py -v
"""

from unittest.mock import MagicMock

import pytest

from openstack_trove_provider.exceptions import (
    ChildNotFoundError,
    NotFoundError,
    PollStatusError,
    PollTimeoutError,
)
from openstack_trove_provider.waiter import (
    ABSENT,
    ACTIVE,
    BUILD,
    ERROR,
    PollSpec,
    ProbeResult,
    wait_for_state,
)


def make_spec(probe, pending=(BUILD,), target=(ACTIVE,), timeout=600, child_kind=None):
    return PollSpec(
        pending=frozenset(pending),
        target=frozenset(target),
        probe=probe,
        timeout=timeout,
        delay=10,
        min_interval=3,
        child_kind=child_kind,
    )


def run(spec, fake_clock, resource_id="I1", discriminator=None):
    return wait_for_state(
        spec, "client", resource_id, discriminator, sleep=fake_clock.sleep, clock=fake_clock
    )


class TestTargetReached:
    """Terminal success paths."""

    def test_target_on_first_probe_needs_no_follow_up(self, fake_clock):
        """A target state ends the wait on the same tick."""
        # Arrange
        probe = MagicMock(return_value=ProbeResult(ACTIVE, "details"))

        # Act
        outcome = run(make_spec(probe), fake_clock)

        # Assert
        assert outcome.state == ACTIVE
        assert outcome.details == "details"
        assert outcome.probes == 1
        assert fake_clock.sleeps == []
        probe.assert_called_once_with("client", "I1", None)

    def test_build_build_active(self, fake_clock):
        """BUILD, BUILD, ACTIVE succeeds after the third probe."""
        # Arrange
        probe = MagicMock(side_effect=[ProbeResult(BUILD), ProbeResult(BUILD), ProbeResult(ACTIVE)])

        # Act
        outcome = run(make_spec(probe), fake_clock)

        # Assert: delay first, min interval afterwards
        assert outcome.state == ACTIVE
        assert outcome.probes == 3
        assert fake_clock.sleeps == [10, 3]

    def test_not_found_is_success_when_waiting_for_absence(self, fake_clock):
        """A 404 on a delete poll means the object is gone."""
        # Arrange
        probe = MagicMock(side_effect=NotFoundError("configuration", "C1"))
        spec = make_spec(probe, pending=(ACTIVE,), target=(ABSENT,))

        # Act
        outcome = run(spec, fake_clock, resource_id="C1")

        # Assert
        assert outcome.state == ABSENT
        assert outcome.probes == 1

    def test_child_discriminator_is_passed_to_probe(self, fake_clock):
        """Child probes receive the parent id and the child name."""
        # Arrange
        probe = MagicMock(side_effect=[NotFoundError("database", "I1/app"), ProbeResult(ACTIVE)])
        spec = make_spec(probe, pending=(ABSENT,), child_kind="database")

        # Act
        outcome = run(spec, fake_clock, discriminator="app")

        # Assert
        assert outcome.state == ACTIVE
        assert outcome.probes == 2
        probe.assert_called_with("client", "I1", "app")


class TestFailures:
    """Fatal paths: errors are never retried."""

    def test_embedded_error_fails_immediately(self, fake_clock):
        """An ERROR payload aborts without another probe."""
        # Arrange
        probe = MagicMock(return_value=ProbeResult(ERROR, None, error="boom"))

        # Act & Assert
        with pytest.raises(PollStatusError) as exc_info:
            run(make_spec(probe), fake_clock)

        assert exc_info.value.state == ERROR
        assert "boom" in str(exc_info.value)
        assert probe.call_count == 1

    def test_unexpected_state_fails_immediately(self, fake_clock):
        """A state outside pending and target is fatal."""
        # Arrange
        probe = MagicMock(return_value=ProbeResult("RESIZE"))

        # Act & Assert
        with pytest.raises(PollStatusError) as exc_info:
            run(make_spec(probe), fake_clock)

        assert "RESIZE" in str(exc_info.value)
        assert probe.call_count == 1

    def test_not_found_while_building_is_fatal(self, fake_clock):
        """A 404 is only acceptable when ABSENT is pending or target."""
        # Arrange
        probe = MagicMock(side_effect=NotFoundError("instance", "I1"))

        # Act & Assert
        with pytest.raises(PollStatusError) as exc_info:
            run(make_spec(probe), fake_clock)

        assert exc_info.value.state == ABSENT

    def test_timeout_while_pending(self, fake_clock):
        """A state stuck in pending ends with a timeout error, never success."""
        # Arrange
        probe = MagicMock(return_value=ProbeResult(BUILD))

        # Act & Assert
        with pytest.raises(PollTimeoutError) as exc_info:
            run(make_spec(probe, timeout=30), fake_clock)

        error = exc_info.value
        assert not isinstance(error, ChildNotFoundError)
        assert error.elapsed >= 30
        assert error.last_state == BUILD
        assert error.target == [ACTIVE]
        # Sleeps never overshoot the deadline
        assert sum(fake_clock.sleeps) == 30

    def test_pending_first_probe_always_gets_another_probe(self, fake_clock):
        """Even with a zero window, a pending state is probed again."""
        # Arrange
        probe = MagicMock(side_effect=[ProbeResult(BUILD), ProbeResult(ACTIVE)])

        # Act
        outcome = run(make_spec(probe, timeout=0), fake_clock)

        # Assert
        assert outcome.state == ACTIVE
        assert probe.call_count == 2

    def test_child_never_listed(self, fake_clock):
        """A child missing for the whole window raises ChildNotFoundError."""
        # Arrange
        probe = MagicMock(side_effect=NotFoundError("user", "I1/bob"))
        spec = make_spec(probe, pending=(ABSENT,), timeout=20, child_kind="user")

        # Act & Assert
        with pytest.raises(ChildNotFoundError) as exc_info:
            run(spec, fake_clock, discriminator="bob")

        error = exc_info.value
        assert isinstance(error, PollTimeoutError)
        assert error.name == "bob"
        assert error.parent_id == "I1"
        assert "status not found" in str(error)


class TestPollSpec:
    def test_overlapping_sets_rejected(self):
        with pytest.raises(ValueError):
            make_spec(MagicMock(), pending=(ACTIVE,), target=(ACTIVE,))

    def test_empty_target_rejected(self):
        with pytest.raises(ValueError):
            make_spec(MagicMock(), target=())
