"""
Unit tests for utils - duration parsing and composite child ids.

Run with: pytest tests/test_utils_unit.py -v
"""

import pytest

from openstack_trove_provider.utils import build_child_id, parse_child_id, parse_duration


class TestParseDuration:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (600, 600.0),
            (0, 0.0),
            (1.5, 1.5),
            ("45", 45.0),
            ("10m", 600.0),
            ("90s", 90.0),
            ("1h30m", 5400.0),
            ("2m30s", 150.0),
        ],
    )
    def test_accepted_values(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["soon", "10 minutes", "m", "10x", "-1", -5, "nan", True])
    def test_rejected_values(self, value):
        with pytest.raises(ValueError) as exc_info:
            parse_duration(value, "timeouts.create")

        assert "timeouts.create" in str(exc_info.value)


class TestChildIds:
    def test_user_with_host(self):
        """The first separator splits, so the name part may carry a host."""
        assert parse_child_id(build_child_id("I1", "bob@10.0.0.1")) == ("I1", "bob@10.0.0.1")

    @pytest.mark.parametrize("resource_id", ["I1", "/app", "I1/"])
    def test_malformed(self, resource_id):
        with pytest.raises(ValueError):
            parse_child_id(resource_id, "openstack_db_database")
