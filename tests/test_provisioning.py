"""
Tests for the provisioning module.
"""

import pytest
from pydantic import ValidationError
from unittest.mock import MagicMock

from src.mailbox_taxonomy.models import (
    MappingEntry,
    ProviderItem,
    ProvisionRequest,
    SuggestionAction,
)
from src.mailbox_taxonomy.provisioning import (
    Provisioner,
    is_valid_hex_color,
    order_by_depth,
    provision,
    to_provision_request,
)


class TestColorValidation:
    """Tests for hex color validation."""

    @pytest.mark.parametrize("color", ["#FF0000", "#00a86b", "#123ABC"])
    def test_valid(self, color):
        """Test strict #RRGGBB colors."""
        assert is_valid_hex_color(color) is True

    @pytest.mark.parametrize("color", [None, "", "red", "FF0000", "#FFF", "#FF00000", "#GG0000"])
    def test_invalid(self, color):
        """Test rejected color strings."""
        assert is_valid_hex_color(color) is False


class TestRequestNormalization:
    """Tests for accepted request shapes."""

    def test_from_dict(self):
        """Test that a plain dict is accepted."""
        request = to_provision_request({"path": ["URGENT"], "color": "#FF0000"})

        assert request.path == ["URGENT"]
        assert request.color == "#FF0000"

    def test_from_mapping_entry(self):
        """Test that a create mapping entry is accepted."""
        entry = MappingEntry(
            canonical_key="URGENT",
            action=SuggestionAction.CREATE,
            path=["URGENT"],
            color="#FF0000",
            description="Emergencies",
        )

        request = to_provision_request(entry)

        assert request.canonical_key == "URGENT"
        assert request.description == "Emergencies"

    def test_order_by_depth_is_stable(self):
        """Test that shallower paths come first and ties keep input order."""
        requests = [
            ProvisionRequest(path=["Team", "Sales"]),
            ProvisionRequest(path=["B"]),
            ProvisionRequest(path=["Team"]),
            ProvisionRequest(path=["A"]),
        ]

        ordered = order_by_depth(requests)

        assert [r.path for r in ordered] == [["B"], ["Team"], ["A"], ["Team", "Sales"]]

    def test_order_by_depth_reads_raw_paths(self):
        """Test that unparsed entries without a usable path sort first."""
        requests = [
            {"path": ["Team", "Sales"]},
            {"path": None},
            {"color": "#FF0000"},
            {"path": ["Team"]},
        ]

        ordered = order_by_depth(requests)

        assert ordered == [requests[1], requests[2], requests[3], requests[0]]

    def test_path_segments_are_trimmed(self):
        """Test that surrounding whitespace is removed from each segment."""
        request = ProvisionRequest(path=["Team ", " Sales"])

        assert request.path == ["Team", "Sales"]

    @pytest.mark.parametrize("path", [[], ["  "], ["Team", ""]])
    def test_blank_path_is_rejected(self, path):
        """Test that an empty path or a blank segment is rejected."""
        with pytest.raises(ValidationError):
            ProvisionRequest(path=path)


class TestProvision:
    """Tests for the provision operation."""

    def test_creates_missing_items(self, fake_provider):
        """Test that missing items are created with their color."""
        result = provision(fake_provider, [{"path": ["URGENT"], "color": "#FF0000"}])

        assert result.provider == "gmail"
        assert len(result.created) == 1
        assert result.created[0].name == "URGENT"
        assert result.created[0].color == "#FF0000"
        assert ("create", "URGENT", "#FF0000") in fake_provider.calls
        assert result.ok is True

    def test_parents_before_children(self, fake_provider):
        """Test that a parent listed after its child is still created first."""
        result = provision(
            fake_provider,
            [{"path": ["Team", "Sales"]}, {"path": ["Team"]}],
        )

        creates = [call[1] for call in fake_provider.calls if call[0] == "create"]
        assert creates == ["Team", "Team/Sales"]
        assert [item.name for item in result.created] == ["Team", "Team/Sales"]
        assert result.failed == []

    def test_existing_item_is_skipped(self, make_provider):
        """Test that an existing name is skipped with its id."""
        client = make_provider(items=[ProviderItem(id="Label_7", name="SALES")])

        result = provision(client, [{"path": ["SALES"]}])

        assert result.created == []
        assert len(result.skipped) == 1
        assert result.skipped[0].id == "Label_7"
        assert result.skipped[0].reason == "already_exists"
        assert not any(call[0] == "create" for call in client.calls)

    def test_second_run_is_idempotent(self, fake_provider):
        """Test that running the same requests twice creates nothing new."""
        requests = [{"path": ["Team"]}, {"path": ["Team", "Sales"]}, {"path": ["URGENT"]}]

        first = provision(fake_provider, requests)
        second = provision(fake_provider, requests)

        assert len(first.created) == 3
        assert second.created == []
        assert [item.id for item in second.skipped] == [item.id for item in first.created]
        assert len(fake_provider.items) == 3

    def test_invalid_color_is_dropped(self, fake_provider):
        """Test that an invalid color is not sent."""
        result = provision(fake_provider, [{"path": ["URGENT"], "color": "red"}])

        assert ("create", "URGENT", None) in fake_provider.calls
        assert result.created[0].color is None

    def test_color_dropped_without_provider_support(self, make_provider):
        """Test that no color is sent to a provider without color support."""
        client = make_provider(supports_color=False)

        provision(client, [{"path": ["URGENT"], "color": "#FF0000"}])

        assert ("create", "URGENT", None) in client.calls

    def test_failure_is_isolated(self, make_provider):
        """Test that one failure does not abort the others."""
        client = make_provider(fail_on={"B"})

        result = provision(
            client,
            [{"path": ["A"]}, {"path": ["B"], "color": "#00FF00"}, {"path": ["C"]}],
        )

        assert [item.name for item in result.created] == ["A", "C"]
        assert len(result.failed) == 1
        assert result.failed[0].name == "B"
        assert "Invalid label name" in result.failed[0].error
        assert result.ok is False
        assert result.summary == {
            "totalRequested": 3,
            "totalCreated": 2,
            "totalSkipped": 0,
            "totalFailed": 1,
        }

    def test_failed_requests_can_be_retried(self, make_provider):
        """Test that the failed subset can be resubmitted."""
        client = make_provider(fail_on={"B"})
        result = provision(client, [{"path": ["A"]}, {"path": ["B"], "color": "#00FF00"}])

        client.fail_on.clear()
        retry = provision(client, result.failed_requests())

        assert [item.name for item in retry.created] == ["B"]
        assert retry.created[0].color == "#00FF00"

    def test_missing_parent_fails_child_only(self, fake_provider):
        """Test that a child whose parent cannot be created is reported failed."""
        result = provision(fake_provider, [{"path": ["Team", "Sales"]}, {"path": ["URGENT"]}])

        assert [item.name for item in result.created] == ["URGENT"]
        assert result.failed[0].name == "Team/Sales"
        assert "does not exist" in result.failed[0].error

    def test_lookup_error_is_isolated(self):
        """Test that a failing existence check is recorded as a failure."""
        client = MagicMock()
        client.name = "gmail"
        client.delimiter = "/"
        client.supports_color = True
        client.find_item_by_exact_name.side_effect = [RuntimeError("boom"), None]
        client.create_item.return_value = ProviderItem(id="Label_2", name="B")

        result = Provisioner(client).provision([{"path": ["A"]}, {"path": ["B"]}])

        assert result.failed[0].error == "boom"
        assert result.created[0].id == "Label_2"

    def test_invalid_request_is_isolated(self, fake_provider):
        """Test that an unparseable entry is recorded as failed and the rest proceed."""
        result = provision(
            fake_provider,
            [
                {"path": ["A"]},
                {"path": []},
                {"path": ["B", " "], "canonicalKey": "B_KEY"},
                {"color": "#FF0000"},
            ],
        )

        assert [item.name for item in result.created] == ["A"]
        assert len(result.failed) == 3
        assert all(item.reason == "invalid_request" for item in result.failed)
        assert result.failed[2].path == ["B", " "]
        assert result.failed[2].canonical_key == "B_KEY"
        assert result.failed_requests() == []
        assert result.summary["totalRequested"] == 4

    def test_untrimmed_segments_are_created_trimmed(self, fake_provider):
        """Test that whitespace around segments never reaches the provider."""
        result = provision(fake_provider, [{"path": [" Team", "Sales "]}, {"path": ["Team "]}])

        creates = [call[1] for call in fake_provider.calls if call[0] == "create"]
        assert creates == ["Team", "Team/Sales"]
        assert result.created[1].path == ["Team", "Sales"]

    def test_results_are_fresh_per_call(self, fake_provider):
        """Test that a provisioner keeps no state between calls."""
        provisioner = Provisioner(fake_provider)

        first = provisioner.provision([{"path": ["A"]}])
        second = provisioner.provision([])

        assert len(first.created) == 1
        assert second.summary["totalRequested"] == 0
