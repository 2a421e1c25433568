"""Tests for transition tables and their construction invariants."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from tea_workflow.domain.enums import STAGE_ORDER, BidStatus, Permission
from tea_workflow.domain.exceptions import InvalidTransitionTableError
from tea_workflow.schemas import TransitionSpec
from tea_workflow.workflow.transitions import (
    DEFAULT_TRANSITIONS,
    TransitionTable,
    default_transition_table,
)
from tea_workflow.workflow.validators import default_validators


class TestDefaultTable:
    def test_is_a_five_edge_chain(self) -> None:
        table = default_transition_table()
        assert len(table) == 5
        assert [t.edge for t in table] == list(zip(STAGE_ORDER, STAGE_ORDER[1:], strict=False))

    def test_every_later_stage_has_exactly_one_incoming_edge(self) -> None:
        table = default_transition_table()
        for stage in STAGE_ORDER[1:]:
            assert sum(1 for t in table if t.target == stage) == 1
        assert not any(t.target == BidStatus.BID_INTAKE for t in table)

    def test_final_stage_has_no_outgoing_edges(self) -> None:
        assert default_transition_table().outgoing(BidStatus.TEA_RELEASE) == []

    def test_edge_requirements(self) -> None:
        table = default_transition_table()
        edge = table.find(BidStatus.PAYMENT_MATCHING, BidStatus.SPLIT_PROCESSING)
        assert edge is not None
        assert edge.required_permissions == frozenset(
            {Permission.UPDATE_STATUS, Permission.APPROVE_SPLITS}
        )
        assert edge.validators == ("payment_received",)

        release = table.find(BidStatus.PAYOUT_APPROVAL, BidStatus.TEA_RELEASE)
        assert release is not None
        assert release.required_permissions == frozenset({Permission.FINAL_APPROVAL})

    def test_find_missing_edge(self) -> None:
        table = default_transition_table()
        assert table.find(BidStatus.BID_INTAKE, BidStatus.TEA_RELEASE) is None

    def test_auto_triggers_are_exposed(self) -> None:
        table = default_transition_table()
        assert table.triggers_for(BidStatus.BID_INTAKE, BidStatus.E_SLIP_SENT) == (
            "eslip_generated",
        )
        assert table.triggers_for(BidStatus.PAYOUT_APPROVAL, BidStatus.TEA_RELEASE) == ()
        assert table.triggers_for(BidStatus.BID_INTAKE, BidStatus.TEA_RELEASE) == ()


class TestTransitionSpec:
    def test_accepts_from_to_aliases(self) -> None:
        spec = TransitionSpec.model_validate(DEFAULT_TRANSITIONS[0])
        assert spec.source == BidStatus.BID_INTAKE
        assert spec.target == BidStatus.E_SLIP_SENT

    def test_is_frozen(self) -> None:
        spec = TransitionSpec.model_validate(DEFAULT_TRANSITIONS[0])
        with pytest.raises(ValidationError):
            spec.target = BidStatus.TEA_RELEASE  # type: ignore[misc]


class TestTableInvariants:
    def test_duplicate_edge_rejected(self) -> None:
        config = [DEFAULT_TRANSITIONS[0], DEFAULT_TRANSITIONS[0]]
        with pytest.raises(InvalidTransitionTableError, match="Duplicate transition"):
            TransitionTable.from_config(config)

    def test_second_incoming_edge_rejected(self) -> None:
        config = [
            {"from": "bid-intake", "to": "payment-matching"},
            {"from": "e-slip-sent", "to": "payment-matching"},
        ]
        with pytest.raises(InvalidTransitionTableError, match="already reachable"):
            TransitionTable.from_config(config)

    def test_unknown_validator_rejected(self) -> None:
        config = [{"from": "bid-intake", "to": "e-slip-sent", "validators": ["grade_checked"]}]
        with pytest.raises(InvalidTransitionTableError, match="grade_checked"):
            TransitionTable.from_config(config, default_validators)

    def test_self_loop_rejected(self) -> None:
        with pytest.raises(InvalidTransitionTableError, match="Malformed"):
            TransitionTable.from_config([{"from": "bid-intake", "to": "bid-intake"}])

    def test_unknown_status_rejected(self) -> None:
        with pytest.raises(InvalidTransitionTableError):
            TransitionTable.from_config([{"from": "bid-intake", "to": "shipped"}])

    def test_unknown_permission_rejected(self) -> None:
        config = [
            {"from": "bid-intake", "to": "e-slip-sent", "required_permissions": ["sudo"]}
        ]
        with pytest.raises(InvalidTransitionTableError):
            TransitionTable.from_config(config)

    def test_invariant_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            TransitionTable.from_config([DEFAULT_TRANSITIONS[1], DEFAULT_TRANSITIONS[1]])

    def test_branching_table_allowed(self) -> None:
        table = TransitionTable.from_config([
            {"from": "bid-intake", "to": "e-slip-sent"},
            {"from": "bid-intake", "to": "payment-matching"},
        ])
        assert [t.target for t in table.outgoing(BidStatus.BID_INTAKE)] == [
            BidStatus.E_SLIP_SENT,
            BidStatus.PAYMENT_MATCHING,
        ]
