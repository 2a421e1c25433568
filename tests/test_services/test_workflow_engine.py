"""Tests for the WorkflowEngine.

These tests verify that:
    1. Only adjacent forward moves can ever validate.
    2. Checks run edge -> permissions -> predicates, first failure wins.
    3. next_allowed_statuses filters on permissions only.
    4. Progress is computed from the canonical stage order.
    5. Automation rules run by priority and failures do not stop the rest.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from tea_workflow.domain.enums import STAGE_ORDER, BidStatus, PaymentStatus, TransitionErrorCode
from tea_workflow.domain.exceptions import UnknownStatusError
from tea_workflow.domain.permissions import permissions_for_role
from tea_workflow.schemas import PaymentDetails, SplitBeneficiary, SplitDetails
from tea_workflow.services import WorkflowEngine
from tea_workflow.workflow import TransitionTable, ValidatorRegistry, check, create_workflow_rule

ADJACENT = set(zip(STAGE_ORDER, STAGE_ORDER[1:], strict=False))


class TestValidateTransition:
    @pytest.mark.parametrize("source", list(BidStatus))
    @pytest.mark.parametrize("target", list(BidStatus))
    def test_only_adjacent_pairs_validate(self, engine, ready_bid, admin, source, target) -> None:
        result = engine.validate_transition(ready_bid(source), target, admin)
        assert result.valid is ((source, target) in ADJACENT)
        if not result.valid:
            assert result.error_code is TransitionErrorCode.INVALID_TRANSITION
            assert result.message == "Invalid status transition"

    def test_wildcard_satisfies_every_edge(self, engine, ready_bid) -> None:
        for edge in engine.table:
            result = engine.validate_transition(ready_bid(edge.source), edge.target, ["*"])
            assert result.valid, result.message

    def test_passing_result(self, engine, make_bid, processor) -> None:
        result = engine.validate_transition(make_bid(), "e-slip-sent", processor)
        assert result.valid
        assert result.message is None
        assert result.error_code is None
        assert (result.source, result.target) == ("bid-intake", "e-slip-sent")

    def test_skip_is_invalid_even_for_admin(self, engine, ready_bid, admin) -> None:
        result = engine.validate_transition(ready_bid(), BidStatus.TEA_RELEASE, admin)
        assert not result.valid
        assert result.error_code is TransitionErrorCode.INVALID_TRANSITION

    def test_missing_permission(self, engine, ready_bid, processor) -> None:
        result = engine.validate_transition(
            ready_bid(BidStatus.PAYMENT_MATCHING), BidStatus.SPLIT_PROCESSING, processor
        )
        assert not result.valid
        assert result.error_code is TransitionErrorCode.INSUFFICIENT_PERMISSIONS
        assert result.message == "Insufficient permissions for this transition"
        assert result.missing_permissions == ("approve_splits",)

    def test_permissions_checked_before_predicates(self, engine, make_bid) -> None:
        bid = make_bid(status=BidStatus.PAYMENT_MATCHING)
        result = engine.validate_transition(bid, BidStatus.SPLIT_PROCESSING, ["view_bids"])
        assert result.error_code is TransitionErrorCode.INSUFFICIENT_PERMISSIONS

    def test_partial_payment_blocks_split_processing(self, engine, make_bid) -> None:
        bid = make_bid(
            status=BidStatus.PAYMENT_MATCHING,
            payment_details=PaymentDetails(
                status=PaymentStatus.PARTIAL,
                expected_amount=Decimal("1000"),
                received_amount=Decimal("400"),
            ),
        )
        result = engine.validate_transition(
            bid, BidStatus.SPLIT_PROCESSING, ["update_status", "approve_splits"]
        )
        assert not result.valid
        assert result.error_code is TransitionErrorCode.VALIDATION_FAILED
        assert result.message == "Payment must be fully received"
        assert result.validator == "payment_received"

    def test_first_failing_predicate_wins(self, engine, make_bid, admin) -> None:
        bid = make_bid(buyer_name="", amount=Decimal("-10"))
        result = engine.validate_transition(bid, BidStatus.E_SLIP_SENT, admin)
        assert result.message == "Buyer name and amount are required"

        bid = make_bid(amount=Decimal("-10"))
        result = engine.validate_transition(bid, BidStatus.E_SLIP_SENT, admin)
        assert result.message == "Amount must be greater than zero"

    def test_split_predicates_in_order(self, engine, make_bid, admin) -> None:
        bid = make_bid(status=BidStatus.SPLIT_PROCESSING)
        result = engine.validate_transition(bid, BidStatus.PAYOUT_APPROVAL, admin)
        assert result.message == "Split beneficiaries must be defined"

        bid = make_bid(
            status=BidStatus.SPLIT_PROCESSING,
            split_details=SplitDetails(
                beneficiaries=[
                    SplitBeneficiary(name="Factory", account_number="001", status="error")
                ]
            ),
        )
        result = engine.validate_transition(bid, BidStatus.PAYOUT_APPROVAL, admin)
        assert result.message == "All split beneficiaries must be ready"

    def test_unknown_target(self, engine, make_bid, admin) -> None:
        result = engine.validate_transition(make_bid(), "shipped", admin)
        assert not result.valid
        assert result.error_code is TransitionErrorCode.UNKNOWN_STATUS

    def test_unknown_permission_token_raises(self, engine, make_bid) -> None:
        with pytest.raises(ValueError):
            engine.validate_transition(make_bid(), "e-slip-sent", ["update_status", "sudo"])

    def test_deterministic(self, engine, make_bid, processor) -> None:
        bid = make_bid(amount=Decimal("0"))
        first = engine.validate_transition(bid, "e-slip-sent", processor)
        second = engine.validate_transition(bid, "e-slip-sent", processor)
        assert first == second

    def test_predicates_short_circuit(self, make_bid, admin) -> None:
        calls: list[str] = []
        registry = ValidatorRegistry()

        @registry.register("always_fails")
        def always_fails(bid):
            calls.append("always_fails")
            return check(False, "first")

        @registry.register("never_reached")
        def never_reached(bid):
            calls.append("never_reached")
            return check(True, "second")

        table = TransitionTable.from_config(
            [{"from": "bid-intake", "to": "e-slip-sent",
              "validators": ["always_fails", "never_reached"]}],
            registry,
        )
        engine = WorkflowEngine(table=table, validators=registry)

        result = engine.validate_transition(make_bid(), BidStatus.E_SLIP_SENT, admin)
        assert result.message == "first"
        assert calls == ["always_fails"]

    def test_does_not_mutate_bid(self, engine, ready_bid, admin) -> None:
        bid = ready_bid(BidStatus.PAYOUT_APPROVAL)
        before = bid.model_dump()
        engine.validate_transition(bid, BidStatus.TEA_RELEASE, admin)
        assert bid.model_dump() == before


class TestNextAllowedStatuses:
    def test_processor_at_intake(self, engine, make_bid, processor) -> None:
        assert engine.next_allowed_statuses(make_bid(), processor) == [BidStatus.E_SLIP_SENT]

    def test_not_filtered_by_predicates(self, engine, make_bid, processor) -> None:
        bid = make_bid(amount=Decimal("0"))
        assert engine.next_allowed_statuses(bid, processor) == [BidStatus.E_SLIP_SENT]

    def test_viewer_gets_nothing(self, engine, make_bid) -> None:
        assert engine.next_allowed_statuses(make_bid(), permissions_for_role("viewer")) == []

    def test_final_stage(self, engine, make_bid, admin) -> None:
        assert engine.next_allowed_statuses(make_bid(status=BidStatus.TEA_RELEASE), admin) == []

    def test_at_most_one_option_on_default_table(self, engine, make_bid, admin) -> None:
        for status in BidStatus:
            assert len(engine.next_allowed_statuses(make_bid(status=status), admin)) <= 1

    def test_reviewer_cannot_move_payment_matching(self, engine, make_bid) -> None:
        # reviewer holds approve_splits but not update_status
        bid = make_bid(status=BidStatus.PAYMENT_MATCHING)
        assert engine.next_allowed_statuses(bid, permissions_for_role("reviewer")) == []

    def test_branching_table_keeps_declaration_order(self, make_bid, admin) -> None:
        table = TransitionTable.from_config([
            {"from": "bid-intake", "to": "payment-matching"},
            {"from": "bid-intake", "to": "e-slip-sent"},
        ])
        engine = WorkflowEngine(table=table)
        assert engine.next_allowed_statuses(make_bid(), admin) == [
            BidStatus.PAYMENT_MATCHING,
            BidStatus.E_SLIP_SENT,
        ]


class TestWorkflowProgress:
    def test_first_stage(self, engine) -> None:
        assert engine.workflow_progress(BidStatus.BID_INTAKE) == pytest.approx(100 / 6)

    def test_middle_stage(self, engine) -> None:
        assert engine.workflow_progress("payment-matching") == pytest.approx(50.0)

    def test_final_stage(self, engine) -> None:
        assert engine.workflow_progress(BidStatus.TEA_RELEASE) == pytest.approx(100.0)

    def test_monotonic(self, engine) -> None:
        values = [engine.workflow_progress(s) for s in STAGE_ORDER]
        assert values == sorted(values)

    def test_unknown_status(self, engine) -> None:
        with pytest.raises(UnknownStatusError):
            engine.workflow_progress("shipped")

    def test_unknown_status_is_value_error(self, engine) -> None:
        with pytest.raises(ValueError):
            engine.workflow_progress("archived")


class TestEvaluateRules:
    @pytest.mark.asyncio
    async def test_priority_order_and_sequential(self, engine, make_bid) -> None:
        trace: list[str] = []

        async def slow(bid) -> None:
            trace.append("A:start")
            await asyncio.sleep(0.01)
            trace.append("A:end")

        async def fast(bid) -> None:
            trace.append("B:start")

        rules = [
            create_workflow_rule("B", lambda b: True, fast, priority=1),
            create_workflow_rule("A", lambda b: True, slow, priority=2),
        ]
        await engine.evaluate_rules(make_bid(), rules)
        assert trace == ["A:start", "A:end", "B:start"]

    @pytest.mark.asyncio
    async def test_ties_keep_supplied_order(self, engine, make_bid) -> None:
        trace: list[str] = []

        def recorder(name):
            async def action(bid) -> None:
                trace.append(name)
            return action

        rules = [create_workflow_rule(n, lambda b: True, recorder(n), priority=1) for n in "xyz"]
        await engine.evaluate_rules(make_bid(), rules)
        assert trace == ["x", "y", "z"]

    @pytest.mark.asyncio
    async def test_failing_action_does_not_stop_others(self, engine, make_bid) -> None:
        trace: list[str] = []

        async def broken(bid) -> None:
            raise ConnectionError("gateway down")

        async def healthy(bid) -> None:
            trace.append("healthy")

        rules = [
            create_workflow_rule("broken", lambda b: True, broken, priority=5),
            create_workflow_rule("healthy", lambda b: True, healthy, priority=1),
        ]
        await engine.evaluate_rules(make_bid(), rules)
        assert trace == ["healthy"]

    @pytest.mark.asyncio
    async def test_timed_out_action_does_not_stop_others(self, make_bid) -> None:
        engine = WorkflowEngine(action_timeout=0.01)
        trace: list[str] = []

        async def hangs(bid) -> None:
            await asyncio.sleep(5)
            trace.append("hangs")

        async def healthy(bid) -> None:
            trace.append("healthy")

        rules = [
            create_workflow_rule("hangs", lambda b: True, hangs, priority=2),
            create_workflow_rule("healthy", lambda b: True, healthy, priority=1),
        ]
        await engine.evaluate_rules(make_bid(), rules)
        assert trace == ["healthy"]

    @pytest.mark.asyncio
    async def test_conditions_and_enabled_flag(self, engine, make_bid) -> None:
        trace: list[str] = []

        async def record(bid) -> None:
            trace.append(bid.id)

        def explodes(bid) -> bool:
            raise KeyError("missing")

        disabled = create_workflow_rule("disabled", lambda b: True, record)
        disabled.enabled = False
        rules = [
            disabled,
            create_workflow_rule("false", lambda b: False, record),
            create_workflow_rule("explodes", explodes, record),
            create_workflow_rule("true", lambda b: b.status == BidStatus.BID_INTAKE, record),
        ]
        await engine.evaluate_rules(make_bid(), rules)
        assert trace == ["BID-001"]

    @pytest.mark.asyncio
    async def test_actions_share_one_snapshot(self, engine, make_bid) -> None:
        seen = []

        async def capture(bid) -> None:
            seen.append(bid)

        rules = [create_workflow_rule(str(i), lambda b: True, capture) for i in range(2)]
        bid = make_bid()
        await engine.evaluate_rules(bid, rules)
        assert seen[0] is bid and seen[1] is bid

    @pytest.mark.asyncio
    async def test_empty_rule_set(self, engine, make_bid) -> None:
        await engine.evaluate_rules(make_bid(), [])
