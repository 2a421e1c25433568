"""Bid Workflow Service — application layer for the bid lifecycle.

Coordinates between:
    - WorkflowEngine (may this user make this move?)
    - BidStateMachine (commit-time guard on every status write)
    - PaymentMatcher (payment suggestions and confirmation)
    - Stores and the event log (state and audit trail)

Every write to a bid happens under that bid's lock, and every inflow
confirmation or release also holds the inflow's lock (always inflow first,
then bid). Automation runs after the bid lock is released, so a rule action
may write back to its own bid through this service.
"""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import AbstractAsyncContextManager
from decimal import Decimal
from typing import TYPE_CHECKING

from pydantic import BaseModel
from statemachine.exceptions import TransitionNotAllowed

from tea_workflow.domain.enums import BidStatus, EventType, InflowStatus, Permission, PaymentStatus
from tea_workflow.domain.exceptions import (
    BidNotFoundError,
    InflowNotFoundError,
    InsufficientPermissionsError,
    InvalidTransitionError,
)
from tea_workflow.domain.permissions import as_permissions
from tea_workflow.domain.state_machine import ADVANCE_EVENTS, REVERT_EVENT, fire_event
from tea_workflow.domain.workflow_protocol import WorkflowEvent
from tea_workflow.infrastructure.locks import KeyedLock
from tea_workflow.logging_config import bid_context, get_logger
from tea_workflow.schemas.bid import PaymentDetails
from tea_workflow.schemas.payment import OutstandingBid
from tea_workflow.services.payment_matcher import PaymentMatcher
from tea_workflow.services.workflow_engine import WorkflowEngine

if TYPE_CHECKING:
    from tea_workflow.domain.workflow_protocol import (
        BidStore,
        EventLog,
        InflowStore,
        MatchCandidate,
    )
    from tea_workflow.schemas.bid import Bid
    from tea_workflow.schemas.payment import PaymentInflow
    from tea_workflow.workflow.rules import WorkflowRule

logger = get_logger(__name__)

_SUB_RECORD_FIELDS = frozenset({
    "payment_details",
    "e_slip_details",
    "split_details",
    "payout_details",
    "release_details",
})


def _dump(sub_records: dict[str, object]) -> dict[str, object]:
    return {
        name: value.model_dump() if isinstance(value, BaseModel) else value
        for name, value in sub_records.items()
    }


class BidWorkflowService:
    """Moves bids through the pipeline and reconciles their payments."""

    def __init__(
        self,
        bids: BidStore,
        inflows: InflowStore,
        events: EventLog,
        engine: WorkflowEngine | None = None,
        matcher: PaymentMatcher | None = None,
        rules: Iterable[WorkflowRule] = (),
        locks: KeyedLock | None = None,
    ) -> None:
        self._bids = bids
        self._inflows = inflows
        self._events = events
        self._engine = engine or WorkflowEngine()
        self._matcher = matcher or PaymentMatcher()
        self._rules: list[WorkflowRule] = list(rules)
        self._locks = locks or KeyedLock()

    @property
    def rules(self) -> list[WorkflowRule]:
        return self._rules

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_bid(self, bid_id: str) -> Bid:
        """Get a bid or raise."""
        return await self._get_bid_or_raise(bid_id)

    async def allowed_next_statuses(
        self, bid_id: str, permissions: Iterable[Permission | str]
    ) -> list[BidStatus]:
        bid = await self._get_bid_or_raise(bid_id)
        return self._engine.next_allowed_statuses(bid, permissions)

    async def progress(self, bid_id: str) -> float:
        bid = await self._get_bid_or_raise(bid_id)
        return self._engine.workflow_progress(bid.status)

    async def get_events(self, entity_id: str) -> list[WorkflowEvent]:
        """Get the audit trail for a bid or inflow."""
        return await self._events.get_by_entity(entity_id)

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    async def advance_bid(
        self,
        bid_id: str,
        target_status: BidStatus | str,
        permissions: Iterable[Permission | str],
        actor: str,
        reason: str | None = None,
    ) -> Bid:
        """Validate and commit a forward transition, then run automation.

        Raises:
            InvalidTransitionError, InsufficientPermissionsError,
            ValidationFailedError, UnknownStatusError: When the engine
                rejects the move.
            BidNotFoundError: If the bid does not exist.
        """
        granted = as_permissions(permissions)

        with bid_context(bid_id, actor=actor):
            async with self._bid_lock(bid_id):
                bid = await self._get_bid_or_raise(bid_id)
                result = self._engine.validate_transition(bid, target_status, granted)
                if not result.valid:
                    logger.info(
                        "workflow.transition_rejected",
                        bid_id=bid_id,
                        source=result.source,
                        target=result.target,
                        code=result.error_code,
                        reason=result.message,
                    )
                    result.raise_for_failure()

                target = BidStatus(target_status)
                self._fire_transition(bid, ADVANCE_EVENTS.get(target), target)

                old_status = bid.status
                updated = await self._bids.save(bid.with_status(target))
                await self._events.record(
                    WorkflowEvent(
                        event_type=EventType.STATUS_ADVANCED,
                        entity_id=bid_id,
                        actor=actor,
                        old_status=old_status.value,
                        new_status=target.value,
                        metadata={"reason": reason} if reason else {},
                    )
                )
                logger.info(
                    "workflow.transition_committed",
                    bid_id=bid_id,
                    old_status=old_status.value,
                    new_status=target.value,
                    actor=actor,
                )

            if self._rules:
                await self._engine.evaluate_rules(updated, self._rules)
        return updated

    async def revert_bid(
        self,
        bid_id: str,
        permissions: Iterable[Permission | str],
        actor: str,
        reason: str,
    ) -> Bid:
        """Send a bid back to bid-intake as an administrative override.

        Skips the transition table and its validation predicates entirely.
        Only wildcard (administrator) callers may revert, and a bid at
        bid-intake or tea-release cannot be reverted.

        Raises:
            InsufficientPermissionsError: If the caller is not an administrator.
            InvalidTransitionError: If the bid's status cannot be reverted.
        """
        granted = as_permissions(permissions)
        if Permission.WILDCARD not in granted:
            raise InsufficientPermissionsError(
                [Permission.WILDCARD.value], "Only administrators can revert a bid"
            )

        async with self._bid_lock(bid_id):
            bid = await self._get_bid_or_raise(bid_id)
            self._fire_transition(bid, REVERT_EVENT, BidStatus.BID_INTAKE)

            old_status = bid.status
            updated = await self._bids.save(bid.with_status(BidStatus.BID_INTAKE))
            await self._events.record(
                WorkflowEvent(
                    event_type=EventType.STATUS_REVERTED,
                    entity_id=bid_id,
                    actor=actor,
                    old_status=old_status.value,
                    new_status=BidStatus.BID_INTAKE.value,
                    metadata={"reason": reason},
                )
            )
            logger.warning(
                "workflow.bid_reverted",
                bid_id=bid_id,
                old_status=old_status.value,
                actor=actor,
                reason=reason,
            )
        return updated

    async def update_details(self, bid_id: str, actor: str, **sub_records: object) -> Bid:
        """Replace stage sub-records (e-slip, split, payout, ...) on a bid.

        Sub-records are written by the processes outside the engine. The
        status can only change through advance_bid() or revert_bid().

        Raises:
            ValueError: If an update names a field other than a sub-record.
        """
        forbidden = set(sub_records) - _SUB_RECORD_FIELDS
        if forbidden:
            raise ValueError(
                f"Only stage sub-records can be updated here, got: {', '.join(sorted(forbidden))}"
            )

        async with self._bid_lock(bid_id):
            bid = await self._get_bid_or_raise(bid_id)
            updated = type(bid).model_validate({**bid.model_dump(), **_dump(sub_records)})
            await self._bids.save(updated)
            logger.info(
                "workflow.details_updated",
                bid_id=bid_id,
                fields=sorted(sub_records),
                actor=actor,
            )
        return updated

    async def run_automation(self, bid_id: str, rules: Iterable[WorkflowRule] | None = None) -> None:
        """Evaluate automation rules against the bid's current snapshot.

        No lock is held while actions run; actions that write to the bid go
        through this service and take the bid's lock themselves.
        """
        bid = await self._get_bid_or_raise(bid_id)
        with bid_context(bid_id):
            await self._engine.evaluate_rules(bid, self._rules if rules is None else rules)

    # ------------------------------------------------------------------
    # Payment reconciliation
    # ------------------------------------------------------------------

    async def suggest_matches(self) -> list[MatchCandidate]:
        """Score unmatched inflows against bids awaiting payment."""
        inflows = await self._inflows.list_by_status(InflowStatus.UNMATCHED.value)
        bids = await self._bids.list_by_status(BidStatus.PAYMENT_MATCHING.value)
        outstanding = [
            OutstandingBid.from_bid(bid)
            for bid in bids
            if bid.payment_details is None or bid.payment_details.status != PaymentStatus.PAID
        ]
        return self._matcher.auto_match_payments(inflows, outstanding)

    async def confirm_match(self, inflow_id: str, bid_id: str, actor: str) -> PaymentInflow:
        """Link an inflow to a bid and record the receipt on the bid.

        Raises:
            InvalidInflowStateError: If the inflow is already matched, including
                by a concurrent confirmation that won the inflow's lock.
        """
        async with self._inflow_lock(inflow_id), self._bid_lock(bid_id):
            inflow = await self._get_inflow_or_raise(inflow_id)
            bid = await self._get_bid_or_raise(bid_id)

            matched = self._matcher.confirm_match(inflow, bid_id)
            await self._inflows.save(matched)
            await self._bids.save(self._apply_receipt(bid, inflow.amount))

            await self._events.record(
                WorkflowEvent(
                    event_type=EventType.PAYMENT_MATCHED,
                    entity_id=inflow_id,
                    actor=actor,
                    old_status=inflow.status.value,
                    new_status=matched.status.value,
                    metadata={"bid_id": bid_id, "amount": str(inflow.amount)},
                )
            )
            logger.info(
                "matcher.match_confirmed",
                inflow_id=inflow_id,
                bid_id=bid_id,
                amount=str(inflow.amount),
                actor=actor,
            )
        return matched

    async def unmatch_payment(self, inflow_id: str, actor: str) -> PaymentInflow:
        """Return a matched inflow to the pool and remove its receipt.

        Raises:
            InvalidInflowStateError: If the inflow is not matched, including
                when a concurrent release got there first.
        """
        async with self._inflow_lock(inflow_id):
            inflow = await self._get_inflow_or_raise(inflow_id)
            released = self._matcher.unmatch(inflow)
            bid_id = inflow.matched_bid_id

            if bid_id is None:
                await self._inflows.save(released)
            else:
                async with self._bid_lock(bid_id):
                    await self._inflows.save(released)
                    bid = await self._bids.get(bid_id)
                    if bid is not None:
                        await self._bids.save(self._apply_receipt(bid, -inflow.amount))

            await self._events.record(
                WorkflowEvent(
                    event_type=EventType.PAYMENT_UNMATCHED,
                    entity_id=inflow_id,
                    actor=actor,
                    old_status=inflow.status.value,
                    new_status=released.status.value,
                    metadata={"bid_id": bid_id} if bid_id else {},
                )
            )
        logger.info("matcher.match_released", inflow_id=inflow_id, bid_id=bid_id, actor=actor)
        return released

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    # Separate key spaces so a bid and an inflow sharing an id never share a lock
    def _bid_lock(self, bid_id: str) -> AbstractAsyncContextManager[None]:
        return self._locks.hold(f"bid:{bid_id}")

    def _inflow_lock(self, inflow_id: str) -> AbstractAsyncContextManager[None]:
        return self._locks.hold(f"inflow:{inflow_id}")

    async def _get_bid_or_raise(self, bid_id: str) -> Bid:
        bid = await self._bids.get(bid_id)
        if bid is None:
            raise BidNotFoundError(bid_id)
        return bid

    async def _get_inflow_or_raise(self, inflow_id: str) -> PaymentInflow:
        inflow = await self._inflows.get(inflow_id)
        if inflow is None:
            raise InflowNotFoundError(inflow_id)
        return inflow

    @staticmethod
    def _fire_transition(bid: Bid, event_name: str | None, target: BidStatus) -> None:
        """Run the status write past the state machine guard.

        Raises InvalidTransitionError if the guard refuses it.
        """
        if event_name is None:
            raise InvalidTransitionError(bid.status.value, target.value)
        try:
            landed = fire_event(bid.status.value, event_name)
        except TransitionNotAllowed as err:
            raise InvalidTransitionError(bid.status.value, target.value) from err
        if landed != target:
            raise InvalidTransitionError(bid.status.value, target.value)

    @staticmethod
    def _apply_receipt(bid: Bid, amount: Decimal) -> Bid:
        """Add (or, with a negative amount, remove) a receipt on the bid."""
        details = bid.payment_details or PaymentDetails(expected_amount=bid.amount)
        received = max(details.received_amount + amount, Decimal("0"))
        if received <= 0:
            status = PaymentStatus.PENDING
        elif received >= details.expected_amount:
            status = PaymentStatus.PAID
        else:
            status = PaymentStatus.PARTIAL
        return bid.model_copy(
            update={
                "payment_details": details.model_copy(
                    update={"received_amount": received, "status": status}
                )
            }
        )
