"""Automation rules evaluated against a bid snapshot.

A rule pairs a synchronous condition with an async action. The engine runs
every enabled rule whose condition holds, highest priority first, one at a
time. The default rule set only raises notifications; it never writes bid
state.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from tea_workflow.config import get_settings
from tea_workflow.domain.enums import BidStatus

if TYPE_CHECKING:
    from tea_workflow.domain.workflow_protocol import NotificationDispatcher
    from tea_workflow.schemas.bid import Bid

RuleCondition = Callable[["Bid"], bool]
RuleAction = Callable[["Bid"], Awaitable[None]]
Clock = Callable[[], datetime]


@dataclass
class WorkflowRule:
    """An automation rule.

    Attributes:
        id: Unique rule identifier.
        name: Human-readable name, used in logs.
        condition: Pure predicate deciding whether the rule applies.
        action: Async side effect run when the condition holds.
        priority: Higher runs first; ties keep their supplied order.
        enabled: Disabled rules are never evaluated.
    """

    id: str
    name: str
    condition: RuleCondition
    action: RuleAction
    priority: int = 0
    enabled: bool = True


def create_workflow_rule(
    name: str,
    condition: RuleCondition,
    action: RuleAction,
    priority: int = 0,
) -> WorkflowRule:
    """Create an enabled rule with a generated id."""
    return WorkflowRule(
        id=f"rule-{uuid.uuid4().hex[:12]}",
        name=name,
        condition=condition,
        action=action,
        priority=priority,
        enabled=True,
    )


def _utc_now() -> datetime:
    return datetime.now(UTC)


def days_since(moment: datetime, now: datetime) -> float:
    """Days elapsed between ``moment`` and ``now``; naive times are UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return (now - moment).total_seconds() / 86400


def build_default_rules(
    dispatcher: NotificationDispatcher,
    clock: Clock | None = None,
    overdue_days: int | None = None,
) -> list[WorkflowRule]:
    """Build the predefined automation rules.

    Args:
        dispatcher: Receives the notifications raised by rule actions.
        clock: Returns the current time. Defaults to UTC wall clock.
        overdue_days: Days after e-slip generation before a payment counts
            as overdue. Defaults to settings.overdue_eslip_days.
    """
    now = clock or _utc_now
    threshold = overdue_days if overdue_days is not None else get_settings().overdue_eslip_days

    def intake_complete(bid: Bid) -> bool:
        return bid.status == BidStatus.BID_INTAKE and bool(bid.buyer_name) and bid.amount > 0

    async def request_eslip(bid: Bid) -> None:
        await dispatcher.notify(
            "eslip.generation_requested",
            bid.id,
            f"E-slip generation requested for bid {bid.id}",
            buyer=bid.buyer_name,
            amount=str(bid.amount),
        )

    def payment_complete(bid: Bid) -> bool:
        payment = bid.payment_details
        return (
            bid.status == BidStatus.E_SLIP_SENT
            and payment is not None
            and payment.received_amount == payment.expected_amount
        )

    async def request_payment_match(bid: Bid) -> None:
        await dispatcher.notify(
            "payment.auto_match_requested",
            bid.id,
            f"Payment received in full for bid {bid.id}; matching requested",
        )

    def payment_overdue(bid: Bid) -> bool:
        eslip = bid.e_slip_details
        if bid.status != BidStatus.E_SLIP_SENT or eslip is None or eslip.generated_date is None:
            return False
        return days_since(eslip.generated_date, now()) > threshold

    async def alert_overdue(bid: Bid) -> None:
        generated = bid.e_slip_details.generated_date  # type: ignore[union-attr]
        await dispatcher.notify(
            "payment.overdue",
            bid.id,
            f"Payment overdue for bid {bid.id}",
            buyer=bid.buyer_name,
            days_since_eslip=round(days_since(generated, now()), 1),
        )

    return [
        create_workflow_rule(
            "Auto-generate E-slip on bid intake completion",
            intake_complete,
            request_eslip,
            priority=1,
        ),
        create_workflow_rule(
            "Auto-match payment on receipt",
            payment_complete,
            request_payment_match,
            priority=2,
        ),
        create_workflow_rule(
            "Alert on overdue payment",
            payment_overdue,
            alert_overdue,
            priority=3,
        ),
    ]
