"""Bid Lifecycle State Machine Guard.

Uses python-statemachine to enforce legal status writes at the domain level.
The WorkflowEngine decides whether a user MAY move a bid; this guard makes
sure that whatever the caller does, an illegal write (e.g.,
bid-intake -> tea-release) raises TransitionNotAllowed before the new
status is committed.

Transition table:
    bid-intake        -> e-slip-sent        (send_eslip)
    e-slip-sent       -> payment-matching   (start_payment_matching)
    payment-matching  -> split-processing   (start_split_processing)
    split-processing  -> payout-approval    (request_payout_approval)
    payout-approval   -> tea-release        (release_tea)
    any non-terminal  -> bid-intake         (revert, administrative override)
"""

from __future__ import annotations

from statemachine import State, StateMachine

from tea_workflow.domain.enums import BidStatus


class BidStateMachine(StateMachine):
    """State machine that guards bid lifecycle status writes.

    Usage:
        sm = BidStateMachine(current_status="e-slip-sent")
        sm.start_payment_matching()  # transitions to payment-matching
        sm.status                    # "payment-matching"
    """

    # --- States ---
    bid_intake = State("Bid intake", value=BidStatus.BID_INTAKE.value, initial=True)
    e_slip_sent = State("E-slip sent", value=BidStatus.E_SLIP_SENT.value)
    payment_matching = State("Payment matching", value=BidStatus.PAYMENT_MATCHING.value)
    split_processing = State("Split processing", value=BidStatus.SPLIT_PROCESSING.value)
    payout_approval = State("Payout approval", value=BidStatus.PAYOUT_APPROVAL.value)
    tea_release = State("Tea release", value=BidStatus.TEA_RELEASE.value, final=True)

    # --- Events / Transitions ---

    send_eslip = bid_intake.to(e_slip_sent)
    start_payment_matching = e_slip_sent.to(payment_matching)
    start_split_processing = payment_matching.to(split_processing)
    request_payout_approval = split_processing.to(payout_approval)
    release_tea = payout_approval.to(tea_release)

    # Released tea has left the warehouse, so tea-release cannot be reverted
    revert = (
        e_slip_sent.to(bid_intake)
        | payment_matching.to(bid_intake)
        | split_processing.to(bid_intake)
        | payout_approval.to(bid_intake)
    )

    def __init__(self, current_status: str = BidStatus.BID_INTAKE.value) -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: The current BidStatus value (e.g., "e-slip-sent").
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=str(current_status))

    @property
    def status(self) -> BidStatus:
        """Return the current state as a BidStatus."""
        return BidStatus(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        return [event.id for event in self.allowed_events]


# Forward event that lands on each target status.
ADVANCE_EVENTS: dict[BidStatus, str] = {
    BidStatus.E_SLIP_SENT: "send_eslip",
    BidStatus.PAYMENT_MATCHING: "start_payment_matching",
    BidStatus.SPLIT_PROCESSING: "start_split_processing",
    BidStatus.PAYOUT_APPROVAL: "request_payout_approval",
    BidStatus.TEA_RELEASE: "release_tea",
}

REVERT_EVENT = "revert"


def fire_event(current_status: str, event_name: str) -> BidStatus:
    """Fire a named event from a status and return the resulting status.

    Creates a temporary state machine, fires the event, and returns the new
    status.

    Raises:
        TransitionNotAllowed: If the event cannot fire from current_status.
        ValueError: If the status or event name is invalid.
    """
    sm = BidStateMachine(current_status=current_status)

    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_status}: {sm.get_allowed_events()}"
        )

    event_method()
    return sm.status
