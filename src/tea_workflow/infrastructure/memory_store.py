"""In-memory stores for bids, payment inflows and workflow events.

Stores encapsulate storage access and provide a clean interface to the
service layer. They never apply business rules and never serialize callers;
per-bid serialization is the service's job (see infrastructure/locks.py).
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tea_workflow.domain.workflow_protocol import WorkflowEvent
    from tea_workflow.schemas.bid import Bid
    from tea_workflow.schemas.payment import PaymentInflow


class InMemoryBidStore:
    """Data access for bids, keyed by bid id."""

    def __init__(self, bids: list[Bid] | None = None) -> None:
        self._bids: dict[str, Bid] = {}
        for bid in bids or []:
            self._bids[bid.id] = bid.model_copy(deep=True)

    async def get(self, bid_id: str) -> Bid | None:
        """Fetch a bid by id. Returns a copy; writes go through save()."""
        bid = self._bids.get(bid_id)
        return bid.model_copy(deep=True) if bid is not None else None

    async def save(self, bid: Bid) -> Bid:
        """Insert or replace a bid."""
        self._bids[bid.id] = bid.model_copy(deep=True)
        return bid

    async def list_by_status(self, status: str) -> list[Bid]:
        """Fetch all bids with a given status, in insertion order."""
        return [b.model_copy(deep=True) for b in self._bids.values() if b.status == status]


class InMemoryInflowStore:
    """Data access for incoming payments, keyed by inflow id."""

    def __init__(self, inflows: list[PaymentInflow] | None = None) -> None:
        self._inflows: dict[str, PaymentInflow] = {}
        for inflow in inflows or []:
            self._inflows[inflow.id] = inflow.model_copy()

    async def get(self, inflow_id: str) -> PaymentInflow | None:
        inflow = self._inflows.get(inflow_id)
        return inflow.model_copy() if inflow is not None else None

    async def save(self, inflow: PaymentInflow) -> PaymentInflow:
        self._inflows[inflow.id] = inflow.model_copy()
        return inflow

    async def list_by_status(self, status: str) -> list[PaymentInflow]:
        return [i.model_copy() for i in self._inflows.values() if i.status == status]


class InMemoryEventLog:
    """Append-only audit trail of committed workflow changes."""

    def __init__(self) -> None:
        self._events: list[WorkflowEvent] = []

    async def record(self, event: WorkflowEvent) -> WorkflowEvent:
        """Append an event, stamping created_at if the caller did not."""
        if event.created_at is None:
            event = replace(event, created_at=datetime.now(UTC))
        self._events.append(event)
        return event

    async def get_by_entity(self, entity_id: str) -> list[WorkflowEvent]:
        """Fetch all events for a bid or inflow, oldest first."""
        return [e for e in self._events if e.entity_id == entity_id]

    def __len__(self) -> int:
        return len(self._events)
