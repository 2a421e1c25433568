"""Result types and collaborator protocols for the workflow core.

Results are frozen dataclasses. Collaborators (stores, notification
dispatch) are Protocols (structural subtyping), so the in-memory
implementations in infrastructure/ and any real backend only need to match
the shape.

The domain layer has ZERO imports from pydantic or any storage backend.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from tea_workflow.domain.enums import (
    EventType,
    MatchConfidence,
    MatchSignal,
    TransitionErrorCode,
)
from tea_workflow.domain.exceptions import (
    InsufficientPermissionsError,
    InvalidTransitionError,
    UnknownStatusError,
    ValidationFailedError,
)

if TYPE_CHECKING:
    from tea_workflow.schemas.bid import Bid
    from tea_workflow.schemas.payment import PaymentInflow


@dataclass(frozen=True)
class ValidationOutcome:
    """Output of a single validation predicate."""

    valid: bool
    message: str | None = None


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of WorkflowEngine.validate_transition.

    Attributes:
        valid: Whether the transition may be committed.
        message: Human-readable failure reason (None when valid).
        error_code: Failure kind (None when valid).
        source: The bid's status when validated.
        target: The requested status.
        validator: Name of the first failing predicate, if any.
        missing_permissions: Tokens the caller lacked, if any.
    """

    valid: bool
    message: str | None = None
    error_code: TransitionErrorCode | None = None
    source: str | None = None
    target: str | None = None
    validator: str | None = None
    missing_permissions: tuple[str, ...] = ()

    @classmethod
    def ok(cls, source: str, target: str) -> TransitionResult:
        return cls(valid=True, source=source, target=target)

    def raise_for_failure(self) -> None:
        """Raise the domain exception matching this result's failure kind."""
        if self.valid:
            return
        if self.error_code is TransitionErrorCode.INSUFFICIENT_PERMISSIONS:
            raise InsufficientPermissionsError(list(self.missing_permissions), self.message)
        if self.error_code is TransitionErrorCode.VALIDATION_FAILED:
            raise ValidationFailedError(self.message or "Validation failed", self.validator)
        if self.error_code is TransitionErrorCode.UNKNOWN_STATUS:
            raise UnknownStatusError(self.target)
        raise InvalidTransitionError(str(self.source), str(self.target))

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "message": self.message,
            "error_code": self.error_code.value if self.error_code else None,
            "source": self.source,
            "target": self.target,
        }


# Thresholds for the confidence badge shown beside a suggestion.
_CONFIDENCE_BANDS: tuple[tuple[int, MatchConfidence], ...] = (
    (90, MatchConfidence.HIGH),
    (70, MatchConfidence.MEDIUM),
    (50, MatchConfidence.LOW),
)


def confidence_level(confidence: int) -> MatchConfidence:
    for floor, level in _CONFIDENCE_BANDS:
        if confidence >= floor:
            return level
    return MatchConfidence.VERY_LOW


@dataclass(frozen=True)
class MatchCandidate:
    """A suggested link between an incoming payment and an outstanding bid.

    Attributes:
        inflow_id: ID of the payment inflow.
        bid_id: ID of the outstanding bid.
        confidence: Sum of the signal weights that fired.
        signals: The signals that fired, in evaluation order.
    """

    inflow_id: str
    bid_id: str
    confidence: int
    signals: tuple[MatchSignal, ...] = ()

    @property
    def level(self) -> MatchConfidence:
        return confidence_level(self.confidence)

    def to_dict(self) -> dict:
        return {
            "inflow_id": self.inflow_id,
            "bid_id": self.bid_id,
            "confidence": self.confidence,
            "level": self.level.value,
            "signals": [s.value for s in self.signals],
        }


@dataclass(frozen=True)
class WorkflowEvent:
    """Append-only audit record of a committed change."""

    event_type: EventType
    entity_id: str
    actor: str
    old_status: str | None = None
    new_status: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# Collaborator protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class BidStore(Protocol):
    """Persistence for bids. Implementations never manage business rules."""

    async def get(self, bid_id: str) -> Bid | None: ...

    async def save(self, bid: Bid) -> Bid: ...

    async def list_by_status(self, status: str) -> list[Bid]: ...


@runtime_checkable
class InflowStore(Protocol):
    """Persistence for incoming payments."""

    async def get(self, inflow_id: str) -> PaymentInflow | None: ...

    async def save(self, inflow: PaymentInflow) -> PaymentInflow: ...

    async def list_by_status(self, status: str) -> list[PaymentInflow]: ...


@runtime_checkable
class EventLog(Protocol):
    """Append-only audit trail."""

    async def record(self, event: WorkflowEvent) -> WorkflowEvent: ...

    async def get_by_entity(self, entity_id: str) -> list[WorkflowEvent]: ...


@runtime_checkable
class NotificationDispatcher(Protocol):
    """Delivers notifications raised by automation rule actions."""

    async def notify(self, topic: str, bid_id: str, message: str, **context: Any) -> None: ...
