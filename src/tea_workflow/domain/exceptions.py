"""Domain exceptions for the tea bid workflow.

These exceptions are framework-agnostic and represent business rule
violations. The workflow engine itself reports transition failures as a
TransitionResult; the service layer raises the matching exception below.
"""


class WorkflowError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "WORKFLOW_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Transition Errors ---


class InvalidTransitionError(WorkflowError):
    """Raised when no edge connects the current status to the target.

    Example: bid-intake -> payment-matching (must go through e-slip-sent)
    """

    def __init__(self, current_status: str, attempted_status: str) -> None:
        super().__init__(
            message=f"Invalid status transition: {current_status} -> {attempted_status}",
            code="INVALID_TRANSITION",
        )
        self.current_status = current_status
        self.attempted_status = attempted_status


class InsufficientPermissionsError(WorkflowError):
    """Raised when the caller lacks a permission required by the edge."""

    def __init__(self, missing: list[str] | None = None, message: str | None = None) -> None:
        super().__init__(
            message=message or "Insufficient permissions for this transition",
            code="INSUFFICIENT_PERMISSIONS",
        )
        self.missing = missing or []


class ValidationFailedError(WorkflowError):
    """Raised when a business predicate rejects the transition.

    Carries the first failing predicate's message.
    """

    def __init__(self, message: str, validator: str | None = None) -> None:
        super().__init__(message=message, code="VALIDATION_FAILED")
        self.validator = validator


class UnknownStatusError(WorkflowError, ValueError):
    """Raised when a status is outside the canonical stage set."""

    def __init__(self, status: object) -> None:
        super().__init__(
            message=f"Unknown bid status: {status!r}",
            code="UNKNOWN_STATUS",
        )
        self.status = status


class InvalidTransitionTableError(WorkflowError, ValueError):
    """Raised when a transition table breaks the chain invariants."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="INVALID_TRANSITION_TABLE")


# --- Automation Errors ---


class RuleActionFailedError(WorkflowError):
    """Wraps a failure raised by an automation rule's action.

    Logged by the rule evaluator and never propagated out of it.
    """

    def __init__(self, rule_name: str, bid_id: str, cause: BaseException) -> None:
        super().__init__(
            message=f"Workflow rule '{rule_name}' failed for bid {bid_id}: {cause!r}",
            code="RULE_ACTION_FAILED",
        )
        self.rule_name = rule_name
        self.bid_id = bid_id
        self.cause = cause


# --- Lookup Errors ---


class BidNotFoundError(WorkflowError):
    """Raised when a bid ID does not exist."""

    def __init__(self, bid_id: str) -> None:
        super().__init__(message=f"Bid not found: {bid_id}", code="BID_NOT_FOUND")
        self.bid_id = bid_id


class InflowNotFoundError(WorkflowError):
    """Raised when a payment inflow ID does not exist."""

    def __init__(self, inflow_id: str) -> None:
        super().__init__(
            message=f"Payment inflow not found: {inflow_id}",
            code="INFLOW_NOT_FOUND",
        )
        self.inflow_id = inflow_id


# --- Payment Matching Errors ---


class InvalidInflowStateError(WorkflowError):
    """Raised when confirming or unmatching an inflow in the wrong state."""

    def __init__(self, inflow_id: str, status: str, operation: str) -> None:
        super().__init__(
            message=f"Cannot {operation} payment inflow {inflow_id} in status '{status}'",
            code="INVALID_INFLOW_STATE",
        )
        self.inflow_id = inflow_id
        self.status = status


class InvalidMatchInputError(WorkflowError, ValueError):
    """Raised when the matcher receives malformed inflows or bids."""

    def __init__(self, message: str, errors: list | None = None) -> None:
        super().__init__(message=message, code="INVALID_MATCH_INPUT")
        self.errors = errors or []
