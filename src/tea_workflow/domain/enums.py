"""Domain enumerations for the tea bid workflow.

These enums define the canonical stages, permission tokens and sub-record
states used throughout the system. They are framework-agnostic (no pydantic,
no statemachine imports).
"""

import enum


class BidStatus(enum.StrEnum):
    """Lifecycle stages of a bid, in pipeline order.

    Declaration order IS the canonical stage order; workflow progress and the
    default transition chain are both derived from it.
    """

    BID_INTAKE = "bid-intake"
    E_SLIP_SENT = "e-slip-sent"
    PAYMENT_MATCHING = "payment-matching"
    SPLIT_PROCESSING = "split-processing"
    PAYOUT_APPROVAL = "payout-approval"
    TEA_RELEASE = "tea-release"


STAGE_ORDER: tuple[BidStatus, ...] = tuple(BidStatus)


class Permission(enum.StrEnum):
    """Permission tokens checked by status transitions.

    WILDCARD satisfies every permission check (administrative caller).
    """

    VIEW_BIDS = "view_bids"
    UPDATE_STATUS = "update_status"
    UPLOAD_FILES = "upload_files"
    ASSIGN_OWNER = "assign_owner"
    GENERATE_REPORTS = "generate_reports"
    REVIEW_PAYMENTS = "review_payments"
    APPROVE_SPLITS = "approve_splits"
    APPROVE_PAYOUTS = "approve_payouts"
    FINAL_APPROVAL = "final_approval"
    WILDCARD = "*"


class Role(enum.StrEnum):
    """Dashboard user roles. See domain/permissions.py for their grants."""

    ADMIN = "admin"
    PROCESSOR = "processor"
    REVIEWER = "reviewer"
    APPROVER = "approver"
    VIEWER = "viewer"


class PaymentStatus(enum.StrEnum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


class PaymentMethod(enum.StrEnum):
    BANK = "bank"
    M_PESA = "m-pesa"
    WALLET = "wallet"


class ESlipStatus(enum.StrEnum):
    GENERATED = "generated"
    NOT_GENERATED = "not-generated"


class BeneficiaryStatus(enum.StrEnum):
    READY = "ready"
    ADJUSTED = "adjusted"
    ERROR = "error"


class PayoutStatus(enum.StrEnum):
    PENDING = "pending"
    UNDER_REVIEW = "under-review"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReleaseStatus(enum.StrEnum):
    NOT_RELEASED = "not-released"
    RELEASED = "released"
    WITHHELD = "withheld"


class InflowStatus(enum.StrEnum):
    """Matching state of an incoming payment.

    Changes only through explicit confirm/unmatch operations; the matcher
    itself only proposes.
    """

    MATCHED = "matched"
    UNMATCHED = "unmatched"
    PENDING = "pending"


class MatchSignal(enum.StrEnum):
    """Independent signals that contribute to a payment match confidence."""

    EXACT_AMOUNT = "exact_amount"
    PAYER_NAME = "payer_name"
    REFERENCE = "reference"
    APPROXIMATE_AMOUNT = "approximate_amount"


class MatchConfidence(enum.StrEnum):
    """Confidence band shown next to a suggested match."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very_low"


class TransitionErrorCode(enum.StrEnum):
    """Failure kinds returned by WorkflowEngine.validate_transition."""

    INVALID_TRANSITION = "INVALID_TRANSITION"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    UNKNOWN_STATUS = "UNKNOWN_STATUS"


class EventType(enum.StrEnum):
    """Types of audit events recorded in the workflow event log.

    Every committed status change produces exactly one event.
    """

    STATUS_ADVANCED = "STATUS_ADVANCED"
    STATUS_REVERTED = "STATUS_REVERTED"
    PAYMENT_MATCHED = "PAYMENT_MATCHED"
    PAYMENT_UNMATCHED = "PAYMENT_UNMATCHED"
