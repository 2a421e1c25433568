"""Domain layer — pure business rules with no storage or schema dependencies."""

from tea_workflow.domain.enums import (
    STAGE_ORDER,
    BidStatus,
    EventType,
    InflowStatus,
    MatchConfidence,
    MatchSignal,
    Permission,
    Role,
    TransitionErrorCode,
)
from tea_workflow.domain.exceptions import (
    BidNotFoundError,
    InflowNotFoundError,
    InsufficientPermissionsError,
    InvalidInflowStateError,
    InvalidMatchInputError,
    InvalidTransitionError,
    InvalidTransitionTableError,
    RuleActionFailedError,
    UnknownStatusError,
    ValidationFailedError,
    WorkflowError,
)
from tea_workflow.domain.permissions import (
    ROLE_PERMISSIONS,
    PermissionSet,
    as_permissions,
    has_permissions,
    permissions_for_role,
)
from tea_workflow.domain.state_machine import BidStateMachine, fire_event
from tea_workflow.domain.workflow_protocol import (
    MatchCandidate,
    TransitionResult,
    ValidationOutcome,
    WorkflowEvent,
)

__all__ = [
    "STAGE_ORDER",
    "BidStatus",
    "EventType",
    "InflowStatus",
    "MatchConfidence",
    "MatchSignal",
    "Permission",
    "Role",
    "TransitionErrorCode",
    "BidNotFoundError",
    "InflowNotFoundError",
    "InsufficientPermissionsError",
    "InvalidInflowStateError",
    "InvalidMatchInputError",
    "InvalidTransitionError",
    "InvalidTransitionTableError",
    "RuleActionFailedError",
    "UnknownStatusError",
    "ValidationFailedError",
    "WorkflowError",
    "ROLE_PERMISSIONS",
    "PermissionSet",
    "as_permissions",
    "has_permissions",
    "permissions_for_role",
    "BidStateMachine",
    "fire_event",
    "MatchCandidate",
    "TransitionResult",
    "ValidationOutcome",
    "WorkflowEvent",
]
