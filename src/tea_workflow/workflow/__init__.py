"""Workflow configuration: validator registry, transition tables and rules.

    - ValidatorRegistry:  named business predicates (validators.py)
    - TransitionTable:    immutable edge set built from data (transitions.py)
    - WorkflowRule:       prioritized automation rules (rules.py)

The WorkflowEngine in services/ consumes all three; none of them hold
per-bid state.
"""

from tea_workflow.workflow.rules import (
    WorkflowRule,
    build_default_rules,
    create_workflow_rule,
)
from tea_workflow.workflow.transitions import (
    DEFAULT_TRANSITIONS,
    TransitionTable,
    default_transition_table,
)
from tea_workflow.workflow.validators import (
    ValidatorRegistry,
    check,
    default_validators,
)

__all__ = [
    "WorkflowRule",
    "build_default_rules",
    "create_workflow_rule",
    "DEFAULT_TRANSITIONS",
    "TransitionTable",
    "default_transition_table",
    "ValidatorRegistry",
    "check",
    "default_validators",
]
