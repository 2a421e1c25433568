"""Workflow Engine — transition checks, progress and rule automation.

The engine answers three questions about a bid without changing it:

    - Which statuses could this user attempt next?   next_allowed_statuses()
    - Is this particular transition ready to commit?  validate_transition()
    - How far along the pipeline is a status?         workflow_progress()

and runs the automation rules that apply to a bid snapshot
(evaluate_rules()). Committing a status is the caller's job; see
BidWorkflowService.

The transition table and validator registry are injected, so tests and
deployments can substitute alternate tables.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from tea_workflow.config import get_settings
from tea_workflow.domain.enums import STAGE_ORDER, BidStatus, Permission, TransitionErrorCode
from tea_workflow.domain.exceptions import RuleActionFailedError, UnknownStatusError
from tea_workflow.domain.permissions import as_permissions, has_permissions, missing_permissions
from tea_workflow.domain.workflow_protocol import TransitionResult
from tea_workflow.logging_config import get_logger
from tea_workflow.workflow.transitions import TransitionTable, default_transition_table
from tea_workflow.workflow.validators import ValidatorRegistry, default_validators

if TYPE_CHECKING:
    from tea_workflow.schemas.bid import Bid
    from tea_workflow.workflow.rules import WorkflowRule

logger = get_logger(__name__)


class WorkflowEngine:
    """Stateless rule engine over an injected transition table."""

    def __init__(
        self,
        table: TransitionTable | None = None,
        validators: ValidatorRegistry | None = None,
        stages: Sequence[BidStatus] = STAGE_ORDER,
        action_timeout: float | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            table: Transition table. Defaults to the canonical chain.
            validators: Predicate registry the table's names resolve against.
            stages: Canonical stage order used for progress.
            action_timeout: Seconds each rule action may run. Defaults to
                settings.rule_action_timeout_seconds.
        """
        self._validators = validators or default_validators
        self._table = table or default_transition_table(self._validators)
        self._stages: tuple[BidStatus, ...] = tuple(stages)
        self._action_timeout = (
            action_timeout
            if action_timeout is not None
            else get_settings().rule_action_timeout_seconds
        )

    @property
    def table(self) -> TransitionTable:
        return self._table

    @property
    def stages(self) -> tuple[BidStatus, ...]:
        return self._stages

    # ------------------------------------------------------------------
    # Transition checks
    # ------------------------------------------------------------------

    def validate_transition(
        self,
        bid: Bid,
        target_status: BidStatus | str,
        permissions: Iterable[Permission | str],
    ) -> TransitionResult:
        """Check whether ``bid`` may move to ``target_status``.

        Checks run in order: edge exists, caller holds the edge's
        permissions (or the wildcard), then each validation predicate in
        declaration order. The first failure is returned; nothing is raised
        for these failure kinds.

        Raises:
            ValueError: If a permission token is not a known Permission.
        """
        granted = as_permissions(permissions)
        source = bid.status.value

        try:
            target = BidStatus(target_status)
        except ValueError:
            return TransitionResult(
                valid=False,
                message=f"Unknown bid status: {target_status!r}",
                error_code=TransitionErrorCode.UNKNOWN_STATUS,
                source=source,
                target=str(target_status),
            )

        transition = self._table.find(bid.status, target)
        if transition is None:
            return TransitionResult(
                valid=False,
                message="Invalid status transition",
                error_code=TransitionErrorCode.INVALID_TRANSITION,
                source=source,
                target=target.value,
            )

        if not has_permissions(transition.required_permissions, granted):
            return TransitionResult(
                valid=False,
                message="Insufficient permissions for this transition",
                error_code=TransitionErrorCode.INSUFFICIENT_PERMISSIONS,
                source=source,
                target=target.value,
                missing_permissions=tuple(
                    missing_permissions(transition.required_permissions, granted)
                ),
            )

        for name in transition.validators:
            outcome = self._validators.get(name)(bid)
            if not outcome.valid:
                return TransitionResult(
                    valid=False,
                    message=outcome.message,
                    error_code=TransitionErrorCode.VALIDATION_FAILED,
                    source=source,
                    target=target.value,
                    validator=name,
                )

        return TransitionResult.ok(source, target.value)

    def next_allowed_statuses(
        self,
        bid: Bid,
        permissions: Iterable[Permission | str],
    ) -> list[BidStatus]:
        """Return statuses one edge away that the caller may attempt.

        Filtered by permissions only. validate_transition() remains the
        authority on whether the bid is actually ready.
        """
        granted = as_permissions(permissions)
        return [
            t.target
            for t in self._table.outgoing(bid.status)
            if has_permissions(t.required_permissions, granted)
        ]

    def workflow_progress(self, status: BidStatus | str) -> float:
        """Return the percentage of the pipeline reached at ``status``.

        Raises:
            UnknownStatusError: If status is outside the canonical stages.
        """
        try:
            index = self._stages.index(BidStatus(status))
        except ValueError:
            raise UnknownStatusError(status) from None
        return (index + 1) / len(self._stages) * 100

    # ------------------------------------------------------------------
    # Automation
    # ------------------------------------------------------------------

    async def evaluate_rules(self, bid: Bid, rules: Iterable[WorkflowRule]) -> None:
        """Run every applicable rule's action against one bid snapshot.

        Rules run sequentially by descending priority (stable for ties).
        A failing or timed-out action is logged and the next rule still
        runs. Callers that may evaluate the same bid concurrently must
        serialize per bid themselves.
        """
        applicable = [
            rule for rule in rules if rule.enabled and self._condition_holds(rule, bid)
        ]
        applicable.sort(key=lambda rule: rule.priority, reverse=True)

        for rule in applicable:
            try:
                await asyncio.wait_for(rule.action(bid), timeout=self._action_timeout)
            except TimeoutError as exc:
                failure = RuleActionFailedError(rule.name, bid.id, exc)
                logger.warning(
                    "workflow.rule_timeout",
                    rule=rule.name,
                    bid_id=bid.id,
                    timeout=self._action_timeout,
                    code=failure.code,
                )
                continue
            except Exception as exc:
                failure = RuleActionFailedError(rule.name, bid.id, exc)
                logger.exception(
                    "workflow.rule_failed",
                    rule=rule.name,
                    bid_id=bid.id,
                    code=failure.code,
                    error=failure.message,
                )
                continue

            logger.info(
                "workflow.rule_executed",
                rule=rule.name,
                bid_id=bid.id,
                priority=rule.priority,
            )

    @staticmethod
    def _condition_holds(rule: WorkflowRule, bid: Bid) -> bool:
        try:
            return bool(rule.condition(bid))
        except Exception:
            logger.exception("workflow.rule_condition_failed", rule=rule.name, bid_id=bid.id)
            return False
