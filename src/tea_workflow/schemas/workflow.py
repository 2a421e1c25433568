"""Pydantic schema for transition table configuration.

A transition is pure data: the edge, the permission tokens it requires, and
the NAMES of the validation predicates to run. Predicate implementations
live in workflow/validators.py, so a table can be loaded from JSON or YAML
without touching code.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tea_workflow.domain.enums import BidStatus, Permission


class TransitionSpec(BaseModel):
    """A single directed edge of the bid lifecycle."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source: BidStatus = Field(..., alias="from")
    target: BidStatus = Field(..., alias="to")
    required_permissions: frozenset[Permission] = Field(
        default_factory=frozenset,
        description="Tokens the caller must hold; '*' in the caller's set satisfies all",
    )
    validators: tuple[str, ...] = Field(
        default=(),
        description="Registered predicate names, evaluated in order",
        examples=[("buyer_and_amount_present", "amount_positive")],
    )
    auto_triggers: tuple[str, ...] = Field(
        default=(),
        description="Events that could fire this transition without a human; not scheduled",
    )

    @model_validator(mode="after")
    def _reject_self_loop(self) -> TransitionSpec:
        if self.source == self.target:
            raise ValueError(f"Transition cannot loop on itself: {self.source}")
        return self

    @property
    def edge(self) -> tuple[BidStatus, BidStatus]:
        return (self.source, self.target)
