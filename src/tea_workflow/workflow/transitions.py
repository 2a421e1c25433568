"""Transition tables for the bid lifecycle.

The default table is a simple chain over the six stages:

    bid-intake -> e-slip-sent -> payment-matching -> split-processing
        -> payout-approval -> tea-release

A TransitionTable is immutable once built. Construction enforces that each
target status has at most one incoming edge, that no edge is declared twice,
and that every validator name is registered.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from pydantic import ValidationError

from tea_workflow.domain.enums import BidStatus
from tea_workflow.domain.exceptions import InvalidTransitionTableError
from tea_workflow.schemas.workflow import TransitionSpec
from tea_workflow.workflow.validators import ValidatorRegistry, default_validators

DEFAULT_TRANSITIONS: list[dict] = [
    {
        "from": "bid-intake",
        "to": "e-slip-sent",
        "required_permissions": ["update_status"],
        "validators": ["buyer_and_amount_present", "amount_positive"],
        "auto_triggers": ["eslip_generated"],
    },
    {
        "from": "e-slip-sent",
        "to": "payment-matching",
        "required_permissions": ["update_status", "review_payments"],
        "validators": ["eslip_generated"],
        "auto_triggers": ["payment_received"],
    },
    {
        "from": "payment-matching",
        "to": "split-processing",
        "required_permissions": ["update_status", "approve_splits"],
        "validators": ["payment_received"],
    },
    {
        "from": "split-processing",
        "to": "payout-approval",
        "required_permissions": ["update_status", "approve_payouts"],
        "validators": ["split_beneficiaries_defined", "split_beneficiaries_ready"],
    },
    {
        "from": "payout-approval",
        "to": "tea-release",
        "required_permissions": ["final_approval"],
        "validators": ["payout_approved"],
    },
]


class TransitionTable:
    """Immutable, ordered collection of TransitionSpec edges."""

    def __init__(
        self,
        transitions: Iterable[TransitionSpec],
        validators: ValidatorRegistry | None = None,
    ) -> None:
        self._transitions: tuple[TransitionSpec, ...] = tuple(transitions)
        self._check_invariants(validators)
        self._by_edge = {t.edge: t for t in self._transitions}

    @classmethod
    def from_config(
        cls,
        config: Iterable[dict],
        validators: ValidatorRegistry | None = None,
    ) -> TransitionTable:
        """Build a table from plain data (e.g., parsed JSON).

        Raises:
            InvalidTransitionTableError: If an entry is malformed or the
                table breaks the chain invariants.
        """
        try:
            specs = [TransitionSpec.model_validate(entry) for entry in config]
        except ValidationError as exc:
            raise InvalidTransitionTableError(
                f"Malformed transition entry: {exc.error_count()} error(s)"
            ) from exc
        return cls(specs, validators)

    def _check_invariants(self, validators: ValidatorRegistry | None) -> None:
        seen_edges: set[tuple[BidStatus, BidStatus]] = set()
        incoming: dict[BidStatus, BidStatus] = {}

        for spec in self._transitions:
            if spec.edge in seen_edges:
                raise InvalidTransitionTableError(
                    f"Duplicate transition: {spec.source} -> {spec.target}"
                )
            seen_edges.add(spec.edge)

            if spec.target in incoming:
                raise InvalidTransitionTableError(
                    f"Status {spec.target} already reachable from {incoming[spec.target]}; "
                    f"cannot also enter it from {spec.source}"
                )
            incoming[spec.target] = spec.source

            if validators is not None:
                unknown = [name for name in spec.validators if name not in validators]
                if unknown:
                    raise InvalidTransitionTableError(
                        f"Unknown validator(s) on {spec.source} -> {spec.target}: "
                        f"{', '.join(unknown)}"
                    )

    def find(self, source: BidStatus, target: BidStatus) -> TransitionSpec | None:
        """Return the edge source -> target, or None if not declared."""
        return self._by_edge.get((source, target))

    def outgoing(self, source: BidStatus) -> list[TransitionSpec]:
        """Return edges leaving ``source`` in declaration order."""
        return [t for t in self._transitions if t.source == source]

    def triggers_for(self, source: BidStatus, target: BidStatus) -> tuple[str, ...]:
        """Return the declared auto-trigger events for an edge.

        Nothing schedules these; they are exposed for integrations that want
        to fire transitions without a human.
        """
        spec = self.find(source, target)
        return spec.auto_triggers if spec is not None else ()

    def __iter__(self) -> Iterator[TransitionSpec]:
        return iter(self._transitions)

    def __len__(self) -> int:
        return len(self._transitions)


def default_transition_table(validators: ValidatorRegistry | None = None) -> TransitionTable:
    """Build the canonical five-edge chain."""
    return TransitionTable.from_config(DEFAULT_TRANSITIONS, validators or default_validators)
