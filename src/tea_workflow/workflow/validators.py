"""Named validation predicates for status transitions.

Each predicate is a pure function ``(Bid) -> ValidationOutcome``. Transition
tables reference predicates by name only, so the table itself stays plain
data while the business checks stay in code.

Usage:
    from tea_workflow.workflow.validators import default_validators

    check = default_validators.get("payment_received")
    outcome = check(bid)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING

from tea_workflow.domain.enums import BeneficiaryStatus, ESlipStatus, PaymentStatus, PayoutStatus
from tea_workflow.domain.workflow_protocol import ValidationOutcome

if TYPE_CHECKING:
    from tea_workflow.schemas.bid import Bid

Predicate = Callable[["Bid"], ValidationOutcome]


class ValidatorRegistry:
    """Maps predicate names to predicate functions.

    Usage:
        registry = ValidatorRegistry()

        @registry.register("has_grade")
        def has_grade(bid):
            return check(bool(bid.grade), "Grade is required")
    """

    def __init__(self, validators: dict[str, Predicate] | None = None) -> None:
        self._validators: dict[str, Predicate] = dict(validators or {})

    def register(self, name: str) -> Callable[[Predicate], Predicate]:
        """Decorator that registers a predicate under ``name``."""

        def decorator(func: Predicate) -> Predicate:
            if name in self._validators:
                raise ValueError(f"Validator '{name}' is already registered")
            self._validators[name] = func
            return func

        return decorator

    def get(self, name: str) -> Predicate:
        """Return the predicate registered under ``name``.

        Raises:
            ValueError: If no predicate has that name.
        """
        try:
            return self._validators[name]
        except KeyError:
            supported = ", ".join(sorted(self._validators))
            raise ValueError(
                f"Unknown validator '{name}'. Supported: {supported}"
            ) from None

    def names(self) -> list[str]:
        return list(self._validators)

    def copy(self) -> ValidatorRegistry:
        return ValidatorRegistry(self._validators)

    def __contains__(self, name: object) -> bool:
        return name in self._validators

    def __iter__(self) -> Iterator[str]:
        return iter(self._validators)

    def __len__(self) -> int:
        return len(self._validators)


def check(condition: bool, message: str) -> ValidationOutcome:
    """Build an outcome that carries ``message`` only when it fails."""
    if condition:
        return ValidationOutcome(valid=True)
    return ValidationOutcome(valid=False, message=message)


default_validators = ValidatorRegistry()


@default_validators.register("buyer_and_amount_present")
def buyer_and_amount_present(bid: Bid) -> ValidationOutcome:
    # A zero amount counts as missing
    return check(bool(bid.buyer_name) and bool(bid.amount), "Buyer name and amount are required")


@default_validators.register("amount_positive")
def amount_positive(bid: Bid) -> ValidationOutcome:
    return check(bid.amount > 0, "Amount must be greater than zero")


@default_validators.register("eslip_generated")
def eslip_generated(bid: Bid) -> ValidationOutcome:
    eslip = bid.e_slip_details
    return check(
        eslip is not None and eslip.status == ESlipStatus.GENERATED,
        "E-slip must be generated first",
    )


@default_validators.register("payment_received")
def payment_received(bid: Bid) -> ValidationOutcome:
    payment = bid.payment_details
    return check(
        payment is not None and payment.status == PaymentStatus.PAID,
        "Payment must be fully received",
    )


@default_validators.register("split_beneficiaries_defined")
def split_beneficiaries_defined(bid: Bid) -> ValidationOutcome:
    split = bid.split_details
    return check(
        split is not None and len(split.beneficiaries) > 0,
        "Split beneficiaries must be defined",
    )


@default_validators.register("split_beneficiaries_ready")
def split_beneficiaries_ready(bid: Bid) -> ValidationOutcome:
    split = bid.split_details
    return check(
        split is not None
        and all(b.status == BeneficiaryStatus.READY for b in split.beneficiaries),
        "All split beneficiaries must be ready",
    )


@default_validators.register("payout_approved")
def payout_approved(bid: Bid) -> ValidationOutcome:
    payout = bid.payout_details
    return check(
        payout is not None and payout.status == PayoutStatus.APPROVED,
        "Payout must be approved first",
    )
