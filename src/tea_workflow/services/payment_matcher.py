"""Payment Matcher — proposes links between incoming payments and bids.

Each (unmatched inflow, outstanding bid) pair is scored by summing
independent signals:

    exact amount        |inflow - bid| < tolerance               +40
    payer name          payer contains buyer, or vice versa      +30
    reference           reference == e-slip ref, or bank ref
                        contains the e-slip ref                  +50
    approximate amount  |inflow - bid| / bid < ratio             +20

The exact and approximate amount signals stack. Pairs scoring at least the
threshold are returned, highest confidence first. The matcher only
proposes: confirm_match() and unmatch() return updated copies and never
touch the inputs.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from pydantic import TypeAdapter, ValidationError

from tea_workflow.config import get_settings
from tea_workflow.domain.enums import InflowStatus, MatchSignal
from tea_workflow.domain.exceptions import InvalidInflowStateError, InvalidMatchInputError
from tea_workflow.domain.workflow_protocol import MatchCandidate
from tea_workflow.logging_config import get_logger
from tea_workflow.schemas.payment import OutstandingBid, PaymentInflow

logger = get_logger(__name__)

SIGNAL_WEIGHTS: dict[MatchSignal, int] = {
    MatchSignal.EXACT_AMOUNT: 40,
    MatchSignal.PAYER_NAME: 30,
    MatchSignal.REFERENCE: 50,
    MatchSignal.APPROXIMATE_AMOUNT: 20,
}

_inflow_list = TypeAdapter(list[PaymentInflow])
_bid_list = TypeAdapter(list[OutstandingBid])


class PaymentMatcher:
    """Scores payment/bid pairs and returns ranked match suggestions."""

    def __init__(
        self,
        threshold: int | None = None,
        amount_tolerance: Decimal | None = None,
        approximate_ratio: Decimal | None = None,
    ) -> None:
        settings = get_settings()
        self._threshold = threshold if threshold is not None else settings.match_threshold
        self._tolerance = (
            amount_tolerance if amount_tolerance is not None else settings.amount_tolerance
        )
        self._ratio = (
            approximate_ratio if approximate_ratio is not None else settings.approximate_amount_ratio
        )

    @property
    def threshold(self) -> int:
        return self._threshold

    def auto_match_payments(
        self,
        inflows: Iterable[PaymentInflow | dict],
        outstanding_bids: Iterable[OutstandingBid | dict],
    ) -> list[MatchCandidate]:
        """Return match suggestions, highest confidence first.

        Only inflows with status ``unmatched`` are scored. Pairs with equal
        confidence keep their generation order (inflow order, then bid
        order).

        Raises:
            InvalidMatchInputError: If either input is not a collection of
                well-formed inflows / bids.
        """
        inflow_models = self._validate(_inflow_list, inflows, "inflows")
        bid_models = self._validate(_bid_list, outstanding_bids, "outstanding_bids")

        candidates: list[MatchCandidate] = []
        for inflow in inflow_models:
            if inflow.status != InflowStatus.UNMATCHED:
                continue
            for bid in bid_models:
                signals = self.signals(inflow, bid)
                confidence = sum(SIGNAL_WEIGHTS[s] for s in signals)
                if confidence >= self._threshold:
                    candidates.append(
                        MatchCandidate(
                            inflow_id=inflow.id,
                            bid_id=bid.id,
                            confidence=confidence,
                            signals=signals,
                        )
                    )

        candidates.sort(key=lambda c: c.confidence, reverse=True)

        logger.info(
            "matcher.candidates_found",
            inflows=len(inflow_models),
            bids=len(bid_models),
            candidates=len(candidates),
        )
        return candidates

    def signals(self, inflow: PaymentInflow, bid: OutstandingBid) -> tuple[MatchSignal, ...]:
        """Return the signals that fire for one pair, in evaluation order."""
        fired: list[MatchSignal] = []
        difference = abs(inflow.amount - bid.amount)

        if difference < self._tolerance:
            fired.append(MatchSignal.EXACT_AMOUNT)

        payer = inflow.payer.strip().lower()
        buyer = bid.buyer.strip().lower()
        # Empty names would contain each other trivially
        if payer and buyer and (buyer in payer or payer in buyer):
            fired.append(MatchSignal.PAYER_NAME)

        eslip_ref = bid.eslip_ref
        if eslip_ref and (inflow.reference == eslip_ref or eslip_ref in inflow.bank_ref):
            fired.append(MatchSignal.REFERENCE)

        if bid.amount != 0 and difference / abs(bid.amount) < self._ratio:
            fired.append(MatchSignal.APPROXIMATE_AMOUNT)

        return tuple(fired)

    def score(self, inflow: PaymentInflow, bid: OutstandingBid) -> int:
        return sum(SIGNAL_WEIGHTS[s] for s in self.signals(inflow, bid))

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    def confirm_match(self, inflow: PaymentInflow, bid_id: str) -> PaymentInflow:
        """Return a copy of ``inflow`` marked matched to ``bid_id``.

        Raises:
            InvalidInflowStateError: If the inflow is already matched.
        """
        if inflow.status == InflowStatus.MATCHED:
            raise InvalidInflowStateError(inflow.id, inflow.status.value, "match")
        return inflow.model_copy(
            update={"status": InflowStatus.MATCHED, "matched_bid_id": bid_id}
        )

    def unmatch(self, inflow: PaymentInflow) -> PaymentInflow:
        """Return a copy of ``inflow`` back in the unmatched pool.

        Raises:
            InvalidInflowStateError: If the inflow is not currently matched.
        """
        if inflow.status != InflowStatus.MATCHED:
            raise InvalidInflowStateError(inflow.id, inflow.status.value, "unmatch")
        return inflow.model_copy(
            update={"status": InflowStatus.UNMATCHED, "matched_bid_id": None}
        )

    @staticmethod
    def _validate(adapter: TypeAdapter, value: object, label: str) -> list:
        if isinstance(value, str | bytes | dict):
            raise InvalidMatchInputError(f"{label} must be a list, got {type(value).__name__}")
        try:
            return adapter.validate_python(list(value) if not isinstance(value, list) else value)
        except TypeError as exc:
            raise InvalidMatchInputError(f"{label} must be a list: {exc}") from exc
        except ValidationError as exc:
            raise InvalidMatchInputError(
                f"Malformed {label}: {exc.error_count()} error(s)",
                errors=exc.errors(),
            ) from exc
