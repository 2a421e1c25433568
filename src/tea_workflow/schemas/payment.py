"""Pydantic schemas for incoming payments and the matcher's bid view."""

from __future__ import annotations

from datetime import date as date_type
from decimal import Decimal
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from tea_workflow.domain.enums import InflowStatus

if TYPE_CHECKING:
    from tea_workflow.schemas.bid import Bid


class PaymentInflow(BaseModel):
    """A payment received on the collection account, not yet reconciled."""

    id: str = Field(..., min_length=1)
    amount: Decimal
    payer: str = Field(default="", description="Payer name as it appears on the statement")
    reference: str = Field(default="", description="Reference typed by the payer")
    bank_ref: str = Field(default="", description="Bank-generated transaction reference")
    date: date_type | None = None
    status: InflowStatus = InflowStatus.UNMATCHED
    matched_bid_id: str | None = None


class OutstandingBid(BaseModel):
    """The payment matcher's view of a bid awaiting payment."""

    id: str = Field(..., min_length=1)
    buyer: str = ""
    amount: Decimal
    eslip_ref: str = ""

    @classmethod
    def from_bid(cls, bid: Bid) -> OutstandingBid:
        """Build the matcher view, falling back to the bid id as reference."""
        eslip_ref = None
        if bid.e_slip_details is not None:
            eslip_ref = bid.e_slip_details.reference
        expected = bid.amount
        if bid.payment_details is not None:
            expected = bid.payment_details.expected_amount
        return cls(
            id=bid.id,
            buyer=bid.buyer_name,
            amount=expected,
            eslip_ref=eslip_ref or bid.id,
        )
