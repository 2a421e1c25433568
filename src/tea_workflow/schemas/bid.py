"""Pydantic schemas for bids and their stage sub-records.

A Bid carries its current lifecycle status plus the sub-records that later
stages fill in (payment receipt, e-slip, split, payout, release). The
workflow validators read these sub-records; only the service layer writes a
new status, and it does so on a copy.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from tea_workflow.domain.enums import (
    BeneficiaryStatus,
    BidStatus,
    ESlipStatus,
    PaymentMethod,
    PaymentStatus,
    PayoutStatus,
    ReleaseStatus,
)

# ---------------------------------------------------------------------------
# Sub-records
# ---------------------------------------------------------------------------


class PaymentDetails(BaseModel):
    """Buyer payment progress against the bid amount."""

    status: PaymentStatus = PaymentStatus.PENDING
    expected_amount: Decimal = Field(..., ge=0)
    received_amount: Decimal = Field(default=Decimal("0"), ge=0)
    payment_method: PaymentMethod | None = None
    reference_number: str | None = None
    received_date: date | None = None


class ESlipDetails(BaseModel):
    """Electronic settlement slip issued to the buyer."""

    status: ESlipStatus = ESlipStatus.NOT_GENERATED
    reference: str | None = Field(
        default=None,
        description="Slip reference quoted by the buyer when paying",
        examples=["ESL-2024-001"],
    )
    generated_by: str | None = None
    generated_date: datetime | None = None
    sent_to_buyer: bool = False
    sent_date: datetime | None = None


class SplitBeneficiary(BaseModel):
    name: str
    account_number: str
    percentage: Decimal | None = Field(default=None, ge=0, le=100)
    fixed_amount: Decimal | None = Field(default=None, ge=0)
    status: BeneficiaryStatus = BeneficiaryStatus.READY


class SplitDetails(BaseModel):
    """Allocation of the bid proceeds across beneficiaries."""

    beneficiaries: list[SplitBeneficiary] = Field(default_factory=list)
    split_pdf_url: str | None = None


class PayoutDetails(BaseModel):
    status: PayoutStatus = PayoutStatus.PENDING
    reviewed_by: str | None = None
    reviewed_date: datetime | None = None
    approved_by: str | None = None
    approved_date: datetime | None = None


class ReleaseDetails(BaseModel):
    status: ReleaseStatus = ReleaseStatus.NOT_RELEASED
    release_date: datetime | None = None
    releasing_officer: str | None = None
    delivery_reference: str | None = None
    notes: str | None = None


# ---------------------------------------------------------------------------
# Bid
# ---------------------------------------------------------------------------


class Bid(BaseModel):
    """A winning auction bid moving through the settlement pipeline."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(..., min_length=1, examples=["BID-2024-001"])
    buyer_name: str = ""
    amount: Decimal = Field(default=Decimal("0"), description="Bid value in KES")
    status: BidStatus = BidStatus.BID_INTAKE
    quantity: Decimal = Field(default=Decimal("0"), ge=0, description="Quantity in kg")
    grade: str = ""
    price_per_kg: Decimal = Field(default=Decimal("0"), ge=0)
    factory: str | None = None
    lot_id: str | None = None
    broker: str | None = None
    notes: str | None = None
    created_at: datetime | None = None

    payment_details: PaymentDetails | None = None
    e_slip_details: ESlipDetails | None = None
    split_details: SplitDetails | None = None
    payout_details: PayoutDetails | None = None
    release_details: ReleaseDetails | None = None

    def with_status(self, status: BidStatus) -> Bid:
        """Return a copy of this bid at a new status."""
        return self.model_copy(update={"status": BidStatus(status)})
