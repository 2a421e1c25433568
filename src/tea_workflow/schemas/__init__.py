"""Pydantic schemas for bids, payments and workflow configuration."""

from tea_workflow.schemas.bid import (
    Bid,
    ESlipDetails,
    PaymentDetails,
    PayoutDetails,
    ReleaseDetails,
    SplitBeneficiary,
    SplitDetails,
)
from tea_workflow.schemas.payment import OutstandingBid, PaymentInflow
from tea_workflow.schemas.workflow import TransitionSpec

__all__ = [
    "Bid",
    "ESlipDetails",
    "PaymentDetails",
    "PayoutDetails",
    "ReleaseDetails",
    "SplitBeneficiary",
    "SplitDetails",
    "OutstandingBid",
    "PaymentInflow",
    "TransitionSpec",
]
