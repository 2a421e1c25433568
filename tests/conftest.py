"""Shared test fixtures for the tea bid workflow test suite.

Provides:
    - Factory functions for bids at any stage
    - Role permission sets
    - Engine, matcher and service wired over in-memory stores
    - Async test support via pytest-asyncio
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from tea_workflow.domain.enums import (
    BeneficiaryStatus,
    BidStatus,
    ESlipStatus,
    PaymentStatus,
    PayoutStatus,
    Role,
)
from tea_workflow.domain.permissions import PermissionSet, permissions_for_role
from tea_workflow.infrastructure import (
    InMemoryBidStore,
    InMemoryEventLog,
    InMemoryInflowStore,
    LoggingNotificationDispatcher,
)
from tea_workflow.schemas import (
    Bid,
    ESlipDetails,
    PaymentDetails,
    PayoutDetails,
    SplitBeneficiary,
    SplitDetails,
)
from tea_workflow.services import BidWorkflowService, PaymentMatcher, WorkflowEngine

# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_bid() -> Callable[..., Bid]:
    """Return a factory for bids with sensible defaults."""

    def _make(**overrides) -> Bid:
        data = {
            "id": "BID-001",
            "buyer_name": "Global Tea Co.",
            "amount": Decimal("1000.00"),
            "quantity": Decimal("4"),
            "grade": "BP1",
            "price_per_kg": Decimal("250.00"),
            "factory": "Kangaita",
        }
        data.update(overrides)
        return Bid(**data)

    return _make


@pytest.fixture
def ready_bid(make_bid) -> Callable[..., Bid]:
    """Return a factory for bids whose sub-records satisfy every validator."""

    def _make(status: BidStatus = BidStatus.BID_INTAKE, **overrides) -> Bid:
        data = {
            "status": status,
            "e_slip_details": ESlipDetails(
                status=ESlipStatus.GENERATED,
                reference="ESL-001",
                generated_date=datetime(2024, 3, 1, tzinfo=UTC),
            ),
            "payment_details": PaymentDetails(
                status=PaymentStatus.PAID,
                expected_amount=Decimal("1000.00"),
                received_amount=Decimal("1000.00"),
            ),
            "split_details": SplitDetails(
                beneficiaries=[
                    SplitBeneficiary(
                        name="Kangaita Factory",
                        account_number="0011223344",
                        percentage=Decimal("97"),
                        status=BeneficiaryStatus.READY,
                    ),
                    SplitBeneficiary(
                        name="Platform fee",
                        account_number="9988776655",
                        percentage=Decimal("3"),
                        status=BeneficiaryStatus.READY,
                    ),
                ]
            ),
            "payout_details": PayoutDetails(status=PayoutStatus.APPROVED),
        }
        data.update(overrides)
        return make_bid(**data)

    return _make


@pytest.fixture
def admin() -> PermissionSet:
    return permissions_for_role(Role.ADMIN)


@pytest.fixture
def processor() -> PermissionSet:
    return permissions_for_role(Role.PROCESSOR)


@pytest.fixture
def engine() -> WorkflowEngine:
    return WorkflowEngine(action_timeout=1.0)


@pytest.fixture
def matcher() -> PaymentMatcher:
    return PaymentMatcher(
        threshold=70,
        amount_tolerance=Decimal("0.01"),
        approximate_ratio=Decimal("0.05"),
    )


# ---------------------------------------------------------------------------
# Service Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def dispatcher() -> LoggingNotificationDispatcher:
    return LoggingNotificationDispatcher()


@pytest.fixture
def make_service(engine, matcher) -> Callable[..., BidWorkflowService]:
    """Return a factory wiring a service over fresh in-memory stores."""

    def _make(bids=(), inflows=(), rules=()) -> BidWorkflowService:
        return BidWorkflowService(
            bids=InMemoryBidStore(list(bids)),
            inflows=InMemoryInflowStore(list(inflows)),
            events=InMemoryEventLog(),
            engine=engine,
            matcher=matcher,
            rules=rules,
        )

    return _make
