#!/usr/bin/env python3
"""Tea Bid Workflow — End-to-End Simulation.

Simulates three scenarios against in-memory stores:

    Scenario 1: Happy Path
        - Processor sends the e-slip, reviewer opens payment matching
        - Buyer pays in full, the matcher suggests the link, reviewer confirms
        - Splits, payout approval and tea release -> tea-release (100%)

    Scenario 2: Blocked Transitions
        - Skipping a stage -> InvalidTransition
        - Processor without approve_splits -> InsufficientPermissions
        - Partial payment -> ValidationFailed ("Payment must be fully received")

    Scenario 3: Automation and Override
        - Overdue e-slip raises an alert, a broken rule is logged and skipped
        - Administrator reverts the bid to bid-intake

Usage:
    uv run python simulation.py
    uv run python simulation.py --scenario 2
    uv run python simulation.py --json-logs
"""

from __future__ import annotations

import argparse
import asyncio
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

from tea_workflow.config import get_settings
from tea_workflow.logging_config import get_logger, setup_logging

logger = get_logger("simulation")


def build_service(bids: list, inflows: list, rules_factory=None):
    """Wire a BidWorkflowService over fresh in-memory stores."""
    from tea_workflow.infrastructure import (
        InMemoryBidStore,
        InMemoryEventLog,
        InMemoryInflowStore,
        LoggingNotificationDispatcher,
    )
    from tea_workflow.services import BidWorkflowService
    from tea_workflow.workflow import build_default_rules

    dispatcher = LoggingNotificationDispatcher()
    rules = rules_factory(dispatcher) if rules_factory else build_default_rules(dispatcher)
    service = BidWorkflowService(
        bids=InMemoryBidStore(bids),
        inflows=InMemoryInflowStore(inflows),
        events=InMemoryEventLog(),
        rules=rules,
    )
    return service, dispatcher


def sample_bid(bid_id: str = "BID-2024-001", **overrides):
    from tea_workflow.schemas import Bid, ESlipDetails

    data = {
        "id": bid_id,
        "buyer_name": "Global Tea Co.",
        "amount": Decimal("125000.00"),
        "quantity": Decimal("500"),
        "grade": "BP1",
        "price_per_kg": Decimal("250.00"),
        "factory": "Kangaita",
        "e_slip_details": ESlipDetails(reference=f"ESL-{bid_id[-3:]}"),
    }
    data.update(overrides)
    return Bid(**data)


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------
def banner(text: str) -> None:
    """Print a prominent banner."""
    width = 70
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width + "\n")


def section(text: str) -> None:
    """Print a section header."""
    print(f"\n--- {text} ---\n")


async def print_audit_trail(service, entity_id: str) -> None:
    """Print the full audit trail for a bid or inflow."""
    events = await service.get_events(entity_id)
    print(f"\n  Audit trail for {entity_id} ({len(events)} events):")
    for event in events:
        print(
            f"    [{event.event_type}] {event.old_status} -> {event.new_status} "
            f"by {event.actor}"
        )


# ===========================================================================
# Scenario 1: Happy Path
# ===========================================================================
async def scenario_1_happy_path() -> None:
    """A bid travels from intake to tea release."""
    from tea_workflow.domain import BidStatus, Role, permissions_for_role
    from tea_workflow.domain.enums import BeneficiaryStatus, ESlipStatus, PayoutStatus
    from tea_workflow.schemas import (
        ESlipDetails,
        PaymentDetails,
        PaymentInflow,
        PayoutDetails,
        SplitBeneficiary,
        SplitDetails,
    )

    banner("SCENARIO 1: Happy Path — Intake to Tea Release")

    bid = sample_bid()
    inflow = PaymentInflow(
        id="PAY-001",
        amount=Decimal("125000.00"),
        payer="GLOBAL TEA CO. LTD",
        reference="ESL-001",
        bank_ref="RTGS/ESL-001/0425",
        date=date.today(),
    )
    service, dispatcher = build_service([bid], [inflow])

    admin = permissions_for_role(Role.ADMIN)
    processor = permissions_for_role(Role.PROCESSOR)

    section("Step 1: Processor sends the e-slip")
    print(f"  Allowed next: {await service.allowed_next_statuses(bid.id, processor)}")
    await service.advance_bid(bid.id, BidStatus.E_SLIP_SENT, processor, actor="processor-1")

    section("Step 2: E-slip generated, bid moves to payment matching")
    await service.update_details(
        bid.id,
        actor="eslip-generator",
        e_slip_details=ESlipDetails(
            status=ESlipStatus.GENERATED,
            reference="ESL-001",
            generated_date=datetime.now(UTC),
        ),
        payment_details=PaymentDetails(expected_amount=Decimal("125000.00")),
    )
    await service.advance_bid(bid.id, BidStatus.PAYMENT_MATCHING, admin, actor="reviewer-1")

    section("Step 3: Matcher suggests the payment, reviewer confirms")
    for candidate in await service.suggest_matches():
        print(f"  {candidate.to_dict()}")
    await service.confirm_match("PAY-001", bid.id, actor="reviewer-1")

    section("Step 4: Splits, payout and release")
    await service.advance_bid(bid.id, BidStatus.SPLIT_PROCESSING, admin, actor="reviewer-1")
    await service.update_details(
        bid.id,
        actor="split-desk",
        split_details=SplitDetails(
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
    )
    await service.advance_bid(bid.id, BidStatus.PAYOUT_APPROVAL, admin, actor="approver-1")
    await service.update_details(
        bid.id,
        actor="approver-1",
        payout_details=PayoutDetails(status=PayoutStatus.APPROVED, approved_by="approver-1"),
    )
    approver = permissions_for_role(Role.APPROVER)
    await service.advance_bid(bid.id, BidStatus.TEA_RELEASE, approver, actor="approver-1")

    section("Step 5: Final status")
    final = await service.get_bid(bid.id)
    print(f"  Status: {final.status} ({await service.progress(bid.id):.0f}%)")
    print(f"  Notifications: {dispatcher.topics()}")
    await print_audit_trail(service, bid.id)


# ===========================================================================
# Scenario 2: Blocked Transitions
# ===========================================================================
async def scenario_2_blocked_transitions() -> None:
    """The engine refuses skips, missing permissions and unpaid bids."""
    from tea_workflow.domain import BidStatus, Role, WorkflowError, permissions_for_role
    from tea_workflow.domain.enums import PaymentStatus
    from tea_workflow.schemas import PaymentDetails

    banner("SCENARIO 2: Blocked Transitions")

    bid = sample_bid(
        "BID-2024-002",
        status=BidStatus.PAYMENT_MATCHING,
        payment_details=PaymentDetails(
            status=PaymentStatus.PARTIAL,
            expected_amount=Decimal("125000.00"),
            received_amount=Decimal("60000.00"),
        ),
    )
    service, _ = build_service([bid], [])

    attempts = [
        ("Skip to tea release", BidStatus.TEA_RELEASE, permissions_for_role(Role.ADMIN)),
        ("Processor opens splits", BidStatus.SPLIT_PROCESSING, permissions_for_role(Role.PROCESSOR)),
        ("Admin opens splits on partial payment", BidStatus.SPLIT_PROCESSING,
         permissions_for_role(Role.ADMIN)),
    ]
    for label, target, permissions in attempts:
        section(label)
        try:
            await service.advance_bid(bid.id, target, permissions, actor="operator")
        except WorkflowError as exc:
            print(f"  ❌ {exc.code}: {exc.message}")


# ===========================================================================
# Scenario 3: Automation and Override
# ===========================================================================
async def scenario_3_automation_and_override() -> None:
    """Overdue alert, a failing rule that does not block others, then revert."""
    from tea_workflow.domain import BidStatus, Role, permissions_for_role
    from tea_workflow.domain.enums import ESlipStatus
    from tea_workflow.schemas import ESlipDetails
    from tea_workflow.workflow import build_default_rules, create_workflow_rule

    banner("SCENARIO 3: Automation and Administrative Override")

    bid = sample_bid(
        "BID-2024-003",
        status=BidStatus.E_SLIP_SENT,
        e_slip_details=ESlipDetails(
            status=ESlipStatus.GENERATED,
            reference="ESL-003",
            generated_date=datetime.now(UTC) - timedelta(days=10),
        ),
    )

    async def broken_action(_bid) -> None:
        raise ConnectionError("SMS gateway unreachable")

    def rules_factory(dispatcher):
        return [
            create_workflow_rule(
                "Text buyer about e-slip",
                lambda b: b.status == BidStatus.E_SLIP_SENT,
                broken_action,
                priority=5,
            ),
            *build_default_rules(dispatcher),
        ]

    service, dispatcher = build_service([bid], [], rules_factory)

    section("Step 1: Run automation on an overdue bid")
    await service.run_automation(bid.id)
    print(f"  Notifications: {dispatcher.topics()}")

    section("Step 2: Administrator reverts the bid")
    reverted = await service.revert_bid(
        bid.id,
        permissions_for_role(Role.ADMIN),
        actor="admin-1",
        reason="Buyer disputed the lot weight",
    )
    print(f"  Status: {reverted.status}")
    await print_audit_trail(service, bid.id)


SCENARIOS = {
    1: scenario_1_happy_path,
    2: scenario_2_blocked_transitions,
    3: scenario_3_automation_and_override,
}


async def run_all() -> None:
    """Run all scenarios sequentially."""
    for scenario in SCENARIOS.values():
        await scenario()

    logger.info("simulation.complete", scenarios=len(SCENARIOS))

    print("\n" + "=" * 70)
    print("  ✅ ALL SCENARIOS COMPLETED")
    print("=" * 70 + "\n")


async def run_scenario(num: int) -> None:
    """Run a specific scenario."""
    if num not in SCENARIOS:
        print(f"Unknown scenario {num}. Available: {', '.join(map(str, SCENARIOS))}")
        return
    await SCENARIOS[num]()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Tea Bid Workflow Simulation")
    parser.add_argument(
        "--scenario",
        type=int,
        default=0,
        help="Run a specific scenario (1, 2, or 3). Default: run all.",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON logs instead of colored console output.",
    )
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=args.json_logs or settings.app_json_logs or not settings.is_development,
    )

    if args.scenario == 0:
        asyncio.run(run_all())
    else:
        asyncio.run(run_scenario(args.scenario))
