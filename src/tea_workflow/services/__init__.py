"""Application services — workflow engine, payment matcher and bid lifecycle."""

from tea_workflow.services.bid_workflow_service import BidWorkflowService
from tea_workflow.services.payment_matcher import PaymentMatcher
from tea_workflow.services.workflow_engine import WorkflowEngine

__all__ = ["BidWorkflowService", "PaymentMatcher", "WorkflowEngine"]
