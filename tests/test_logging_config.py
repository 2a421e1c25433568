"""Tests for the structured logging helpers."""

from __future__ import annotations

import structlog

from tea_workflow.logging_config import add_workflow_component, bid_context


class TestBidContext:
    def test_binds_and_clears(self) -> None:
        structlog.contextvars.clear_contextvars()

        with bid_context("BID-001", actor="processor-1"):
            assert structlog.contextvars.get_contextvars() == {
                "bid_id": "BID-001",
                "actor": "processor-1",
            }

        assert structlog.contextvars.get_contextvars() == {}

    def test_nested_blocks_restore_outer_bid(self) -> None:
        structlog.contextvars.clear_contextvars()

        with bid_context("BID-001"):
            with bid_context("BID-002"):
                assert structlog.contextvars.get_contextvars()["bid_id"] == "BID-002"
            assert structlog.contextvars.get_contextvars()["bid_id"] == "BID-001"


class TestAddWorkflowComponent:
    def test_known_prefixes(self) -> None:
        entry = add_workflow_component(None, "info", {"event": "workflow.rule_failed"})
        assert entry["component"] == "engine"
        entry = add_workflow_component(None, "info", {"event": "matcher.candidates_found"})
        assert entry["component"] == "payments"

    def test_unknown_prefix_is_used_as_is(self) -> None:
        entry = add_workflow_component(None, "info", {"event": "simulation.complete"})
        assert entry["component"] == "simulation"

    def test_plain_event_untouched(self) -> None:
        assert add_workflow_component(None, "info", {"event": "started"}) == {"event": "started"}

    def test_explicit_component_kept(self) -> None:
        entry = add_workflow_component(
            None, "info", {"event": "workflow.rule_failed", "component": "custom"}
        )
        assert entry["component"] == "custom"
