"""Tests for permission sets and role grants."""

from __future__ import annotations

import pytest

from tea_workflow.domain.enums import Permission, Role
from tea_workflow.domain.permissions import (
    ROLE_PERMISSIONS,
    as_permissions,
    has_permissions,
    missing_permissions,
    permissions_for_role,
)


class TestRoleGrants:
    def test_every_role_has_a_grant(self) -> None:
        assert set(ROLE_PERMISSIONS) == set(Role)

    def test_admin_holds_wildcard(self) -> None:
        assert permissions_for_role("admin") == frozenset({Permission.WILDCARD})

    def test_processor_cannot_approve(self) -> None:
        granted = permissions_for_role(Role.PROCESSOR)
        assert Permission.UPDATE_STATUS in granted
        assert Permission.APPROVE_SPLITS not in granted
        assert Permission.FINAL_APPROVAL not in granted

    def test_every_role_can_view(self) -> None:
        for role in Role:
            assert has_permissions([Permission.VIEW_BIDS], permissions_for_role(role))

    def test_unknown_role(self) -> None:
        with pytest.raises(ValueError):
            permissions_for_role("auditor")


class TestAsPermissions:
    def test_coerces_strings(self) -> None:
        assert as_permissions(["update_status", "*"]) == frozenset(
            {Permission.UPDATE_STATUS, Permission.WILDCARD}
        )

    def test_empty(self) -> None:
        assert as_permissions([]) == frozenset()

    def test_unknown_token_rejected(self) -> None:
        with pytest.raises(ValueError):
            as_permissions(["update_status", "delete_everything"])

    def test_bare_string_rejected(self) -> None:
        with pytest.raises(ValueError, match="not a single string"):
            as_permissions("update_status")


class TestHasPermissions:
    def test_wildcard_satisfies_everything(self) -> None:
        granted = frozenset({Permission.WILDCARD})
        assert has_permissions(list(Permission), granted)
        assert missing_permissions(list(Permission), granted) == []

    def test_all_required_must_be_present(self) -> None:
        granted = frozenset({Permission.UPDATE_STATUS})
        required = [Permission.UPDATE_STATUS, Permission.REVIEW_PAYMENTS]
        assert not has_permissions(required, granted)
        assert missing_permissions(required, granted) == ["review_payments"]

    def test_no_requirements(self) -> None:
        assert has_permissions([], frozenset())
