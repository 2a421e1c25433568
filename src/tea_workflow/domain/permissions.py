"""Permission sets and the default role grants.

Permissions are an explicit frozenset of Permission tokens. Raw strings from
an identity provider are coerced through as_permissions(), which rejects
tokens outside the enum.
"""

from __future__ import annotations

from collections.abc import Iterable

from tea_workflow.domain.enums import Permission, Role

PermissionSet = frozenset[Permission]

ROLE_PERMISSIONS: dict[Role, PermissionSet] = {
    Role.ADMIN: frozenset({Permission.WILDCARD}),
    Role.PROCESSOR: frozenset({
        Permission.VIEW_BIDS,
        Permission.UPDATE_STATUS,
        Permission.UPLOAD_FILES,
        Permission.ASSIGN_OWNER,
    }),
    Role.REVIEWER: frozenset({
        Permission.VIEW_BIDS,
        Permission.REVIEW_PAYMENTS,
        Permission.APPROVE_SPLITS,
    }),
    Role.APPROVER: frozenset({
        Permission.VIEW_BIDS,
        Permission.APPROVE_PAYOUTS,
        Permission.FINAL_APPROVAL,
    }),
    Role.VIEWER: frozenset({Permission.VIEW_BIDS}),
}


def as_permissions(tokens: Iterable[Permission | str]) -> PermissionSet:
    """Coerce permission tokens into a PermissionSet.

    Raises:
        ValueError: If a token is not a known Permission value.
    """
    if isinstance(tokens, str):
        raise ValueError("Permissions must be a collection of tokens, not a single string")
    return frozenset(Permission(token) for token in tokens)


def permissions_for_role(role: Role | str) -> PermissionSet:
    """Return the permissions granted to a role."""
    return ROLE_PERMISSIONS[Role(role)]


def has_permissions(required: Iterable[Permission], granted: PermissionSet) -> bool:
    """Return True if every required token is granted, or the wildcard is."""
    if Permission.WILDCARD in granted:
        return True
    return all(permission in granted for permission in required)


def missing_permissions(required: Iterable[Permission], granted: PermissionSet) -> list[str]:
    if Permission.WILDCARD in granted:
        return []
    return sorted(p.value for p in required if p not in granted)
