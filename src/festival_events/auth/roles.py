"""Roles and the ownership gate.

Roles are totally ordered: super_admin can do everything admin can, and
admin everything user can.

| Role | Rank |
|---|---|
| user | 0 |
| admin | 1 |
| super_admin | 2 |

Role strings that are not recognized count as `user`.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from festival_events.errors import ForbiddenError
from festival_events.models.collection import CollectionRecord, CollectionSet, ContentKind

if TYPE_CHECKING:
    from festival_events.auth.session import Claims

logger = logging.getLogger(__name__)


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @classmethod
    def parse(cls, value: str | Role | None) -> Role:
        try:
            return cls(value)
        except ValueError:
            return cls.USER


_RANKS = {Role.USER: 0, Role.ADMIN: 1, Role.SUPER_ADMIN: 2}


def has_permission(caller_role: str | Role | None, required: Role) -> bool:
    """Whether a caller with `caller_role` may act at the `required` level."""
    return Role.parse(caller_role).rank >= required.rank


def require_owner_or_admin(
    caller: Claims,
    record: CollectionRecord,
    item_id: int,
    kind: ContentKind,
) -> None:
    """Allow admins, or a caller whose created set contains `item_id`.

    `record` must be the caller's own collection record.

    Raises:
        ForbiddenError: If the caller is neither an admin nor the creator
    """
    if has_permission(caller.role, Role.ADMIN):
        return

    if item_id in record.ids(CollectionSet.created_for(kind)):
        return

    logger.warning(f"User {caller.user_id} denied access to {kind.value} {item_id}")
    raise ForbiddenError(f"You do not own this {kind.value}")
