"""Collection engine.

Every change to a user's collection is a read-modify-write of their single
collection record:

1. take the user's lock (`services.locks.user_locks`)
2. read the record (creating it on first access)
3. run the mutation against the in-memory record
4. `replace` the record, guarded by its version
5. commit

Anything else the mutation writes through the same session (inserting an
event, deleting a microevent) lands in the same transaction, so content and
the owner's created set are committed together or not at all.

If `replace` finds the version moved on, another process won the race. The
transaction is rolled back and the whole unit runs again, up to
`collection_max_attempts` times.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from festival_events.auth.roles import Role, has_permission
from festival_events.auth.session import Claims
from festival_events.config import get_settings
from festival_events.errors import (
    DatabaseError,
    ForbiddenError,
    StaleCollectionError,
    ValidationError,
)
from festival_events.models.collection import (
    CollectionRecord,
    CollectionSet,
    CollectionSync,
    ContentKind,
)
from festival_events.services.locks import KeyedLock, user_locks
from festival_events.stores.collections import CollectionStore
from festival_events.stores.events import EventStore
from festival_events.stores.microevents import MicroeventStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

Mutation = Callable[[CollectionRecord], Awaitable[T]]


def add_id(ids: list[int], item_id: int) -> bool:
    """Append `item_id` unless present. Returns whether the list changed."""
    if item_id in ids:
        return False
    ids.append(item_id)
    return True


def remove_id(ids: list[int], item_id: int) -> bool:
    """Remove every occurrence of `item_id`. Returns whether the list changed."""
    if item_id not in ids:
        return False
    ids[:] = [i for i in ids if i != item_id]
    return True


@dataclass
class Hydrated(Generic[T]):
    """Entities resolved from one collection set."""

    items: list[T]
    requested: int
    resolved: int

    @property
    def unresolved(self) -> int:
        return self.requested - self.resolved


@dataclass
class OwnershipRepair:
    """What `reconcile_ownership` changed."""

    user_id: str
    added_events: list[int] = field(default_factory=list)
    removed_events: list[int] = field(default_factory=list)
    added_microevents: list[int] = field(default_factory=list)
    removed_microevents: list[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(
            self.added_events
            or self.removed_events
            or self.added_microevents
            or self.removed_microevents
        )


class CollectionEngine:
    """Atomic per-user operations on collection records.

    Example:
        ```python
        engine = CollectionEngine(db)
        favorites = await engine.toggle(42, user_id, CollectionSet.FAVORITE_EVENTS)
        hydrated = await engine.hydrate(user_id, CollectionSet.FAVORITE_EVENTS)
        ```
    """

    def __init__(self, db: AsyncSession, locks: KeyedLock | None = None):
        self.db = db
        self.locks = locks or user_locks
        self.collections = CollectionStore(db)
        self.events = EventStore(db)
        self.microevents = MicroeventStore(db)

    async def run_atomic(self, user_id: str, mutate: Mutation[T]) -> T:
        """Run `mutate` against the user's record as one atomic unit.

        `mutate` may change the record's lists in place and may write other
        rows through `self.db`. It can be called more than once, so it must
        not have effects outside the session.

        Raises:
            StaleCollectionError: If every attempt lost a race
            DatabaseError: If the database fails
        """
        settings = get_settings()
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(StaleCollectionError),
            stop=stop_after_attempt(settings.collection_max_attempts),
            wait=wait_exponential(multiplier=0.01, max=0.5),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        async with self.locks.hold(user_id):
            async for attempt in retrying:
                with attempt:
                    result = await self._attempt(user_id, mutate)
        return result

    async def _attempt(self, user_id: str, mutate: Mutation[T]) -> T:
        try:
            record = await self.collections.get(user_id)
            result = await mutate(record)
            await self.collections.replace(record)
            await self.db.commit()
            return result
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception(f"Collection update failed for user {user_id}")
            raise DatabaseError() from e
        except Exception:
            await self.db.rollback()
            raise

    async def get(self, user_id: str) -> CollectionRecord:
        """Return the user's record, creating it on first access."""
        try:
            record = await self.collections.get(user_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception(f"Failed to load collection for user {user_id}")
            raise DatabaseError() from e
        return record

    async def toggle(self, item_id: int, user_id: str, which: CollectionSet) -> list[int]:
        """Add `item_id` to a favorite or saved set, or remove it if present.

        Returns the resulting set.
        """
        if which.is_ownership:
            raise ValidationError(f"{which.value} cannot be toggled")

        async def mutate(record: CollectionRecord) -> list[int]:
            ids = record.ids(which)
            if not remove_id(ids, item_id):
                ids.append(item_id)
            return list(ids)

        ids = await self.run_atomic(user_id, mutate)
        logger.info(f"Toggled {which.value} {item_id} for user {user_id}")
        return ids

    async def grant_ownership(self, item_id: int, user_id: str, which: CollectionSet) -> None:
        """Record that the user created `item_id`. Granting twice has no effect."""
        _require_ownership_set(which)

        async def mutate(record: CollectionRecord) -> None:
            add_id(record.ids(which), item_id)

        await self.run_atomic(user_id, mutate)

    async def revoke_ownership(self, item_id: int, user_id: str, which: CollectionSet) -> None:
        """Forget that the user created `item_id`. No-op if absent."""
        _require_ownership_set(which)

        async def mutate(record: CollectionRecord) -> None:
            remove_id(record.ids(which), item_id)

        await self.run_atomic(user_id, mutate)

    async def sync(self, dto: CollectionSync, caller: Claims) -> CollectionRecord:
        """Replace a user's favorites and saves in bulk.

        Created sets are kept from the stored record.

        Raises:
            NotFoundError: If no record has `dto.id`
            ValidationError: If the record belongs to someone other than
                `dto.user_id`
            ForbiddenError: If `dto.user_id` is not the caller and the
                caller is not an admin
        """
        stored = await self.collections.get_by_record_id(dto.id)
        if stored.user_id != dto.user_id:
            raise ValidationError("Collection does not belong to this user")
        if dto.user_id != caller.user_id and not has_permission(caller.role, Role.ADMIN):
            logger.warning(
                f"User {caller.user_id} tried to sync the collection of {dto.user_id}"
            )
            raise ForbiddenError("Cannot modify another user's collection")

        async def mutate(record: CollectionRecord) -> CollectionRecord:
            record.favorite_events = list(dict.fromkeys(dto.favorite_events))
            record.favorite_microevents = list(dict.fromkeys(dto.favorite_microevents))
            record.saved_events = list(dict.fromkeys(dto.saved_events))
            record.saved_microevents = list(dict.fromkeys(dto.saved_microevents))
            return record

        record = await self.run_atomic(stored.user_id, mutate)
        logger.info(f"Synced collection for user {stored.user_id}")
        return record.model_copy(update={"version": record.version + 1})

    async def hydrate(self, user_id: str, which: CollectionSet) -> Hydrated:
        """Resolve the ids in one set to events or microevents.

        Ids whose content no longer exists are dropped from the result; the
        stored set is left alone.
        """
        record = await self.get(user_id)
        ids = list(dict.fromkeys(record.ids(which)))

        if which.kind is ContentKind.MICROEVENT:
            items = await self.microevents.find_by_id_list(ids)
        else:
            items = await self.events.find_by_id_list(ids)

        hydrated = Hydrated(items=items, requested=len(ids), resolved=len(items))
        if hydrated.unresolved:
            logger.warning(
                f"{hydrated.unresolved} of {hydrated.requested} ids in "
                f"{which.value} for user {user_id} did not resolve"
            )
        return hydrated

    async def reconcile_ownership(self, user_id: str) -> OwnershipRepair:
        """Rebuild the user's created sets from who actually owns what."""
        repair = OwnershipRepair(user_id=user_id)

        async def mutate(record: CollectionRecord) -> None:
            owned_events = await self.events.find_owned_by(user_id)
            owned_microevents = await self.microevents.find_owned_by(user_id)
            repair.added_events, repair.removed_events = _rebuild(
                record.created_events, owned_events
            )
            repair.added_microevents, repair.removed_microevents = _rebuild(
                record.created_microevents, owned_microevents
            )

        await self.run_atomic(user_id, mutate)
        if repair.changed:
            logger.info(
                f"Reconciled user {user_id}: events +{repair.added_events} "
                f"-{repair.removed_events}, microevents +{repair.added_microevents} "
                f"-{repair.removed_microevents}"
            )
        return repair


def _require_ownership_set(which: CollectionSet) -> None:
    if not which.is_ownership:
        raise ValidationError(f"{which.value} is not an ownership set")


def _rebuild(ids: list[int], owned: list[int]) -> tuple[list[int], list[int]]:
    """Make `ids` equal to `owned` in place, keeping the existing order.

    Returns the ids added and removed.
    """
    owned_set = set(owned)
    removed = [i for i in dict.fromkeys(ids) if i not in owned_set]
    kept = [i for i in dict.fromkeys(ids) if i in owned_set]
    added = [i for i in owned if i not in set(kept)]
    ids[:] = kept + added
    return added, removed
