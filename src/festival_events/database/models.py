"""Database models for festival events.

## Schema Overview

```
users
event_types
└── events (N:1)            event_data holds the full festival document as JSON text
    └── microevents (1:N)
user_event_data             one row per user, six JSON id lists + version
```

## Denormalized columns

`events` keeps queryable copies of fields that also live inside `event_data`
(event type, coordinates, dates, camping flag). They are always derived from
the document by `festival_events.stores.events`, never written separately.

## Collections

`user_event_data.user_id` is unique, which makes get-or-create safe under
concurrent first access. `version` is bumped on every replace and checked
by the UPDATE, so a write based on a stale read affects no row.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# 64-bit ids; SQLite only autoincrements a column declared INTEGER
BigIntId = BigInteger().with_variant(Integer, "sqlite")
IdList = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all database models."""

    type_annotation_map = {
        list[int]: IdList,
    }


class User(Base):
    """User account model.

    Users are created through Google sign-in. The (oauth_provider, oauth_id)
    pair identifies the external account; `id` is our own UUID and is the
    `sub` of every session token.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    oauth_id: Mapped[str] = mapped_column(String(255), nullable=False)
    oauth_provider: Mapped[str] = mapped_column(String(32), nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Contact
    email: Mapped[str | None] = mapped_column(String(255))
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    profile_picture_url: Mapped[str | None] = mapped_column(String(512))

    # Preferences
    timezone: Mapped[str | None] = mapped_column(String(64))
    language: Mapped[str | None] = mapped_column(String(16))

    # Security & status
    role: Mapped[str] = mapped_column(String(32), default="user")
    locked_out: Mapped[bool] = mapped_column(Boolean, default=False)
    lockout_reason: Mapped[str | None] = mapped_column(Text)
    lockout_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    login_count: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (
        UniqueConstraint("oauth_provider", "oauth_id", name="uq_user_oauth"),
    )

    def __repr__(self) -> str:
        return f"<User {self.user_name} role={self.role}>"


class EventTypeRow(Base):
    """Festival category (music festival, ren faire, car show, ...)."""

    __tablename__ = "event_types"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    map_indicator: Mapped[str] = mapped_column(String(64), default="")
    category: Mapped[str] = mapped_column(String(64), default="")

    def __repr__(self) -> str:
        return f"<EventType {self.name}>"


class EventRow(Base):
    """A festival.

    `event_data` stores the full festival document; the other columns are
    derived copies used for filtering.
    """

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    website: Mapped[str | None] = mapped_column(String(512))
    event_type_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("event_types.id"), nullable=False
    )

    # Denormalized from event_data
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)
    start_date: Mapped[date | None] = mapped_column(Date)
    end_date: Mapped[date | None] = mapped_column(Date)
    camping_allowed: Mapped[bool] = mapped_column(Boolean, default=False)

    event_data: Mapped[str] = mapped_column(Text, nullable=False)
    owner_user_id: Mapped[str | None] = mapped_column(String(36))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Reads always need the type, and an event without one is not listed
    event_type: Mapped[EventTypeRow] = relationship(lazy="joined", innerjoin=True)

    __table_args__ = (
        Index("ix_events_type", "event_type_id"),
        Index("ix_events_coordinates", "latitude", "longitude"),
        Index("ix_events_owner", "owner_user_id"),
        # Deleted ids are never reused on SQLite either
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<Event {self.id} {self.name[:30]}>"


class MicroeventRow(Base):
    """A sub-activity scheduled within a festival."""

    __tablename__ = "microevents"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    archive: Mapped[bool] = mapped_column(Boolean, default=False)
    description: Mapped[str | None] = mapped_column(Text)
    start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_microevents_event", "event_id"),
        Index("ix_microevents_user", "user_id"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<Microevent {self.id} {self.name[:30]}>"


class UserEventDataRow(Base):
    """Per-user favorites, saves and created content, as JSON id lists."""

    __tablename__ = "user_event_data"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)

    favorite_events: Mapped[list[int] | None] = mapped_column(IdList, default=list)
    favorite_microevents: Mapped[list[int] | None] = mapped_column(IdList, default=list)
    saved_events: Mapped[list[int] | None] = mapped_column(IdList, default=list)
    saved_microevents: Mapped[list[int] | None] = mapped_column(IdList, default=list)
    created_events: Mapped[list[int] | None] = mapped_column(IdList, default=list)
    created_microevents: Mapped[list[int] | None] = mapped_column(IdList, default=list)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<UserEventData user_id={self.user_id} v{self.version}>"
