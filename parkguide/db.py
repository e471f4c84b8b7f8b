"""
Storage for users, contact messages and park reviews.

Two interchangeable implementations share the `ParkStore` protocol: an
in-memory store for local runs and tests, and a SQLAlchemy-backed store
for Postgres (or any SQLAlchemy URL, e.g. SQLite in tests).
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    String,
    Text,
    create_engine,
    func,
    select,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from parkguide.errors import (
    StorageNotInitializedError,
    StorageUnavailableError,
    UsernameTakenError,
)

logger = logging.getLogger(__name__)

DEFAULT_PARK_REVIEWS_LIMIT = 10
DEFAULT_ALL_REVIEWS_LIMIT = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


def _check_window(limit: int, offset: int) -> None:
    if limit < 0 or offset < 0:
        raise ValueError(
            f"limit and offset must be non-negative (limit={limit}, offset={offset})"
        )


class ParkStore(Protocol):
    """Interface for persisting and querying site records."""

    def create_user(self, username: str, password: str) -> "UserRecord":
        ...

    def get_user(self, user_id: str) -> Optional["UserRecord"]:
        ...

    def get_user_by_username(self, username: str) -> Optional["UserRecord"]:
        ...

    def create_contact_message(
        self, name: str, email: str, message: str
    ) -> "ContactMessageRecord":
        ...

    def create_park_review(
        self, park_id: str, reviewer_name: str, rating: int, review_text: str
    ) -> "ParkReviewRecord":
        ...

    def get_park_reviews(
        self,
        park_id: str,
        limit: int = DEFAULT_PARK_REVIEWS_LIMIT,
        offset: int = 0,
    ) -> list["ParkReviewRecord"]:
        ...

    def get_all_reviews(
        self, limit: int = DEFAULT_ALL_REVIEWS_LIMIT, offset: int = 0
    ) -> list["ParkReviewRecord"]:
        ...


@dataclass(frozen=True)
class UserRecord:
    id: str
    username: str
    password: str


@dataclass(frozen=True)
class ContactMessageRecord:
    id: str
    name: str
    email: str
    message: str
    created_at: datetime = field(default_factory=_utcnow)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "message": self.message,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class ParkReviewRecord:
    id: str
    park_id: str
    reviewer_name: str
    rating: int
    review_text: str
    created_at: datetime = field(default_factory=_utcnow)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "park_id": self.park_id,
            "reviewer_name": self.reviewer_name,
            "rating": self.rating,
            "review_text": self.review_text,
            "created_at": self.created_at,
        }


class InMemoryParkStore:
    """Simple in-memory store for development and tests.

    Records live in dicts keyed by id and are lost when the process exits.
    Reads scan and sort the whole collection. FastAPI runs synchronous
    handlers on a thread pool, so every access goes through one lock.
    """

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.contact_messages: Dict[str, ContactMessageRecord] = {}
        self.park_reviews: Dict[str, ParkReviewRecord] = {}
        self._lock = threading.Lock()
        self._last_created_at: Optional[datetime] = None

    def _next_created_at(self) -> datetime:
        # Never go backwards, even if the wall clock does.
        now = _utcnow()
        if self._last_created_at and now < self._last_created_at:
            now = self._last_created_at
        self._last_created_at = now
        return now

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.users.clear()
            self.contact_messages.clear()
            self.park_reviews.clear()
            self._last_created_at = None

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self._lock:
            return self.users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        with self._lock:
            return self._find_user(username)

    def _find_user(self, username: str) -> Optional[UserRecord]:
        for user in self.users.values():
            if user.username == username:
                return user
        return None

    def create_user(self, username: str, password: str) -> UserRecord:
        with self._lock:
            if self._find_user(username) is not None:
                raise UsernameTakenError(username)
            user = UserRecord(id=_new_id(), username=username, password=password)
            self.users[user.id] = user
            return user

    def create_contact_message(
        self, name: str, email: str, message: str
    ) -> ContactMessageRecord:
        with self._lock:
            record = ContactMessageRecord(
                id=_new_id(),
                name=name,
                email=email,
                message=message,
                created_at=self._next_created_at(),
            )
            self.contact_messages[record.id] = record
            return record

    def create_park_review(
        self, park_id: str, reviewer_name: str, rating: int, review_text: str
    ) -> ParkReviewRecord:
        with self._lock:
            record = ParkReviewRecord(
                id=_new_id(),
                park_id=park_id,
                reviewer_name=reviewer_name,
                rating=rating,
                review_text=review_text,
                created_at=self._next_created_at(),
            )
            self.park_reviews[record.id] = record
            return record

    def _newest_first(self, park_id: Optional[str] = None) -> list[ParkReviewRecord]:
        # dicts keep insertion order, so the index breaks timestamp ties
        # in favour of the later insert.
        indexed = [
            (review.created_at, position, review)
            for position, review in enumerate(self.park_reviews.values())
            if park_id is None or review.park_id == park_id
        ]
        indexed.sort(key=lambda item: (item[0], item[1]), reverse=True)
        return [review for _, _, review in indexed]

    def get_park_reviews(
        self,
        park_id: str,
        limit: int = DEFAULT_PARK_REVIEWS_LIMIT,
        offset: int = 0,
    ) -> list[ParkReviewRecord]:
        _check_window(limit, offset)
        with self._lock:
            reviews = self._newest_first(park_id)
        return reviews[offset : offset + limit]

    def get_all_reviews(
        self, limit: int = DEFAULT_ALL_REVIEWS_LIMIT, offset: int = 0
    ) -> list[ParkReviewRecord]:
        _check_window(limit, offset)
        with self._lock:
            reviews = self._newest_first()
        return reviews[offset : offset + limit]


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        # A single shared connection keeps an in-memory SQLite database
        # alive across the request thread pool.
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {"pool_pre_ping": True, "pool_recycle": 1800}


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlParkStore:
    """
    Park records in a relational database. Postgres in production; the
    tests point it at an in-memory SQLite database.

    Every operation runs as a single statement in its own session; there are
    no multi-statement transactions.
    """

    def __init__(self, database_url: Optional[str]):
        if not database_url:
            raise StorageNotInitializedError()
        self.engine = create_engine(
            database_url, future=True, **_engine_options(database_url)
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Could not prepare tables: {e}") from e
        logger.info(
            "SQL storage ready at %s",
            self.engine.url.render_as_string(hide_password=True),
        )

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(id=row.id, username=row.username, password=row.password)

    def _to_contact_record(self, row: "ContactMessageRow") -> ContactMessageRecord:
        return ContactMessageRecord(
            id=row.id,
            name=row.name,
            email=row.email,
            message=row.message,
            created_at=_as_utc(row.created_at),
        )

    def _to_review_record(self, row: "ParkReviewRow") -> ParkReviewRecord:
        return ParkReviewRecord(
            id=row.id,
            park_id=row.park_id,
            reviewer_name=row.reviewer_name,
            rating=row.rating,
            review_text=row.review_text,
            created_at=_as_utc(row.created_at),
        )

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        try:
            with self.Session() as session:
                row = session.get(UserRow, user_id)
                return self._to_user_record(row) if row else None
        except SQLAlchemyError as e:
            raise StorageUnavailableError(str(e)) from e

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        try:
            with self.Session() as session:
                stmt = select(UserRow).where(UserRow.username == username)
                row = session.execute(stmt).scalar_one_or_none()
                return self._to_user_record(row) if row else None
        except SQLAlchemyError as e:
            raise StorageUnavailableError(str(e)) from e

    def create_user(self, username: str, password: str) -> UserRecord:
        if self.get_user_by_username(username) is not None:
            raise UsernameTakenError(username)
        try:
            with self.Session() as session:
                row = UserRow(id=_new_id(), username=username, password=password)
                session.add(row)
                session.commit()
                return self._to_user_record(row)
        except IntegrityError as e:
            # Lost a race with a concurrent insert of the same username.
            raise UsernameTakenError(username) from e
        except SQLAlchemyError as e:
            raise StorageUnavailableError(str(e)) from e

    def create_contact_message(
        self, name: str, email: str, message: str
    ) -> ContactMessageRecord:
        try:
            with self.Session() as session:
                row = ContactMessageRow(
                    id=_new_id(),
                    name=name,
                    email=email,
                    message=message,
                    created_at=_utcnow(),
                )
                session.add(row)
                session.commit()
                return self._to_contact_record(row)
        except SQLAlchemyError as e:
            raise StorageUnavailableError(str(e)) from e

    def create_park_review(
        self, park_id: str, reviewer_name: str, rating: int, review_text: str
    ) -> ParkReviewRecord:
        try:
            with self.Session() as session:
                row = ParkReviewRow(
                    id=_new_id(),
                    park_id=park_id,
                    reviewer_name=reviewer_name,
                    rating=rating,
                    review_text=review_text,
                    created_at=_utcnow(),
                )
                session.add(row)
                session.commit()
                return self._to_review_record(row)
        except SQLAlchemyError as e:
            raise StorageUnavailableError(str(e)) from e

    def _list_reviews(
        self, park_id: Optional[str], limit: int, offset: int
    ) -> list[ParkReviewRecord]:
        _check_window(limit, offset)
        stmt = select(ParkReviewRow)
        if park_id is not None:
            stmt = stmt.where(ParkReviewRow.park_id == park_id)
        stmt = (
            stmt.order_by(ParkReviewRow.created_at.desc(), ParkReviewRow.id.desc())
            .limit(limit)
            .offset(offset)
        )
        try:
            with self.Session() as session:
                rows = session.execute(stmt).scalars().all()
                return [self._to_review_record(row) for row in rows]
        except SQLAlchemyError as e:
            raise StorageUnavailableError(str(e)) from e

    def get_park_reviews(
        self,
        park_id: str,
        limit: int = DEFAULT_PARK_REVIEWS_LIMIT,
        offset: int = 0,
    ) -> list[ParkReviewRecord]:
        return self._list_reviews(park_id, limit, offset)

    def get_all_reviews(
        self, limit: int = DEFAULT_ALL_REVIEWS_LIMIT, offset: int = 0
    ) -> list[ParkReviewRecord]:
        return self._list_reviews(None, limit, offset)

    def dispose(self) -> None:
        self.engine.dispose()


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    username = Column(Text, nullable=False, unique=True)
    password = Column(Text, nullable=False)


class ContactMessageRow(Base):
    __tablename__ = "contact_messages"

    id = Column(String, primary_key=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class ParkReviewRow(Base):
    __tablename__ = "park_reviews"

    id = Column(String, primary_key=True)
    park_id = Column(Text, nullable=False, index=True)
    reviewer_name = Column(Text, nullable=False)
    rating = Column(Integer, nullable=False)
    review_text = Column(Text, nullable=False)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )
