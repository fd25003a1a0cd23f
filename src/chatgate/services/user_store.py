"""Credential store — the durable record of registered users.

Learn: Routes and the auth service talk to the UserStore interface, never
to a concrete backend. Two capabilities matter: look a user up by email,
and insert a user if the email is not taken yet. Both backends make that
insert atomic:

- SqlUserStore leans on the UNIQUE(email) constraint: the database
  rejects the second of two racing inserts.
- JsonFileUserStore keeps the whole record set in one JSON file, read in
  full and rewritten in full on every insert. An asyncio.Lock serializes
  writers so a read-modify-write can't lose an update, and the rewrite
  goes through a temp file + rename so readers never see half a file.
  The lock is per process; run a single worker with this backend.

Stores raise DuplicateEmailError and nothing user-facing beyond that.
"""

import asyncio
import json
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatgate.db.models import User, new_user_id, utcnow
from chatgate.errors import DuplicateEmailError

logger = structlog.get_logger()


@dataclass(frozen=True)
class UserRecord:
    """A stored user. password_hash never leaves the server."""

    id: str
    email: str
    name: str
    password_hash: str
    created_at: datetime

    @classmethod
    def from_model(cls, user: User) -> "UserRecord":
        created_at = user.created_at
        if created_at.tzinfo is None:
            # SQLite hands back naive datetimes; we only ever store UTC
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            password_hash=user.password_hash,
            created_at=created_at,
        )


class UserStore(ABC):
    """Storage interface for user records."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        """Exact, case-sensitive email lookup."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    async def create(self, email: str, name: str, password_hash: str) -> UserRecord:
        """Insert a new user. Raises DuplicateEmailError if the email exists."""

    @abstractmethod
    async def count(self) -> int:
        ...


class SqlUserStore(UserStore):
    """UserStore backed by SQLAlchemy (sqlite+aiosqlite or postgresql+asyncpg)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        async with self.session_factory() as db:
            result = await db.execute(select(User).where(User.email == email))
            user = result.scalars().first()
            return UserRecord.from_model(user) if user else None

    async def get(self, user_id: str) -> Optional[UserRecord]:
        async with self.session_factory() as db:
            user = await db.get(User, user_id)
            return UserRecord.from_model(user) if user else None

    async def create(self, email: str, name: str, password_hash: str) -> UserRecord:
        async with self.session_factory() as db:
            user = User(
                id=new_user_id(),
                email=email,
                name=name,
                password_hash=password_hash,
                created_at=utcnow(),
            )
            db.add(user)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                # Only the email constraint means "taken"; anything else is a bug
                if await self.find_by_email(email) is None:
                    raise
                raise DuplicateEmailError()
            return UserRecord.from_model(user)

    async def count(self) -> int:
        async with self.session_factory() as db:
            result = await db.execute(select(func.count()).select_from(User))
            return int(result.scalar_one())


class JsonFileUserStore(UserStore):
    """UserStore backed by a flat JSON file (or process memory if path is None)."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else None
        self._memory: list[dict] = []
        self._lock = asyncio.Lock()

    # ─── Whole-file read / write ─────────────────────────

    def _read_all(self) -> list[dict]:
        if self.path is None:
            return [dict(r) for r in self._memory]
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return data.get("users", [])

    def _write_all(self, records: list[dict]) -> None:
        if self.path is None:
            self._memory = records
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=".users-", suffix=".json"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"users": records}, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def _load(self) -> list[dict]:
        if self.path is None:
            return self._read_all()
        return await asyncio.to_thread(self._read_all)

    @staticmethod
    def _to_record(raw: dict) -> UserRecord:
        return UserRecord(
            id=raw["id"],
            email=raw["email"],
            name=raw["name"],
            password_hash=raw["password_hash"],
            created_at=datetime.fromisoformat(raw["created_at"]),
        )

    # ─── UserStore ───────────────────────────────────────

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        for raw in await self._load():
            if raw["email"] == email:
                return self._to_record(raw)
        return None

    async def get(self, user_id: str) -> Optional[UserRecord]:
        for raw in await self._load():
            if raw["id"] == user_id:
                return self._to_record(raw)
        return None

    async def create(self, email: str, name: str, password_hash: str) -> UserRecord:
        async with self._lock:
            records = await self._load()
            if any(r["email"] == email for r in records):
                raise DuplicateEmailError()

            record = UserRecord(
                id=new_user_id(),
                email=email,
                name=name,
                password_hash=password_hash,
                created_at=utcnow(),
            )
            raw = asdict(record)
            raw["created_at"] = record.created_at.isoformat()
            records.append(raw)

            if self.path is None:
                self._write_all(records)
            else:
                await asyncio.to_thread(self._write_all, records)

        logger.debug("user_store.persisted", backend="file", users=len(records))
        return record

    async def count(self) -> int:
        return len(await self._load())


def build_user_store(backend: str, *, session_factory=None, path=None) -> UserStore:
    """Pick the backend named by CHATGATE_USER_STORE_BACKEND."""
    if backend == "sql":
        if session_factory is None:
            raise ValueError("sql user store needs a session factory")
        return SqlUserStore(session_factory)
    if backend == "file":
        return JsonFileUserStore(Path(path) if path else None)
    raise ValueError(f"Unknown user store backend: {backend!r}")
