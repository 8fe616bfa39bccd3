"""
Primary record store - the `users` table behind async SQLAlchemy.

`RecordStoreFactory.get()` hands out a connected store. A store is memoized
only after it has answered a probe query; while the database is unreachable
every call retries the probe and returns a failed `StoreResult`.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select, text, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..models.user import User, UserRole
from .errors import NotFoundError, TransientBackendError

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RecordStore:
    """Get / create / update of single user records."""

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            async with self.session_maker() as db:
                result = await db.execute(select(User).where(User.id == user_id))
                user = result.scalar_one_or_none()
                return user.to_record() if user else None
        except (SQLAlchemyError, OSError) as e:
            raise TransientBackendError(f"Could not read user record {user_id}: {e}")

    async def exists(self, user_id: str) -> bool:
        return await self.get(user_id) is not None

    async def create(self, user_id: str, email: str, fields: Dict[str, Any]) -> None:
        try:
            async with self.session_maker() as db:
                db.add(User(
                    id=user_id,
                    user_id=user_id,
                    email=email or "",
                    roles=[UserRole.STUDENT.value],
                    **fields,
                ))
                await db.commit()
        except (SQLAlchemyError, OSError) as e:
            raise TransientBackendError(f"Could not create user record {user_id}: {e}")

    async def update(self, user_id: str, fields: Dict[str, Any]) -> None:
        try:
            async with self.session_maker() as db:
                result = await db.execute(select(User).where(User.id == user_id))
                user = result.scalar_one_or_none()
                if not user:
                    raise NotFoundError(f"User record {user_id} not found")
                for name, value in fields.items():
                    setattr(user, name, value)
                user.updated_at = utc_now()
                await db.commit()
        except (SQLAlchemyError, OSError) as e:
            raise TransientBackendError(f"Could not update user record {user_id}: {e}")

    async def upsert(self, user_id: str, email: str, fields: Dict[str, Any]) -> None:
        """Update the record when it exists, otherwise create it."""
        if await self.exists(user_id):
            await self.update(user_id, fields)
        else:
            await self.create(user_id, email, fields)


@dataclass
class StoreResult:
    store: Optional[RecordStore] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.store is not None


class RecordStoreFactory:
    def __init__(self, session_maker: Optional[async_sessionmaker] = None):
        self._session_maker = session_maker
        self._store: Optional[RecordStore] = None

    def _resolve_session_maker(self) -> async_sessionmaker:
        if self._session_maker is None:
            from ..database import async_session_maker
            self._session_maker = async_session_maker
        return self._session_maker

    async def get(self) -> StoreResult:
        if self._store is not None:
            return StoreResult(store=self._store)
        try:
            session_maker = self._resolve_session_maker()
            async with session_maker() as db:
                await db.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"Primary record store unavailable: {e}")
            return StoreResult(error=TransientBackendError(str(e)))
        self._store = RecordStore(session_maker)
        logger.info("Primary record store connected")
        return StoreResult(store=self._store)


# ============================================================================
# Bulk record source (recommendation export)
# ============================================================================

class UserRecordSource:
    """Full scan of stored user records."""

    async def scan(self) -> List[Dict[str, Any]]:
        raise NotImplementedError


class SqlUserRecordSource(UserRecordSource):
    def __init__(self, session_maker: Optional[async_sessionmaker] = None):
        self._session_maker = session_maker

    async def scan(self) -> List[Dict[str, Any]]:
        if self._session_maker is None:
            from ..database import async_session_maker
            self._session_maker = async_session_maker

        try:
            async with self._session_maker() as db:
                conn = await db.connection()
                has_table = await conn.run_sync(
                    lambda sync_conn: inspect(sync_conn).has_table(User.__tablename__)
                )
                if not has_table:
                    raise NotFoundError("User table not found")
                result = await db.execute(select(User))
                return [user.to_record() for user in result.scalars().all()]
        except (SQLAlchemyError, OSError) as e:
            raise TransientBackendError(f"Could not scan user records: {e}")
