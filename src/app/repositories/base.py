"""Base repository with generic soft-delete aware operations."""
from datetime import datetime, timezone
from typing import Generic, Iterable, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import BaseModel

T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """Generic repository; soft-deleted rows are invisible to every read."""

    def __init__(self, db: AsyncSession, model: Type[T]):
        self.db = db
        self.model = model

    async def get_by_id(self, id: UUID) -> T | None:
        """Get a live record by ID."""
        result = await self.db.execute(
            select(self.model).where(self.model.id == id, self.model.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    async def add_all(self, objs: Iterable[T]) -> list[T]:
        """Insert records in one commit."""
        objs = list(objs)
        self.db.add_all(objs)
        await self.db.commit()
        return objs

    async def soft_delete(self, id: UUID) -> bool:
        """Mark a record deleted; returns False when it does not exist."""
        obj = await self.get_by_id(id)
        if not obj:
            return False

        obj.deleted_at = datetime.now(timezone.utc)
        await self.db.commit()
        return True
