"""Shared repository plumbing over an AsyncSession."""

from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from swapgate.db.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository:
    """Single-table access. Callers own the transaction and commit."""

    def __init__(self, session: AsyncSession, model_class: type[T]):
        self.session = session
        self.model_class = model_class

    async def get_by_field(self, field: str, value: Any) -> T | None:
        """Fetch the row whose unique ``field`` equals ``value``."""
        column = getattr(self.model_class, field)
        result = await self.session.execute(select(self.model_class).where(column == value))
        return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> T:
        """Add a row and flush so defaults and the primary key are populated."""
        row = self.model_class(**kwargs)
        self.session.add(row)
        await self.session.flush()
        return row

    async def delete_older_than(self, timestamp_field: str, cutoff: datetime) -> int:
        """Retention purge: delete rows stamped strictly before ``cutoff``."""
        column = getattr(self.model_class, timestamp_field)
        result = await self.session.execute(delete(self.model_class).where(column < cutoff))
        # Matched-row count; both drivers report it for DELETE
        return result.rowcount
