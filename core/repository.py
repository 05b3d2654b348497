"""Repository pattern base class for database operations.

Wraps an `AsyncSession` with the CRUD calls the store needs. Every mutating
method commits before returning so a subsequent read, in this or any other
session, observes the write.
"""

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from typing import TypeVar, Generic, Type, Optional, List, Any, Dict, Sequence

T = TypeVar('T')


class BaseRepository(Generic[T]):
    """Generic async repository over one mapped model.

    Attributes:
        model: SQLAlchemy model class to operate on.
        session: Async session used for every statement.
    """

    def __init__(self, model: Type[T], session: AsyncSession):
        self.model = model
        self.session = session

    async def create(self, obj: T) -> T:
        """Add, commit and refresh a new object.

        Args:
            obj: Model instance to persist.

        Returns:
            The persisted object with its generated primary key.
        """
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    async def get_by_id(self, id: Any) -> Optional[T]:
        """Retrieve an object by its primary key, or None if absent."""
        return await self.session.get(self.model, id)

    async def find(self, *criteria, order_by: Sequence[Any] = ()) -> List[T]:
        """Return all rows matching `criteria`, ordered by `order_by`."""
        stmt = select(self.model).where(*criteria).order_by(*order_by)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_by_id(self, id: Any, values: Dict[str, Any]) -> int:
        """Apply `values` to the row with primary key `id` and commit.

        Returns:
            Number of rows affected (0 when the id does not exist).
        """
        stmt = update(self.model).where(self.model.id == id).values(**values)
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount

    async def delete_by_id(self, id: Any) -> bool:
        """Delete the row with primary key `id`.

        Returns:
            True if a row was deleted, False if none matched.
        """
        stmt = delete(self.model).where(self.model.id == id)
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount > 0

    async def count(self) -> int:
        """Count total number of records."""
        result = await self.session.execute(select(func.count()).select_from(self.model))
        return result.scalar_one()
