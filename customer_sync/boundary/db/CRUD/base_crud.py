"""
Base CRUD operations for SQLAlchemy models.

Provides generic Create, Read, Update, Delete operations shared by the
model-specific CRUD classes. Methods flush but never commit; the calling
service owns the transaction.

Dependencies: sqlalchemy, uuid
System role: Foundation for all database CRUD operations
"""

from typing import Any, Generic, TypeVar, Sequence
from uuid import UUID

from sqlalchemy import func, select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from customer_sync.boundary.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseCRUD(Generic[ModelT]):
    """
    Generic base class for CRUD operations.

    Type Parameters:
        ModelT: SQLAlchemy model class inheriting from Base

    Attributes:
        model: The SQLAlchemy model class to operate on
    """

    def __init__(self, model: type[ModelT]) -> None:
        self.model = model

    async def create(self, session: AsyncSession, **kwargs: Any) -> ModelT:
        """
        Insert a new row and return it with generated ID and defaults.

        Args:
            session: Async database session
            **kwargs: Model field values

        Returns:
            Created model instance
        """
        instance = self.model(**kwargs)
        session.add(instance)
        await session.flush()
        await session.refresh(instance)
        return instance

    async def get_by_id(self, session: AsyncSession, id: UUID) -> ModelT | None:
        stmt = select(self.model).where(self.model.id == id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_all(
        self,
        session: AsyncSession,
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[ModelT]:
        stmt = select(self.model).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def count_where(self, session: AsyncSession, *criteria: Any) -> int:
        """
        Count rows matching the given criteria.

        Args:
            session: Async database session
            *criteria: SQLAlchemy boolean expressions combined with AND

        Returns:
            Number of matching rows
        """
        stmt = select(func.count()).select_from(self.model).where(*criteria)
        result = await session.execute(stmt)
        return int(result.scalar_one())

    async def update_by_id(
        self,
        session: AsyncSession,
        id: UUID,
        **kwargs: Any,
    ) -> ModelT | None:
        """
        Update a row by primary key.

        Args:
            session: Async database session
            id: UUID primary key
            **kwargs: Fields to update with new values

        Returns:
            Updated model instance if found, None otherwise
        """
        return await self.update_where(session, self.model.id == id, **kwargs)

    async def update_where(
        self,
        session: AsyncSession,
        *criteria: Any,
        **kwargs: Any,
    ) -> ModelT | None:
        """
        Conditionally update a single row in one statement.

        Used for state transitions: the WHERE clause carries the expected
        current state so a concurrent writer cannot be overwritten.

        Args:
            session: Async database session
            *criteria: SQLAlchemy boolean expressions combined with AND
            **kwargs: Fields to update with new values

        Returns:
            Updated model instance, None when no row matched
        """
        stmt = (
            update(self.model)
            .where(*criteria)
            .values(**kwargs)
            .returning(self.model)
            .execution_options(populate_existing=True, synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def delete_by_id(self, session: AsyncSession, id: UUID) -> bool:
        stmt = delete(self.model).where(self.model.id == id)
        result = await session.execute(stmt)
        return result.rowcount > 0
