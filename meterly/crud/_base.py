"""Base class for CRUD operations."""

from typing import Any, Generic, Optional, Type, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import desc, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from meterly.models._base import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)


def dialect_insert(db: AsyncSession, model: Type[Base]) -> Any:
    """Return an INSERT construct that supports ON CONFLICT for the session's backend.

    Args:
    ----
        db (AsyncSession): The database session; its bind decides the dialect.
        model (Type[Base]): The mapped class to insert into.

    Returns:
    -------
        Insert: A PostgreSQL or SQLite insert with ``on_conflict_do_*`` support.

    Raises:
    ------
        NotImplementedError: For backends without an upsert construct.

    """
    dialect_name = db.get_bind().dialect.name
    if dialect_name == "postgresql":
        return postgresql.insert(model)
    if dialect_name == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upserts are not supported on {dialect_name}")


class CRUDBase(Generic[ModelType, CreateSchemaType]):
    """Base class for CRUD operations on account-owned tables."""

    def __init__(self, model: Type[ModelType]):
        """Initialize the CRUD object.

        Args:
        ----
            model (Type[ModelType]): The model to be used in the CRUD operations.

        """
        self.model = model

    async def get(self, db: AsyncSession, id: UUID) -> Optional[ModelType]:
        """Get a single object by ID."""
        result = await db.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def get_multi_for_account(
        self, db: AsyncSession, account_id: UUID, *, skip: int = 0, limit: int = 100
    ) -> list[ModelType]:
        """Get the newest objects owned by an account.

        Args:
        ----
            db (AsyncSession): The database session.
            account_id (UUID): The owning account.
            skip (int): The number of objects to skip.
            limit (int): The number of objects to return.

        Returns:
        -------
            list[ModelType]: A list of objects, newest first.

        """
        query = (
            select(self.model)
            .where(self.model.account_id == account_id)
            .order_by(desc(self.model.created_at))
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: Union[CreateSchemaType, dict[str, Any]],
        commit: bool = True,
    ) -> ModelType:
        """Create a new object.

        Args:
        ----
            db (AsyncSession): The database session.
            obj_in (Union[CreateSchemaType, dict]): The object to create.
            commit (bool): Commit and refresh; pass False to only flush inside a
                larger transaction.

        Returns:
        -------
            ModelType: The created object.

        """
        if not isinstance(obj_in, dict):
            obj_in = obj_in.model_dump(exclude_unset=True)
        db_obj = self.model(**obj_in)

        db.add(db_obj)
        if commit:
            await db.commit()
            await db.refresh(db_obj)
        else:
            await db.flush()
        return db_obj
