from typing import Any, Dict, Generic, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.models import Base

SQLModelType = TypeVar("SQLModelType", bound=Base)


class CRUDBase(Generic[SQLModelType]):
    def __init__(self, sql_model: Type[SQLModelType]):
        """
        Query object with default methods to Create and Read.

        Writes are only flushed, never committed: the caller owns the
        transaction so several writes can succeed or fail together.

        **Parameters**
        * `sql_model`: A SQLAlchemy model class
        """
        self.sql_model = sql_model

    async def get(self, db: AsyncSession, *, id: UUID) -> Optional[SQLModelType]:
        """Get a single object by ID."""
        stmt = select(self.sql_model).where(self.sql_model.id == id).execution_options(populate_existing=True)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, db: AsyncSession, *, obj_in: Dict[str, Any]) -> SQLModelType:
        """Add a new object and flush it so its id is available."""
        db_obj = self.sql_model(**obj_in)
        db.add(db_obj)
        await db.flush()
        return db_obj
