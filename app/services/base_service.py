"""Shared lookups and inserts for the catalog and account services."""

from typing import Any, Generic, TypeVar

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(Generic[ModelType]):
    """Primary-key access to one mapped table."""

    def __init__(self, db: AsyncSession, model: type[ModelType]):
        self.db = db
        self.model = model

    async def get_by_id(self, id: Any) -> ModelType | None:
        return await self.db.get(self.model, id)

    async def create(self, obj: ModelType) -> ModelType:
        """Insert ``obj``; the session is rolled back if the insert fails."""
        self.db.add(obj)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to create {self.model.__tablename__} row: {e}")
            raise
        await self.db.refresh(obj)
        return obj
