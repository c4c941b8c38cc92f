# app/repositories/base_repository.py
from typing import TypeVar, Generic, Type, List, Optional, Any, Dict

from sqlalchemy.orm import Session

from app.db.base import Base

ModelType = TypeVar("ModelType", bound=Base) # type: ignore


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common persistence operations.
    Extend this class for specific models.
    """
    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    def _query(self, **filters):
        query = self.db.query(self.model)
        for key, value in filters.items():
            query = query.filter(getattr(self.model, key) == value)
        return query

    def get_by(self, **filters) -> Optional[ModelType]:
        """Get a single record by column equality filters."""
        return self._query(**filters).first()

    def get_by_for_update(self, **filters) -> Optional[ModelType]:
        """
        Get a single record and take a row lock until the next commit.

        Use for read-modify-write sequences on one row.
        """
        return self._query(**filters).with_for_update().populate_existing().first()

    def list(self, **filters) -> List[ModelType]:
        """Get every record matching the filters."""
        return self._query(**filters).order_by(self.model.id).all()

    def add(self, data: Dict[str, Any]) -> ModelType:
        """Create a new record from a dict of column values."""
        db_obj = self.model(**data)
        return self.save(db_obj)

    def save(self, obj: ModelType) -> ModelType:
        """Save an already instantiated model object."""
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def delete(self, obj: ModelType) -> None:
        """Delete a record."""
        self.db.delete(obj)
        self.db.commit()
