"""Database package."""

from agencyhub.db.base import Base, BaseModel
from agencyhub.db.batch import atomic_batch

__all__ = ["Base", "BaseModel", "atomic_batch"]
