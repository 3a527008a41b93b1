"""
SQLAlchemy Base Configuration

Declarative base shared by the gamification and user tables. Alembic
autogenerates against ``metadata``, so constraint names follow the
naming convention below.
"""

from sqlalchemy import MetaData, inspect
from sqlalchemy.orm import declarative_base

metadata = MetaData(naming_convention={
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
})

Base = declarative_base(metadata=metadata)


class ModelBase(Base):
    """Base class for all LearnQuest tables."""

    __abstract__ = True

    def __repr__(self) -> str:
        identity = inspect(self).identity
        key = ", ".join(str(value) for value in identity) if identity else "pending"
        return f"<{type(self).__name__} {key}>"
