from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import DeclarativeBase

from doorprize.db.metadata import metadata_obj

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
ID_TYPE = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    """Declarative base sharing the project-wide naming convention."""

    metadata = metadata_obj


__all__ = ["Base", "ID_TYPE"]
