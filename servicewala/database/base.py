"""
database/base.py

Defines the declarative base class for SQLAlchemy ORM models and the
portable column types shared across models.
"""

from sqlalchemy import JSON, String
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import DeclarativeBase

# text[] on PostgreSQL, JSON elsewhere
StringList = JSON().with_variant(ARRAY(String), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass
