"""
Declarative base for all ORM models.

Models import ``Base`` from here; Alembic and the test suite use
``Base.metadata`` to create the schema.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
