"""SQLAlchemy declarative Base for the account models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base; Base.metadata drives create_all and Alembic autogenerate."""

    pass
