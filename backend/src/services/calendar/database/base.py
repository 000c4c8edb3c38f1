# Base class for calendar database models
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all calendar ORM models."""

    pass
