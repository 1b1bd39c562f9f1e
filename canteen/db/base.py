"""Shared SQLAlchemy base declarative class and model imports."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


# Import model modules so metadata is populated before create_all.
from canteen.models import account as _account  # noqa: E402,F401
from canteen.models import document as _document  # noqa: E402,F401
