"""Application models package."""

from canteen.models.account import Account
from canteen.models.document import COLLECTIONS, Document

__all__ = ["Account", "Document", "COLLECTIONS"]
