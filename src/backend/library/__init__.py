"""
Library database: schema, item/tag/source writes and read-side queries.
"""

from .db import ensure_schema, open_db
from .repo import ItemRow, LibraryRepository, UnavailablePost

__all__ = [
    "ensure_schema",
    "open_db",
    "ItemRow",
    "LibraryRepository",
    "UnavailablePost",
]
