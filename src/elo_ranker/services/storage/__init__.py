from .engine import create_db_engine, init_db, supports_row_locks
from .item_repository import (
    ItemRepository,
    RatingWrite,
    fetch_items_for_update,
    write_ratings,
)
from .repository import AsyncRepository

__all__ = [
    "AsyncRepository",
    "ItemRepository",
    "RatingWrite",
    "create_db_engine",
    "fetch_items_for_update",
    "init_db",
    "supports_row_locks",
    "write_ratings",
]
