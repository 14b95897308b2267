"""Order stores and the clients admin sessions use to reach them."""

from pathlib import Path

from kitchen_triage.config import Settings
from kitchen_triage.store.base import OrderStore
from kitchen_triage.store.json_store import JsonFileOrderStore
from kitchen_triage.store.sqlite_store import SqliteOrderStore


def build_store(settings: Settings) -> OrderStore:
    """Pick the store implementation named by STORE_BACKEND."""
    if settings.STORE_BACKEND == "sqlite":
        Path(settings.SQLITE_PATH).parent.mkdir(parents=True, exist_ok=True)
        return SqliteOrderStore(db_path=settings.SQLITE_PATH)
    return JsonFileOrderStore(settings.ORDERS_PATH)


__all__ = [
    "JsonFileOrderStore",
    "OrderStore",
    "SqliteOrderStore",
    "build_store",
]
