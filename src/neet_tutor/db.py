"""Supabase client creation and table helpers."""
import logging
from typing import Optional

from supabase import Client, create_client

from neet_tutor.errors import SupabaseNotConfiguredError

logger = logging.getLogger(__name__)

QUESTIONS_TABLE = "questions"
MESSAGES_TABLE = "messages"
FILES_TABLE = "files"
FOLDERS_TABLE = "folders"


def get_client(url: str, key: str) -> Optional[Client]:
    """Return a Supabase client, or None when credentials are missing."""
    if not url or not key:
        logger.info("Supabase credentials not set; running without a remote store")
        return None
    return create_client(url.strip(), key.strip())


def _require(client) -> None:
    if client is None:
        raise SupabaseNotConfiguredError("SUPABASE_URL and SUPABASE_KEY must be set")


def fetch_rows(client, table: str, filters: Optional[dict] = None,
               order: Optional[str] = "created_at") -> list[dict]:
    """Select all columns, filtered by equality, ascending by ``order``."""
    _require(client)
    query = client.table(table).select("*")
    for column, value in (filters or {}).items():
        query = query.eq(column, value)
    if order:
        query = query.order(order)
    result = query.execute()
    return result.data or []


def insert_rows(client, table: str, rows) -> list[dict]:
    """Insert one row (dict) or many (list); returns the stored rows."""
    _require(client)
    result = client.table(table).insert(rows).execute()
    return result.data or []


def delete_rows(client, table: str, filters: dict) -> None:
    _require(client)
    query = client.table(table).delete()
    for column, value in filters.items():
        query = query.eq(column, value)
    query.execute()
