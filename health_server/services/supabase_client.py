"""Supabase client for database operations."""

from functools import lru_cache
from typing import Optional

from supabase import Client, create_client

from ..config import get_settings
from ..logging_config import get_logger

logger = get_logger(__name__)

REQUIRED_TABLES = ("reminders", "users", "health_reports", "weekly_plans")


@lru_cache(maxsize=1)
def get_supabase_client() -> Optional[Client]:
    """Get Supabase client instance."""
    settings = get_settings()

    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("Supabase credentials not configured")
        return None

    try:
        client = create_client(settings.supabase_url, settings.supabase_key)
        logger.info("Supabase client initialized successfully")
        return client
    except Exception as e:
        logger.error(f"Failed to initialize Supabase client: {e}")
        return None


def verify_database_tables() -> bool:
    """Check that every table the reminder services read is reachable."""
    client = get_supabase_client()
    if not client:
        logger.error("Cannot verify tables: Supabase client not available")
        return False

    ok = True
    for table in REQUIRED_TABLES:
        try:
            client.table(table).select('id').limit(1).execute()
        except Exception as e:
            logger.error(f"Table '{table}' is not accessible: {e}")
            ok = False
    if ok:
        logger.info("Database tables verified")
    return ok
