"""
Local datastore wiring

This module centralises how the application gets at the Record Store:
- open_store_with_retry() opens the process-wide store once at startup
- get_store() is the FastAPI dependency that hands it to the routers

The store is a single SQLite file (DATABASE_PATH in settings).
"""
import time
import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.exc import OperationalError

from petpos.core.config import settings
from petpos.core.exceptions import StorageUnavailable
from petpos.core.record_store import RecordStore

logger = logging.getLogger(__name__)


def open_store_with_retry(database_url: Optional[str] = None, max_retries=3, retry_delay=0.5) -> RecordStore:
    """
    Open the Record Store, retrying while the SQLite file is locked

    Another process holding a write lock on the file makes the first open
    fail with "database is locked"; that clears on its own, so we back off and
    retry. Any other failure is raised immediately.

    Args:
        database_url: SQLAlchemy URL (default: settings.database_url)
        max_retries: Maximum number of open attempts (default: 3)
        retry_delay: Initial delay between retries in seconds (default: 0.5)

    Returns:
        An open RecordStore

    Raises:
        StorageUnavailable: If all attempts fail

    Example:
        store = open_store_with_retry("sqlite:///petstore_pos.db")
        store.get_all("products")
    """
    database_url = database_url or settings.database_url
    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Datastore open attempt {attempt}/{max_retries}")
            store = RecordStore(database_url).open()
            logger.debug(f"Datastore open on attempt {attempt}")
            return store

        except StorageUnavailable as e:
            last_error = e
            cause = e.__cause__

            if not (isinstance(cause, OperationalError) and "locked" in str(cause)):
                logger.error(f"Datastore unavailable: {e.message}")
                raise

            logger.warning(f"Datastore locked on attempt {attempt}/{max_retries}")

            # Don't sleep after the last attempt
            if attempt < max_retries:
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)

    logger.error(f"All {max_retries} datastore open attempts failed")
    raise last_error


def get_store(request: Request) -> RecordStore:
    """
    FastAPI dependency returning the process-wide store

    Usage:
        @router.get("/items")
        def read_items(store: RecordStore = Depends(get_store)):
            ...
    """
    store = getattr(request.app.state, "store", None)
    if store is None or not store.is_open:
        raise StorageUnavailable("Datastore is not open")
    return store
