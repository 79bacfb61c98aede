"""
Sign-out teardown for the local cache.
"""
import logging
from typing import Iterable

from bookclub.local.stores import LocalStore

logger = logging.getLogger("usecases.account")


async def clear_stores(stores: Iterable[LocalStore]) -> int:
    """
    Empty every store, continuing past individual failures.

    Returns the number of stores cleared.
    """
    cleared = 0
    for store in stores:
        try:
            await store.delete_all()
            cleared += 1
        except Exception as e:
            logger.warning(f"Failed to clear {type(store).__name__}: {e}")
    return cleared


async def sign_out_cleanup(context) -> int:
    """Drop all locally cached data belonging to the signed-out user."""
    cleared = await clear_stores(context.local_stores)
    logger.info(f"Sign-out cleanup cleared {cleared} local stores")
    return cleared
