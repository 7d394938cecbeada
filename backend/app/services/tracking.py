"""Tracking Toggle"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import SearchNotFoundError
from app.models.search import Search

logger = logging.getLogger(__name__)


async def set_tracked(db: AsyncSession, search_id: str, is_tracked: bool) -> Search:
    """
    Set a search's tracked flag.

    Only the flag changes; alerts and snapshots are untouched. The detector
    reads the flag when it runs, so the last write wins.
    """
    search = await db.get(Search, search_id)
    if search is None:
        raise SearchNotFoundError(search_id)

    if search.is_tracked != is_tracked:
        search.is_tracked = is_tracked
        await db.commit()
        await db.refresh(search)
        logger.info("Search %s tracking %s", search_id, "enabled" if is_tracked else "disabled")

    return search
