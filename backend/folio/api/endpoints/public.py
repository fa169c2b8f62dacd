"""
Public portfolio pages. Unauthenticated, read-only, cached per username
until a write invalidates it.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from folio.api.deps import get_store
from folio.schemas.portfolio import PublicPortfolioResponse, Theme
from folio.services.document import serialize_document
from folio.services.page_cache import public_pages
from folio.services.portfolio_store import PortfolioStore

router = APIRouter()
logger = logging.getLogger(__name__)

KNOWN_THEMES = {t.value for t in Theme}


@router.get("/{username}", response_model=PublicPortfolioResponse)
def read_public_portfolio(
    username: str,
    store: PortfolioStore = Depends(get_store),
) -> Any:
    cached = public_pages.get(username)
    if cached is not None:
        return cached

    row = store.find_by_username(username)
    if row is None or not row.published:
        raise HTTPException(status_code=404, detail="Portfolio not found")

    known = row.theme in KNOWN_THEMES
    if not known:
        logger.warning(f"Portfolio {username!r} has unknown theme {row.theme!r}, using fallback")

    page = PublicPortfolioResponse(
        username=row.username,
        theme=row.theme if known else None,
        fallback=not known,
        document=serialize_document(store.get_document(row)),
    )
    public_pages.set(username, page)
    return page
