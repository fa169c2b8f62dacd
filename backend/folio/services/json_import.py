"""Bulk import of a whole portfolio from a JSON object (dashboard paste, chat wizard)."""

import logging
from typing import Any

from folio.core.exceptions import EmptyResult
from folio.db import models
from folio.schemas.portfolio import Theme
from folio.services.document import DocumentParseResult, parse_document
from folio.services.merge import merge_sections
from folio.services.portfolio_store import PortfolioStore
from folio.services.sections import username_for

logger = logging.getLogger(__name__)


def save_portfolio_from_json(store: PortfolioStore, user: models.User, data: Any) -> DocumentParseResult:
    """
    Replace the principal's whole document with the sections found in `data`.

    Raises EmptyResult when none of the seven section keys yields a section.
    """
    username = username_for(user)
    parsed = parse_document(data)

    if parsed.unrecognized:
        logger.warning(f"Ignoring unrecognized keys in JSON import: {parsed.unrecognized}")
    if parsed.malformed:
        logger.warning(f"Skipping malformed sections in JSON import: {parsed.malformed}")

    if not parsed.ok:
        message = "No valid sections found"
        if parsed.unrecognized:
            message += f" (unrecognized keys: {', '.join(parsed.unrecognized)})"
        raise EmptyResult(message)

    existing = store.find_by_owner(user.id)
    theme = existing.theme if existing is not None else Theme.DEFAULT.value

    store.upsert(user.id, username, merge_sections([], parsed.document), published=True, theme=theme)
    logger.info(f"Imported {parsed.kinds} from JSON for {username!r}")
    return parsed
