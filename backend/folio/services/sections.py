"""Single-section saves from the dashboard forms."""

import logging

from folio.core.exceptions import SectionValidationError, Unauthorized
from folio.db import models
from folio.schemas.portfolio import PortfolioSection, Theme
from folio.services.document import slugify
from folio.services.merge import replace_section
from folio.services.portfolio_store import PortfolioStore

logger = logging.getLogger(__name__)


def username_for(user: models.User) -> str:
    """The public username of a principal, derived from their display name."""
    if user is None:
        raise Unauthorized("Unauthorized")
    username = slugify(user.name or "")
    if not username:
        raise SectionValidationError("A display name is required to publish a portfolio")
    return username


def persist_section(store: PortfolioStore, user: models.User, section: PortfolioSection) -> models.Portfolio:
    """Replace one section of the principal's document and publish it."""
    username = username_for(user)

    existing = store.find_by_owner(user.id)
    current = store.get_document(existing)
    theme = existing.theme if existing is not None else Theme.DEFAULT.value

    next_doc = replace_section(current, section)
    logger.info(f"Saving {section.section!r} section for {username!r}")
    return store.upsert(user.id, username, next_doc, published=True, theme=theme)
