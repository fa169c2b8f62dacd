"""
Persistence gateway for portfolios.

One row per owner and per username. upsert() is keyed on the unique
username and commits once, so concurrent writers resolve to whichever
commit lands last. Every successful write invalidates the cached public page.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from folio.core.exceptions import PersistenceError, PortfolioError, UsernameTaken
from folio.db import models
from folio.schemas.portfolio import PortfolioDocument, Theme
from folio.services.document import dump_document, load_document
from folio.services.merge import merge_sections
from folio.services.page_cache import PORTFOLIO_TAG, invalidate

logger = logging.getLogger(__name__)


def _theme_value(theme: Union[Theme, str, None]) -> str:
    if theme is None:
        return Theme.DEFAULT.value
    return theme.value if isinstance(theme, Theme) else str(theme)


class PortfolioStore:
    def __init__(self, db: Session):
        self.db = db

    def find_by_username(self, username: str) -> Optional[models.Portfolio]:
        return self.db.query(models.Portfolio).filter(models.Portfolio.username == username).first()

    def find_by_owner(self, owner_id: int) -> Optional[models.Portfolio]:
        return self.db.query(models.Portfolio).filter(models.Portfolio.user_id == owner_id).first()

    def get_document(self, portfolio: Optional[models.Portfolio]) -> PortfolioDocument:
        if portfolio is None:
            return []
        # Folding onto an empty document collapses any duplicate kinds in old rows
        return merge_sections([], load_document(portfolio.content))

    def upsert(
        self,
        owner_id: int,
        username: str,
        document: PortfolioDocument,
        published: bool = False,
        theme: Union[Theme, str, None] = Theme.DEFAULT,
    ) -> models.Portfolio:
        """Insert or update the portfolio stored under `username`."""
        stale = {username}
        try:
            row = self.find_by_username(username)
            if row is not None and row.user_id != owner_id:
                logger.warning(f"Owner {owner_id} tried to write username {username!r} owned by {row.user_id}")
                raise UsernameTaken()

            if row is None:
                # Owner renamed: move their single row to the new username
                row = self.find_by_owner(owner_id)
                if row is not None:
                    logger.info(f"Re-keying portfolio {row.id} from {row.username!r} to {username!r}")
                    stale.add(row.username)
                    row.username = username

            if row is None:
                row = models.Portfolio(id=str(uuid.uuid4()), user_id=owner_id, username=username)
                self.db.add(row)
                logger.info(f"Creating portfolio {row.id} for owner {owner_id} as {username!r}")

            row.content = dump_document(merge_sections([], document))
            row.published = published
            row.theme = _theme_value(theme)
            row.updated_at = datetime.now(timezone.utc)

            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error saving portfolio {username!r}: {e}")
            raise PersistenceError("Failed to save portfolio") from e

        logger.info(f"Saved portfolio {username!r} ({len(document)} sections, published={published})")
        for name in stale:
            invalidate(PORTFOLIO_TAG, name)
        return row

    def update_settings(
        self,
        owner_id: int,
        published: Optional[bool] = None,
        theme: Union[Theme, str, None] = None,
    ) -> models.Portfolio:
        """Toggle the publish flag and/or pick a theme without touching content."""
        row = self.find_by_owner(owner_id)
        if row is None:
            raise PortfolioError("Portfolio not found", status_code=404)

        try:
            if published is not None:
                row.published = published
            if theme is not None:
                row.theme = _theme_value(theme)
            row.updated_at = datetime.now(timezone.utc)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating portfolio settings for owner {owner_id}: {e}")
            raise PersistenceError("Failed to save portfolio settings") from e

        invalidate(PORTFOLIO_TAG, row.username)
        return row
