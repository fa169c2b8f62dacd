"""
Resume import pipeline.

Architecture:
  1. Validating : username shape, theme, payload presence, ownership
  2. Parsing    : resume + instructions to the text-generation provider
  3. Normalizing: first JSON object in the answer → typed sections
  4. Merging    : sections folded onto an empty document (full replace)
  5. Persisting : upsert + cache invalidation
Any failure moves to FAILED and is returned as {success: false, error}.
There are no retries; the caller decides whether to resubmit.
"""

import logging
from enum import Enum
from typing import List, Optional

from folio.core.exceptions import (
    EmptyResult,
    PortfolioError,
    SectionValidationError,
    Unauthorized,
    UsernameTaken,
)
from folio.db import models
from folio.llm.response_parsing import extract_json_object
from folio.llm.resume_parser import ResumeContent, ResumeParser
from folio.schemas.portfolio import (
    HeaderSection,
    ImportResult,
    PortfolioDocument,
    PortfolioSection,
    ResumeImportRequest,
    Theme,
)
from folio.services.document import build_header, find_section, parse_document, slugify
from folio.services.merge import replace_section
from folio.services.portfolio_store import PortfolioStore

logger = logging.getLogger(__name__)


class ImportState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    PARSING = "parsing"
    NORMALIZING = "normalizing"
    MERGING = "merging"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class ResumeImportPipeline:
    def __init__(self, store: PortfolioStore, parser: ResumeParser):
        self.store = store
        self.parser = parser
        self.state = ImportState.IDLE
        self.history: List[ImportState] = [ImportState.IDLE]

    def _enter(self, state: ImportState) -> None:
        logger.info(f"Resume import: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    async def run(self, request: ResumeImportRequest, user: Optional[models.User]) -> ImportResult:
        """Run the whole import. Never raises; failures come back as a result."""
        try:
            await self._run(request, user)
        except PortfolioError as e:
            logger.warning(f"Resume import failed while {self.state.value}: {e.message}")
            self._enter(ImportState.FAILED)
            return ImportResult(success=False, error=e.message)
        except Exception as e:
            logger.error(f"Unexpected error importing resume while {self.state.value}: {str(e)}")
            self._enter(ImportState.FAILED)
            return ImportResult(success=False, error="Failed to import resume")
        return ImportResult(success=True)

    async def _run(self, request: ResumeImportRequest, user: Optional[models.User]) -> None:
        self._enter(ImportState.VALIDATING)
        username, theme, content = self._validate(request, user)

        self._enter(ImportState.PARSING)
        response_text = await self.parser.parse(content)

        self._enter(ImportState.NORMALIZING)
        sections = self._normalize(response_text, request)

        self._enter(ImportState.MERGING)
        document: PortfolioDocument = []
        for section in sections:
            document = replace_section(document, section)

        self._enter(ImportState.PERSISTING)
        self.store.upsert(user.id, username, document, published=True, theme=theme)

        self._enter(ImportState.DONE)
        logger.info(f"Imported resume for {username!r}: {[s.section for s in document]}")

    def _validate(self, request: ResumeImportRequest, user: Optional[models.User]):
        if user is None:
            raise Unauthorized("Unauthorized")

        username = (request.username or "").strip()
        if not username or slugify(username) != username:
            raise SectionValidationError("Username can only contain lowercase letters, numbers, and hyphens")

        try:
            theme = Theme(request.theme)
        except ValueError:
            raise SectionValidationError(f"Unknown theme: {request.theme}") from None

        if request.file_type in ("binary", "pdf"):
            if not request.resume_base64:
                raise SectionValidationError("Resume file is required")
            content = ResumeContent(document_base64=request.resume_base64)
        else:
            if not (request.resume_text or "").strip():
                raise SectionValidationError("Resume text is required")
            content = ResumeContent(text=request.resume_text)

        existing = self.store.find_by_username(username)
        if existing is not None and existing.user_id != user.id:
            raise UsernameTaken("Username is already taken")

        return username, theme, content

    def _normalize(self, response_text: str, request: ResumeImportRequest) -> List[PortfolioSection]:
        parsed = parse_document(extract_json_object(response_text))
        if parsed.unrecognized:
            logger.info(f"Ignoring unrecognized keys in parsed resume: {parsed.unrecognized}")
        if parsed.malformed:
            logger.warning(f"Dropping malformed sections from parsed resume: {parsed.malformed}")
        if not parsed.ok:
            raise EmptyResult("No portfolio sections found in resume")

        return _apply_identity(parsed.document, request.name, request.avatar)


def _apply_identity(sections: List[PortfolioSection], name: Optional[str], avatar: Optional[str]) -> List[PortfolioSection]:
    """Fill a missing header (or its picture) from the signed-in user's profile."""
    header = find_section(sections, "header")
    if header is None:
        if not (name or "").strip():
            return sections
        return [build_header(name, None, avatar)] + sections

    if avatar and not header.data.display_picture:
        filled = HeaderSection(data=header.data.model_copy(update={"display_picture": avatar.strip()}))
        return [filled if s is header else s for s in sections]
    return sections
