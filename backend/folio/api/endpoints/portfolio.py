"""
Portfolio endpoints: dashboard read, per-section form saves, publish/theme
settings, bulk JSON import and resume import.
"""

import base64
import logging
from typing import Any, Callable, List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, UploadFile

from folio.api.deps import get_resume_parser, get_store
from folio.core.config import settings
from folio.core.exceptions import PortfolioError
from folio.core.supabase_auth import get_current_user
from folio.db import models
from folio.llm.resume_parser import ResumeParser
from folio.schemas.portfolio import (
    ImportResult,
    JsonImportResponse,
    PortfolioResponse,
    PortfolioSection,
    PortfolioSettingsUpdate,
    ResumeImportRequest,
)
from folio.services.document import (
    build_about,
    build_education,
    build_experience,
    build_footer,
    build_header,
    build_skills,
    build_socials,
    serialize_document,
)
from folio.services.json_import import save_portfolio_from_json
from folio.services.portfolio_store import PortfolioStore
from folio.services.resume_import import ResumeImportPipeline
from folio.services.sections import persist_section

router = APIRouter()
logger = logging.getLogger(__name__)

TEXT_UPLOAD_TYPES = ("text/plain", "text/markdown")
TEXT_UPLOAD_SUFFIXES = (".txt", ".md", ".markdown")


def portfolio_url(username: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/{username}"


def _build_portfolio_response(store: PortfolioStore, row: models.Portfolio) -> PortfolioResponse:
    return PortfolioResponse(
        id=row.id,
        username=row.username,
        published=row.published,
        theme=row.theme,
        url=portfolio_url(row.username),
        document=serialize_document(store.get_document(row)),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _save_section(
    store: PortfolioStore,
    user: models.User,
    build: Callable[[], PortfolioSection],
) -> PortfolioResponse:
    try:
        row = persist_section(store, user, build())
        return _build_portfolio_response(store, row)
    except PortfolioError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error saving section: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/", response_model=PortfolioResponse)
def read_portfolio(
    current_user: models.User = Depends(get_current_user),
    store: PortfolioStore = Depends(get_store),
) -> Any:
    """Get the signed-in user's portfolio for the dashboard."""
    row = store.find_by_owner(current_user.id)
    if row is None:
        raise HTTPException(status_code=404, detail="Portfolio not found")
    return _build_portfolio_response(store, row)


@router.patch("/settings", response_model=PortfolioResponse)
def update_settings(
    update: PortfolioSettingsUpdate,
    current_user: models.User = Depends(get_current_user),
    store: PortfolioStore = Depends(get_store),
) -> Any:
    try:
        row = store.update_settings(current_user.id, published=update.published, theme=update.theme)
    except PortfolioError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return _build_portfolio_response(store, row)


# --- Section forms ---

@router.post("/sections/header", response_model=PortfolioResponse)
def save_header(
    name: str = Form(""),
    tagline: str = Form(""),
    display_picture: str = Form("", alias="displayPicture"),
    current_user: models.User = Depends(get_current_user),
    store: PortfolioStore = Depends(get_store),
) -> Any:
    return _save_section(store, current_user, lambda: build_header(name, tagline, display_picture))


@router.post("/sections/about", response_model=PortfolioResponse)
def save_about(
    markdown: str = Form(""),
    current_user: models.User = Depends(get_current_user),
    store: PortfolioStore = Depends(get_store),
) -> Any:
    return _save_section(store, current_user, lambda: build_about(markdown))


@router.post("/sections/skills", response_model=PortfolioResponse)
def save_skills(
    skills: str = Form(""),
    current_user: models.User = Depends(get_current_user),
    store: PortfolioStore = Depends(get_store),
) -> Any:
    return _save_section(store, current_user, lambda: build_skills(skills))


@router.post("/sections/socials", response_model=PortfolioResponse)
def save_socials(
    platforms: List[str] = Form([], alias="platform[]"),
    urls: List[str] = Form([], alias="url[]"),
    current_user: models.User = Depends(get_current_user),
    store: PortfolioStore = Depends(get_store),
) -> Any:
    return _save_section(store, current_user, lambda: build_socials(platforms, urls))


@router.post("/sections/footer", response_model=PortfolioResponse)
def save_footer(
    text: str = Form(""),
    current_user: models.User = Depends(get_current_user),
    store: PortfolioStore = Depends(get_store),
) -> Any:
    return _save_section(store, current_user, lambda: build_footer(text))


@router.post("/sections/experience", response_model=PortfolioResponse)
def save_experience(
    companies: List[str] = Form([], alias="company[]"),
    roles: List[str] = Form([], alias="role[]"),
    starts: List[str] = Form([], alias="start[]"),
    ends: List[str] = Form([], alias="end[]"),
    locations: List[str] = Form([], alias="location[]"),
    current_user: models.User = Depends(get_current_user),
    store: PortfolioStore = Depends(get_store),
) -> Any:
    return _save_section(
        store, current_user, lambda: build_experience(companies, roles, starts, ends, locations)
    )


@router.post("/sections/education", response_model=PortfolioResponse)
def save_education(
    institutions: List[str] = Form([], alias="institution[]"),
    degrees: List[str] = Form([], alias="degree[]"),
    starts: List[str] = Form([], alias="eduStart[]"),
    ends: List[str] = Form([], alias="eduEnd[]"),
    current_user: models.User = Depends(get_current_user),
    store: PortfolioStore = Depends(get_store),
) -> Any:
    return _save_section(
        store, current_user, lambda: build_education(institutions, degrees, starts, ends)
    )


# --- Imports ---

@router.post("/import-json", response_model=JsonImportResponse)
def import_json(
    payload: Any = Body(...),
    current_user: models.User = Depends(get_current_user),
    store: PortfolioStore = Depends(get_store),
) -> Any:
    """Replace the whole document with the sections found in a JSON object."""
    try:
        parsed = save_portfolio_from_json(store, current_user, payload)
    except PortfolioError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error importing portfolio JSON: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

    return JsonImportResponse(
        success=True,
        sections=parsed.kinds,
        unrecognized=parsed.unrecognized,
        malformed=parsed.malformed,
    )


@router.post("/import-resume", response_model=ImportResult, response_model_exclude_none=True)
async def import_resume(
    request: ResumeImportRequest,
    current_user: models.User = Depends(get_current_user),
    store: PortfolioStore = Depends(get_store),
    parser: ResumeParser = Depends(get_resume_parser),
) -> Any:
    """Build a portfolio from a resume. Always answers 200 with {success, error?}."""
    pipeline = ResumeImportPipeline(store, parser)
    return await pipeline.run(request, current_user)


@router.post("/import-resume/upload", response_model=ImportResult, response_model_exclude_none=True)
async def import_resume_upload(
    username: str = Form(...),
    theme: str = Form("default"),
    name: Optional[str] = Form(None),
    avatar: Optional[str] = Form(None),
    file: UploadFile = File(...),
    current_user: models.User = Depends(get_current_user),
    store: PortfolioStore = Depends(get_store),
    parser: ResumeParser = Depends(get_resume_parser),
) -> Any:
    """Same as /import-resume, from an uploaded .txt, .md or .pdf file."""
    file_content = await file.read()
    filename = (file.filename or "").lower()
    logger.info(f"Read {len(file_content)} bytes from uploaded file {file.filename}")

    if filename.endswith(".pdf") or file.content_type == "application/pdf":
        request = ResumeImportRequest(
            username=username,
            theme=theme,
            resume_base64=base64.b64encode(file_content).decode("ascii"),
            file_type="binary",
            name=name,
            avatar=avatar,
        )
    elif filename.endswith(TEXT_UPLOAD_SUFFIXES) or file.content_type in TEXT_UPLOAD_TYPES:
        request = ResumeImportRequest(
            username=username,
            theme=theme,
            resume_text=file_content.decode("utf-8", errors="replace"),
            file_type="text",
            name=name,
            avatar=avatar,
        )
    else:
        return ImportResult(success=False, error="Please upload a text, markdown, or PDF file.")

    pipeline = ResumeImportPipeline(store, parser)
    return await pipeline.run(request, current_user)
