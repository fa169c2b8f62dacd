# File: backend/folio/api/deps.py
from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from folio.db.database import get_db
from folio.llm.claude_client import ClaudeClient
from folio.llm.openai_client import OpenAIClient
from folio.llm.resume_parser import ResumeParser
from folio.services.portfolio_store import PortfolioStore


def get_store(db: Session = Depends(get_db)) -> PortfolioStore:
    return PortfolioStore(db)


def get_resume_parser() -> ResumeParser:
    # Provider clients are created lazily so a missing key only fails the import
    return ResumeParser()


def get_openai_client() -> OpenAIClient:
    try:
        return OpenAIClient()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


def get_claude_client() -> ClaudeClient:
    try:
        return ClaudeClient()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
