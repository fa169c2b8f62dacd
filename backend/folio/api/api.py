# File: backend/folio/api/api.py
from fastapi import APIRouter

from folio.api.endpoints import auth, chat, portfolio, public

api_router = APIRouter(prefix="/api")
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(portfolio.router, prefix="/portfolio", tags=["portfolio"])
api_router.include_router(public.router, prefix="/public", tags=["public"])
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
