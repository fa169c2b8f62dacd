"""
Auth endpoints. Sign-in happens client-side against Supabase; this module
only exposes /me for the frontend.
"""

from fastapi import APIRouter, Depends
from typing import Any

from folio.db import models
from folio.core.supabase_auth import get_current_user
from folio.services.document import slugify

router = APIRouter()


@router.get("/me")
async def read_users_me(
    current_user: models.User = Depends(get_current_user),
) -> Any:
    """Get current authenticated user."""
    return {
        "id": current_user.id,
        "supabase_id": current_user.supabase_id,
        "email": current_user.email,
        "name": current_user.name,
        "username": slugify(current_user.name or ""),
    }
