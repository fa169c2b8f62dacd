"""
Supabase Auth dependency for FastAPI.
Validates Supabase JWT tokens and auto-creates local user records.
The user's display name is synced on every request, since the public
username is derived from it.
"""

import os
import jwt
import httpx
import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from folio.core.config import settings
from folio.db.database import get_db
from folio.db import models

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)  # Don't auto-error so dev mode can skip

# Cache the JWKS for performance
_jwks_cache = None


async def _get_jwks() -> dict:
    """Fetch JWKS from Supabase for JWT verification."""
    global _jwks_cache
    if _jwks_cache is not None:
        return _jwks_cache

    jwks_url = f"{settings.SUPABASE_URL}/auth/v1/.well-known/jwks.json"
    async with httpx.AsyncClient() as client:
        response = await client.get(jwks_url)
        response.raise_for_status()
        _jwks_cache = response.json()
        return _jwks_cache


def _decode_token_with_jwks(token: str, jwks: dict) -> dict:
    """Decode and verify a Supabase JWT using JWKS."""
    unverified_header = jwt.get_unverified_header(token)
    kid = unverified_header.get("kid")

    signing_key = None
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            signing_key = jwt.algorithms.RSAAlgorithm.from_jwk(key)
            break

    if signing_key is None:
        raise jwt.InvalidTokenError("Unable to find signing key")

    return jwt.decode(
        token,
        signing_key,
        algorithms=["RS256"],
        audience="authenticated",
        options={"verify_exp": True},
    )


def _decode_token_with_secret(token: str) -> dict:
    """Projects still on HS256 sign tokens with the project JWT secret."""
    return jwt.decode(
        token,
        settings.SUPABASE_JWT_SECRET,
        algorithms=["HS256"],
        audience="authenticated",
    )


async def decode_token(token: str) -> dict:
    if jwt.get_unverified_header(token).get("alg") == "HS256":
        if not settings.SUPABASE_JWT_SECRET:
            raise jwt.InvalidTokenError("HS256 token but SUPABASE_JWT_SECRET is not set")
        return _decode_token_with_secret(token)
    try:
        jwks = await _get_jwks()
    except httpx.HTTPError as e:
        logger.error(f"Could not fetch JWKS: {e}")
        raise jwt.InvalidTokenError("Unable to fetch signing keys")
    return _decode_token_with_jwks(token, jwks)


def display_name_from_claims(payload: dict) -> str:
    """Full name from the OAuth profile, falling back to the email local part."""
    metadata = payload.get("user_metadata") or {}
    name = metadata.get("full_name") or metadata.get("name") or ""
    if not name and payload.get("email"):
        name = payload["email"].split("@", 1)[0]
    return name


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> models.User:
    """
    Validate Supabase JWT and return the local user record.
    Auto-creates user if they don't exist yet.
    """
    # Dev mode: return first user or create a dev user
    if os.environ.get("DEV_MODE", "").lower() == "true":
        user = db.query(models.User).first()
        if not user:
            user = models.User(
                email="dev@localhost",
                name="Dev User",
                supabase_id="dev-local-user",
                is_active=True,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            logger.info("Dev mode: created dev user")
        return user

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = await decode_token(credentials.credentials)
        sub = payload.get("sub")  # Supabase user UUID
        email = payload.get("email")
        if sub is None:
            raise credentials_exception
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        logger.error(f"Invalid token: {e}")
        raise credentials_exception

    name = display_name_from_claims(payload)

    user = db.query(models.User).filter(models.User.supabase_id == sub).first()
    if user is None:
        user = models.User(
            supabase_id=sub,
            email=email or "",
            name=name,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"Auto-created user {user.id} for Supabase ID: {sub}")
        return user

    # Sync email / display name if they changed
    changed = False
    if email and user.email != email:
        user.email = email
        changed = True
    if name and user.name != name:
        user.name = name
        changed = True
    if changed:
        db.commit()

    return user
