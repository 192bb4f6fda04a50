"""Authentication helpers integrating AWS Cognito JWTs.

Two FastAPI dependencies gate every user-facing route:

1. ``get_current_identity`` extracts the ``Authorization: Bearer <id_token>``
   header and verifies signature, expiration, audience and issuer against the
   (cached) JSON Web Key Set of the Cognito User Pool. It never touches the
   database, so an unauthenticated call fails before a session is opened.
2. ``get_current_user`` resolves the verified identity to a ``models.User``
   row and raises ``NotFoundError`` when the profile does not exist yet.

Settings consumed (see ``settings.py``):
    AUTH_ENABLED             - when false, a fixed local identity is used
    COGNITO_USER_POOL_ID     - e.g. "us-east-1_abcd1234"
    COGNITO_APP_CLIENT_ID    - the user-pool client facing ID (audience)
    AWS_REGION               - pool region (falls back to us-east-1)
"""
from __future__ import annotations

import time
from functools import lru_cache
from typing import Annotated, Optional

import httpx
import structlog
from fastapi import Depends, Request
from jose import JWTError, jwt
from pydantic import BaseModel
from sqlalchemy.orm import Session

import crud
import models
import schemas
from database import get_db
from errors import CareerCoachError, NotFoundError, UnauthorizedError
from settings import Settings, get_settings

logger = structlog.get_logger(__name__)

LOCAL_SUB = "local-dev"
LOCAL_EMAIL = "local@example.com"


class TokenPayload(BaseModel):
    sub: str
    email: Optional[str] = None
    name: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    picture: Optional[str] = None
    exp: int
    aud: str

    @property
    def display_name(self) -> Optional[str]:
        if self.name:
            return self.name
        full = " ".join(part for part in (self.given_name, self.family_name) if part)
        return full or None


class AuthSettings(BaseModel):
    region: str
    user_pool_id: str
    client_id: str

    @property
    def issuer(self) -> str:  # cognito issuer URL
        return f"https://cognito-idp.{self.region}.amazonaws.com/{self.user_pool_id}"

    @property
    def jwks_url(self) -> str:
        return f"{self.issuer}/.well-known/jwks.json"


def _auth_settings(settings: Settings) -> AuthSettings:
    if not settings.cognito_user_pool_id or not settings.cognito_app_client_id:
        logger.error("Cognito auth enabled but user pool settings are missing")
        raise CareerCoachError("Authentication is not configured")
    return AuthSettings(
        region=settings.aws_region or "us-east-1",
        user_pool_id=settings.cognito_user_pool_id,
        client_id=settings.cognito_app_client_id,
    )


@lru_cache
def _get_jwks(jwks_url: str) -> dict:
    logger.info("Fetching JWKS", jwks_url=jwks_url)
    resp = httpx.get(jwks_url, timeout=10)
    resp.raise_for_status()
    return resp.json()


def local_identity() -> TokenPayload:
    return TokenPayload(
        sub=LOCAL_SUB,
        email=LOCAL_EMAIL,
        name="Local Developer",
        exp=int(time.time()) + 3600,
        aud="local",
    )


def verify_token(token: str, settings: Settings) -> TokenPayload:
    """Verify a Cognito ID token and return its claims.

    Raises UnauthorizedError on any verification failure.
    """
    auth_settings = _auth_settings(settings)
    jwks = _get_jwks(auth_settings.jwks_url)

    try:
        payload = jwt.decode(
            token,
            jwks,
            algorithms=["RS256"],
            audience=auth_settings.client_id,
            issuer=auth_settings.issuer,
            options={"verify_at_hash": False},
        )
        return TokenPayload.model_validate(payload)
    except JWTError as exc:
        logger.warning("JWT verification failed", exc=str(exc))
        raise UnauthorizedError("Invalid token") from exc


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


# Helper to extract Authorization header (works with FastAPI DI)
def _get_authorization_header(request: Request) -> Optional[str]:
    return request.headers.get("Authorization")


# --- FastAPI dependencies ---
async def get_current_identity(
    authorization: Annotated[Optional[str], Depends(_get_authorization_header)],
    settings: Settings = Depends(get_settings),
) -> TokenPayload:
    if not settings.auth_enabled:
        return local_identity()

    token = bearer_token(authorization)
    if token is None:
        raise UnauthorizedError()
    return verify_token(token, settings)


async def get_current_user(
    identity: TokenPayload = Depends(get_current_identity),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> models.User:
    user = crud.get_user_by_cognito_sub(db, identity.sub)
    if user:
        return user

    if not settings.auth_enabled:
        # Local dev: always return / create the default user
        user = crud.create_user(
            db,
            schemas.UserCreate(email=identity.email, cognito_sub=identity.sub, name=identity.display_name),
        )
        db.commit()
        return user

    raise NotFoundError()
