"""Bearer-token verification against the identity provider's signing keys."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Dict, Optional

import jwt
from fastapi import Header, HTTPException, status
from jwt import PyJWKClient
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.context import bind_user_id
from app.core.errors import ProviderConfigurationError

logger = logging.getLogger(__name__)

ALGORITHMS = ["RS256"]
CLOCK_SKEW_SECONDS = 5

_jwks_client: Optional[PyJWKClient] = None
_jwks_lock = Lock()


class AuthenticationError(Exception):
    """The bearer credential is missing, malformed or fails verification."""


def _get_jwks_client() -> PyJWKClient:
    global _jwks_client

    if not settings.clerk_secret_key:
        raise ProviderConfigurationError("CLERK_SECRET_KEY is not configured")

    with _jwks_lock:
        if _jwks_client is None:
            _jwks_client = PyJWKClient(
                settings.clerk_jwks_url,
                headers={"Authorization": f"Bearer {settings.clerk_secret_key}"},
                timeout=int(settings.http_timeout_seconds),
            )
        return _jwks_client


def _resolve_signing_key(token: str) -> Any:
    if settings.clerk_jwt_key:
        # PEM keys pasted into a single-line env var keep literal "\n" sequences.
        return settings.clerk_jwt_key.replace("\\n", "\n")
    return _get_jwks_client().get_signing_key_from_jwt(token).key


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Missing or invalid Authorization header")
    token = authorization[len("Bearer ") :].strip()
    if not token:
        raise AuthenticationError("Missing token")
    return token


def verify_session_token(token: str) -> str:
    """Verify a session token and return its subject claim."""
    try:
        key = _resolve_signing_key(token)
        claims: Dict[str, Any] = jwt.decode(
            token,
            key,
            algorithms=ALGORITHMS,
            leeway=CLOCK_SKEW_SECONDS,
            options={"verify_aud": False},
        )
    except jwt.PyJWTError as exc:
        raise AuthenticationError(str(exc)) from exc

    authorized_parties = settings.clerk_authorized_parties
    if authorized_parties and claims.get("azp") not in authorized_parties:
        raise AuthenticationError("Token issued for an unauthorized party")

    subject = claims.get("sub")
    if not subject or not isinstance(subject, str):
        raise AuthenticationError("Invalid token payload")
    return subject


async def get_current_user_id(authorization: Optional[str] = Header(default=None)) -> str:
    """FastAPI dependency returning the verified user id for the request."""
    try:
        token = extract_bearer_token(authorization)
        user_id = await run_in_threadpool(verify_session_token, token)
    except AuthenticationError as exc:
        logger.warning("Authentication error: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Authentication failed: {exc}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc

    bind_user_id(user_id)
    return user_id
