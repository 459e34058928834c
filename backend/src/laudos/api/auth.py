"""Bearer-token authentication for Laudos.

Tokens are issued by the identity provider; this module only validates
them. The ``sub`` claim is the user ID and the optional ``cpf`` claim
enables delegated access to processes shared through linked users.
"""

from datetime import datetime, timedelta
from typing import Annotated

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from ..config import get_settings
from ..logging import user_id_var
from ..processes.validation import clean_cpf
from . import AuthenticationError

# Security scheme
security = HTTPBearer(auto_error=False)


# =========================
# User Models
# =========================


class User(BaseModel):
    """Authenticated user information."""

    id: str
    email: str | None = None
    cpf: str | None = None
    token: str | None = None


class TokenPayload(BaseModel):
    """JWT token payload."""

    sub: str  # Subject (user ID)
    email: str | None = None
    cpf: str | None = None
    exp: datetime  # Expiration time
    iat: datetime | None = None  # Issued at time


# =========================
# JWT Functions
# =========================


def create_access_token(user_id: str, email: str | None = None, cpf: str | None = None,
                        expires_in: timedelta = timedelta(hours=8)) -> str:
    """Create a JWT access token (used by the CLI and tests)."""
    settings = get_settings()
    now = datetime.utcnow()
    payload = {"sub": user_id, "exp": now + expires_in, "iat": now}
    if email:
        payload["email"] = email
    if cpf:
        payload["cpf"] = clean_cpf(cpf)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenPayload:
    """Decode and validate a JWT access token.

    Raises:
        AuthenticationError: If token is invalid or expired
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
        return TokenPayload(**payload)
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Sessão expirada")
    except (jwt.InvalidTokenError, ValueError):
        raise AuthenticationError("Sessão expirada")


# =========================
# Dependency Injection
# =========================


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    """Get the current authenticated user.

    Raises:
        AuthenticationError: If not authenticated
    """
    if not credentials:
        raise AuthenticationError("Sessão expirada")

    payload = decode_access_token(credentials.credentials)
    user_id_var.set(payload.sub)
    return User(
        id=payload.sub,
        email=payload.email,
        cpf=clean_cpf(payload.cpf) or None,
        token=credentials.credentials,
    )


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
