# =============================================================================
# Session Tokens
# =============================================================================
#
# The auth layer signs the session claims (actor, role, tenant, super-admin
# flag) into a JWT. The guard surfaces decode it back into SessionClaims and
# treat the result as ground truth.
#
# =============================================================================

from datetime import timedelta

import jwt
from pydantic import ValidationError

from crmguard.auth.actor import SessionClaims
from crmguard.config import get_settings
from crmguard.core.utils import generate_id, utc_now


# =============================================================================
# Token Errors
# =============================================================================

class TokenError(Exception):
    """Base exception for token errors."""
    pass


class TokenExpiredError(TokenError):
    """Token has expired."""
    pass


class TokenInvalidError(TokenError):
    """Token is invalid or malformed."""
    pass


# =============================================================================
# Token Creation
# =============================================================================

def create_session_token(claims: SessionClaims, expires_in: timedelta | None = None) -> str:
    """Sign session claims into a JWT."""
    settings = get_settings()
    now = utc_now()
    expire = now + (expires_in or timedelta(minutes=settings.session_token_expire_minutes))

    payload = {
        "sub": claims.actor_id,
        "role": claims.role,
        "tenant_id": claims.tenant_id,
        "is_super_admin": claims.is_super_admin,
        "exp": expire,
        "iat": now,
        "type": "session",
        "jti": generate_id("sess"),
    }

    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


# =============================================================================
# Token Validation
# =============================================================================

def decode_session_token(token: str) -> SessionClaims:
    """
    Decode and validate a session token.

    Raises:
        TokenExpiredError: Token has expired
        TokenInvalidError: Token is invalid or missing claims
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenInvalidError(f"Invalid token: {e}")

    if payload.get("type") != "session":
        raise TokenInvalidError(f"Expected session token, got {payload.get('type')}")

    try:
        return SessionClaims(
            actor_id=payload["sub"],
            role=payload["role"],
            tenant_id=payload.get("tenant_id"),
            is_super_admin=payload.get("is_super_admin", False),
        )
    except KeyError as e:
        raise TokenInvalidError(f"Token is missing claim {e}")
    except ValidationError as e:
        raise TokenInvalidError(f"Token has malformed claims: {e.error_count()} invalid field(s)")

