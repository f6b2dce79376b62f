"""
Tests for session tokens.
"""

from datetime import timedelta

import jwt
import pytest

from crmguard.auth.actor import SessionClaims
from crmguard.auth.session import (
    TokenExpiredError,
    TokenInvalidError,
    create_session_token,
    decode_session_token,
)
from crmguard.config import get_settings
from crmguard.core.utils import utc_now


def _sign(payload, key=None):
    settings = get_settings()
    return jwt.encode(payload, key or settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


class TestSessionTokens:
    def test_round_trip_tenant_actor(self):
        claims = SessionClaims(actor_id="u1", role="manager", tenant_id="tenant-1")
        
        decoded = decode_session_token(create_session_token(claims))
        
        assert decoded == claims

    def test_round_trip_super_admin(self):
        claims = SessionClaims(actor_id="root", role="super-admin", tenant_id=None, is_super_admin=True)
        
        decoded = decode_session_token(create_session_token(claims))
        
        assert decoded.tenant_id is None
        assert decoded.is_super_admin

    def test_expired(self):
        claims = SessionClaims(actor_id="u1", role="user", tenant_id="t")
        token = create_session_token(claims, expires_in=timedelta(seconds=-5))
        
        with pytest.raises(TokenExpiredError):
            decode_session_token(token)

    def test_wrong_key(self):
        token = _sign({"sub": "u1", "role": "admin", "type": "session"}, key="not-the-real-key")
        
        with pytest.raises(TokenInvalidError):
            decode_session_token(token)

    def test_garbage(self):
        with pytest.raises(TokenInvalidError):
            decode_session_token("not.a.token")

    def test_wrong_type(self):
        token = _sign({"sub": "u1", "role": "admin", "type": "refresh", "exp": utc_now() + timedelta(minutes=5)})
        
        with pytest.raises(TokenInvalidError):
            decode_session_token(token)

    def test_missing_role(self):
        token = _sign({"sub": "u1", "type": "session", "exp": utc_now() + timedelta(minutes=5)})
        
        with pytest.raises(TokenInvalidError):
            decode_session_token(token)

    @pytest.mark.parametrize(
        "claims",
        [
            {"sub": "u1", "role": None},
            {"sub": "u1", "role": {"name": "admin"}},
            {"sub": "u1", "role": "admin", "tenant_id": ["tenant-1"]},
            {"sub": "u1", "role": "admin", "tenant_id": "tenant-1", "is_super_admin": "maybe"},
        ],
    )
    def test_malformed_claims(self, claims):
        token = _sign({**claims, "type": "session", "exp": utc_now() + timedelta(minutes=5)})
        
        with pytest.raises(TokenInvalidError):
            decode_session_token(token)

    def test_string_super_admin_flag_is_parsed_not_truthy(self):
        token = _sign({
            "sub": "u1",
            "role": "admin",
            "tenant_id": "tenant-1",
            "is_super_admin": "false",
            "type": "session",
            "exp": utc_now() + timedelta(minutes=5),
        })
        
        assert decode_session_token(token).is_super_admin is False
