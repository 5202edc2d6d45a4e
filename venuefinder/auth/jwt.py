# =============================================================================
# JWT Authentication Implementation
# =============================================================================
#
# This module provides:
#   - Token creation for owner and staff accounts
#   - Token verification (the credential verifier)
#   - Password hashing
#
# Verification is read-only. Touching a staff member's lastLogin is a
# separate step callers perform explicitly.
#
# =============================================================================

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
import hashlib
import logging
import secrets

from pydantic import BaseModel, Field
import jwt

from venuefinder.auth.permissions import PermissionSet, PrincipalKind
from venuefinder.config import get_jwt_secret, get_settings
from venuefinder.core.utils import generate_id, utc_now
from venuefinder.errors import InvalidTokenError, TokenExpiredError

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================

class TokenClaims(BaseModel):
    """Verified JWT claims."""
    id: str
    kind: PrincipalKind = PrincipalKind.OWNER
    exp: datetime
    iat: datetime
    jti: str = ""
    
    # Staff tokens only: snapshots taken at issuance
    role: str | None = None
    permissions: PermissionSet | None = None
    venues: list[str] = Field(default_factory=list)


# =============================================================================
# Password Hashing
# =============================================================================

def hash_password(password: str) -> str:
    """
    Hash a password using PBKDF2-SHA256.
    
    Returns: salt:hash format string
    """
    salt = secrets.token_hex(32)
    hash_bytes = hashlib.pbkdf2_hmac(
        'sha256',
        password.encode('utf-8'),
        salt.encode('utf-8'),
        iterations=100_000
    )
    return f"{salt}:{hash_bytes.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash."""
    try:
        salt, stored_hash = password_hash.split(':')
        hash_bytes = hashlib.pbkdf2_hmac(
            'sha256',
            password.encode('utf-8'),
            salt.encode('utf-8'),
            iterations=100_000
        )
        return secrets.compare_digest(hash_bytes.hex(), stored_hash)
    except (ValueError, AttributeError):
        return False


# =============================================================================
# Token Creation
# =============================================================================

def create_access_token(
    subject_id: str,
    kind: PrincipalKind = PrincipalKind.OWNER,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """Create a signed access token for an owner or staff account."""
    settings = get_settings()
    now = utc_now()
    expire = now + timedelta(minutes=settings.jwt_expire_minutes)
    
    payload = {
        "id": subject_id,
        "sub": subject_id,
        "kind": PrincipalKind(kind).value,
        "type": "access",
        "exp": expire,
        "iat": now,
        "jti": generate_id(),
        **(extra_claims or {}),
    }
    
    return jwt.encode(payload, get_jwt_secret(), algorithm=settings.jwt_algorithm)


def create_staff_token(staff: dict[str, Any]) -> str:
    """Staff token carrying role, permission and venue snapshots."""
    return create_access_token(
        staff["_id"],
        PrincipalKind.STAFF,
        {
            "role": staff.get("role"),
            "permissions": staff.get("permissions") or {},
            "venues": list(staff.get("venues") or []),
        },
    )


# =============================================================================
# Token Verification
# =============================================================================

def decode_token(token: str) -> TokenClaims:
    """
    Decode and validate a JWT token.
    
    Args:
        token: The JWT string
    
    Returns:
        TokenClaims with validated claims
    
    Raises:
        TokenExpiredError: Token has expired
        InvalidTokenError: Token is malformed, badly signed, or not an access token
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            get_jwt_secret(),
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        logger.info("Token expired")
        raise TokenExpiredError()
    except jwt.InvalidTokenError as e:
        logger.info(f"Invalid token: {e}")
        raise InvalidTokenError()
    
    if payload.get("type", "access") != "access":
        logger.info(f"Rejected {payload.get('type')} token used as access token")
        raise InvalidTokenError()
    
    subject = payload.get("id") or payload.get("sub")
    if not subject:
        logger.info("Token has no subject")
        raise InvalidTokenError()
    
    try:
        return TokenClaims(
            id=subject,
            kind=payload.get("kind", PrincipalKind.OWNER),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload.get("iat", payload["exp"]), tz=timezone.utc),
            jti=payload.get("jti", ""),
            role=payload.get("role"),
            permissions=payload.get("permissions"),
            venues=payload.get("venues") or [],
        )
    except (KeyError, ValueError) as e:
        logger.info(f"Malformed token claims: {e}")
        raise InvalidTokenError()
