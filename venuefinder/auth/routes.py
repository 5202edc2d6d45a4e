# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints:
#   POST /api/auth/register        - Create an owner account
#   POST /api/auth/login           - Get a token
#   GET  /api/auth/me              - Get current user
#   GET  /api/auth/validate        - Check a token
#
# Staff:
#   POST /api/auth/staff/login     - Staff login (records lastLogin)
#   POST /api/auth/staff/validate  - Check a staff token from the body
#
# =============================================================================

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr

from venuefinder.auth.jwt import (
    create_access_token,
    create_staff_token,
    decode_token,
    hash_password,
    verify_password,
)
from venuefinder.auth.permissions import PrincipalKind
from venuefinder.auth.policies import (
    get_principal,
    get_storage,
    require_owner_account,
    resolve_principal,
    touch_last_login,
)
from venuefinder.auth.principal import Principal
from venuefinder.core.models import User, UserCreate, public_user
from venuefinder.errors import (
    AuthenticationError,
    InvalidCredentialsError,
    InvalidTokenError,
    ValidationError,
)
from venuefinder.storage import Collections, StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# =============================================================================
# Request Models
# =============================================================================

class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenRequest(BaseModel):
    token: str | None = None


# =============================================================================
# Owner Accounts
# =============================================================================

@router.post("/register", status_code=201)
async def register(data: UserCreate, storage: StorageProvider = Depends(get_storage)):
    """
    Create a new account.

    Returns a token on success.
    """
    email = data.email.lower()
    if await storage.metadata.find_one(Collections.USERS, {"email": email}):
        raise ValidationError("User already exists")

    user = User(full_name=data.full_name, email=email, password_hash=hash_password(data.password))
    doc = await storage.metadata.save(Collections.USERS, user.id, user.to_document())
    logger.info(f"Registered user {user.id}")

    return {
        "success": True,
        "token": create_access_token(user.id, PrincipalKind.OWNER),
        "user": public_user(doc),
    }


@router.post("/login")
async def login(data: LoginRequest, storage: StorageProvider = Depends(get_storage)):
    user = await storage.metadata.find_one(Collections.USERS, {"email": data.email.lower()})
    if not user or not verify_password(data.password, user.get("passwordHash", "")):
        logger.info(f"Failed login for {data.email}")
        raise InvalidCredentialsError()

    return {
        "success": True,
        "token": create_access_token(user["_id"], PrincipalKind.OWNER),
        "user": public_user(user),
    }


@router.get("/me")
async def me(principal: Principal = Depends(require_owner_account)):
    """Get current user's profile."""
    return {"success": True, "data": public_user(principal.record)}


@router.get("/validate")
async def validate(principal: Principal = Depends(get_principal)):
    return {
        "success": True,
        "valid": True,
        "message": "Token is valid",
        "id": principal.id,
        "kind": principal.kind.value,
    }


# =============================================================================
# Staff Accounts
# =============================================================================

@router.post("/staff/login")
async def staff_login(data: LoginRequest, storage: StorageProvider = Depends(get_storage)):
    """
    Staff login.

    Deactivated accounts are refused before the password is checked.
    """
    staff = await storage.metadata.find_one(Collections.STAFF, {"email": data.email.lower()})
    if not staff:
        raise InvalidCredentialsError()
    if not staff.get("isActive", True):
        logger.info(f"Login refused for deactivated staff {staff['_id']}")
        raise AuthenticationError("This account has been deactivated")
    if not verify_password(data.password, staff.get("passwordHash", "")):
        raise InvalidCredentialsError()

    principal = Principal.for_staff(staff)
    await touch_last_login(storage, principal)

    return {
        "success": True,
        "token": create_staff_token(staff),
        "staff": {
            "id": staff["_id"],
            "firstName": staff.get("firstName"),
            "lastName": staff.get("lastName"),
            "email": staff.get("email"),
            "role": staff.get("role"),
            "venues": staff.get("venues", []),
            "permissions": principal.permissions.model_dump(by_alias=True),
        },
    }


@router.post("/staff/validate")
async def staff_validate(data: TokenRequest, storage: StorageProvider = Depends(get_storage)):
    """Validate a staff token passed in the body (used by the mobile client at startup)."""
    if not data.token:
        raise ValidationError("No token provided")

    claims = decode_token(data.token)
    if claims.kind != PrincipalKind.STAFF:
        raise InvalidTokenError("Not a staff token")

    principal = await resolve_principal(claims, storage)
    return {
        "success": True,
        "message": "Token is valid",
        "id": principal.id,
        "role": principal.role,
        "permissions": principal.permissions.model_dump(by_alias=True),
    }
