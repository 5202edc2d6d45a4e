"""
Authorization layer.

- jwt: token issuance and verification, password hashing
- permissions: staff roles and permission sets
- principal: the per-request identity
- ownership: the ownership guard
- policies: FastAPI dependencies wrapping all of the above
"""

from venuefinder.auth.permissions import (
    Permission,
    PermissionSet,
    PrincipalKind,
    StaffRole,
    resolve_permissions,
)
from venuefinder.auth.principal import Principal
from venuefinder.auth.ownership import (
    Decision,
    OwnedResource,
    authorize,
    load_owned,
    require_venue_access,
)
from venuefinder.auth.jwt import (
    TokenClaims,
    create_access_token,
    create_staff_token,
    decode_token,
    hash_password,
    verify_password,
)
from venuefinder.auth.policies import (
    get_principal,
    get_optional_principal,
    get_storage,
    owned_resource,
    require_permission,
    require_user_role,
)

__all__ = [
    # Types
    "Permission",
    "PermissionSet",
    "PrincipalKind",
    "StaffRole",
    "Principal",
    "Decision",
    "OwnedResource",
    "TokenClaims",
    # Decisions
    "resolve_permissions",
    "authorize",
    "load_owned",
    # JWT
    "create_access_token",
    "create_staff_token",
    "decode_token",
    "hash_password",
    "verify_password",
    # Dependencies
    "get_principal",
    "get_optional_principal",
    "get_storage",
    "owned_resource",
    "require_permission",
    "require_user_role",
    "require_venue_access",
]
