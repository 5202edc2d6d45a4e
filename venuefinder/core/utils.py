"""
Shared utility functions for the venuefinder service.

This module contains common utilities used across the codebase.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone

_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


def generate_id() -> str:
    """
    Generate a unique document ID.
    
    IDs are 24 lowercase hex characters, the same shape as a
    MongoDB ObjectId, so clients can keep treating them as such.
    """
    return uuid.uuid4().hex[:24]


def is_valid_id(value: object) -> bool:
    """Is this a well-formed document ID?"""
    return isinstance(value, str) and bool(_OBJECT_ID_RE.match(value))


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)
