"""
Core module - domain models and shared utilities.

This module contains:
- models: Users, venues, offers, menus, packages, reviews and staff
- utils: ID generation and validation, UTC timestamps

Models are imported from venuefinder.core.models directly; they depend on
venuefinder.auth.permissions, which itself uses the utilities here.
"""

from venuefinder.core.utils import generate_id, is_valid_id, utc_now

__all__ = ["generate_id", "is_valid_id", "utc_now"]
