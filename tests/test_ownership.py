"""
Tests for the ownership guard and load_owned.

load_owned always fails in the same order: malformed id, then missing,
then someone else's, then outside a staff member's venues.
"""

import pytest

from venuefinder.auth.ownership import OwnedResource, authorize, load_owned, resource_owner
from venuefinder.auth.principal import Principal
from venuefinder.errors import (
    InvalidIdError,
    NotOwnerError,
    ResourceNotFoundError,
    VenueAccessDeniedError,
)
from venuefinder.storage import Collections, create_local_storage

OWNER_ID = "0" * 23 + "1"
RIVAL_ID = "0" * 23 + "2"
VENUE_ID = "f" * 24
OTHER_VENUE_ID = "e" * 24
MENU_ID = "d" * 24
MISSING_ID = "9" * 24


def owner(id=OWNER_ID, role="user"):
    return Principal.for_user({"_id": id, "role": role})


def staff(venues=(VENUE_ID,), owner_id=OWNER_ID):
    return Principal.for_staff(
        {"_id": "5" * 24, "role": "manager", "owner": owner_id, "venues": list(venues)}
    )


@pytest.fixture
async def storage():
    s = create_local_storage()
    await s.metadata.save(Collections.VENUES, VENUE_ID, {"name": "Loft", "owner": OWNER_ID})
    await s.metadata.save(Collections.VENUES, OTHER_VENUE_ID, {"name": "Barn", "owner": OWNER_ID})
    await s.metadata.save(Collections.MENUS, MENU_ID, {"name": "Dinner", "venue": VENUE_ID, "user": "x"})
    return s


# =============================================================================
# Guard
# =============================================================================


class TestAuthorize:
    def test_owner_of_self_allowed(self):
        assert authorize(owner(), {"owner": OWNER_ID})

    def test_other_owner_denied(self):
        decision = authorize(owner(RIVAL_ID), {"owner": OWNER_ID})
        assert not decision
        assert decision.reason == "not_owner"

    def test_admin_bypasses(self):
        assert authorize(owner(RIVAL_ID, role="admin"), {"owner": OWNER_ID})

    def test_staff_acts_for_their_owner(self):
        assert authorize(staff(), {"owner": OWNER_ID})
        assert not authorize(staff(owner_id=RIVAL_ID), {"owner": OWNER_ID})

    def test_anonymous_never_allowed(self):
        assert not authorize(Principal.anonymous(), {"owner": OWNER_ID})

    def test_resource_without_owner_denied(self):
        assert not authorize(owner(), {})

    def test_custom_owner_field(self):
        assert authorize(owner(), {"user": OWNER_ID}, owner_field="user")
        assert not authorize(owner(), {"owner": OWNER_ID}, owner_field="user")

    def test_owner_through_populated_venue(self):
        assert resource_owner({"venue": {"owner": OWNER_ID}}) == OWNER_ID
        assert authorize(owner(), {"venue": {"owner": OWNER_ID}})


# =============================================================================
# load_owned
# =============================================================================


class TestLoadOwned:
    async def test_invalid_id_first(self, storage):
        # Even a caller who owns nothing gets 400 for a malformed id
        with pytest.raises(InvalidIdError) as exc:
            await load_owned(storage, Collections.VENUES, "nope", owner(RIVAL_ID), label="Venue")
        assert exc.value.status_code == 400
        assert exc.value.message == "Invalid Venue ID"

    async def test_missing_before_forbidden(self, storage):
        with pytest.raises(ResourceNotFoundError) as exc:
            await load_owned(storage, Collections.VENUES, MISSING_ID, owner(RIVAL_ID), label="Venue")
        assert exc.value.message == f"Venue not found with id of {MISSING_ID}"

    async def test_not_owner(self, storage):
        with pytest.raises(NotOwnerError) as exc:
            await load_owned(storage, Collections.VENUES, VENUE_ID, owner(RIVAL_ID), label="Venue")
        assert exc.value.status_code == 403

    async def test_owner_gets_resource(self, storage):
        owned = await load_owned(storage, Collections.VENUES, VENUE_ID, owner(), label="Venue")
        assert isinstance(owned, OwnedResource)
        assert owned.data["name"] == "Loft"
        assert owned.owner_id == OWNER_ID
        assert owned.venue_id == VENUE_ID
        assert owned.ownership_filter == {"_id": VENUE_ID, "owner": OWNER_ID}

    async def test_staff_inside_allowlist(self, storage):
        owned = await load_owned(storage, Collections.VENUES, VENUE_ID, staff(), label="Venue")
        assert owned.id == VENUE_ID

    async def test_staff_outside_allowlist(self, storage):
        with pytest.raises(VenueAccessDeniedError):
            await load_owned(storage, Collections.VENUES, OTHER_VENUE_ID, staff(), label="Venue")

    async def test_ownership_through_venue(self, storage):
        owned = await load_owned(
            storage, Collections.MENUS, MENU_ID, owner(), label="Menu", via_venue=True
        )
        assert owned.owner_id == OWNER_ID
        assert owned.ownership_filter == {"_id": MENU_ID, "venue": VENUE_ID}

        with pytest.raises(NotOwnerError):
            await load_owned(
                storage, Collections.MENUS, MENU_ID, owner(RIVAL_ID), label="Menu", via_venue=True
            )

    async def test_admin_loads_anything(self, storage):
        owned = await load_owned(
            storage, Collections.VENUES, VENUE_ID, owner(RIVAL_ID, role="admin"), label="Venue"
        )
        assert owned.id == VENUE_ID

    async def test_conditional_update_misses_after_owner_change(self, storage):
        owned = await load_owned(storage, Collections.VENUES, VENUE_ID, owner(), label="Venue")
        await storage.metadata.update_where(Collections.VENUES, {"_id": VENUE_ID}, {"owner": RIVAL_ID})

        result = await storage.metadata.update_where(
            Collections.VENUES, owned.ownership_filter, {"name": "Hijacked"}
        )
        assert result is None
        assert (await storage.metadata.get(Collections.VENUES, VENUE_ID))["name"] == "Loft"
