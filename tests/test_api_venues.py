"""
End-to-end tests for venues and offers: listing, scoping, and the
400 → 404 → 403 check order on mutations.
"""

from datetime import timedelta

import pytest

from conftest import bearer, run

from venuefinder.auth.jwt import create_staff_token
from venuefinder.core.utils import utc_now
from venuefinder.storage import Collections

MISSING_ID = "9" * 24


def venue_payload(name="New Hall"):
    return {
        "name": name,
        "description": "A hall",
        "address": "2 Side St",
        "location": {"type": "Point", "coordinates": [-71.0, 42.0]},
        "capacity": 80,
    }


def offer_payload(venue_id, **overrides):
    now = utc_now()
    payload = {
        "title": "Happy hour",
        "description": "Half price",
        "venue": venue_id,
        "discountType": "percentage",
        "discountValue": 50,
        "startDate": (now - timedelta(days=1)).isoformat(),
        "endDate": (now + timedelta(days=1)).isoformat(),
    }
    payload.update(overrides)
    return payload


# =============================================================================
# Venue Listing
# =============================================================================


class TestVenueListing:
    @pytest.fixture(autouse=True)
    def venues(self, owner, other_owner, make_venue):
        make_venue(owner, "Loft", capacity=120)
        make_venue(owner, "Attic", capacity=30)
        make_venue(other_owner, "Barn", coordinates=(-104.99, 39.74), capacity=200)

    def test_anonymous_sees_all(self, client):
        body = client.get("/api/venues").json()
        assert body["success"] is True
        assert body["count"] == 3
        assert body["pagination"] == {}

    def test_authenticated_is_self_scoped(self, client, owner_headers):
        body = client.get("/api/venues", headers=owner_headers).json()
        assert sorted(v["name"] for v in body["data"]) == ["Attic", "Loft"]

    def test_owner_current_anonymous_is_empty(self, client):
        resp = client.get("/api/venues", params={"owner": "current"})
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "count": 0, "data": []}

    def test_owner_current(self, client, other_headers):
        body = client.get("/api/venues?owner=current", headers=other_headers).json()
        assert [v["name"] for v in body["data"]] == ["Barn"]

    def test_operator_filter(self, client):
        body = client.get("/api/venues?capacity[gte]=100&sort=capacity").json()
        assert [v["name"] for v in body["data"]] == ["Loft", "Barn"]

    def test_in_filter(self, client):
        body = client.get("/api/venues?name[in]=Loft,Barn").json()
        assert body["count"] == 2

    def test_select(self, client):
        body = client.get("/api/venues?select=name&sort=name").json()
        assert body["data"][0] == {"_id": body["data"][0]["_id"], "name": "Attic"}

    def test_pagination(self, client):
        body = client.get("/api/venues?sort=name&limit=1&page=2").json()
        assert [v["name"] for v in body["data"]] == ["Barn"]
        assert body["pagination"] == {"next": {"page": 3, "limit": 1}, "prev": {"page": 1, "limit": 1}}

    def test_sort_on_location(self, client):
        resp = client.get("/api/venues?sort=location")
        assert resp.status_code == 200
        assert [v["name"] for v in resp.json()["data"]] == ["Barn", "Loft", "Attic"]

    def test_radius_search(self, client):
        # Both venues sit about 25 miles (40 km) from this point
        body = client.get("/api/venues/radius/42.0/-71.0/30").json()
        assert sorted(v["name"] for v in body["data"]) == ["Attic", "Loft"]

        km = client.get("/api/venues/radius/42.0/-71.0/30", params={"unit": "km"}).json()
        assert km["count"] == 0

    def test_radius_bad_input(self, client):
        assert client.get("/api/venues/radius/north/-71.0/50").status_code == 400
        assert client.get("/api/venues/radius/42.0/-71.0/50?unit=leagues").status_code == 400


# =============================================================================
# Venue Detail + Mutations
# =============================================================================


class TestVenueMutations:
    def test_get_includes_reviews(self, client, venue):
        body = client.get(f"/api/venues/{venue['_id']}").json()
        assert body["data"]["name"] == "The Loft"
        assert body["data"]["reviews"] == []

    def test_get_invalid_and_missing(self, client):
        bad = client.get("/api/venues/not-an-id")
        assert bad.status_code == 400
        assert bad.json() == {"success": False, "message": "Invalid Venue ID", "error": "invalid_id"}

        missing = client.get(f"/api/venues/{MISSING_ID}")
        assert missing.status_code == 404
        assert missing.json()["message"] == f"Venue not found with id of {MISSING_ID}"

    def test_create(self, client, owner, owner_headers):
        resp = client.post("/api/venues", json=venue_payload(), headers=owner_headers)
        assert resp.status_code == 201
        assert resp.json()["data"]["owner"] == owner["_id"]

    def test_create_requires_auth(self, client):
        assert client.post("/api/venues", json=venue_payload()).status_code == 401

    def test_update_own(self, client, venue, owner_headers):
        resp = client.put(f"/api/venues/{venue['_id']}", json={"capacity": 300}, headers=owner_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["capacity"] == 300
        assert resp.json()["data"]["name"] == "The Loft"

    def test_update_check_order(self, client, venue, other_headers):
        assert client.put("/api/venues/xyz", json={}, headers=other_headers).status_code == 400
        assert client.put(f"/api/venues/{MISSING_ID}", json={}, headers=other_headers).status_code == 404

        resp = client.put(f"/api/venues/{venue['_id']}", json={"name": "Mine"}, headers=other_headers)
        assert resp.status_code == 403
        assert resp.json() == {
            "success": False,
            "message": "Not authorized to access this venue",
            "error": "not_owner",
        }
        assert client.get(f"/api/venues/{venue['_id']}").json()["data"]["name"] == "The Loft"

    def test_admin_may_update_any(self, client, venue, admin_headers):
        resp = client.put(f"/api/venues/{venue['_id']}", json={"name": "Seized"}, headers=admin_headers)
        assert resp.status_code == 200

    def test_staff_need_permission_and_venue(self, client, owner, venue, make_venue, make_staff):
        other_venue = make_venue(owner, "Annex")
        manager = make_staff(owner, role="manager", venues=[venue])
        host = make_staff(owner, role="host", venues=[venue])

        headers = bearer(create_staff_token(manager))
        assert client.put(f"/api/venues/{venue['_id']}", json={"capacity": 90}, headers=headers).status_code == 200

        denied = client.put(f"/api/venues/{other_venue['_id']}", json={"capacity": 90}, headers=headers)
        assert denied.status_code == 403
        assert denied.json()["error"] == "venue_access_denied"

        no_perm = client.put(
            f"/api/venues/{venue['_id']}", json={"capacity": 90}, headers=bearer(create_staff_token(host))
        )
        assert no_perm.status_code == 403
        assert no_perm.json()["error"] == "permission_denied"

    def test_staff_creates_for_their_owner(self, client, owner, make_staff):
        manager = make_staff(owner, role="manager")
        resp = client.post("/api/venues", json=venue_payload(), headers=bearer(create_staff_token(manager)))
        assert resp.status_code == 201
        assert resp.json()["data"]["owner"] == owner["_id"]

    def test_delete_is_admin_only(self, client, venue, owner_headers, admin_headers):
        assert client.delete(f"/api/venues/{venue['_id']}", headers=owner_headers).status_code == 403

        resp = client.delete(f"/api/venues/{venue['_id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "data": {}}
        assert client.get(f"/api/venues/{venue['_id']}").status_code == 404

    def test_delete_takes_dependents_along(
        self, client, storage, owner, venue, make_venue, make_staff, owner_headers, other_headers, admin_headers
    ):
        kept = make_venue(owner, "Annex")
        staff = make_staff(owner, venues=[venue, kept])
        for target in (venue, kept):
            client.post(
                f"/api/venues/{target['_id']}/reviews", json={"rating": 5, "content": "Great"}, headers=other_headers
            )
            client.post("/api/menus", json={"venue": target["_id"], "name": "Dinner"}, headers=owner_headers)
            client.post("/api/offers", json=offer_payload(target["_id"]), headers=owner_headers)
        client.post(f"/api/profile/bookmarks/{venue['_id']}", headers=other_headers)

        assert client.delete(f"/api/venues/{venue['_id']}", headers=admin_headers).status_code == 200

        for collection in (Collections.REVIEWS, Collections.MENUS, Collections.OFFERS):
            assert run(storage.metadata.count(collection, {"venue": venue["_id"]})) == 0
            assert run(storage.metadata.count(collection, {"venue": kept["_id"]})) == 1
        assert client.get("/api/profile/bookmarks", headers=other_headers).json()["count"] == 0
        assert run(storage.metadata.get(Collections.STAFF, staff["_id"]))["venues"] == [kept["_id"]]


# =============================================================================
# Offers
# =============================================================================


class TestOffers:
    @pytest.fixture
    def offer(self, client, venue, owner_headers):
        resp = client.post("/api/offers", json=offer_payload(venue["_id"]), headers=owner_headers)
        assert resp.status_code == 201
        return resp.json()["data"]

    def test_create_sets_owner(self, offer, owner):
        assert offer["owner"] == owner["_id"]
        assert offer["isActive"] is True

    def test_create_for_someone_elses_venue(self, client, venue, other_headers):
        resp = client.post("/api/offers", json=offer_payload(venue["_id"]), headers=other_headers)
        assert resp.status_code == 403

    def test_create_for_bad_venue(self, client, owner_headers):
        assert client.post("/api/offers", json=offer_payload("bad"), headers=owner_headers).status_code == 400
        assert client.post("/api/offers", json=offer_payload(MISSING_ID), headers=owner_headers).status_code == 404

    def test_list_populates_venue(self, client, offer):
        body = client.get("/api/offers").json()
        assert body["count"] == 1
        assert body["data"][0]["venue"]["name"] == "The Loft"

    def test_list_is_self_scoped(self, client, offer, other_headers):
        assert client.get("/api/offers", headers=other_headers).json()["count"] == 0

    def test_list_by_missing_venue(self, client, offer):
        assert client.get(f"/api/offers?venue={MISSING_ID}").status_code == 404

    def test_list_by_venue(self, client, offer, venue, other_headers):
        body = client.get(f"/api/offers?venue={venue['_id']}", headers=other_headers).json()
        assert body["count"] == 1

    def test_get_anonymous_and_non_owner(self, client, offer, other_headers, owner_headers):
        assert client.get(f"/api/offers/{offer['_id']}").status_code == 200
        assert client.get(f"/api/offers/{offer['_id']}", headers=owner_headers).status_code == 200
        assert client.get(f"/api/offers/{offer['_id']}", headers=other_headers).status_code == 403

    def test_update_and_delete(self, client, offer, owner_headers, other_headers):
        url = f"/api/offers/{offer['_id']}"
        assert client.put(url, json={"discountValue": 25}, headers=other_headers).status_code == 403

        resp = client.put(url, json={"discountValue": 25}, headers=owner_headers)
        assert resp.json()["data"]["discountValue"] == 25

        assert client.delete(url, headers=other_headers).status_code == 403
        assert client.delete(url, headers=owner_headers).status_code == 200
        assert client.get(url).status_code == 404

    def test_venue_offers_only_running(self, client, venue, owner_headers, offer):
        past = offer_payload(
            venue["_id"],
            title="Expired",
            startDate=(utc_now() - timedelta(days=10)).isoformat(),
            endDate=(utc_now() - timedelta(days=5)).isoformat(),
        )
        inactive = offer_payload(venue["_id"], title="Paused", isActive=False)
        client.post("/api/offers", json=past, headers=owner_headers)
        client.post("/api/offers", json=inactive, headers=owner_headers)

        body = client.get(f"/api/venues/{venue['_id']}/offers").json()
        assert [o["title"] for o in body["data"]] == ["Happy hour"]

    def test_menu_manager_may_manage_offers(self, client, owner, venue, make_staff):
        staff = make_staff(owner, role="menu_manager", venues=[venue])
        resp = client.post(
            "/api/offers", json=offer_payload(venue["_id"]), headers=bearer(create_staff_token(staff))
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["owner"] == owner["_id"]
