"""
Tests for the in-memory document store and its filter evaluation.
"""

from datetime import datetime, timezone

import pytest

from venuefinder.errors import ValidationError
from venuefinder.storage import Collections, create_local_storage
from venuefinder.storage.local import matches

C = Collections.VENUES


@pytest.fixture
async def storage():
    s = create_local_storage()
    docs = [
        ("a" * 24, {"name": "Loft", "capacity": 120, "isActive": True, "tags": ["bar", "music"],
                    "location": {"coordinates": [-71.06, 42.36], "city": "Boston"},
                    "createdAt": datetime(2024, 1, 1, tzinfo=timezone.utc)}),
        ("b" * 24, {"name": "Barn", "capacity": 40, "isActive": False, "tags": ["rustic"],
                    "location": {"coordinates": [-104.99, 39.74], "city": "Denver"},
                    "createdAt": datetime(2024, 3, 1, tzinfo=timezone.utc)}),
        ("c" * 24, {"name": "Attic", "isActive": True, "tags": [],
                    "location": {"coordinates": [-71.10, 42.37], "city": "Cambridge"},
                    "createdAt": datetime(2024, 2, 1, tzinfo=timezone.utc)}),
    ]
    for id, doc in docs:
        await s.metadata.save(C, id, doc)
    return s


async def names(storage, filters=None, **kwargs):
    return [d["name"] for d in await storage.metadata.find(C, filters, **kwargs)]


# =============================================================================
# Filters
# =============================================================================


class TestFilters:
    async def test_string_query_values_cast_to_stored_type(self, storage):
        assert await names(storage, {"capacity": {"$gte": "100"}}) == ["Loft"]
        assert await names(storage, {"capacity": "40"}) == ["Barn"]
        assert sorted(await names(storage, {"isActive": "true"})) == ["Attic", "Loft"]

    async def test_missing_field_never_compares(self, storage):
        assert "Attic" not in await names(storage, {"capacity": {"$lt": "1000"}})

    async def test_array_membership(self, storage):
        assert await names(storage, {"tags": "music"}) == ["Loft"]

    async def test_in_and_ne(self, storage):
        assert sorted(await names(storage, {"location.city": {"$in": ["Boston", "Denver"]}})) == ["Barn", "Loft"]
        assert sorted(await names(storage, {"name": {"$ne": "Loft"}})) == ["Attic", "Barn"]

    async def test_nested_object_match(self, storage):
        assert await names(storage, {"location": {"city": "Denver"}}) == ["Barn"]

    async def test_datetime_cast(self, storage):
        found = await names(storage, {"createdAt": {"$gt": "2024-02-15T00:00:00Z"}})
        assert found == ["Barn"]

    async def test_geo_within_center_sphere(self, storage):
        # ~10 miles around downtown Boston
        radius = 10 / 3963.0
        f = {"location": {"$geoWithin": {"$centerSphere": [[-71.06, 42.36], radius]}}}
        assert sorted(await names(storage, f)) == ["Attic", "Loft"]

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValidationError):
            matches({"a": 1}, {"a": {"$where": "1"}})


# =============================================================================
# Ordering, Paging, Projection
# =============================================================================


class TestFind:
    async def test_sort_descending(self, storage):
        assert await names(storage, sort=[("createdAt", -1)]) == ["Barn", "Attic", "Loft"]

    async def test_missing_sort_values_last(self, storage):
        assert await names(storage, sort=[("capacity", 1)]) == ["Barn", "Loft", "Attic"]
        assert await names(storage, sort=[("capacity", -1)]) == ["Loft", "Barn", "Attic"]

    async def test_sort_on_embedded_document(self, storage):
        # Compared field by field, so the first coordinate decides here
        assert await names(storage, sort=[("location", 1)]) == ["Barn", "Attic", "Loft"]

    async def test_sort_across_value_types(self, storage):
        await storage.metadata.save(C, "d" * 24, {"name": "Hall", "capacity": "large"})
        assert await names(storage, sort=[("capacity", 1)]) == ["Barn", "Loft", "Hall", "Attic"]

    async def test_skip_and_limit(self, storage):
        assert await names(storage, sort=[("name", 1)], skip=1, limit=1) == ["Barn"]

    async def test_projection_keeps_id(self, storage):
        [doc] = await storage.metadata.find(C, {"name": "Loft"}, fields=["name"])
        assert doc == {"_id": "a" * 24, "name": "Loft"}

    async def test_exclusion_projection(self, storage):
        [doc] = await storage.metadata.find(C, {"name": "Loft"}, fields=["-tags", "-location"])
        assert "tags" not in doc and "location" not in doc
        assert doc["capacity"] == 120

    async def test_count(self, storage):
        assert await storage.metadata.count(C) == 3
        assert await storage.metadata.count(C, {"isActive": True}) == 2

    async def test_reads_are_copies(self, storage):
        doc = await storage.metadata.get(C, "a" * 24)
        doc["tags"].append("mutated")
        assert "mutated" not in (await storage.metadata.get(C, "a" * 24))["tags"]


# =============================================================================
# Conditional Writes
# =============================================================================


class TestConditionalWrites:
    async def test_update_where_match(self, storage):
        updated = await storage.metadata.update_where(C, {"_id": "a" * 24, "name": "Loft"}, {"capacity": 150})
        assert updated["capacity"] == 150
        assert "updatedAt" in updated

    async def test_update_where_miss(self, storage):
        assert await storage.metadata.update_where(C, {"_id": "a" * 24, "name": "Other"}, {"capacity": 1}) is None
        assert (await storage.metadata.get(C, "a" * 24))["capacity"] == 120

    async def test_push_and_pull(self, storage):
        await storage.metadata.update_where(C, {"_id": "b" * 24}, {"$push": {"tags": "barn"}})
        doc = await storage.metadata.update_where(C, {"_id": "b" * 24}, {"$pull": {"tags": "rustic"}})
        assert doc["tags"] == ["barn"]

    async def test_delete_where(self, storage):
        assert not await storage.metadata.delete_where(C, {"_id": "a" * 24, "name": "Nope"})
        assert await storage.metadata.delete_where(C, {"_id": "a" * 24})
        assert await storage.metadata.get(C, "a" * 24) is None

    async def test_add_to_set_skips_duplicates(self, storage):
        await storage.metadata.update_where(C, {"_id": "a" * 24}, {"$addToSet": {"tags": "bar"}})
        doc = await storage.metadata.update_where(C, {"_id": "a" * 24}, {"$addToSet": {"tags": "jazz"}})
        assert doc["tags"] == ["bar", "music", "jazz"]

    async def test_update_many(self, storage):
        changed = await storage.metadata.update_many(C, {"isActive": True}, {"isActive": False})
        assert changed == 2
        assert await storage.metadata.count(C, {"isActive": True}) == 0

    async def test_delete_many(self, storage):
        assert await storage.metadata.delete_many(C, {"location.city": {"$in": ["Boston", "Cambridge"]}}) == 2
        assert await names(storage) == ["Barn"]

    async def test_find_one(self, storage):
        assert (await storage.metadata.find_one(C, {"location.city": "Denver"}))["name"] == "Barn"
        assert await storage.metadata.find_one(C, {"name": "Nowhere"}) is None
