"""Tests for the in-memory persistence store."""

import pytest

from crudgen.runtime import DuplicateRecordError, InMemoryPersistence, RecordNotFoundError
from crudgen.runtime.persistence import matches


class TestMatches:
    RECORD = {"name": "Desk Lamp", "price": 25.0, "stock": 3, "active": True, "tag": "home"}

    def test_empty_where_matches(self):
        assert matches(self.RECORD, {})
        assert matches(self.RECORD, None)

    def test_equality_with_coercion(self):
        assert matches(self.RECORD, {"stock": "3"})
        assert matches(self.RECORD, {"active": "true"})
        assert not matches(self.RECORD, {"tag": "office"})

    def test_contains_insensitive(self):
        assert matches(self.RECORD, {"name": {"contains": "LAMP", "mode": "insensitive"}})
        assert not matches(self.RECORD, {"name": {"contains": "LAMP", "mode": "default"}})

    def test_range(self):
        assert matches(self.RECORD, {"price": {"gte": "20", "lte": "30"}})
        assert not matches(self.RECORD, {"price": {"gte": "26"}})

    def test_in(self):
        assert matches(self.RECORD, {"tag": {"in": ["home", "garden"]}})
        assert not matches(self.RECORD, {"tag": {"in": ["garden"]}})

    def test_or_and_not(self):
        where = {
            "OR": [{"tag": "office"}, {"name": {"startsWith": "desk", "mode": "insensitive"}}],
            "NOT": {"stock": 0},
        }
        assert matches(self.RECORD, where)
        assert not matches(self.RECORD, {"AND": [{"tag": "home"}, {"stock": 4}]})

    def test_unknown_operator_raises(self):
        with pytest.raises(ValueError, match="Unsupported"):
            matches(self.RECORD, {"price": {"near": 1}})


class TestInMemoryDelegate:
    @pytest.fixture
    def store(self):
        return InMemoryPersistence(unique={"Category": ["slug"]})

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamps(self, store):
        created = await store.model("category").create(data={"name": "Books", "slug": "books"})
        assert created["id"]
        assert created["created_at"] == created["updated_at"]

    @pytest.mark.asyncio
    async def test_unique_constraint(self, store):
        categories = store.model("category")
        await categories.create(data={"name": "Books", "slug": "books"})
        with pytest.raises(DuplicateRecordError) as exc_info:
            await categories.create(data={"name": "Other", "slug": "books"})
        assert exc_info.value.fields == ["slug"]

    @pytest.mark.asyncio
    async def test_find_many_orders_and_pages(self, store):
        items = store.model("item")
        for n in [3, 1, 2]:
            await items.create(data={"n": n})
        rows = await items.find_many(order_by={"n": "asc"}, skip=1, take=1)
        assert [r["n"] for r in rows] == [2]
        assert await items.count(where={"n": {"gte": 2}}) == 2

    @pytest.mark.asyncio
    async def test_select_projects_fields(self, store):
        items = store.model("item")
        created = await items.create(data={"n": 1, "secret": "x"})
        found = await items.find_unique(where={"id": created["id"]}, select={"n": True})
        assert found == {"n": 1}

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, store):
        items = store.model("item")
        created = await items.create(data={"tags": ["a"]})
        created["tags"].append("b")
        found = await items.find_unique(where={"id": created["id"]})
        assert found["tags"] == ["a"]

    @pytest.mark.asyncio
    async def test_update_and_delete_missing_raise(self, store):
        items = store.model("item")
        with pytest.raises(RecordNotFoundError):
            await items.update(where={"id": "nope"}, data={"n": 1})
        with pytest.raises(RecordNotFoundError):
            await items.delete(where={"id": "nope"})

    @pytest.mark.asyncio
    async def test_update_keeps_id(self, store):
        items = store.model("item")
        created = await items.create(data={"n": 1})
        updated = await items.update(where={"id": created["id"]}, data={"id": "x", "n": 2})
        assert updated["id"] == created["id"]
        assert updated["n"] == 2
