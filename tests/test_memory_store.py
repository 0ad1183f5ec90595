"""
Tests for the in-memory document store and the shared query model.
"""
import pytest

from otrocoro_admin.core.document_store import FieldFilter, Query, get_field
from otrocoro_admin.core.exceptions import DocumentNotFoundError


class TestCrud:
    @pytest.mark.asyncio
    async def test_add_get_update_delete(self, store):
        doc_id = await store.add("bundles", {"name": "Combo", "tags": ["a"]})

        doc = await store.get("bundles", doc_id)
        assert doc.data == {"name": "Combo", "tags": ["a"]}

        await store.update("bundles", doc_id, {"name": "Renamed"})
        assert (await store.get("bundles", doc_id)).data == {"name": "Renamed", "tags": ["a"]}

        assert await store.delete("bundles", doc_id) is True
        assert await store.get("bundles", doc_id) is None
        assert await store.delete("bundles", doc_id) is False

    @pytest.mark.asyncio
    async def test_update_missing_document(self, store):
        with pytest.raises(DocumentNotFoundError):
            await store.update("bundles", "nope", {"name": "x"})

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self, store):
        await store.set("bundles", "b1", {"tags": ["a"]})

        doc = await store.get("bundles", "b1")
        doc.data["tags"].append("b")

        assert (await store.get("bundles", "b1")).data["tags"] == ["a"]

    @pytest.mark.asyncio
    async def test_collections_are_separate(self, store):
        await store.set("bundles", "x", {"kind": "bundle"})
        await store.set("products", "x", {"kind": "product"})
        assert (await store.get("products", "x")).data["kind"] == "product"


class TestQuery:
    @pytest.mark.asyncio
    async def test_filters_order_and_limit(self, store):
        await store.set("bundles", "1", {"store_id": "s1", "price": 30, "tags": ["gold"]})
        await store.set("bundles", "2", {"store_id": "s1", "price": 10, "tags": []})
        await store.set("bundles", "3", {"store_id": "s2", "price": 20, "tags": ["gold"]})
        await store.set("bundles", "4", {"store_id": "s1"})

        query = Query().where("store_id", "==", "s1").order("price")
        assert [d.id for d in await store.query("bundles", query)] == ["2", "1", "4"]

        query = Query().where("tags", "array-contains", "gold").order("price", descending=True)
        assert [d.id for d in await store.query("bundles", query)] == ["1", "3"]

        query = Query().where("price", ">=", 20).limit_to(1)
        assert [d.id for d in await store.query("bundles", query)] == ["1"]

    def test_range_filters_skip_missing_fields(self):
        assert FieldFilter("price", "<", 10).matches({}) is False
        assert FieldFilter("price", "<", 10).matches({"price": "cheap"}) is False

    def test_membership_filters(self):
        assert FieldFilter("status", "in", ["draft", "active"]).matches({"status": "draft"})
        assert FieldFilter("status", "not-in", ["draft"]).matches({"status": "active"})
        assert FieldFilter("tags", "array-contains-any", ["x", "y"]).matches({"tags": ["y"]})

    def test_unknown_operator(self):
        with pytest.raises(ValueError):
            FieldFilter("price", "~=", 1)

    def test_dotted_paths(self):
        data = {"restrictions": {"min_quantity": 2}}
        assert get_field(data, "restrictions.min_quantity") == 2
        assert get_field(data, "restrictions.max_quantity") is None
        assert Query().where("restrictions.min_quantity", "==", 2).matches(data)


class TestListeners:
    @pytest.mark.asyncio
    async def test_query_listener(self, store):
        seen = []
        subscription = await store.watch_query(
            "bundles", Query().where("featured", "==", True), lambda docs: seen.append([d.id for d in docs])
        )

        await store.set("bundles", "a", {"featured": True})
        await store.set("bundles", "b", {"featured": False})
        await store.set("products", "p", {"featured": True})
        subscription.cancel()
        await store.delete("bundles", "a")

        assert seen == [[], ["a"], ["a"]]

    @pytest.mark.asyncio
    async def test_document_listener(self, store):
        seen = []
        await store.set("bundles", "a", {"n": 1})
        with await store.watch_document("bundles", "a", lambda doc: seen.append(doc and doc.data)):
            await store.update("bundles", "a", {"n": 2})
            await store.delete("bundles", "a")

        assert seen == [{"n": 1}, {"n": 2}, None]

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self, store):
        subscription = await store.watch_query("bundles", None, lambda docs: None)
        subscription.cancel()
        subscription.cancel()
        assert subscription.active is False

    @pytest.mark.asyncio
    async def test_close_detaches_listeners(self, store):
        seen = []
        await store.watch_query("bundles", None, seen.append)
        await store.close()
        await store.set("bundles", "a", {})
        assert len(seen) == 1
