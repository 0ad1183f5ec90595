"""
Tests for the SQLAlchemy document store on an in-memory SQLite database.
"""
import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from otrocoro_admin.core.database import init_models
from otrocoro_admin.core.document_store import Query
from otrocoro_admin.core.exceptions import DocumentNotFoundError, DocumentStoreError
from otrocoro_admin.core.sql_store import SqlDocumentStore
from otrocoro_admin.schemas.bundle import BundleFilters, BundleSearchParams, BundleStatus
from otrocoro_admin.services.bundle_service import BundleService


@pytest.fixture
async def sql_store():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_models(bind=engine)
    store = SqlDocumentStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    yield store
    await store.close()
    await engine.dispose()


class TestSqlDocumentStore:
    @pytest.mark.asyncio
    async def test_crud(self, sql_store):
        doc_id = await sql_store.add("bundles", {"name": "Combo", "price": 10.5})
        assert (await sql_store.get("bundles", doc_id)).data == {"name": "Combo", "price": 10.5}

        await sql_store.update("bundles", doc_id, {"price": 12})
        assert (await sql_store.get("bundles", doc_id)).data == {"name": "Combo", "price": 12}

        assert await sql_store.delete("bundles", doc_id) is True
        assert await sql_store.get("bundles", doc_id) is None
        assert await sql_store.delete("bundles", doc_id) is False

    @pytest.mark.asyncio
    async def test_update_missing_document(self, sql_store):
        with pytest.raises(DocumentNotFoundError):
            await sql_store.update("bundles", "nope", {"price": 1})

    @pytest.mark.asyncio
    async def test_query_pushdown_and_memory_filters(self, sql_store):
        await sql_store.set("bundles", "1", {"status": "draft", "featured": True, "price": 30})
        await sql_store.set("bundles", "2", {"status": "active", "featured": True, "price": 10})
        await sql_store.set("bundles", "3", {"status": "active", "featured": False, "price": 20})
        await sql_store.set("products", "4", {"status": "active", "featured": True, "price": 5})

        query = (
            Query()
            .where("status", "in", ["active", "draft"])
            .where("featured", "==", True)
            .order("price")
        )
        assert [d.id for d in await sql_store.query("bundles", query)] == ["2", "1"]

        query = Query().where("price", ">", 15).order("price", descending=True).limit_to(1)
        assert [d.id for d in await sql_store.query("bundles", query)] == ["1"]

        assert len(await sql_store.query("bundles", Query().limit_to(2))) == 2

    @pytest.mark.asyncio
    async def test_listeners_see_writes(self, sql_store):
        seen = []
        subscription = await sql_store.watch_query("bundles", None, lambda docs: seen.append(len(docs)))
        await sql_store.set("bundles", "a", {})
        await sql_store.set("bundles", "b", {})
        subscription.cancel()
        await sql_store.delete("bundles", "a")

        assert seen == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_driver_errors_become_store_errors(self):
        def broken_session():
            raise SQLAlchemyError("connection refused")

        store = SqlDocumentStore(broken_session)
        with pytest.raises(DocumentStoreError) as exc_info:
            await store.get("bundles", "b1")

        assert exc_info.value.details == {"collection": "bundles", "document_id": "b1"}


class TestBundleServiceOnSql:
    @pytest.mark.asyncio
    async def test_create_update_and_list(self, sql_store, bundle_data):
        await sql_store.set("products", "A", {"name": "Gold Ring", "basePrice": 100, "totalInventory": 9})
        await sql_store.set("products", "B", {"name": "Silver Chain", "basePrice": 50})
        service = BundleService(sql_store)

        bundle = await service.create_bundle(bundle_data(is_featured=True), user_id="admin-1")
        await service.update_status(bundle.id, BundleStatus.ACTIVE, user_id="admin-1")

        result = await service.list_bundles(BundleSearchParams(
            filters=BundleFilters(
                store_id="store-1",
                status=[BundleStatus.ACTIVE],
                is_featured=True,
                in_stock=True,
            ),
        ))

        assert [b.id for b in result.data] == [bundle.id]
        assert result.data[0].bundle_price == 200
        assert result.data[0].status == BundleStatus.ACTIVE
