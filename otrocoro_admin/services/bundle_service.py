"""
Bundle Service

Business logic for bundles (combos) stored in the `bundles` collection.

- Every create/update is validated, then items are enriched from the product
  catalog and prices are derived; bundle_price is never written on its own
- Writes carry change provenance (created_by/updated_by, timestamps)
- Store failures are logged with the operation and re-raised

Usage:
    service = BundleService(store)
    bundle = await service.create_bundle(BundleCreate(...), user_id="admin-1")
    page = await service.list_bundles(BundleSearchParams(page=2))
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence
from uuid import uuid4

from otrocoro_admin.core.config import settings
from otrocoro_admin.core.document_store import Document, DocumentStore, Query
from otrocoro_admin.core.exceptions import (
    BundleValidationError,
    DocumentNotFoundError,
    DocumentStoreError,
    InsufficientBundleItemsError,
)
from otrocoro_admin.core.pagination import PaginationHelper
from otrocoro_admin.core.subscriptions import SnapshotStream, Subscription
from otrocoro_admin.core.utils import as_utc, generate_slug, utcnow
from otrocoro_admin.schemas.bundle import (
    Bundle,
    BundleAnalytics,
    BundleBase,
    BundleCreate,
    BundleFilters,
    BundleItem,
    BundleItemRef,
    BundlePricingPreview,
    BundleSearchParams,
    BundleStatus,
    BundleUpdate,
    DiscountPolicy,
    PaginatedBundleResponse,
)
from otrocoro_admin.services.bundle_enrichment import ItemEnricher, as_item_refs
from otrocoro_admin.services.bundle_lifecycle import (
    check_transition,
    effective_status,
    stored_statuses_for,
)
from otrocoro_admin.services.bundle_pricing import (
    compute_availability,
    compute_pricing,
    is_in_stock,
)
from otrocoro_admin.services.bundle_validation import validate_bundle

logger = logging.getLogger(__name__)


# ==================== Constants ====================

SORT_FIELDS = {
    "created_at": "created_at",
    "name": "name",
    "price": "bundle_price",
    "popularity": "purchase_count",
    "savings": "savings_percentage",
}

# Update fields that cannot be cleared with an explicit null
NON_NULLABLE_FIELDS = {
    "name", "slug", "description", "is_featured", "items", "discount",
    "restrictions", "images", "tags", "category_ids",
}

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@contextmanager
def _store_operation(operation: str):
    try:
        yield
    except DocumentStoreError as e:
        logger.error(f"Bundle store operation failed ({operation}): {e.message}")
        raise


# ==================== Bundle Service ====================

class BundleService:
    """Repository and business rules for bundles."""

    def __init__(
        self,
        store: DocumentStore,
        enricher: Optional[ItemEnricher] = None,
        collection: Optional[str] = None,
    ):
        self.store = store
        self.enricher = enricher or ItemEnricher(store)
        self.collection = collection or settings.BUNDLES_COLLECTION

    @staticmethod
    def generate_slug(name: str) -> str:
        return generate_slug(name)

    # ----- Reads -----

    @staticmethod
    def _from_document(document: Document, now: Optional[datetime] = None) -> Bundle:
        """Parse a stored document and apply date-driven status."""
        bundle = Bundle.model_validate({**document.data, "id": document.id})
        status = effective_status(bundle, now)
        if status != bundle.status:
            bundle = bundle.model_copy(update={"status": status})
        return bundle

    async def _load(self, bundle_id: str) -> Optional[Bundle]:
        """Bundle as stored, without date-driven status."""
        document = await self.store.get(self.collection, bundle_id)
        if document is None:
            return None
        return Bundle.model_validate({**document.data, "id": document.id})

    async def get_by_id(self, bundle_id: str) -> Optional[Bundle]:
        """Get bundle by ID."""
        with _store_operation(f"get {bundle_id}"):
            document = await self.store.get(self.collection, bundle_id)
        if document is None:
            return None
        return self._from_document(document)

    def _store_query(self, filters: Optional[BundleFilters]) -> Query:
        """Filters the store evaluates; the rest run in _matches."""
        query = Query()
        if filters is None:
            return query

        if filters.store_id:
            query = query.where("store_id", "==", filters.store_id)
        if filters.status:
            stored = []
            for status in filters.status:
                for candidate in stored_statuses_for(status):
                    if candidate.value not in stored:
                        stored.append(candidate.value)
            query = query.where("status", "in", stored)
        if filters.is_featured is not None:
            query = query.where("is_featured", "==", filters.is_featured)
        if filters.in_stock is not None:
            query = query.where("is_in_stock", "==", filters.in_stock)
        return query

    @staticmethod
    def _matches(bundle: Bundle, filters: Optional[BundleFilters]) -> bool:
        if filters is None:
            return True

        if filters.status and bundle.status not in filters.status:
            return False

        if filters.search:
            needle = filters.search.lower()
            haystack = (bundle.name, bundle.description or "", bundle.slug)
            if not any(needle in text.lower() for text in haystack):
                return False

        if filters.category_ids and not set(filters.category_ids) & set(bundle.category_ids):
            return False
        if filters.tags and not set(filters.tags) & set(bundle.tags):
            return False

        if filters.min_price is not None and bundle.bundle_price < filters.min_price:
            return False
        if filters.max_price is not None and bundle.bundle_price > filters.max_price:
            return False

        return True

    async def list_bundles(self, params: Optional[BundleSearchParams] = None) -> PaginatedBundleResponse:
        """
        List bundles with filtering, sorting and pagination.

        Store id, status, featured and in-stock filters go to the store query;
        search, category, tag and price filters are applied to the result.
        """
        params = params or BundleSearchParams()
        page, limit = PaginationHelper.validate_params(params.page, params.limit)

        query = self._store_query(params.filters).order(
            SORT_FIELDS[params.sort_by],
            descending=params.sort_order == "desc",
        )
        with _store_operation("list"):
            documents = await self.store.query(self.collection, query)

        now = utcnow()
        bundles = [
            bundle for bundle in (self._from_document(doc, now) for doc in documents)
            if self._matches(bundle, params.filters)
        ]

        data, pagination = PaginationHelper.paginate(bundles, page, limit)
        return PaginatedBundleResponse(data=data, pagination=pagination)

    # ----- Writes -----

    async def _enrich_required(self, raw_items: Sequence[Any]) -> List[BundleItem]:
        items, dropped = await self.enricher.enrich_with_report(raw_items)
        if len(items) < settings.BUNDLE_MIN_ITEMS:
            raise InsufficientBundleItemsError(
                resolved_count=len(items),
                required_count=settings.BUNDLE_MIN_ITEMS,
                dropped_product_ids=dropped,
            )
        return items

    @staticmethod
    def _derived_fields(items: Sequence[BundleItem], discount: DiscountPolicy) -> Dict[str, Any]:
        pricing = compute_pricing(items, discount)
        available = compute_availability(items)
        return {
            "total_original_price": pricing.total_original_price,
            "bundle_price": pricing.bundle_price,
            "savings": pricing.savings,
            "savings_percentage": pricing.savings_percentage,
            "available_quantity": available,
            "is_in_stock": is_in_stock(available),
        }

    async def create_bundle(self, data: BundleCreate, user_id: str) -> Bundle:
        """
        Create a new bundle in draft status.

        Raises:
            BundleValidationError: the definition breaks a bundle rule
            InsufficientBundleItemsError: fewer than the minimum products resolved
            DocumentStoreError: the store failed
        """
        validation = validate_bundle(data)
        if not validation.is_valid:
            raise BundleValidationError(validation.errors, validation.warnings)
        for warning in validation.warnings:
            logger.info(f"Bundle {data.name!r}: {warning}")

        with _store_operation(f"create {data.name!r}"):
            items = await self._enrich_required(data.items)

            now = utcnow()
            payload = data.model_dump(exclude={"items", "discount", "restrictions"})
            payload["slug"] = data.slug or self.generate_slug(data.name)
            bundle = Bundle(
                **payload,
                items=items,
                discount=data.discount,
                restrictions=data.restrictions,
                status=BundleStatus.DRAFT,
                **self._derived_fields(items, data.discount),
                created_at=now,
                updated_at=now,
                created_by=user_id,
                updated_by=user_id,
            )

            bundle_id = await self.store.add(
                self.collection,
                bundle.model_dump(mode="json", exclude={"id"}),
            )

        logger.info(f"Created bundle {bundle_id} ({bundle.slug}) with {len(items)} items by {user_id}")
        return bundle.model_copy(update={"id": bundle_id})

    async def update_bundle(self, bundle_id: str, data: BundleUpdate, user_id: str) -> Optional[Bundle]:
        """
        Update bundle fields.

        Returns None when the bundle does not exist. Only the submitted
        fields, the derived pricing/stock fields and the audit fields are
        written.
        """
        with _store_operation(f"update {bundle_id}"):
            current = await self._load(bundle_id)
            if current is None:
                return None

            submitted = data.model_dump(exclude_unset=True)
            touched = [
                name for name, value in submitted.items()
                if value is not None or name not in NON_NULLABLE_FIELDS
            ]

            merged = current.model_dump()
            merged.update({name: submitted[name] for name in touched})
            validation = validate_bundle(merged)
            if not validation.is_valid:
                raise BundleValidationError(validation.errors, validation.warnings)

            changes: Dict[str, Any] = {name: getattr(data, name) for name in touched}

            items = current.items
            if "items" in changes:
                items = await self._enrich_required(changes["items"])
                changes["items"] = items

            if "items" in changes or "discount" in changes:
                discount = changes.get("discount", current.discount)
                changes.update(self._derived_fields(items, discount))

            changes["updated_at"] = utcnow()
            changes["updated_by"] = user_id

            updated = current.model_copy(update=changes)
            document = updated.model_dump(mode="json", exclude={"id"})
            try:
                await self.store.update(
                    self.collection,
                    bundle_id,
                    {name: document[name] for name in changes},
                )
            except DocumentNotFoundError:
                logger.warning(f"Bundle {bundle_id} was deleted during update")
                return None

        logger.info(f"Updated bundle {bundle_id} fields {sorted(changes)} by {user_id}")
        return self._from_document(Document(id=bundle_id, data=document))

    async def update_status(self, bundle_id: str, status: BundleStatus, user_id: str) -> Optional[Bundle]:
        """
        Move a bundle to another status.

        Raises:
            InvalidStatusTransitionError: the transition is not allowed
        """
        with _store_operation(f"update status {bundle_id}"):
            current = await self._load(bundle_id)
            if current is None:
                return None

            check_transition(current, status)

            changes = {
                "status": status,
                "updated_at": utcnow(),
                "updated_by": user_id,
            }
            updated = current.model_copy(update=changes)
            document = updated.model_dump(mode="json", exclude={"id"})
            try:
                await self.store.update(
                    self.collection,
                    bundle_id,
                    {name: document[name] for name in changes},
                )
            except DocumentNotFoundError:
                return None

        logger.info(f"Bundle {bundle_id} status {current.status.value} -> {status.value} by {user_id}")
        return self._from_document(Document(id=bundle_id, data=document))

    async def delete_bundle(self, bundle_id: str) -> bool:
        """Hard delete. Products referenced by the bundle are untouched."""
        with _store_operation(f"delete {bundle_id}"):
            deleted = await self.store.delete(self.collection, bundle_id)
        if deleted:
            logger.info(f"Deleted bundle {bundle_id}")
        return deleted

    async def duplicate_bundle(self, bundle_id: str, user_id: str) -> Optional[Bundle]:
        """Copy a bundle as a new, non-featured draft with refreshed prices."""
        source = await self.get_by_id(bundle_id)
        if source is None:
            return None

        payload = source.model_dump(include=set(BundleBase.model_fields))
        payload.update({
            "name": f"{source.name} (Copy)",
            "slug": f"{source.slug}-copy-{uuid4().hex[:6]}",
            "is_featured": False,
        })
        data = BundleCreate(**payload, items=as_item_refs(source.items))

        duplicate = await self.create_bundle(data, user_id)
        logger.info(f"Duplicated bundle {bundle_id} as {duplicate.id}")
        return duplicate

    # ----- Live snapshots -----

    async def subscribe_to_bundle(
        self,
        bundle_id: str,
        callback: Callable[[Optional[Bundle]], Any],
    ) -> Subscription:
        """Call `callback` with the bundle (None once deleted) now and on every change."""

        def on_snapshot(document: Optional[Document]):
            return callback(self._from_document(document) if document is not None else None)

        with _store_operation(f"subscribe {bundle_id}"):
            return await self.store.watch_document(self.collection, bundle_id, on_snapshot)

    async def subscribe_to_bundles(
        self,
        callback: Callable[[List[Bundle]], Any],
        filters: Optional[BundleFilters] = None,
    ) -> Subscription:
        """Call `callback` with the matching bundles, newest first, now and on every change."""
        query = self._store_query(filters).order("created_at", descending=True)

        def on_snapshot(documents: List[Document]):
            now = utcnow()
            bundles = [self._from_document(doc, now) for doc in documents]
            return callback([b for b in bundles if self._matches(b, filters)])

        with _store_operation("subscribe list"):
            return await self.store.watch_query(self.collection, query, on_snapshot)

    async def stream_bundles(self, filters: Optional[BundleFilters] = None) -> SnapshotStream:
        """Async-iterable form of subscribe_to_bundles."""
        stream: SnapshotStream = SnapshotStream()
        subscription = await self.subscribe_to_bundles(stream.push, filters)
        stream.attach(subscription)
        return stream

    # ----- Pricing preview -----

    async def preview_pricing(
        self,
        items: Sequence[BundleItemRef],
        discount: DiscountPolicy,
    ) -> BundlePricingPreview:
        """Enrich and price items without persisting anything."""
        with _store_operation("preview pricing"):
            enriched, dropped = await self.enricher.enrich_with_report(items)

        available = compute_availability(enriched)
        return BundlePricingPreview(
            items=enriched,
            pricing=compute_pricing(enriched, discount),
            available_quantity=available,
            is_in_stock=is_in_stock(available),
            dropped_product_ids=dropped,
        )

    # ----- Analytics -----

    async def record_view(self, bundle_id: str) -> Optional[Bundle]:
        bundle = await self.get_by_id(bundle_id)
        if bundle is None:
            return None

        with _store_operation(f"record view {bundle_id}"):
            view_count = bundle.view_count + 1
            await self.store.update(self.collection, bundle_id, {"view_count": view_count})
        return bundle.model_copy(update={"view_count": view_count})

    async def record_purchase(self, bundle_id: str, quantity: int = 1) -> Optional[Bundle]:
        """Add `quantity` purchases and their revenue at the current bundle price."""
        if quantity < 1:
            raise ValueError("Purchase quantity must be at least 1")

        bundle = await self.get_by_id(bundle_id)
        if bundle is None:
            return None

        changes = {
            "purchase_count": bundle.purchase_count + quantity,
            "revenue": bundle.revenue + bundle.bundle_price * quantity,
        }
        with _store_operation(f"record purchase {bundle_id}"):
            await self.store.update(self.collection, bundle_id, {
                "purchase_count": changes["purchase_count"],
                "revenue": float(changes["revenue"]),
            })

        logger.info(f"Recorded {quantity} purchase(s) of bundle {bundle_id}")
        return bundle.model_copy(update=changes)

    async def get_analytics(self, bundle_id: str) -> Optional[BundleAnalytics]:
        bundle = await self.get_by_id(bundle_id)
        if bundle is None:
            return None

        conversion_rate = (
            Decimal(bundle.purchase_count) / Decimal(bundle.view_count) * HUNDRED
            if bundle.view_count > 0 else ZERO
        )
        average_order_value = (
            bundle.revenue / bundle.purchase_count if bundle.purchase_count > 0 else ZERO
        )

        return BundleAnalytics(
            bundle_id=bundle_id,
            bundle_name=bundle.name,
            view_count=bundle.view_count,
            purchase_count=bundle.purchase_count,
            conversion_rate=conversion_rate,
            revenue=bundle.revenue,
            average_order_value=average_order_value,
            total_savings_given=bundle.savings * bundle.purchase_count,
        )

    # ----- Scheduling -----

    async def sync_schedules(self, now: Optional[datetime] = None, user_id: str = "system") -> List[Bundle]:
        """
        Persist date-driven status changes.

        Returns the bundles whose stored status changed.
        """
        now = as_utc(now) or utcnow()
        query = Query().where(
            "status", "in", [BundleStatus.SCHEDULED.value, BundleStatus.ACTIVE.value]
        )

        changed: List[Bundle] = []
        with _store_operation("sync schedules"):
            documents = await self.store.query(self.collection, query)
            for document in documents:
                stored_status = document.data.get("status")
                bundle = self._from_document(document, now)
                if bundle.status.value == stored_status:
                    continue
                bundle = bundle.model_copy(update={"updated_at": now, "updated_by": user_id})
                await self.store.update(
                    self.collection,
                    document.id,
                    bundle.model_dump(mode="json", include={"status", "updated_at", "updated_by"}),
                )
                changed.append(bundle)

        if changed:
            logger.info(f"Schedule sync moved {len(changed)} bundle(s): {[b.id for b in changed]}")
        return changed
