"""
Bundle item enrichment

Resolves the product (and optional variation) behind each raw bundle line and
denormalizes name, image, unit price, variation name and a stock snapshot onto
the item. Lines whose product cannot be resolved are dropped; the caller
decides whether enough items survived.

Usage:
    enricher = ItemEnricher(store)
    items = await enricher.enrich([BundleItemRef(product_id="p1")])
"""
import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from otrocoro_admin.core.config import settings
from otrocoro_admin.core.document_store import DocumentStore
from otrocoro_admin.core.exceptions import DocumentStoreError
from otrocoro_admin.schemas.bundle import BundleItem, BundleItemRef
from otrocoro_admin.schemas.product import CatalogProduct

logger = logging.getLogger(__name__)

RawItem = Union[BundleItemRef, Mapping]


class ItemEnricher:
    """Looks up catalog products for bundle lines, one at a time, in order."""

    def __init__(self, store: DocumentStore, products_collection: Optional[str] = None):
        self.store = store
        self.products_collection = products_collection or settings.PRODUCTS_COLLECTION

    async def enrich(self, raw_items: Sequence[RawItem]) -> List[BundleItem]:
        items, _ = await self.enrich_with_report(raw_items)
        return items

    async def enrich_with_report(
        self,
        raw_items: Sequence[RawItem],
    ) -> Tuple[List[BundleItem], List[str]]:
        """
        Enrich raw items and report what was dropped.

        Returns:
            Tuple of (enriched items, product ids of dropped lines)
        """
        enriched: List[BundleItem] = []
        dropped: List[str] = []

        for raw in raw_items:
            ref = raw if isinstance(raw, BundleItemRef) else BundleItemRef.model_validate(raw)
            try:
                item = await self._enrich_one(ref)
            except DocumentStoreError as e:
                logger.error(f"Failed to load product {ref.product_id} for bundle item: {e.message}")
                item = None
            except ValidationError as e:
                logger.error(f"Product {ref.product_id} has an unreadable document: {e}")
                item = None

            if item is None:
                dropped.append(ref.product_id)
            else:
                enriched.append(item)

        if dropped:
            logger.info(f"Enriched {len(enriched)} bundle items, dropped {len(dropped)}: {dropped}")

        return enriched, dropped

    async def _enrich_one(self, ref: BundleItemRef) -> Optional[BundleItem]:
        document = await self.store.get(self.products_collection, ref.product_id)
        if document is None:
            logger.warning(f"Product {ref.product_id} not found, dropping bundle item")
            return None

        product = CatalogProduct.model_validate(document.data)
        base_price = product.base_price if product.base_price is not None else Decimal("0")

        price = base_price
        variation_name = None
        stock = product.total_inventory

        if ref.variation_id:
            variation = product.find_variation(ref.variation_id)
            if variation is None:
                logger.warning(
                    f"Variation {ref.variation_id} not found on product {ref.product_id}, "
                    f"using base price"
                )
            else:
                if variation.price is not None:
                    price = variation.price
                variation_name = variation.display_name or None
                stock = variation.stock

        return BundleItem(
            product_id=ref.product_id,
            variation_id=ref.variation_id,
            quantity=ref.quantity,
            product_name=product.name,
            product_image=product.primary_image,
            variation_name=variation_name,
            original_price=price,
            stock=stock,
        )


def as_item_refs(items: Sequence[Any]) -> List[BundleItemRef]:
    """Strip denormalized fields from stored items so they can be re-enriched."""
    refs = []
    for item in items:
        if isinstance(item, BundleItemRef):
            refs.append(BundleItemRef(
                product_id=item.product_id,
                variation_id=item.variation_id,
                quantity=item.quantity,
            ))
        else:
            refs.append(BundleItemRef.model_validate(item))
    return refs
