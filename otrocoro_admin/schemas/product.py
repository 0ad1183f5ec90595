"""
Read model for documents of the `products` collection.

The catalog is owned by the product admin; bundles only read the fields they
denormalize. Catalog documents use camelCase keys, so fields carry aliases.
Unknown keys are ignored.
"""
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CatalogVariation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    sku: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    price: Optional[Decimal] = None
    inventory_quantity: Optional[int] = Field(None, alias="inventoryQuantity")
    has_infinite_stock: bool = Field(False, alias="hasInfiniteStock")

    @property
    def display_name(self) -> str:
        if self.sku:
            return self.sku
        return f"{self.size or ''} {self.color or ''}".strip()

    @property
    def stock(self) -> Optional[int]:
        if self.has_infinite_stock:
            return None
        return self.inventory_quantity


class CatalogProduct(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    images: List[Any] = Field(default_factory=list)
    base_price: Optional[Decimal] = Field(None, alias="basePrice")
    total_inventory: Optional[int] = Field(None, alias="totalInventory")
    variations: List[CatalogVariation] = Field(default_factory=list)

    @property
    def primary_image(self) -> Optional[str]:
        """First image URL; images may be plain URLs or {"url": ...} objects."""
        if not self.images:
            return None
        first = self.images[0]
        if isinstance(first, dict):
            return first.get("url")
        if isinstance(first, str):
            return first
        return None

    def find_variation(self, variation_id: str) -> Optional[CatalogVariation]:
        return next((v for v in self.variations if v.id == variation_id), None)
