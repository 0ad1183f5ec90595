"""
Pydantic Schemas for Bundles (combos)

A bundle is a set of catalog products sold together at a discounted price.
These models are both the API contract and the shape of the documents stored
in the `bundles` collection (money is serialized as JSON numbers).

Range checks on discounts, names and item counts live in
services/bundle_validation.py, which reports them together as validation
errors.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from otrocoro_admin.schemas.common import Money, Pagination, Timestamp


class BundleStatus(str, Enum):
    """Bundle lifecycle status."""
    DRAFT = "draft"           # Being built, not sellable
    ACTIVE = "active"         # Live and purchasable
    SCHEDULED = "scheduled"   # Goes live at start_date
    EXPIRED = "expired"       # Past end_date
    ARCHIVED = "archived"     # Retired by an admin


CustomerSegment = Literal["retail", "wholesale", "vip"]


# ==================== Discount Policy ====================

class PercentageDiscount(BaseModel):
    """Percentage off the item total (0-100)."""
    type: Literal["percentage"] = "percentage"
    value: Money


class FixedDiscount(BaseModel):
    """Currency amount off the item total."""
    type: Literal["fixed"] = "fixed"
    value: Money


class BundlePriceDiscount(BaseModel):
    """Explicit final price for the whole bundle."""
    type: Literal["bundle_price"] = "bundle_price"
    value: Money


DiscountPolicy = Annotated[
    Union[PercentageDiscount, FixedDiscount, BundlePriceDiscount],
    Field(discriminator="type"),
]


# ==================== Bundle Item Schemas ====================

class BundleItemRef(BaseModel):
    """Product reference as submitted by the admin UI."""
    product_id: str = Field(..., min_length=1, description="Catalog product id")
    variation_id: Optional[str] = Field(None, description="Specific variation of the product")
    quantity: int = Field(default=1, ge=1, description="Units of this product in the bundle")


class BundleItem(BundleItemRef):
    """Bundle line with product data denormalized at enrichment time."""
    product_name: str
    product_image: Optional[str] = None
    variation_name: Optional[str] = None
    original_price: Money = Field(..., ge=0, description="Unit price snapshot")
    stock: Optional[int] = Field(None, description="Stock snapshot; None means untracked")


class BundleRestrictions(BaseModel):
    """Purchase restrictions of a bundle."""
    min_quantity: int = Field(default=1, ge=1)
    max_quantity: Optional[int] = Field(None, ge=1)
    requires_all_items: bool = True
    allow_quantity_change: bool = False
    eligible_customer_segments: List[CustomerSegment] = Field(default_factory=list)


# ==================== Bundle Schemas ====================

class BundleBase(BaseModel):
    """Fields an admin edits directly."""
    store_id: str = Field(..., min_length=1, description="Owning store")
    name: str = Field(..., description="Bundle display name")
    slug: Optional[str] = Field(None, description="URL slug (generated when missing)")
    description: str = ""
    short_description: Optional[str] = None
    is_featured: bool = False
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    discount: DiscountPolicy
    restrictions: BundleRestrictions = Field(default_factory=BundleRestrictions)
    images: List[str] = Field(default_factory=list)
    primary_image: Optional[str] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    category_ids: List[str] = Field(default_factory=list)


class BundleCreate(BundleBase):
    """Schema for creating a new bundle."""
    items: List[BundleItemRef] = Field(default_factory=list)


class BundleUpdate(BaseModel):
    """Schema for updating a bundle. Status changes go through BundleStatusUpdate."""
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = None
    is_featured: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    items: Optional[List[BundleItemRef]] = None
    discount: Optional[DiscountPolicy] = None
    restrictions: Optional[BundleRestrictions] = None
    images: Optional[List[str]] = None
    primary_image: Optional[str] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    tags: Optional[List[str]] = None
    category_ids: Optional[List[str]] = None


class BundleStatusUpdate(BaseModel):
    status: BundleStatus


class BundlePricing(BaseModel):
    """Derived prices of a bundle."""
    total_original_price: Money
    bundle_price: Money
    savings: Money
    savings_percentage: Money


class Bundle(BaseModel):
    """Stored bundle document."""
    id: Optional[str] = None
    store_id: str
    name: str
    slug: str
    description: str = ""
    short_description: Optional[str] = None
    status: BundleStatus = BundleStatus.DRAFT
    is_featured: bool = False
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    items: List[BundleItem]
    discount: DiscountPolicy
    restrictions: BundleRestrictions = Field(default_factory=BundleRestrictions)

    # Derived pricing - never written independently of items/discount
    total_original_price: Money = Decimal("0")
    bundle_price: Money = Decimal("0")
    savings: Money = Decimal("0")
    savings_percentage: Money = Decimal("0")

    images: List[str] = Field(default_factory=list)
    primary_image: Optional[str] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    category_ids: List[str] = Field(default_factory=list)

    # Inventory, derived from item stock snapshots
    available_quantity: Optional[int] = None
    is_in_stock: bool = True

    # Analytics
    view_count: int = 0
    purchase_count: int = 0
    revenue: Money = Decimal("0")

    # Audit
    created_at: Timestamp
    updated_at: Timestamp
    created_by: Optional[str] = None
    updated_by: Optional[str] = None


class BundleValidation(BaseModel):
    """Advisory validation result; callers decide whether to block."""
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


# ==================== Search Schemas ====================

BundleSortField = Literal["created_at", "name", "price", "popularity", "savings"]


class BundleFilters(BaseModel):
    store_id: Optional[str] = None
    status: Optional[List[BundleStatus]] = None
    is_featured: Optional[bool] = None
    category_ids: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    in_stock: Optional[bool] = None
    search: Optional[str] = Field(None, description="Matches name, description or slug")


class BundleSearchParams(BaseModel):
    filters: BundleFilters = Field(default_factory=BundleFilters)
    sort_by: BundleSortField = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = 1
    limit: int = 20


class PaginatedBundleResponse(BaseModel):
    data: List[Bundle]
    pagination: Pagination


# ==================== Pricing Preview Schemas ====================

class BundlePricingRequest(BaseModel):
    """Request for bundle pricing calculation (preview mode)."""
    items: List[BundleItemRef]
    discount: DiscountPolicy


class BundlePricingPreview(BaseModel):
    """Enriched items and prices without persisting anything."""
    items: List[BundleItem]
    pricing: BundlePricing
    available_quantity: Optional[int] = None
    is_in_stock: bool = True
    dropped_product_ids: List[str] = Field(default_factory=list)


# ==================== Analytics Schemas ====================

class BundlePurchase(BaseModel):
    quantity: int = Field(default=1, ge=1)


class BundleAnalytics(BaseModel):
    bundle_id: str
    bundle_name: str
    view_count: int
    purchase_count: int
    conversion_rate: Money  # purchase_count / view_count * 100
    revenue: Money
    average_order_value: Money
    total_savings_given: Money
