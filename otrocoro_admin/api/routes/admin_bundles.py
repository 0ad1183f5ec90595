"""
Admin Bundle API Routes

CRUD, lifecycle, pricing preview and analytics for bundles (combos).

Service errors (validation, missing products, bad transitions, store
failures) propagate as AdminBaseError subclasses and are turned into JSON
error bodies by core/error_handler.py.
"""
import logging
from decimal import Decimal
from typing import List, Optional, TypeVar

from fastapi import APIRouter, Depends, Query, Response, status

from otrocoro_admin.api.deps import get_bundle_service, get_current_user_id
from otrocoro_admin.core.exceptions import BundleNotFoundError
from otrocoro_admin.schemas.bundle import (
    Bundle,
    BundleAnalytics,
    BundleCreate,
    BundleFilters,
    BundlePricingPreview,
    BundlePricingRequest,
    BundlePurchase,
    BundleSearchParams,
    BundleSortField,
    BundleStatus,
    BundleStatusUpdate,
    BundleUpdate,
    BundleValidation,
    PaginatedBundleResponse,
)
from otrocoro_admin.services.bundle_service import BundleService
from otrocoro_admin.services.bundle_validation import validate_bundle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/bundles", tags=["admin-bundles"])

T = TypeVar("T")


# ==================== Helper Functions ====================

def require_bundle(result: Optional[T], bundle_id: str) -> T:
    """Raise BundleNotFoundError when a service call found no bundle."""
    if result is None:
        raise BundleNotFoundError(bundle_id)
    return result


# ==================== Bundle Routes ====================

@router.get("/", response_model=PaginatedBundleResponse)
async def list_bundles(
    store_id: Optional[str] = Query(None, description="Filter by store"),
    bundle_status: Optional[List[BundleStatus]] = Query(None, alias="status", description="Filter by status"),
    is_featured: Optional[bool] = Query(None),
    in_stock: Optional[bool] = Query(None),
    category_ids: Optional[List[str]] = Query(None, description="Any of these categories"),
    tags: Optional[List[str]] = Query(None, description="Any of these tags"),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    search: Optional[str] = Query(None, description="Search in name/description/slug"),
    sort_by: BundleSortField = Query("created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    service: BundleService = Depends(get_bundle_service),
):
    """List bundles with filtering, sorting and pagination."""
    params = BundleSearchParams(
        filters=BundleFilters(
            store_id=store_id,
            status=bundle_status,
            is_featured=is_featured,
            in_stock=in_stock,
            category_ids=category_ids,
            tags=tags,
            min_price=min_price,
            max_price=max_price,
            search=search,
        ),
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return await service.list_bundles(params)


@router.post("/", response_model=Bundle, status_code=status.HTTP_201_CREATED)
async def create_bundle(
    data: BundleCreate,
    service: BundleService = Depends(get_bundle_service),
    user_id: str = Depends(get_current_user_id),
):
    """Create a new bundle as a draft."""
    bundle = await service.create_bundle(data, user_id)
    logger.info(f"Admin {user_id} created bundle {bundle.id}")
    return bundle


@router.post("/validate", response_model=BundleValidation)
async def validate_bundle_draft(data: BundleUpdate):
    """Check a (possibly partial) bundle definition without saving it."""
    return validate_bundle(data)


@router.post("/calculate-pricing", response_model=BundlePricingPreview)
async def calculate_pricing(
    data: BundlePricingRequest,
    service: BundleService = Depends(get_bundle_service),
):
    """Calculate pricing preview for proposed bundle items."""
    return await service.preview_pricing(data.items, data.discount)


@router.post("/sync-schedules", response_model=List[Bundle])
async def sync_schedules(
    service: BundleService = Depends(get_bundle_service),
    user_id: str = Depends(get_current_user_id),
):
    """Persist scheduled starts and expirations that are due."""
    return await service.sync_schedules(user_id=user_id)


@router.get("/{bundle_id}", response_model=Bundle)
async def get_bundle(
    bundle_id: str,
    service: BundleService = Depends(get_bundle_service),
):
    """Get bundle detail by ID."""
    return require_bundle(await service.get_by_id(bundle_id), bundle_id)


@router.patch("/{bundle_id}", response_model=Bundle)
async def update_bundle(
    bundle_id: str,
    data: BundleUpdate,
    service: BundleService = Depends(get_bundle_service),
    user_id: str = Depends(get_current_user_id),
):
    """Update an existing bundle."""
    bundle = require_bundle(await service.update_bundle(bundle_id, data, user_id), bundle_id)
    logger.info(f"Admin {user_id} updated bundle {bundle_id}")
    return bundle


@router.delete("/{bundle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bundle(
    bundle_id: str,
    service: BundleService = Depends(get_bundle_service),
    user_id: str = Depends(get_current_user_id),
):
    """Delete a bundle permanently."""
    if not await service.delete_bundle(bundle_id):
        raise BundleNotFoundError(bundle_id)
    logger.info(f"Admin {user_id} deleted bundle {bundle_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==================== Lifecycle Routes ====================

@router.post("/{bundle_id}/status", response_model=Bundle)
async def update_bundle_status(
    bundle_id: str,
    data: BundleStatusUpdate,
    service: BundleService = Depends(get_bundle_service),
    user_id: str = Depends(get_current_user_id),
):
    """Move a bundle to another lifecycle status."""
    return require_bundle(await service.update_status(bundle_id, data.status, user_id), bundle_id)


@router.post("/{bundle_id}/duplicate", response_model=Bundle, status_code=status.HTTP_201_CREATED)
async def duplicate_bundle(
    bundle_id: str,
    service: BundleService = Depends(get_bundle_service),
    user_id: str = Depends(get_current_user_id),
):
    """Duplicate a bundle as a new draft."""
    new_bundle = require_bundle(await service.duplicate_bundle(bundle_id, user_id), bundle_id)
    logger.info(f"Admin {user_id} duplicated bundle {bundle_id} to {new_bundle.id}")
    return new_bundle


# ==================== Analytics Routes ====================

@router.get("/{bundle_id}/analytics", response_model=BundleAnalytics)
async def get_bundle_analytics(
    bundle_id: str,
    service: BundleService = Depends(get_bundle_service),
):
    return require_bundle(await service.get_analytics(bundle_id), bundle_id)


@router.post("/{bundle_id}/views", response_model=Bundle)
async def record_bundle_view(
    bundle_id: str,
    service: BundleService = Depends(get_bundle_service),
):
    return require_bundle(await service.record_view(bundle_id), bundle_id)


@router.post("/{bundle_id}/purchases", response_model=Bundle)
async def record_bundle_purchase(
    bundle_id: str,
    data: BundlePurchase,
    service: BundleService = Depends(get_bundle_service),
):
    return require_bundle(await service.record_purchase(bundle_id, data.quantity), bundle_id)
