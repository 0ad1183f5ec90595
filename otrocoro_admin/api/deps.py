"""
API dependencies

The document store is created by the application factory and kept on
app.state; routes get a BundleService bound to it. Authentication happens in
front of this service, which only receives the acting admin in the
X-Admin-User header.
"""
from typing import Optional

from fastapi import Depends, Header, Request

from otrocoro_admin.core.document_store import DocumentStore
from otrocoro_admin.services.bundle_service import BundleService

DEFAULT_USER_ID = "system"


def get_document_store(request: Request) -> DocumentStore:
    return request.app.state.document_store


def get_bundle_service(store: DocumentStore = Depends(get_document_store)) -> BundleService:
    return BundleService(store)


def get_current_user_id(x_admin_user: Optional[str] = Header(None)) -> str:
    """Acting admin for audit fields."""
    if x_admin_user and x_admin_user.strip():
        return x_admin_user.strip()
    return DEFAULT_USER_ID
