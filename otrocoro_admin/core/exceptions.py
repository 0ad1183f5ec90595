"""
Otrocoro Admin Exception Hierarchy

Structured exception classes for the document store and the bundle catalog.
All exceptions include code, message, and details for logging and for the
JSON error bodies returned by the admin API.

Exception Hierarchy:
    AdminBaseError
    ├── DocumentStoreError
    │   └── DocumentNotFoundError
    └── BundleError
        ├── BundleNotFoundError
        ├── BundleValidationError
        ├── InsufficientBundleItemsError
        └── InvalidStatusTransitionError
"""
import logging
from typing import Optional, Dict, Any, List

logger = logging.getLogger(__name__)


class AdminBaseError(Exception):
    """
    Base exception for all Otrocoro Admin custom errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Additional context for debugging/audit
        severity: P0-P3 severity level
        status_code: HTTP status used when the error reaches the API layer
    """

    default_code: str = "ADMIN_ERROR"
    default_severity: str = "P2"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[str] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        self.severity = severity or self.default_severity
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


# =============================================================================
# DOCUMENT STORE ERRORS
# =============================================================================

class DocumentStoreError(AdminBaseError):
    """Store unreachable, permission denied or any other I/O failure."""
    default_code = "DOCUMENT_STORE_ERROR"
    default_severity = "P1"
    status_code = 503

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        document_id: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details.update({
            "collection": collection,
            "document_id": document_id,
        })
        super().__init__(message, details=details, **kwargs)


class DocumentNotFoundError(DocumentStoreError):
    """Write targeted a document that does not exist."""
    default_code = "DOCUMENT_NOT_FOUND"
    default_severity = "P3"
    status_code = 404


# =============================================================================
# BUNDLE ERRORS
# =============================================================================

class BundleError(AdminBaseError):
    """Base exception for bundle catalog errors."""
    default_code = "BUNDLE_ERROR"
    default_severity = "P3"
    status_code = 400


class BundleNotFoundError(BundleError):
    """Bundle id does not resolve to a document."""
    default_code = "BUNDLE_NOT_FOUND"
    status_code = 404

    def __init__(self, bundle_id: str, **kwargs):
        details = kwargs.pop("details", {})
        details["bundle_id"] = bundle_id
        super().__init__(f"Bundle {bundle_id} not found", details=details, **kwargs)


class BundleValidationError(BundleError):
    """Bundle definition failed structural or business validation."""
    default_code = "BUNDLE_VALIDATION_FAILED"
    status_code = 422

    def __init__(
        self,
        errors: List[str],
        warnings: Optional[List[str]] = None,
        **kwargs
    ):
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        details = kwargs.pop("details", {})
        details.update({
            "errors": self.errors,
            "warnings": self.warnings,
        })
        super().__init__(
            "Bundle validation failed: " + ", ".join(self.errors),
            details=details,
            **kwargs
        )


class InsufficientBundleItemsError(BundleError):
    """Too few products could be resolved from the catalog for a bundle."""
    default_code = "BUNDLE_INSUFFICIENT_VALID_PRODUCTS"
    status_code = 422

    def __init__(
        self,
        resolved_count: int,
        required_count: int,
        dropped_product_ids: Optional[List[str]] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details.update({
            "resolved_count": resolved_count,
            "required_count": required_count,
            "dropped_product_ids": list(dropped_product_ids or []),
        })
        super().__init__(
            f"Could not load enough valid products for the bundle "
            f"({resolved_count} of {required_count} required)",
            details=details,
            **kwargs
        )


class InvalidStatusTransitionError(BundleError):
    """Requested status change is not allowed from the current status."""
    default_code = "BUNDLE_INVALID_STATUS_TRANSITION"
    status_code = 409

    def __init__(
        self,
        message: str,
        current_status: Optional[str] = None,
        requested_status: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details.update({
            "current_status": current_status,
            "requested_status": requested_status,
        })
        super().__init__(message, details=details, **kwargs)
