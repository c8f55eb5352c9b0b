# catalog_admin/errors.py
from typing import Optional


class CatalogAdminError(Exception):
    """Base class for errors surfaced to the admin user."""


class ValidationError(CatalogAdminError):
    """A form field failed validation; raised before any network call."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class NetworkError(CatalogAdminError):
    """An API call failed or returned a non-success status."""

    def __init__(self, status: Optional[int], message: str):
        super().__init__(message)
        self.status = status
        self.message = message


class EmptyExportError(CatalogAdminError):
    def __init__(self, message: str = "No data to export"):
        super().__init__(message)
