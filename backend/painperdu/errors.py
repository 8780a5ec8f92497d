# Overview: Domain error taxonomy shared by services and routes.

"""
Every business failure raised by a service is a PainPerduError carrying the
HTTP status the routes should answer with. Routes never inspect messages;
they roll back the session and serialize the error with `to_dict()`.

    400  validation / business rule / caller-supplied bad reference
    401  authentication
    403  role or capability mismatch
    404  path-identified record missing (or not visible to the caller)
"""
from __future__ import annotations


class PainPerduError(Exception):
    """Base class for errors that map onto a JSON error response."""

    status_code = 400
    default_message = "Invalid request"

    def __init__(self, message: str | None = None, errors: list[dict] | None = None):
        self.message = message or self.default_message
        self.errors = errors or None
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(PainPerduError):
    """400-level input problem; `errors` lists per-field messages."""

    default_message = "Invalid data"


class ConflictError(PainPerduError):
    """Unique-name style conflict (e.g., duplicate product name)."""


class NotFoundError(PainPerduError):
    status_code = 404
    default_message = "Not found"


class AuthenticationError(PainPerduError):
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(PainPerduError):
    status_code = 403
    default_message = "Access denied"


# -- Inventory -----------------------------------------------------------------

class DuplicateInventory(PainPerduError):
    default_message = "An inventory of this type already exists for this seller on this date"


class InventoryLocked(PainPerduError):
    default_message = "Inventory is confirmed and can no longer be modified"


class AlreadyConfirmed(PainPerduError):
    default_message = "Inventory is already confirmed"


class OversoldQuantity(PainPerduError):
    default_message = "Sold quantity exceeds counted quantity"


class InvalidOrInactiveProduct(PainPerduError):
    default_message = "One or more products are invalid or inactive"


# -- Schedules -----------------------------------------------------------------

class ScheduleConflict(PainPerduError):
    default_message = "Schedule conflicts with an existing entry for this seller and date"


# -- Catalog -------------------------------------------------------------------

class CategoryInUse(PainPerduError):
    default_message = "Category still has active products"


class ProductInUse(PainPerduError):
    default_message = "Product is referenced by inventories and cannot be deleted"
