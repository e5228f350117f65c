"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.
"""

from __future__ import annotations


class OrderError(Exception):
    """Base class for order workflow failures."""


class OrderNotFound(OrderError):
    """The requested order does not exist."""


class ProductNotFound(OrderError):
    """A product referenced by an order item does not exist."""


class DepartmentPermissionDenied(OrderError):
    """The effective role does not own the order's current status."""


class ValidationFailed(OrderError):
    """Required companion data is missing or out of range."""


class InvalidOrderStatus(ValidationFailed):
    """The requested status is not an edge of the Status Graph."""


class PartialDeliveryNotConfirmed(ValidationFailed):
    """Produced less than requested without confirming a partial delivery."""


class TransitionConflict(OrderError):
    """A concurrent transition changed the order first; refetch and retry."""


class AuditLogImmutable(OrderError):
    """Log entries can only be appended, never edited or deleted."""
