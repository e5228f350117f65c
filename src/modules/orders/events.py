"""Domain events for the order workflow."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when a sales order or a split remainder is created."""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every committed status transition."""


@dataclass(frozen=True)
class OrderRejected(DomainEvent):
    """Raised when quality blocks an order (``REPROVADO``)."""


@dataclass(frozen=True)
class OrderSplit(DomainEvent):
    """Raised when a partial delivery creates a remainder order."""
