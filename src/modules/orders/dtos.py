"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderItemDTO``: input for a single order line item.
- ``CreateOrderDTO``: input for sales intake (nested items).
- ``ProducedQuantityDTO``: produced amount reported for one line.
- ``StatusSummaryDTO``: output of the status report.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from modules.orders.constants import Priority

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderItemDTO(BaseModel):
    """Immutable DTO for a single order item in a creation request.

    ``unit_price`` and the display name are resolved by the Service Layer
    from the product catalog.
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantidade deve ser no mínimo 1.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for sales intake.

    Validates:
    - ``customer_name`` must not be blank.
    - ``items`` must contain at least one item.
    - A product appears at most once.
    """

    model_config = ConfigDict(frozen=True)

    customer_name: str
    items: List[CreateOrderItemDTO]
    delivery_date: date
    priority: Priority = Priority.MEDIA
    external_ref: Optional[str] = ""

    @field_validator("customer_name")
    @classmethod
    def customer_name_must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Nome do cliente é obrigatório.")
        return v

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("O pedido deve ter ao menos um item.")
        return v

    @model_validator(mode="after")
    def no_duplicate_products(self):
        """Prevent duplicate product IDs in the same order."""
        product_ids = [item.product_id for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("Produto repetido no mesmo pedido.")
        return self


class ProducedQuantityDTO(BaseModel):
    """Amount actually produced for one line of an order."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity_produced: int

    @field_validator("quantity_produced")
    @classmethod
    def quantity_must_not_be_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Quantidade produzida não pode ser negativa.")
        return v


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class StatusSummaryDTO(BaseModel):
    """Immutable DTO for the management report."""

    model_config = ConfigDict(frozen=True)

    total_orders: int
    total_value: Decimal
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    blocked: int
