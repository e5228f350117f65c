"""Order repository interface.

Extends ``IRepository[Order]`` with methods required by the Order
aggregate: atomic creation with items, compare-and-set status
transitions, the append-only log and the lineage copy used by splits.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, Mapping, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.accounts.identity import ActingUser
    from modules.orders.models import Order, OrderLogEntry


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderLogEntry records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` must include ``customer_name``, ``delivery_date`` and
        ``items`` (list of dicts with ``product_id``, ``product_name``,
        ``quantity``, ``unit_price``).  ``total_value`` is computed from
        the items.
        """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with prefetched items and log."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order holding a row-level lock."""

    @abstractmethod
    def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[str] = None,
    ) -> Iterable[Order]:
        """List orders with optional field filters and free-text search."""

    @abstractmethod
    def apply_transition(
        self,
        order: Order,
        new_status: str,
        fields: Optional[Mapping[str, Any]] = None,
    ) -> Order:
        """Move ``order`` to ``new_status`` if nobody changed it meanwhile.

        Raises:
            TransitionConflict: status or version no longer match.
        """

    @abstractmethod
    def append_log_entry(
        self,
        order: Order,
        stage: str,
        actor: ActingUser,
        note: str = "",
        previous_stage: Optional[str] = None,
        changes: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> OrderLogEntry:
        """Add the newest entry to the order's log."""

    @abstractmethod
    def copy_log(self, source: Order, target: Order) -> int:
        """Copy every log entry of ``source`` onto ``target``."""

    @abstractmethod
    def update_items(
        self, order: Order, changes: Mapping[str, Mapping[str, Any]]
    ) -> None:
        """Apply per-item field changes keyed by item id."""

    @abstractmethod
    def record_events(self, order: Order) -> int:
        """Write the order's pending domain events to the outbox."""

    @abstractmethod
    def summary(self) -> Dict[str, Any]:
        """Aggregate counts per status and priority plus total value."""
