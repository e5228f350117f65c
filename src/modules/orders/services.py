"""Order service layer (Use Cases).

Orchestrates the production workflow: sales intake, the Transition
Engine, the department flows built on it and the Split Operation.
All write operations are atomic; the service defines the unit-of-work
boundary.

Business rules enforced:
- Only the department owning the current status may move an order,
  managers may act as any department through ``view_role``.
- Only edges declared in the Status Graph are accepted.
- Companion data (batch number, invoice number) and mandatory notes are
  checked before anything is written.
- Every transition appends one log entry and one outbox event.
- Concurrent transitions based on the same prior status: one wins, the
  other gets ``TransitionConflict``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, Mapping, Optional
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from modules.orders.batch import generate_batch_number
from modules.orders.constants import (
    BATCH_NUMBER,
    COMPANION_FIELDS,
    INVOICE_NUMBER,
    NOTE_CREATED,
    NOTE_FULL_PRODUCTION,
    NOTE_PARTIAL_DELIVERY,
    NOTE_REMAINING_BALANCE,
    NOTE_ROUTED_TO_PCP,
    REMAINDER_SUFFIX,
    OrderStatus,
    Role,
    Transition,
    get_transition,
    statuses_owned_by,
)
from modules.orders.dtos import StatusSummaryDTO
from modules.orders.events import (
    OrderCreated,
    OrderRejected,
    OrderSplit,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    DepartmentPermissionDenied,
    InvalidOrderStatus,
    OrderNotFound,
    PartialDeliveryNotConfirmed,
    ProductNotFound,
    TransitionConflict,
    ValidationFailed,
)
from modules.orders.policies import (
    authorize_transition,
    can_access_view,
    can_view_reports,
)

if TYPE_CHECKING:
    from modules.accounts.identity import ActingUser
    from modules.orders.dtos import CreateOrderDTO, ProducedQuantityDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SplitResult:
    """Outcome of a production report.

    ``remainder`` is ``None`` when everything requested was produced.
    """

    original: Order
    remainder: Optional[Order] = None


def remainder_reference(order: Order) -> str:
    """External reference of a split remainder: ``<ref or number>-REM``.

    The base is cut so the suffixed reference fits ``external_ref``.
    """
    max_length = type(order)._meta.get_field("external_ref").max_length
    base = order.external_ref or order.order_number
    return f"{base[: max_length - len(REMAINDER_SUFFIX)]}{REMAINDER_SUFFIX}"


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository

    # ------------------------------------------------------------------
    # Sales intake
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO, actor: ActingUser) -> Order:
        """Register a sales order, already routed to PCP.

        The log is seeded with ``CRIADO`` and ``ANALISE_PCP`` entries;
        product name and price are snapshotted on each item.

        Raises:
            DepartmentPermissionDenied: actor has no access to sales intake.
            ProductNotFound: a product does not exist.
            ValidationFailed: a product is inactive.
        """
        log = logger.bind(actor_id=actor.id, customer_name=dto.customer_name)
        log.info("order.creation_started")

        if not can_access_view(actor.role, Role.VENDAS):
            log.warning("access.intake_denied", role=actor.role)
            raise DepartmentPermissionDenied(
                f"Acesso restrito: {actor.role} não cadastra pedidos."
            )

        products = self._product_repo.get_many(str(i.product_id) for i in dto.items)
        repo_items = []
        for position, item_dto in enumerate(dto.items):
            product = products.get(str(item_dto.product_id))
            if product is None:
                raise ProductNotFound(f"Produto {item_dto.product_id} não encontrado.")
            if not product.is_sellable:
                raise ValidationFailed(f"Produto {product.sku} está inativo.")
            repo_items.append(
                {
                    "product_id": product.id,
                    "product_name": product.name,
                    "position": position,
                    "quantity": item_dto.quantity,
                    "unit_price": product.price,
                }
            )

        order = self._order_repo.create(
            {
                "customer_name": dto.customer_name,
                "delivery_date": dto.delivery_date,
                "priority": dto.priority,
                "external_ref": dto.external_ref,
                "items": repo_items,
            }
        )

        now = timezone.now()
        self._order_repo.append_log_entry(
            order, OrderStatus.CRIADO, actor, note=NOTE_CREATED, timestamp=now
        )
        self._order_repo.append_log_entry(
            order,
            OrderStatus.ANALISE_PCP,
            actor,
            note=NOTE_ROUTED_TO_PCP,
            previous_stage=OrderStatus.CRIADO,
            timestamp=now,
        )

        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                payload={
                    "order_number": order.order_number,
                    "customer_name": order.customer_name,
                    "total_value": str(order.total_value),
                    "actor_id": actor.id,
                },
            )
        )
        self._order_repo.record_events(order)

        log.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
            total_value=str(order.total_value),
        )
        return self._refetch(order)

    # ------------------------------------------------------------------
    # Transition Engine
    # ------------------------------------------------------------------

    @transaction.atomic
    def advance_order(
        self,
        order_id: UUID | str,
        new_status: str,
        actor: ActingUser,
        notes: str = "",
        extra_fields: Optional[Mapping[str, Any]] = None,
        expected_status: Optional[str] = None,
        view_role: Optional[str] = None,
    ) -> Order:
        """Move one order along an edge of the Status Graph.

        Checks run in this order, before any write:
        existence, expected status, ownership, edge, companion fields,
        mandatory note.

        Raises:
            OrderNotFound: order does not exist.
            TransitionConflict: ``expected_status`` is stale, or a
                concurrent transition committed first.
            DepartmentPermissionDenied: effective role does not own the
                current status.
            InvalidOrderStatus: ``new_status`` is not an edge.
            ValidationFailed: companion data or mandatory note missing.
        """
        order = self._load_for_update(order_id, expected_status)
        transition = self._resolve_transition(order, new_status, actor, view_role)
        fields = self._companion_fields(order, transition, extra_fields)
        note = self._resolve_note(transition, notes, actor)

        self._commit_transition(order, transition, actor, note, fields)
        return self._refetch(order)

    # ------------------------------------------------------------------
    # Department flows
    # ------------------------------------------------------------------

    def confirm_production_batch(
        self,
        order_id: UUID | str,
        actor: ActingUser,
        now: Optional[datetime] = None,
        expected_status: Optional[str] = None,
        view_role: Optional[str] = None,
    ) -> Order:
        """PCP: generate the batch number and release to production."""
        batch_number = generate_batch_number(now)
        return self.advance_order(
            order_id,
            OrderStatus.EM_PRODUCAO,
            actor,
            notes=f"Lote gerado: {batch_number} - Enviado para Produção",
            extra_fields={BATCH_NUMBER: batch_number},
            expected_status=expected_status,
            view_role=view_role,
        )

    @transaction.atomic
    def report_production(
        self,
        order_id: UUID | str,
        produced: Iterable[ProducedQuantityDTO],
        actor: ActingUser,
        confirm_partial: bool = False,
        expected_status: Optional[str] = None,
        view_role: Optional[str] = None,
    ) -> SplitResult:
        """Production: report produced quantities and send to quality.

        A short line requires ``confirm_partial``; confirmed shortfalls
        split the order.

        Raises:
            PartialDeliveryNotConfirmed: short production not confirmed.
        """
        order = self._load_for_update(order_id, expected_status)
        transition = self._resolve_transition(
            order, OrderStatus.QUALIDADE_PENDENTE, actor, view_role
        )
        quantities = self._produced_by_item(order, produced)
        short = [
            item for item in order.items.all() if quantities[str(item.id)] < item.quantity
        ]
        if short and not confirm_partial:
            logger.info(
                "order.partial_delivery_unconfirmed",
                order_id=str(order.id),
                short_items=len(short),
            )
            raise PartialDeliveryNotConfirmed(
                "Produção menor que a solicitada: confirme a entrega parcial."
            )
        return self._split(order, transition, quantities, actor)

    @transaction.atomic
    def split_order(
        self,
        order_id: UUID | str,
        produced: Iterable[ProducedQuantityDTO],
        actor: ActingUser,
        expected_status: Optional[str] = None,
        view_role: Optional[str] = None,
    ) -> SplitResult:
        """Split an order in production into a delivered part and a remainder.

        Omitted lines count as zero produced.  When nothing remains this is
        the plain advance to ``QUALIDADE_PENDENTE``.

        Raises:
            OrderNotFound: order does not exist (nothing is changed).
            ValidationFailed: quantity out of range or product not on
                the order.
        """
        order = self._load_for_update(order_id, expected_status)
        transition = self._resolve_transition(
            order, OrderStatus.QUALIDADE_PENDENTE, actor, view_role
        )
        quantities = self._produced_by_item(order, produced)
        return self._split(order, transition, quantities, actor)

    def reject_order(
        self,
        order_id: UUID | str,
        reason: str,
        actor: ActingUser,
        expected_status: Optional[str] = None,
        view_role: Optional[str] = None,
    ) -> Order:
        """Quality: block the order (``REPROVADO``); ``reason`` is mandatory."""
        reason = (reason or "").strip()
        return self.advance_order(
            order_id,
            OrderStatus.REPROVADO,
            actor,
            notes=f"BLOQUEADO PELA QUALIDADE: {reason}" if reason else "",
            expected_status=expected_status,
            view_role=view_role,
        )

    def return_to_quality(
        self,
        order_id: UUID | str,
        observation: str,
        actor: ActingUser,
        expected_status: Optional[str] = None,
        view_role: Optional[str] = None,
    ) -> Order:
        """Assembly: send the order back to quality with a mandatory note."""
        observation = (observation or "").strip()
        return self.advance_order(
            order_id,
            OrderStatus.QUALIDADE_PENDENTE,
            actor,
            notes=f"DEVOLVIDO DA MONTAGEM: {observation}" if observation else "",
            expected_status=expected_status,
            view_role=view_role,
        )

    def finish_assembly(
        self,
        order_id: UUID | str,
        actor: ActingUser,
        observation: str = "",
        expected_status: Optional[str] = None,
        view_role: Optional[str] = None,
    ) -> Order:
        observation = (observation or "").strip() or "Sem observações."
        return self.advance_order(
            order_id,
            OrderStatus.EM_EMBALAGEM,
            actor,
            notes=f"Montagem Finalizada. Obs: {observation}",
            expected_status=expected_status,
            view_role=view_role,
        )

    def issue_invoice(
        self,
        order_id: UUID | str,
        invoice_number: str,
        actor: ActingUser,
        expected_status: Optional[str] = None,
        view_role: Optional[str] = None,
    ) -> Order:
        """Billing: attach the invoice number and hand over to transport."""
        invoice_number = (invoice_number or "").strip()
        return self.advance_order(
            order_id,
            OrderStatus.EM_TRANSPORTE,
            actor,
            notes=f"Nota Fiscal emitida: {invoice_number}" if invoice_number else "",
            extra_fields={INVOICE_NUMBER: invoice_number},
            expected_status=expected_status,
            view_role=view_role,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: UUID | str) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Pedido {order_id} não encontrado.")
        return order

    def list_orders(
        self,
        statuses: Optional[Iterable[str]] = None,
        search: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Iterable[Order]:
        """Return orders newest first, optionally by status and search term."""
        lookups = dict(filters or {})
        if statuses is not None:
            lookups["status__in"] = list(statuses)
        return self._order_repo.list(lookups or None, search=search)

    def department_queue(
        self,
        role: str,
        viewer: ActingUser,
        search: Optional[str] = None,
    ) -> Iterable[Order]:
        """Orders waiting on ``role``.

        Raises:
            DepartmentPermissionDenied: ``viewer`` may not open that view.
        """
        if not can_access_view(viewer.role, role):
            logger.warning("access.queue_denied", role=viewer.role, queue=role)
            raise DepartmentPermissionDenied(
                f"Acesso restrito: {viewer.role} não acessa a fila {role}."
            )
        return self.list_orders(statuses=statuses_owned_by(role), search=search)

    def status_summary(self, viewer: ActingUser) -> StatusSummaryDTO:
        """Management report: order counts per status and priority."""
        if not can_view_reports(viewer.role):
            logger.warning("access.reports_denied", role=viewer.role)
            raise DepartmentPermissionDenied(
                "Acesso restrito: relatórios são exclusivos da gerência."
            )
        data = self._order_repo.summary()
        return StatusSummaryDTO(
            total_orders=data["total_orders"],
            total_value=data["total_value"],
            by_status={str(s): data["by_status"].get(s, 0) for s in OrderStatus},
            by_priority=data["by_priority"],
            blocked=data["by_status"].get(OrderStatus.REPROVADO, 0),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _refetch(self, order: Order) -> Order:
        return self._order_repo.get_by_id(str(order.id)) or order

    def _load_for_update(
        self, order_id: UUID | str, expected_status: Optional[str]
    ) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Pedido {order_id} não encontrado.")
        if expected_status and order.status != expected_status:
            logger.warning(
                "order.stale_expected_status",
                order_id=str(order.id),
                expected_status=expected_status,
                current_status=order.status,
            )
            raise TransitionConflict(
                f"Pedido {order.order_number} já está em {order.status}. "
                "Atualize e tente novamente."
            )
        return order

    def _resolve_transition(
        self,
        order: Order,
        new_status: str,
        actor: ActingUser,
        view_role: Optional[str],
    ) -> Transition:
        authorize_transition(actor.role, order.status, view_role)
        transition = get_transition(order.status, new_status)
        if transition is None:
            logger.warning(
                "order.invalid_transition",
                order_id=str(order.id),
                current_status=order.status,
                new_status=new_status,
            )
            raise InvalidOrderStatus(
                f"Transição de {order.status} para {new_status} não permitida."
            )
        return transition

    def _companion_fields(
        self,
        order: Order,
        transition: Transition,
        extra_fields: Optional[Mapping[str, Any]],
    ) -> Dict[str, str]:
        extra = dict(extra_fields or {})
        unknown = set(extra) - COMPANION_FIELDS
        if unknown:
            raise ValidationFailed(
                f"Campos não permitidos: {', '.join(sorted(unknown))}."
            )

        fields: Dict[str, str] = {}
        for name, value in extra.items():
            # Each companion field belongs to the department edge that assigns it.
            if name not in transition.requires:
                raise ValidationFailed(
                    f"Campo {name} não é aceito em "
                    f"{transition.source} -> {transition.target}."
                )
            if not isinstance(value, str) or not value.strip():
                raise ValidationFailed(f"Campo {name} não pode ser vazio.")
            value = value.strip()
            current = getattr(order, name)
            if value == current:
                continue
            if current:
                raise ValidationFailed(
                    f"Pedido {order.order_number} já possui {name} {current}."
                )
            fields[name] = value

        for name in transition.requires:
            if not (fields.get(name) or getattr(order, name)):
                raise ValidationFailed(
                    f"Campo {name} é obrigatório para mover para {transition.target}."
                )
        return fields

    def _resolve_note(
        self, transition: Transition, notes: str, actor: ActingUser
    ) -> str:
        notes = (notes or "").strip()
        if transition.note_required and not notes:
            raise ValidationFailed(
                f"Observação obrigatória para mover para {transition.target}."
            )
        return notes or transition.default_note(actor.role)

    def _commit_transition(
        self,
        order: Order,
        transition: Transition,
        actor: ActingUser,
        note: str,
        fields: Dict[str, str],
        changes: Optional[Dict[str, Any]] = None,
    ) -> None:
        old_status = order.status
        self._order_repo.apply_transition(order, transition.target, fields)
        self._order_repo.append_log_entry(
            order,
            transition.target,
            actor,
            note=note,
            previous_stage=old_status,
            changes={**fields, **(changes or {})},
        )

        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                payload={
                    "order_number": order.order_number,
                    "old_status": old_status,
                    "new_status": transition.target,
                    "actor_id": actor.id,
                    "note": note,
                    **fields,
                },
            )
        )
        if transition.target == OrderStatus.REPROVADO:
            order.add_domain_event(
                OrderRejected(aggregate_id=order.id, payload={"reason": note})
            )
        self._order_repo.record_events(order)

        logger.info(
            "order.transitioned",
            order_id=str(order.id),
            old_status=old_status,
            new_status=transition.target,
            actor_id=actor.id,
            version=order.version,
        )

    def _produced_by_item(
        self, order: Order, produced: Iterable[ProducedQuantityDTO]
    ) -> Dict[str, int]:
        """Map item id -> produced quantity; omitted lines count as zero."""
        items_by_product = {str(item.product_id): item for item in order.items.all()}
        quantities = {str(item.id): 0 for item in items_by_product.values()}
        seen: set[str] = set()
        for entry in produced:
            product_id = str(entry.product_id)
            item = items_by_product.get(product_id)
            if item is None:
                raise ValidationFailed(
                    f"Produto {product_id} não pertence ao pedido {order.order_number}."
                )
            if product_id in seen:
                raise ValidationFailed(f"Produto {product_id} informado em duplicidade.")
            if not 0 <= entry.quantity_produced <= item.quantity:
                raise ValidationFailed(
                    f"Quantidade produzida de {item.product_name} deve estar entre "
                    f"0 e {item.quantity}."
                )
            seen.add(product_id)
            quantities[str(item.id)] = entry.quantity_produced
        return quantities

    def _split(
        self,
        order: Order,
        transition: Transition,
        quantities: Dict[str, int],
        actor: ActingUser,
    ) -> SplitResult:
        items = list(order.items.all())
        remaining = {str(item.id): item.quantity - quantities[str(item.id)] for item in items}

        if not any(remaining.values()):
            self._order_repo.update_items(
                order,
                {item_id: {"quantity_produced": qty} for item_id, qty in quantities.items()},
            )
            self._commit_transition(order, transition, actor, NOTE_FULL_PRODUCTION, {})
            return SplitResult(original=self._refetch(order))

        log = logger.bind(order_id=str(order.id), actor_id=actor.id)

        remainder = self._order_repo.create(
            {
                "customer_name": order.customer_name,
                "delivery_date": order.delivery_date,
                "priority": order.priority,
                "external_ref": remainder_reference(order),
                "batch_number": order.batch_number,
                "status": OrderStatus.EM_PRODUCAO,
                "parent": order,
                "items": [
                    {
                        "product_id": item.product_id,
                        "product_name": item.product_name,
                        "position": item.position,
                        "quantity": remaining[str(item.id)],
                        "unit_price": item.unit_price,
                    }
                    for item in items
                    if remaining[str(item.id)] > 0
                ],
            }
        )
        self._order_repo.copy_log(order, remainder)
        self._order_repo.append_log_entry(
            remainder,
            OrderStatus.EM_PRODUCAO,
            actor,
            note=NOTE_REMAINING_BALANCE,
            previous_stage=OrderStatus.EM_PRODUCAO,
            changes={"parent_order": order.order_number},
        )
        remainder.add_domain_event(
            OrderCreated(
                aggregate_id=remainder.id,
                payload={
                    "order_number": remainder.order_number,
                    "customer_name": remainder.customer_name,
                    "total_value": str(remainder.total_value),
                    "parent_id": str(order.id),
                    "actor_id": actor.id,
                },
            )
        )
        self._order_repo.record_events(remainder)

        self._order_repo.update_items(
            order,
            {
                item_id: {"quantity": qty, "quantity_produced": qty}
                for item_id, qty in quantities.items()
            },
        )
        order.add_domain_event(
            OrderSplit(
                aggregate_id=order.id,
                payload={
                    "remainder_id": str(remainder.id),
                    "remainder_number": remainder.order_number,
                    "produced": quantities,
                    "remaining": {k: v for k, v in remaining.items() if v > 0},
                },
            )
        )
        self._commit_transition(
            order,
            transition,
            actor,
            NOTE_PARTIAL_DELIVERY,
            {},
            changes={"remainder_order": remainder.order_number},
        )

        log.info(
            "order.split",
            remainder_id=str(remainder.id),
            remainder_number=remainder.order_number,
        )
        return SplitResult(original=self._refetch(order), remainder=self._refetch(remainder))
