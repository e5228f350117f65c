"""Unit tests for the department flows built on the Transition Engine."""

from __future__ import annotations

import re
from datetime import datetime

import pytest

from modules.orders.constants import OrderStatus, Role
from modules.orders.exceptions import DepartmentPermissionDenied, ValidationFailed
from modules.orders.models import Order

pytestmark = pytest.mark.unit


def _newest(order):
    return Order.objects.get(pk=order.pk).log_entries.first()


class TestConfirmProductionBatch:
    def test_generates_batch_and_moves_to_production(self, service, actor, create_order):
        order = create_order()
        moved = service.confirm_production_batch(
            order.id, actor(Role.PCP), now=datetime(2024, 3, 5, 14, 7)
        )
        assert moved.status == OrderStatus.EM_PRODUCAO
        assert moved.batch_number == "LOTE-202403051407"
        assert _newest(moved).note == (
            "Lote gerado: LOTE-202403051407 - Enviado para Produção"
        )

    def test_batch_format_with_current_time(self, service, actor, create_order):
        order = create_order()
        moved = service.confirm_production_batch(order.id, actor(Role.PCP))
        assert re.fullmatch(r"LOTE-\d{12}", moved.batch_number)

    def test_sales_cannot_release_batch(self, service, actor, create_order):
        order = create_order()
        with pytest.raises(DepartmentPermissionDenied):
            service.confirm_production_batch(order.id, actor(Role.VENDAS))
        assert Order.objects.get(pk=order.pk).batch_number == ""


class TestQualityRejection:
    def test_reject_blocks_order(self, service, actor, order_at):
        order = order_at(OrderStatus.QUALIDADE_PENDENTE)
        blocked = service.reject_order(order.id, "Solda porosa", actor(Role.QUALIDADE))
        assert blocked.status == OrderStatus.REPROVADO
        assert blocked.is_blocked
        assert _newest(blocked).note == "BLOQUEADO PELA QUALIDADE: Solda porosa"

    def test_reject_requires_reason(self, service, actor, order_at):
        order = order_at(OrderStatus.QUALIDADE_PENDENTE)
        with pytest.raises(ValidationFailed):
            service.reject_order(order.id, "   ", actor(Role.QUALIDADE))
        assert Order.objects.get(pk=order.pk).status == OrderStatus.QUALIDADE_PENDENTE

    def test_production_releases_blocked_order(self, service, actor, order_at):
        order = order_at(OrderStatus.REPROVADO)
        released = service.advance_order(
            order.id, OrderStatus.EM_PRODUCAO, actor(Role.PRODUCAO)
        )
        assert released.status == OrderStatus.EM_PRODUCAO
        assert released.batch_number == order.batch_number
        assert _newest(released).note == "Desbloqueado/Liberado por PRODUCAO"

    def test_quality_cannot_release_blocked_order(self, service, actor, order_at):
        order = order_at(OrderStatus.REPROVADO)
        with pytest.raises(DepartmentPermissionDenied):
            service.advance_order(order.id, OrderStatus.EM_PRODUCAO, actor(Role.QUALIDADE))

    def test_approval_moves_to_assembly(self, service, actor, order_at):
        order = order_at(OrderStatus.QUALIDADE_PENDENTE)
        moved = service.advance_order(order.id, OrderStatus.EM_MONTAGEM, actor(Role.QUALIDADE))
        assert moved.status == OrderStatus.EM_MONTAGEM
        assert _newest(moved).note == "Aprovado por QUALIDADE"


class TestAssembly:
    def test_return_to_quality(self, service, actor, order_at):
        order = order_at(OrderStatus.EM_MONTAGEM)
        moved = service.return_to_quality(order.id, "Parafuso faltando", actor(Role.MONTAGEM))
        assert moved.status == OrderStatus.QUALIDADE_PENDENTE
        assert _newest(moved).note == "DEVOLVIDO DA MONTAGEM: Parafuso faltando"

    def test_return_requires_observation(self, service, actor, order_at):
        order = order_at(OrderStatus.EM_MONTAGEM)
        with pytest.raises(ValidationFailed):
            service.return_to_quality(order.id, "", actor(Role.MONTAGEM))
        assert Order.objects.get(pk=order.pk).status == OrderStatus.EM_MONTAGEM

    def test_finish_assembly_with_observation(self, service, actor, order_at):
        order = order_at(OrderStatus.EM_MONTAGEM)
        moved = service.finish_assembly(order.id, actor(Role.MONTAGEM), observation="Ok")
        assert moved.status == OrderStatus.EM_EMBALAGEM
        assert _newest(moved).note == "Montagem Finalizada. Obs: Ok"

    def test_finish_assembly_without_observation(self, service, actor, order_at):
        order = order_at(OrderStatus.EM_MONTAGEM)
        moved = service.finish_assembly(order.id, actor(Role.MONTAGEM))
        assert _newest(moved).note == "Montagem Finalizada. Obs: Sem observações."


class TestInvoice:
    def test_issue_invoice(self, service, actor, order_at):
        order = order_at(OrderStatus.EM_FATURAMENTO)
        moved = service.issue_invoice(order.id, "NF-2024-77", actor(Role.FATURAMENTO))
        assert moved.status == OrderStatus.EM_TRANSPORTE
        assert moved.invoice_number == "NF-2024-77"
        newest = _newest(moved)
        assert newest.note == "Nota Fiscal emitida: NF-2024-77"
        assert newest.changes == {"invoice_number": "NF-2024-77"}

    def test_missing_invoice_number(self, service, actor, order_at):
        order = order_at(OrderStatus.EM_FATURAMENTO)
        with pytest.raises(ValidationFailed):
            service.issue_invoice(order.id, "  ", actor(Role.FATURAMENTO))
        reloaded = Order.objects.get(pk=order.pk)
        assert reloaded.status == OrderStatus.EM_FATURAMENTO
        assert reloaded.invoice_number == ""


class TestFullJourney:
    def test_walk_to_concluded(self, order_at):
        order = order_at(OrderStatus.CONCLUIDO)
        reloaded = Order.objects.get(pk=order.pk)
        assert reloaded.is_terminal
        stages = [entry.stage for entry in reloaded.log_entries.all()]
        assert stages == [
            OrderStatus.CONCLUIDO,
            OrderStatus.EM_TRANSPORTE,
            OrderStatus.EM_FATURAMENTO,
            OrderStatus.AGUARDANDO_EXPEDICAO,
            OrderStatus.EM_EMBALAGEM,
            OrderStatus.EM_MONTAGEM,
            OrderStatus.QUALIDADE_PENDENTE,
            OrderStatus.EM_PRODUCAO,
            OrderStatus.ANALISE_PCP,
            OrderStatus.CRIADO,
        ]

    def test_manager_walks_every_department(self, service, actor, create_order):
        manager = actor(Role.GERENTE)
        order = create_order()
        order = service.confirm_production_batch(order.id, manager, view_role=Role.PCP)
        order = service.advance_order(
            order.id, OrderStatus.QUALIDADE_PENDENTE, manager, view_role=Role.PRODUCAO
        )
        assert order.status == OrderStatus.QUALIDADE_PENDENTE
        assert {e.user_id for e in order.log_entries.all()} >= {"user-gerente"}
