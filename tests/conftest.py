from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.accounts.identity import ActingUser
from modules.accounts.models import DepartmentProfile
from modules.orders.constants import STATUS_GRAPH, OrderStatus, Role, owner_of
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, ProducedQuantityDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product, ProductStatus
from modules.products.repositories.django_repository import ProductDjangoRepository


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Identities
# ---------------------------------------------------------------------------


@pytest.fixture()
def actor():
    """Factory for ``ActingUser`` of a given department role."""

    def _make(role: str, name: str | None = None) -> ActingUser:
        return ActingUser(
            id=f"user-{str(role).lower()}",
            name=name or f"Usuário {role}",
            role=role,
        )

    return _make


@pytest.fixture()
def department_user():
    """Factory for Django users attached to a department."""
    User = get_user_model()

    def _make(role: str, username: str | None = None):
        username = username or f"{str(role).lower()}_user"
        user = User.objects.filter(username=username).first()
        if user is None:
            user = User.objects.create_user(username, password="secret-pass-123")
            DepartmentProfile.objects.create(
                user=user, role=role, display_name=f"Operador {role}"
            )
        return user

    return _make


@pytest.fixture()
def client_for(department_user):
    """Factory for an APIClient authenticated as a department user."""

    def _make(role: str) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=department_user(role))
        return client

    return _make


# ---------------------------------------------------------------------------
# Catalog and orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def product_a():
    return Product.objects.create(
        sku="PAINEL-400",
        name="Painel Elétrico 400A",
        price=Decimal("100.00"),
        status=ProductStatus.ACTIVE,
    )


@pytest.fixture()
def product_b():
    return Product.objects.create(
        sku="QUADRO-CMD",
        name="Quadro de Comando",
        price=Decimal("50.00"),
        status=ProductStatus.ACTIVE,
    )


@pytest.fixture()
def service():
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


@pytest.fixture()
def create_order(service, actor, product_a, product_b):
    """Sales intake of ``product_a`` x10 and ``product_b`` x4 by default."""

    def _create(quantities=(10, 4), **kwargs):
        items = [
            CreateOrderItemDTO(product_id=product.id, quantity=qty)
            for product, qty in zip((product_a, product_b), quantities)
            if qty
        ]
        dto = CreateOrderDTO(
            customer_name=kwargs.pop("customer_name", "Metalúrgica Souza"),
            delivery_date=kwargs.pop(
                "delivery_date", date.today() + timedelta(days=30)
            ),
            items=items,
            **kwargs,
        )
        return service.create_order(dto, actor(Role.VENDAS))

    return _create


@pytest.fixture()
def order_at(service, actor, create_order):
    """Create an order and walk it to ``status`` through the department flows."""

    def _walk(status: str, **kwargs):
        order = create_order(**kwargs)
        while order.status != status:
            owner = actor(owner_of(order.status))
            if order.status == OrderStatus.ANALISE_PCP:
                order = service.confirm_production_batch(order.id, owner)
            elif order.status == OrderStatus.EM_PRODUCAO:
                produced = [
                    ProducedQuantityDTO(
                        product_id=item.product_id, quantity_produced=item.quantity
                    )
                    for item in order.items.all()
                ]
                order = service.report_production(order.id, produced, owner).original
            elif status == OrderStatus.REPROVADO:
                order = service.reject_order(order.id, "Solda porosa", owner)
            elif order.status == OrderStatus.EM_MONTAGEM:
                order = service.finish_assembly(order.id, owner)
            elif order.status == OrderStatus.EM_FATURAMENTO:
                order = service.issue_invoice(order.id, "NF-1001", owner)
            else:
                order = service.advance_order(
                    order.id, STATUS_GRAPH[order.status].next, owner
                )
        return order

    return _walk
