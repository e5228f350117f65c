"""Testes de integração para throttling na API de pedidos."""

from __future__ import annotations

from datetime import date

import pytest
from rest_framework.throttling import ScopedRateThrottle

from modules.orders.constants import OrderStatus, Role

pytestmark = pytest.mark.integration


@pytest.fixture()
def tight_rates(monkeypatch):
    """Escopos de pedido com limite de 2 requisições por minuto."""
    monkeypatch.setattr(
        ScopedRateThrottle,
        "THROTTLE_RATES",
        {
            **ScopedRateThrottle.THROTTLE_RATES,
            "order_creation": "2/minute",
            "order_transition": "2/minute",
            "order_listing": "50/minute",
        },
    )


def _order_payload(product) -> dict[str, object]:
    return {
        "customer_name": "Cliente Throttle",
        "delivery_date": date(2030, 1, 10).isoformat(),
        "items": [{"product_id": str(product.id), "quantity": 1}],
    }


def test_order_creation_is_throttled(tight_rates, client_for, product_a):
    client = client_for(Role.VENDAS)
    payload = _order_payload(product_a)

    for _ in range(2):
        response = client.post("/api/v1/orders/", payload, format="json")
        assert response.status_code == 201

    response = client.post("/api/v1/orders/", payload, format="json")
    assert response.status_code == 429


def test_transitions_are_throttled(tight_rates, client_for, order_at):
    orders = [order_at(OrderStatus.EM_EMBALAGEM) for _ in range(3)]
    client = client_for(Role.EMBALAGEM)

    codes = [
        client.post(
            f"/api/v1/orders/{order.id}/advance/",
            {"status": "AGUARDANDO_EXPEDICAO"},
            format="json",
        ).status_code
        for order in orders
    ]

    assert codes == [200, 200, 429]


def test_order_listing_has_higher_limit(tight_rates, client_for):
    client = client_for(Role.GERENTE)

    for _ in range(5):
        response = client.get("/api/v1/orders/")
        assert response.status_code == 200
