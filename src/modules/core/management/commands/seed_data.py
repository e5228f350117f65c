from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.accounts.identity import SYSTEM_USER
from modules.accounts.models import DepartmentProfile
from modules.orders.constants import (
    STATUS_GRAPH,
    OrderStatus,
    Priority,
    Role,
    owner_of,
)
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, ProducedQuantityDTO
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product, ProductStatus, ProductType
from modules.products.repositories.django_repository import ProductDjangoRepository

# Orders are walked through the workflow up to these stages.
TARGET_STAGES = [
    OrderStatus.ANALISE_PCP,
    OrderStatus.EM_PRODUCAO,
    OrderStatus.QUALIDADE_PENDENTE,
    OrderStatus.REPROVADO,
    OrderStatus.EM_MONTAGEM,
    OrderStatus.EM_EMBALAGEM,
    OrderStatus.AGUARDANDO_EXPEDICAO,
    OrderStatus.EM_FATURAMENTO,
    OrderStatus.EM_TRANSPORTE,
    OrderStatus.CONCLUIDO,
]

CUSTOMERS = [
    "Metalúrgica Souza Ltda",
    "Construtora Lima",
    "Indústria Mendes",
    "Costa Equipamentos",
    "Alves & Filhos",
]


class Command(BaseCommand):
    help = "Seed database with department users, products and orders."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        products = self._seed_products()
        orders_created = self._seed_orders(products)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        """One user per department, password ``<username>123``."""
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        for role in Role:
            username = role.value.lower()
            user = User.objects.filter(username=username).first()
            if user is None:
                user = User.objects.create_user(username, password=f"{username}123")
                created += 1
            DepartmentProfile.objects.update_or_create(
                user=user,
                defaults={"role": role, "display_name": f"Usuário {role.label}"},
            )
        return created

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        catalog = [
            ("PF-001", "Painel Elétrico 400A", ProductType.PRODUTO_FINAL, Decimal("18900.00")),
            ("PF-002", "Quadro de Comando", ProductType.PRODUTO_FINAL, Decimal("7450.00")),
            ("PF-003", "Cubículo de Média Tensão", ProductType.PRODUTO_FINAL, Decimal("42500.00")),
            ("PF-004", "Banco de Capacitores", ProductType.PRODUTO_FINAL, Decimal("12300.00")),
            ("PF-005", "Barramento Blindado 3m", ProductType.PRODUTO_FINAL, Decimal("3890.00")),
            ("MP-001", "Chapa de Aço 2mm", ProductType.MATERIA_PRIMA, Decimal("310.00")),
            ("MP-002", "Barra de Cobre", ProductType.MATERIA_PRIMA, Decimal("620.00")),
        ]
        products: list[Product] = []
        for sku, name, product_type, price in catalog:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "name": name,
                    "product_type": product_type,
                    "price": price,
                    "status": ProductStatus.ACTIVE,
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return [p for p in products if p.is_sellable]

    def _seed_orders(self, products: list[Product]) -> int:
        self.stdout.write("Creating orders...")
        if not products:
            self.stdout.write(self.style.WARNING("Skipping orders (no products)."))
            return 0
        if Order.objects.exists():
            self.stdout.write(self.style.WARNING("Orders already seeded."))
            return 0

        service = OrderService(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )
        created = 0
        for index, target in enumerate(TARGET_STAGES):
            items = random.sample(products, k=random.randint(1, 3))
            order = service.create_order(
                CreateOrderDTO(
                    customer_name=random.choice(CUSTOMERS),
                    external_ref=f"PO-{1000 + index}",
                    delivery_date=timezone.localdate()
                    + timedelta(days=random.randint(5, 40)),
                    priority=random.choice(list(Priority)),
                    items=[
                        CreateOrderItemDTO(
                            product_id=p.id, quantity=random.randint(2, 10)
                        )
                        for p in items
                    ],
                ),
                SYSTEM_USER,
            )
            created += 1
            self._walk(service, order, target)

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created

    def _walk(self, service: OrderService, order: Order, target: str) -> None:
        """Advance ``order`` through the department flows until ``target``.

        The system user is an ``ADMIN`` and acts as the owner of each stage.
        """
        actor = SYSTEM_USER
        while order.status != target:
            role = owner_of(order.status)
            if order.status == OrderStatus.ANALISE_PCP:
                order = service.confirm_production_batch(order.id, actor, view_role=role)
            elif order.status == OrderStatus.EM_PRODUCAO:
                produced = [
                    ProducedQuantityDTO(
                        product_id=item.product_id, quantity_produced=item.quantity
                    )
                    for item in order.items.all()
                ]
                order = service.report_production(
                    order.id, produced, actor, view_role=role
                ).original
            elif target == OrderStatus.REPROVADO:
                order = service.reject_order(
                    order.id, "Solda fora do padrão", actor, view_role=role
                )
            elif order.status == OrderStatus.EM_MONTAGEM:
                order = service.finish_assembly(order.id, actor, view_role=role)
            elif order.status == OrderStatus.EM_FATURAMENTO:
                order = service.issue_invoice(
                    order.id,
                    f"NF-{random.randint(10000, 99999)}",
                    actor,
                    view_role=role,
                )
            else:
                order = service.advance_order(
                    order.id, STATUS_GRAPH[order.status].next, actor, view_role=role
                )
