from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
import uuid6
from django.db import migrations, models

ORDER_STATUS_CHOICES = [
    ("CRIADO", "Criado"),
    ("ANALISE_PCP", "Análise PCP"),
    ("EM_PRODUCAO", "Em produção"),
    ("QUALIDADE_PENDENTE", "Qualidade pendente"),
    ("REPROVADO", "Reprovado"),
    ("EM_MONTAGEM", "Em montagem"),
    ("EM_EMBALAGEM", "Em embalagem"),
    ("AGUARDANDO_EXPEDICAO", "Aguardando expedição"),
    ("EM_FATURAMENTO", "Em faturamento"),
    ("EM_TRANSPORTE", "Em transporte"),
    ("CONCLUIDO", "Concluído"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("products", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "order_number",
                    models.CharField(editable=False, max_length=20, unique=True),
                ),
                (
                    "external_ref",
                    models.CharField(blank=True, default="", max_length=64),
                ),
                (
                    "batch_number",
                    models.CharField(blank=True, default="", max_length=32),
                ),
                ("customer_name", models.CharField(max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=ORDER_STATUS_CHOICES,
                        default="ANALISE_PCP",
                        max_length=24,
                    ),
                ),
                (
                    "priority",
                    models.CharField(
                        choices=[
                            ("BAIXA", "Baixa"),
                            ("MEDIA", "Média"),
                            ("ALTA", "Alta"),
                        ],
                        default="MEDIA",
                        max_length=8,
                    ),
                ),
                ("delivery_date", models.DateField()),
                (
                    "total_value",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=12
                    ),
                ),
                (
                    "invoice_number",
                    models.CharField(blank=True, default="", max_length=64),
                ),
                ("version", models.PositiveIntegerField(default=0)),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="remainders",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="orders_status_idx"),
                    models.Index(fields=["-created_at"], name="orders_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("product_name", models.CharField(max_length=255)),
                ("position", models.PositiveSmallIntegerField(default=0)),
                ("quantity", models.PositiveIntegerField()),
                (
                    "quantity_produced",
                    models.PositiveIntegerField(blank=True, null=True),
                ),
                (
                    "unit_price",
                    models.DecimalField(decimal_places=2, max_digits=10),
                ),
                (
                    "subtotal",
                    models.DecimalField(
                        decimal_places=2, editable=False, max_digits=12
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="order_items",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "db_table": "order_items",
                "ordering": ["position", "created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("order", "product"),
                        name="order_items_unique_product",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderLogEntry",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("sequence", models.PositiveIntegerField()),
                (
                    "stage",
                    models.CharField(choices=ORDER_STATUS_CHOICES, max_length=24),
                ),
                (
                    "previous_stage",
                    models.CharField(
                        blank=True,
                        choices=ORDER_STATUS_CHOICES,
                        max_length=24,
                        null=True,
                    ),
                ),
                (
                    "timestamp",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                ("user_id", models.CharField(max_length=64)),
                ("user_name", models.CharField(max_length=150)),
                ("note", models.TextField(blank=True, default="")),
                ("changes", models.JSONField(blank=True, default=dict)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="log_entries",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "order_log_entries",
                "ordering": ["-sequence"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("order", "sequence"),
                        name="order_log_unique_sequence",
                    ),
                ],
            },
        ),
    ]
