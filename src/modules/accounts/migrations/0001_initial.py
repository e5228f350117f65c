import django.db.models.deletion
import uuid6
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="DepartmentProfile",
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
                    "role",
                    models.CharField(
                        choices=[
                            ("ADMIN", "Administração"),
                            ("GERENTE", "Gerência"),
                            ("ENGENHARIA", "Engenharia"),
                            ("VENDAS", "Vendas"),
                            ("PCP", "PCP"),
                            ("PRODUCAO", "Produção"),
                            ("QUALIDADE", "Qualidade"),
                            ("MONTAGEM", "Montagem"),
                            ("EMBALAGEM", "Embalagem"),
                            ("EXPEDICAO", "Expedição"),
                            ("FATURAMENTO", "Faturamento"),
                            ("TRANSPORTE", "Transporte"),
                        ],
                        default="VENDAS",
                        max_length=20,
                    ),
                ),
                (
                    "display_name",
                    models.CharField(blank=True, default="", max_length=150),
                ),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="department_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "department_profiles",
                "ordering": ["user__username"],
            },
        ),
    ]
