"""Department membership for Django users.

Credentials stay in ``django.contrib.auth``; this model only attaches the
department role and the display name recorded in order logs.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel
from modules.orders.constants import Role


class DepartmentProfile(BaseModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="department_profile",
    )
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.VENDAS,
    )
    display_name = models.CharField(max_length=150, blank=True, default="")

    class Meta:
        db_table = "department_profiles"
        ordering = ["user__username"]

    def __str__(self) -> str:
        return f"{self.user} ({self.role})"
