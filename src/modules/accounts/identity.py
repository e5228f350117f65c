"""Acting user resolution.

The order workflow never touches ``request.user`` directly: views build an
immutable ``ActingUser`` and pass it to the Service Layer.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from modules.orders.constants import Role


class ActingUser(BaseModel):
    """Identity recorded on every log entry."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    role: Role


SYSTEM_USER = ActingUser(id="system", name="Sistema", role=Role.ADMIN)


def acting_user_from(user: Any) -> ActingUser:
    """Build an ``ActingUser`` from a Django user.

    Users without a ``DepartmentProfile`` act as ``ADMIN`` when they are
    superusers and as ``VENDAS`` otherwise.
    """
    profile = getattr(user, "department_profile", None)
    if profile is not None:
        role = Role(profile.role)
        name = profile.display_name
    else:
        role = Role.ADMIN if getattr(user, "is_superuser", False) else Role.VENDAS
        name = ""
    if not name:
        name = user.get_full_name() or user.get_username()
    return ActingUser(id=str(user.pk), name=name, role=role)
