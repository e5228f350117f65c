"""Access Policy for department roles.

``ADMIN`` and ``GERENTE`` may emulate any department by passing an
explicit ``view_role``; emulation only selects which ownership rule
applies, the acting identity recorded in the log stays the real user.
"""

from __future__ import annotations

from typing import Optional

import structlog

from modules.orders.constants import Role, owner_of
from modules.orders.exceptions import DepartmentPermissionDenied, ValidationFailed

logger = structlog.get_logger(__name__)

MANAGER_ROLES: frozenset[str] = frozenset({Role.ADMIN, Role.GERENTE})

# Views that are not a department queue.
USER_ADMINISTRATION_VIEW = "USUARIOS"
REPORTS_VIEW = "RELATORIOS"


def effective_role(role: str, view_role: Optional[str] = None) -> Role:
    """Role used to evaluate state ownership.

    A ``view_role`` passed by anyone other than a manager is ignored.
    """
    if view_role and role in MANAGER_ROLES:
        try:
            return Role(view_role)
        except ValueError:
            raise ValidationFailed(f"Departamento {view_role} desconhecido.") from None
    return Role(role)


def owns_status(role: str, status: str) -> bool:
    owner = owner_of(status)
    return owner is not None and owner == role


def authorize_transition(
    role: str, status: str, view_role: Optional[str] = None
) -> Role:
    """Return the effective role if it owns ``status``.

    Raises:
        DepartmentPermissionDenied: the effective role does not own it.
    """
    acting_role = effective_role(role, view_role)
    if not owns_status(acting_role, status):
        logger.warning(
            "access.transition_denied",
            role=role,
            effective_role=acting_role,
            status=status,
        )
        raise DepartmentPermissionDenied(
            f"Acesso restrito: {acting_role} não atua em pedidos {status}."
        )
    return acting_role


def can_manage_users(role: str) -> bool:
    return role == Role.ADMIN


def can_view_reports(role: str) -> bool:
    return role in MANAGER_ROLES


def can_access_view(role: str, view: str) -> bool:
    """Whether ``role`` may open ``view`` (a department role or special view).

    ``ADMIN`` sees everything, ``GERENTE`` everything except user
    administration, any other role only its own department.
    """
    if role == Role.ADMIN:
        return True
    if role == Role.GERENTE:
        return view != USER_ADMINISTRATION_VIEW
    return view == role


def accessible_views(role: str) -> list[str]:
    views = [str(r) for r in Role if r not in MANAGER_ROLES]
    views += [REPORTS_VIEW, USER_ADMINISTRATION_VIEW]
    return [view for view in views if can_access_view(role, view)]
