from rest_framework.permissions import BasePermission

from modules.accounts.identity import acting_user_from
from modules.orders.policies import can_manage_users


class IsUserAdministrator(BasePermission):
    """Only ``ADMIN`` users may list users and change their department."""

    message = "Acesso restrito: apenas a administração gerencia usuários."

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not (user and user.is_authenticated):
            return False
        return can_manage_users(acting_user_from(user).role)
