"""Account API views: user administration and the current identity."""

from __future__ import annotations

import structlog
from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.accounts.identity import acting_user_from
from modules.accounts.models import DepartmentProfile
from modules.accounts.permissions import IsUserAdministrator
from modules.accounts.serializers import (
    DepartmentUserSerializer,
    UpdateDepartmentUserSerializer,
)
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.constants import DEPARTMENT_CONFIG
from modules.orders.policies import accessible_views

logger = structlog.get_logger(__name__)


class MeView(APIView):
    """GET /api/v1/me: who is calling and which views they may open."""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        actor = acting_user_from(request.user)
        department = DEPARTMENT_CONFIG.get(actor.role)
        return Response(
            {
                "id": actor.id,
                "username": request.user.get_username(),
                "name": actor.name,
                "role": actor.role.value,
                "department": department.label if department else actor.role.label,
                "accessible_views": accessible_views(actor.role),
            }
        )


class DepartmentUserViewSet(GenericViewSet):
    """ADMIN-only listing of users and department assignment."""

    permission_classes = [IsUserAdministrator]
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return (
            get_user_model()
            .objects.select_related("department_profile")
            .order_by("username")
        )

    def list(self, request: Request) -> Response:
        """GET /api/v1/users/"""
        page = self.paginate_queryset(self.get_queryset())
        serializer = DepartmentUserSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/users/{pk}/ (change role / display name)"""
        user = self.get_queryset().filter(pk=pk).first()
        if user is None:
            return Response(
                {"detail": "Usuário não encontrado."},
                status=status.HTTP_404_NOT_FOUND,
            )

        serializer = UpdateDepartmentUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        profile, _ = DepartmentProfile.objects.get_or_create(user=user)
        old_role = profile.role
        profile.role = data["role"]
        update_fields = ["role"]
        if "display_name" in data:
            profile.display_name = data["display_name"]
            update_fields.append("display_name")
        profile.save(update_fields=update_fields)

        logger.info(
            "user.role_changed",
            user_id=str(user.pk),
            old_role=old_role,
            new_role=profile.role,
            changed_by=str(request.user.pk),
        )
        user.department_profile = profile
        return Response(DepartmentUserSerializer(user).data)
