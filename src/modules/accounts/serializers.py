"""Account serializers: department users and the current identity."""

from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from modules.accounts.identity import acting_user_from
from modules.orders.constants import Role


class DepartmentUserSerializer(serializers.ModelSerializer):
    """Read serializer for a user and its effective department role."""

    role = serializers.SerializerMethodField()
    display_name = serializers.SerializerMethodField()

    class Meta:
        model = get_user_model()
        fields = ["id", "username", "email", "display_name", "role", "is_active"]
        read_only_fields = fields

    def get_role(self, obj) -> str:
        return acting_user_from(obj).role.value

    def get_display_name(self, obj) -> str:
        return acting_user_from(obj).name


class UpdateDepartmentUserSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Role.choices)
    display_name = serializers.CharField(
        max_length=150, required=False, allow_blank=True
    )
