"""Unit tests for BaseModel, exercised through the Product model."""

from __future__ import annotations

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from freezegun import freeze_time

from django.utils import timezone

from modules.products.models import Product

pytestmark = pytest.mark.unit


def _product(sku: str = "BASE-1") -> Product:
    return Product.objects.create(sku=sku, name="Base", price=Decimal("1.00"))


class TestBaseModel:
    """Tests for UUIDv7 PK and timestamp behaviour."""

    def test_id_is_uuid(self):
        assert isinstance(_product().id, uuid.UUID)

    def test_id_is_uuid_version_7(self):
        # UUIDv7 has version bits set to 7
        assert _product().id.version == 7

    def test_ids_are_time_ordered(self):
        """UUIDv7 encodes timestamp, so sequential creates yield ordered IDs."""
        a = _product("BASE-A")
        b = _product("BASE-B")
        assert str(a.id) < str(b.id)

    def test_timestamps_set_on_create(self):
        obj = _product()
        assert obj.created_at is not None
        assert obj.updated_at is not None

    def test_updated_at_changes_on_save(self):
        obj = _product()
        original_created = obj.created_at
        original_updated = obj.updated_at

        with freeze_time(timezone.now() + timedelta(minutes=5)):
            obj.name = "modified"
            obj.save()
        obj.refresh_from_db()

        assert obj.updated_at > original_updated
        assert obj.created_at == original_created

    def test_save_with_update_fields_includes_updated_at(self):
        """The save() guard must inject updated_at into update_fields."""
        obj = _product()
        original_updated = obj.updated_at

        with freeze_time(timezone.now() + timedelta(minutes=5)):
            obj.name = "modified"
            obj.save(update_fields=["name"])
        obj.refresh_from_db()

        assert obj.updated_at > original_updated

    def test_id_is_not_editable(self):
        assert Product._meta.get_field("id").editable is False
