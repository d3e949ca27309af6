"""Serializers for warehouses (read-only)."""

from rest_framework import serializers

from .models import Warehouse


class WarehouseSerializer(serializers.ModelSerializer):
    class Meta:
        model = Warehouse
        fields = ["id", "code", "name", "warehouse_type", "address", "is_active", "updated_at"]
        read_only_fields = fields
