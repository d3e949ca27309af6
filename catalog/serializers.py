"""Serializers for the catalog app (read-only)."""

from rest_framework import serializers

from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "variant",
            "description",
            "unit_of_measure",
            "barcode",
            "reorder_level",
            "is_active",
        ]
        read_only_fields = fields
