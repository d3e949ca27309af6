"""Catalog app models.

Products are the master data every ledger row points at. Identifiers are
UUIDs because upstream systems (orders, production) reference products by
UUID.
"""

import uuid

from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Product(TimeStampedModel):
    """Stock-keeping product (e.g., "Cotton Wool 100g")."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    sku = models.CharField(max_length=100, unique=True)
    name = models.CharField(max_length=255)
    variant = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    unit_of_measure = models.CharField(max_length=20, default="PIECES")
    barcode = models.CharField(max_length=100, blank=True)
    reorder_level = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["sku"]
        constraints = [
            models.CheckConstraint(
                name="product_reorder_level_non_negative",
                condition=models.Q(reorder_level__gte=0) | models.Q(reorder_level__isnull=True),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.sku} {self.name}"
