"""Warehouse models.

A warehouse is a stock-holding site. Deactivated warehouses keep their
history and balances but refuse new stock movements.
"""

import uuid

from common.choices import WarehouseType
from django.db import models


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Warehouse(TimeStampedModel):
    TYPE_CHOICES = WarehouseType.choices

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    warehouse_type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=WarehouseType.MAIN)
    address = models.TextField(blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["code"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code} ({'active' if self.is_active else 'inactive'})"
