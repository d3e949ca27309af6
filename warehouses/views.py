"""Read-only warehouse endpoints."""

from common.throttling import SettingsScopedRateThrottle
from django_filters import rest_framework as filters
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import viewsets
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle

from .models import Warehouse
from .serializers import WarehouseSerializer


class WarehouseFilterSet(filters.FilterSet):
    class Meta:
        model = Warehouse
        fields = ["warehouse_type", "is_active"]


@extend_schema_view(
    list=extend_schema(
        summary="List warehouses",
        description="Filters: warehouse_type, is_active.",
        tags=["Warehouse Endpoints"],
    ),
    retrieve=extend_schema(summary="Get warehouse by id", tags=["Warehouse Endpoints"]),
)
class WarehouseViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Warehouse.objects.all().order_by("code")
    serializer_class = WarehouseSerializer
    filterset_class = WarehouseFilterSet
    # Master data shares the catalog read budget
    throttle_scope = "catalog"
    throttle_classes = [SettingsScopedRateThrottle, UserRateThrottle, AnonRateThrottle]
