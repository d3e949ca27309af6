"""Read-only viewsets for catalog products."""

from common.throttling import SettingsScopedRateThrottle
from django_filters import rest_framework as filters
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import filters as drf_filters
from rest_framework import viewsets
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle

from .models import Product
from .serializers import ProductSerializer


class ProductFilterSet(filters.FilterSet):
    sku = filters.CharFilter(field_name="sku", lookup_expr="iexact")
    is_active = filters.BooleanFilter(field_name="is_active")

    class Meta:
        model = Product
        fields = ["sku", "is_active"]


@extend_schema_view(
    list=extend_schema(
        summary="List products",
        description="Returns products. Filter by `sku` or `is_active`; search by SKU, name or barcode.",
        tags=["Catalog Endpoints"],
        parameters=[
            OpenApiParameter("sku", OpenApiTypes.STR, location="query", description="Exact SKU (case-insensitive)"),
            OpenApiParameter("search", OpenApiTypes.STR, location="query", description="Search products by text"),
        ],
        examples=[
            OpenApiExample(
                "Product list",
                value={
                    "count": 1,
                    "next": None,
                    "previous": None,
                    "results": [
                        {
                            "id": "550e8400-e29b-41d4-a716-446655440001",
                            "sku": "COT-100G-001",
                            "name": "Cotton Wool 100g",
                            "variant": "100g",
                            "description": "",
                            "unit_of_measure": "PIECES",
                            "barcode": "",
                            "reorder_level": "100.00",
                            "is_active": True,
                        }
                    ],
                },
                response_only=True,
            )
        ],
    ),
    retrieve=extend_schema(
        summary="Get product by id",
        description="Returns a single product by UUID",
        tags=["Catalog Endpoints"],
    ),
)
class ProductViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Product.objects.all().order_by("sku")
    serializer_class = ProductSerializer
    filterset_class = ProductFilterSet
    throttle_scope = "catalog"
    throttle_classes = [SettingsScopedRateThrottle, UserRateThrottle, AnonRateThrottle]
    filter_backends = [filters.DjangoFilterBackend, drf_filters.OrderingFilter, drf_filters.SearchFilter]
    search_fields = ["sku", "name", "barcode"]
    ordering_fields = ["sku", "name", "created_at"]
