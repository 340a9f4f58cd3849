from .catalog_serializers import (
    CategorySerializer,
    ProductDetailSerializer,
    ProductListSerializer,
    ProductRequestSerializer,
    ProductStatusRequestSerializer,
)


__all__ = [
    "CategorySerializer",
    "ProductDetailSerializer",
    "ProductListSerializer",
    "ProductRequestSerializer",
    "ProductStatusRequestSerializer",
]
