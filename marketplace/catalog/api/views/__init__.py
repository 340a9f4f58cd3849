from .catalog_views import CategoryViewSet, ProductViewSet


__all__ = ["CategoryViewSet", "ProductViewSet"]
