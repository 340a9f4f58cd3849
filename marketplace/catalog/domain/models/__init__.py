from .catalog import Product
from .category import Category


__all__ = ["Product", "Category"]
