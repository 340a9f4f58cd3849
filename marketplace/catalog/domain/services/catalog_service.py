"""
CatalogService - Product CRUD, public listing and stock

Sellers manage the products of their own store. Buyers only ever see
``active`` products. Stock changes lock the product row so concurrent
checkouts cannot oversell.
"""

import logging
from typing import Any, Dict, List, Optional

from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import F, Q

from infrastructure.observability import tracer
from marketplace.catalog.domain.models import Category, Product
from marketplace.infra.observability.metrics import stock_low_alert, stock_reservation_failures
from sellers.domain.models import Store
from sellers.domain.services.validation import check_length, check_max_length, to_decimal
from utils.rbac import is_seller
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok, validation_err

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 5


class CatalogService(BaseService):
    """
    Service for managing product catalog operations.

    Responsibilities:
    - List active products with filtering and pagination
    - Get product details
    - Create products (seller only, store required)
    - Update products and change their status (owner only)
    - Decrement and restore stock under a row lock
    """

    def __init__(self):
        super().__init__()

    # Categories

    @BaseService.log_performance
    def list_categories(self, active_only: bool = True) -> ServiceResult[List[Category]]:
        queryset = Category.objects.all()
        if active_only:
            queryset = queryset.filter(is_active=True)
        return service_ok(list(queryset.order_by("name")))

    def get_category(self, slug: str) -> ServiceResult[Category]:
        category = Category.objects.filter(slug=slug, is_active=True).first()
        if not category:
            return service_err(ErrorCodes.NOT_FOUND, "Category not found.")
        return service_ok(category)

    # Validation

    def _validate_fields(self, data: Dict[str, Any], partial: bool = False) -> list:
        errors = []

        if not partial or "title" in data:
            message = check_length(data.get("title"), "Product title", 2, 200)
            if message:
                errors.append(message)

        if not partial or "price" in data:
            price = to_decimal(data.get("price"))
            if price is None or price <= 0:
                errors.append("Price must be greater than zero.")

        if not partial or "stock" in data:
            try:
                stock = int(data.get("stock", 0))
            except (TypeError, ValueError):
                stock = -1
            if stock < 0:
                errors.append("Stock cannot be negative.")

        message = check_max_length(data.get("description"), "Description", 5000)
        if message:
            errors.append(message)

        images = data.get("images")
        if images is not None and (
            not isinstance(images, list) or not all(isinstance(url, str) for url in images)
        ):
            errors.append("Images must be a list of URLs.")

        return errors

    def _resolve_category(self, data: Dict[str, Any]):
        """Returns (category, error). A missing category_id key means no change."""
        category_id = data.get("category_id")
        if not category_id:
            return None, None
        category = Category.objects.filter(id=category_id, is_active=True).first()
        if not category:
            return None, "Category not found."
        return category, None

    # Products

    @BaseService.log_performance
    @transaction.atomic
    def create_product(self, user, data: Dict[str, Any]) -> ServiceResult[Product]:
        """
        Create a product in the seller's store.

        Products always start as drafts; the seller activates them with
        ``change_status``.
        """
        if not is_seller(user):
            return service_err(ErrorCodes.NOT_AUTHORIZED, "Only sellers can create products.")

        store = Store.objects.filter(owner_id=user.id).first()
        if not store:
            return service_err(ErrorCodes.NOT_FOUND, "Store not found.")

        errors = self._validate_fields(data)
        category, category_error = self._resolve_category(data)
        if category_error:
            errors.append(category_error)
        if errors:
            return validation_err(errors)

        product = Product.objects.create(
            store=store,
            category=category,
            title=data["title"].strip(),
            description=(data.get("description") or "").strip(),
            price=to_decimal(data["price"]),
            stock=int(data.get("stock", 0)),
            images=data.get("images") or [],
            status=Product.STATUS_DRAFT,
        )
        self.logger.info(f"Created product {product.id} in store {store.id}")
        return service_ok(product)

    def _owned_product(self, user, product_id, lock: bool = False):
        queryset = Product.objects.select_related("store")
        if lock:
            queryset = queryset.select_for_update()
        product = queryset.filter(id=product_id).first()
        if not product:
            return None, service_err(ErrorCodes.PRODUCT_NOT_FOUND, "Product not found.")
        if product.store.owner_id != user.id:
            return None, service_err(ErrorCodes.NOT_AUTHORIZED, "You do not own this product.")
        return product, None

    @BaseService.log_performance
    @transaction.atomic
    def update_product(self, user, product_id, data: Dict[str, Any]) -> ServiceResult[Product]:
        product, failure = self._owned_product(user, product_id, lock=True)
        if failure:
            return failure

        errors = self._validate_fields(data, partial=True)
        category, category_error = self._resolve_category(data)
        if category_error:
            errors.append(category_error)
        if errors:
            return validation_err(errors)

        updated_fields = []
        if "title" in data:
            product.title = data["title"].strip()
            updated_fields.append("title")
        if "description" in data:
            product.description = (data["description"] or "").strip()
            updated_fields.append("description")
        if "price" in data:
            product.price = to_decimal(data["price"])
            updated_fields.append("price")
        if "stock" in data:
            product.stock = int(data["stock"])
            updated_fields.append("stock")
        if "images" in data:
            product.images = data["images"] or []
            updated_fields.append("images")
        if category:
            product.category = category
            updated_fields.append("category")

        if updated_fields:
            product.save(update_fields=updated_fields + ["updated_at"])
        self.logger.info(f"Updated product {product_id}, fields={updated_fields}")
        return service_ok(product)

    @BaseService.log_performance
    @transaction.atomic
    def change_status(self, user, product_id, new_status: str) -> ServiceResult[Product]:
        if new_status not in dict(Product.STATUS_CHOICES):
            return service_err(ErrorCodes.VALIDATION_ERROR, f"Invalid product status '{new_status}'.")

        product, failure = self._owned_product(user, product_id, lock=True)
        if failure:
            return failure

        if product.status == Product.STATUS_ARCHIVED and new_status != Product.STATUS_ARCHIVED:
            return service_err(ErrorCodes.INVALID_STATE, "Archived products cannot be reactivated.")

        product.status = new_status
        product.save(update_fields=["status", "updated_at"])
        return service_ok(product)

    @BaseService.log_performance
    def get_product(self, product_id, active_only: bool = False) -> ServiceResult[Product]:
        queryset = Product.objects.select_related("store", "category")
        if active_only:
            queryset = queryset.filter(status=Product.STATUS_ACTIVE)
        product = queryset.filter(id=product_id).first()
        if not product:
            return service_err(ErrorCodes.PRODUCT_NOT_FOUND, "Product not found.")
        return service_ok(product)

    @BaseService.log_performance
    def list_products(
        self, filters: Optional[Dict[str, Any]] = None, page: int = 1, page_size: int = 20
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Public listing of active products.

        Filters: ``category`` (slug), ``search`` (title/description,
        case-insensitive), ``min_price``, ``max_price``, ``store`` (id).
        """
        errors = []
        if page < 1:
            errors.append("Page number must be at least 1.")
        if page_size < 1 or page_size > 100:
            errors.append("Page size must be between 1 and 100.")
        if errors:
            return validation_err(errors)

        with tracer.start_as_current_span("catalog_list_products") as span:
            filters = filters or {}
            span.set_attribute("filters.count", len(filters))
            span.set_attribute("page", page)

            queryset = Product.objects.select_related("store", "category").filter(status=Product.STATUS_ACTIVE)

            if filters.get("category"):
                queryset = queryset.filter(category__slug=filters["category"])
            if filters.get("store"):
                queryset = queryset.filter(store_id=filters["store"])
            if filters.get("search"):
                term = filters["search"].strip()
                queryset = queryset.filter(Q(title__icontains=term) | Q(description__icontains=term))

            min_price = to_decimal(filters.get("min_price"))
            if min_price is not None:
                queryset = queryset.filter(price__gte=min_price)
            max_price = to_decimal(filters.get("max_price"))
            if max_price is not None:
                queryset = queryset.filter(price__lte=max_price)

            paginator = Paginator(queryset.order_by("-created_at"), page_size)
            page_obj = paginator.get_page(page)
            span.set_attribute("result.count", paginator.count)

            return service_ok(
                {
                    "results": list(page_obj.object_list),
                    "count": paginator.count,
                    "page": page_obj.number,
                    "page_size": page_size,
                    "num_pages": paginator.num_pages,
                    "has_next": page_obj.has_next(),
                    "has_previous": page_obj.has_previous(),
                }
            )

    @BaseService.log_performance
    def list_store_products(self, user, status: Optional[str] = None) -> ServiceResult[List[Product]]:
        """Every product of the seller's own store, drafts included."""
        store = Store.objects.filter(owner_id=user.id).first()
        if not store:
            return service_err(ErrorCodes.NOT_FOUND, "Store not found.")
        queryset = Product.objects.filter(store=store)
        if status:
            queryset = queryset.filter(status=status)
        return service_ok(list(queryset))

    # Stock

    @BaseService.log_performance
    @transaction.atomic
    def decrement_stock(self, product_id, quantity: int) -> ServiceResult[Product]:
        if quantity <= 0:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Quantity must be greater than zero.")

        product = Product.objects.select_for_update().filter(id=product_id).first()
        if not product:
            stock_reservation_failures.inc()
            return service_err(ErrorCodes.PRODUCT_NOT_FOUND, "Product not found.")

        if product.stock < quantity:
            stock_reservation_failures.inc()
            return service_err(
                ErrorCodes.INSUFFICIENT_STOCK,
                f"Insufficient stock for {product.title}. Available: {product.stock}, requested: {quantity}.",
            )

        old_stock = product.stock
        product.stock = F("stock") - quantity
        product.save(update_fields=["stock", "updated_at"])
        product.refresh_from_db(fields=["stock"])

        if product.stock <= LOW_STOCK_THRESHOLD < old_stock:
            stock_low_alert.inc()
        self.logger.info(f"Stock decremented: product={product.id}, {old_stock} -> {product.stock}")
        return service_ok(product)

    @BaseService.log_performance
    @transaction.atomic
    def restore_stock(self, product_id, quantity: int) -> ServiceResult[Product]:
        if quantity <= 0:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Quantity must be greater than zero.")

        product = Product.objects.select_for_update().filter(id=product_id).first()
        if not product:
            return service_err(ErrorCodes.PRODUCT_NOT_FOUND, "Product not found.")

        old_stock = product.stock
        product.stock = F("stock") + quantity
        product.save(update_fields=["stock", "updated_at"])
        product.refresh_from_db(fields=["stock"])

        if old_stock <= LOW_STOCK_THRESHOLD < product.stock:
            stock_low_alert.dec()
        self.logger.info(f"Stock restored: product={product.id}, {old_stock} -> {product.stock}")
        return service_ok(product)
