from django.contrib import admin

from .models import (
    Cart,
    CartItem,
    CaseItem,
    CaseMessage,
    Category,
    Order,
    OrderItem,
    Product,
    PromoCode,
    ReturnRequest,
    SellerSubOrder,
    SellerSubOrderItem,
    ShippingStatusHistory,
)


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "parent", "is_active", "product_count", "created_at")
    list_filter = ("is_active", "parent")
    search_fields = ("name",)
    prepopulated_fields = {"slug": ("name",)}
    readonly_fields = ("created_at", "product_count")

    def product_count(self, obj):
        return obj.products.filter(status=Product.STATUS_ACTIVE).count()

    product_count.short_description = "Active Products"


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("title", "store", "category", "price", "stock", "status", "created_at")
    list_filter = ("status", "category", "created_at")
    search_fields = ("title", "description", "store__name")
    readonly_fields = ("id", "created_at", "updated_at")

    fieldsets = (
        ("Basic Information", {"fields": ("id", "title", "description", "images")}),
        ("Store & Category", {"fields": ("store", "category")}),
        ("Pricing & Inventory", {"fields": ("price", "stock")}),
        ("Status", {"fields": ("status",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at"), "classes": ("collapse",)}),
    )

    actions = ["activate_products", "deactivate_products"]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("store", "category")

    def activate_products(self, request, queryset):
        updated = queryset.update(status=Product.STATUS_ACTIVE)
        self.message_user(request, f"{updated} products activated.")

    activate_products.short_description = "Activate selected products"

    def deactivate_products(self, request, queryset):
        updated = queryset.update(status=Product.STATUS_INACTIVE)
        self.message_user(request, f"{updated} products deactivated.")

    deactivate_products.short_description = "Deactivate selected products"


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    readonly_fields = ("product", "product_title", "product_price", "quantity", "store_name", "added_at")
    fields = readonly_fields


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ("buyer", "applied_promo_code", "updated_at")
    search_fields = ("buyer__email",)
    inlines = [CartItemInline]


@admin.register(PromoCode)
class PromoCodeAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "discount_type",
        "discount_value",
        "scope",
        "store",
        "usage_count",
        "usage_limit",
        "is_active",
        "end_date",
    )
    list_filter = ("discount_type", "scope", "is_active")
    search_fields = ("code", "description", "store__name")
    readonly_fields = ("usage_count", "created_at", "updated_at")


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("product_title", "store_name", "unit_price", "quantity")
    fields = readonly_fields


class SellerSubOrderInline(admin.TabularInline):
    model = SellerSubOrder
    extra = 0
    readonly_fields = ("sub_order_number", "store_name", "status", "total_amount", "tracking_number")
    fields = readonly_fields
    show_change_link = True


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "buyer", "status", "total_amount", "payment_method_name", "created_at")
    list_filter = ("status", "payment_method_name", "created_at")
    search_fields = ("order_number", "buyer__email", "buyer_email", "delivery_full_name")
    readonly_fields = (
        "id",
        "order_number",
        "payment_transaction_id",
        "created_at",
        "updated_at",
        "paid_at",
        "failed_at",
        "cancelled_at",
        "refunded_at",
    )
    inlines = [OrderItemInline, SellerSubOrderInline]

    fieldsets = (
        ("Order", {"fields": ("id", "order_number", "buyer", "buyer_email", "status", "cancellation_reason")}),
        ("Payment", {"fields": ("payment_transaction_id", "payment_method_name")}),
        ("Amounts", {"fields": ("items_subtotal", "shipping_total", "discount_amount", "promo_code", "total_amount")}),
        (
            "Delivery",
            {
                "fields": (
                    "delivery_full_name",
                    "delivery_address_line1",
                    "delivery_address_line2",
                    "delivery_city",
                    "delivery_state",
                    "delivery_postal_code",
                    "delivery_country",
                    "delivery_phone_number",
                    "delivery_instructions",
                )
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at", "paid_at", "failed_at", "cancelled_at", "refunded_at"),
                "classes": ("collapse",),
            },
        ),
    )


class SellerSubOrderItemInline(admin.TabularInline):
    model = SellerSubOrderItem
    extra = 0
    readonly_fields = ("product_title", "unit_price", "quantity", "status")
    fields = readonly_fields


class ShippingStatusHistoryInline(admin.TabularInline):
    model = ShippingStatusHistory
    extra = 0
    readonly_fields = ("previous_status", "new_status", "changed_by", "changed_at", "tracking_number", "notes")
    fields = readonly_fields


@admin.register(SellerSubOrder)
class SellerSubOrderAdmin(admin.ModelAdmin):
    list_display = ("sub_order_number", "store_name", "status", "total_amount", "tracking_number", "created_at")
    list_filter = ("status", "shipping_carrier")
    search_fields = ("sub_order_number", "order__order_number", "store_name", "tracking_number")
    readonly_fields = ("created_at", "updated_at", "paid_at", "shipped_at", "delivered_at", "cancelled_at")
    inlines = [SellerSubOrderItemInline, ShippingStatusHistoryInline]


class CaseItemInline(admin.TabularInline):
    model = CaseItem
    extra = 0
    readonly_fields = ("sub_order_item", "quantity")
    fields = readonly_fields


class CaseMessageInline(admin.TabularInline):
    model = CaseMessage
    extra = 0
    readonly_fields = ("sender", "sender_role", "content", "created_at")
    fields = readonly_fields


@admin.register(ReturnRequest)
class ReturnRequestAdmin(admin.ModelAdmin):
    list_display = ("case_number", "case_type", "status", "buyer", "resolution_type", "refund_amount", "created_at")
    list_filter = ("case_type", "status", "resolution_type")
    search_fields = ("case_number", "buyer__email", "sub_order__sub_order_number")
    readonly_fields = ("case_number", "linked_refund_id", "resolved_at", "last_activity_at", "created_at")
    inlines = [CaseItemInline, CaseMessageInline]
