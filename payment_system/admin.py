from django.contrib import admin
from django.utils.html import format_html

from .models import (
    CommissionInvoice,
    CommissionInvoiceLineItem,
    CommissionRecord,
    CommissionRule,
    EscrowEntry,
    PaymentTransaction,
    Payout,
    Refund,
    Settlement,
    SettlementLineItem,
)


STATUS_COLORS = {
    "pending": "#6c757d",
    "processing": "#0d6efd",
    "paid": "#198754",
    "failed": "#dc3545",
    "cancelled": "#6c757d",
    "refunded": "#fd7e14",
    "held": "#0d6efd",
    "released": "#198754",
    "partially_refunded": "#fd7e14",
    "completed": "#198754",
    "scheduled": "#0d6efd",
    "draft": "#6c757d",
    "finalized": "#198754",
    "exported": "#20c997",
    "issued": "#0d6efd",
    "corrected": "#fd7e14",
}


def status_badge(obj):
    color = STATUS_COLORS.get(obj.status, "#6c757d")
    return format_html(
        '<span style="background-color: {}; color: white; padding: 2px 8px; border-radius: 4px;">{}</span>',
        color,
        obj.get_status_display(),
    )


status_badge.short_description = "Status"


def id_short(obj):
    return str(obj.id)[:8] + "..."


id_short.short_description = "ID"


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    list_display = [id_short, "buyer", "payment_method", status_badge, "amount", "refunded_amount", "created_at"]
    list_filter = ["status", "payment_method", "currency", "created_at"]
    search_fields = ["id", "external_reference", "buyer__email"]
    readonly_fields = ["id", "created_at", "updated_at", "completed_at"]

    fieldsets = (
        ("Basic Information", {"fields": ("id", "buyer", "payment_method", "status", "amount", "currency")}),
        ("Provider", {"fields": ("external_reference", "idempotency_key", "redirect_url", "error_message")}),
        ("Refunds", {"fields": ("refunded_amount",)}),
        ("URLs", {"fields": ("return_url", "cancel_url")}),
        ("Timestamps", {"fields": ("created_at", "updated_at", "completed_at")}),
    )


@admin.register(EscrowEntry)
class EscrowEntryAdmin(admin.ModelAdmin):
    list_display = [id_short, "order_id", "seller", status_badge, "amount", "refunded_amount", "created_at"]
    list_filter = ["status", "is_eligible_for_payout", "currency"]
    search_fields = ["order_id", "seller__name"]
    readonly_fields = ["id", "created_at", "updated_at", "released_at", "refunded_at"]


@admin.register(CommissionRule)
class CommissionRuleAdmin(admin.ModelAdmin):
    list_display = ["name", "seller", "category", "commission_rate", "fixed_fee", "priority", "is_active", "version"]
    list_filter = ["is_active", "category"]
    search_fields = ["name", "seller__name", "category"]
    readonly_fields = ["created_by", "modified_by", "version", "created_at", "updated_at"]


@admin.register(CommissionRecord)
class CommissionRecordAdmin(admin.ModelAdmin):
    list_display = [
        id_short,
        "order_id",
        "seller",
        "order_amount",
        "commission_rate",
        "commission_amount",
        "net_commission_amount",
        "calculated_at",
    ]
    list_filter = ["calculated_at"]
    search_fields = ["order_id", "seller__name"]


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    list_display = [id_short, "order_id", "refund_type", status_badge, "amount", "initiated_by_role", "created_at"]
    list_filter = ["status", "refund_type", "initiated_by_role"]
    search_fields = ["order_id", "external_reference", "reason"]
    readonly_fields = ["id", "created_at", "updated_at", "completed_at"]


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    list_display = [id_short, "seller", status_badge, "amount", "currency", "scheduled_at", "retry_count", "batch_id"]
    list_filter = ["status", "schedule_frequency", "currency"]
    search_fields = ["seller__name", "external_transfer_reference", "batch_id", "error_reference"]
    readonly_fields = ["id", "created_at", "updated_at", "processing_started_at", "processing_completed_at"]


class SettlementLineItemInline(admin.TabularInline):
    model = SettlementLineItem
    extra = 0
    readonly_fields = [
        "order_number",
        "order_date",
        "gross_amount",
        "refund_amount",
        "net_amount",
        "commission_amount",
        "is_adjustment",
        "notes",
    ]
    fields = readonly_fields


@admin.register(Settlement)
class SettlementAdmin(admin.ModelAdmin):
    list_display = ["seller", "year", "month", status_badge, "net_sales", "total_commission", "net_payable", "version"]
    list_filter = ["status", "year", "month"]
    search_fields = ["seller__name"]
    inlines = [SettlementLineItemInline]


class CommissionInvoiceLineItemInline(admin.TabularInline):
    model = CommissionInvoiceLineItem
    extra = 0
    readonly_fields = ["description", "order_amount", "commission_rate", "amount"]
    fields = readonly_fields


@admin.register(CommissionInvoice)
class CommissionInvoiceAdmin(admin.ModelAdmin):
    list_display = ["invoice_number", "seller", "invoice_type", status_badge, "gross_amount", "issue_date", "due_date"]
    list_filter = ["invoice_type", "status", "year"]
    search_fields = ["invoice_number", "seller__name"]
    inlines = [CommissionInvoiceLineItemInline]
