import uuid

from django.db import models

from sellers.domain.models import Store


class CommissionInvoice(models.Model):
    """Monthly commission invoice (or credit note) issued to a seller."""

    TYPE_INVOICE = "invoice"
    TYPE_CREDIT_NOTE = "credit_note"

    INVOICE_TYPE_CHOICES = [
        (TYPE_INVOICE, "Invoice"),
        (TYPE_CREDIT_NOTE, "Credit Note"),
    ]

    STATUS_DRAFT = "draft"
    STATUS_ISSUED = "issued"
    STATUS_PAID = "paid"
    STATUS_CANCELLED = "cancelled"
    STATUS_CORRECTED = "corrected"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_ISSUED, "Issued"),
        (STATUS_PAID, "Paid"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_CORRECTED, "Corrected"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    invoice_number = models.CharField(max_length=20, unique=True)
    seller = models.ForeignKey(Store, on_delete=models.PROTECT, related_name="commission_invoices")
    year = models.PositiveIntegerField()
    month = models.PositiveSmallIntegerField()
    invoice_type = models.CharField(max_length=20, choices=INVOICE_TYPE_CHOICES, default=TYPE_INVOICE)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT)

    net_amount = models.DecimalField(max_digits=12, decimal_places=2)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2)
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2)
    gross_amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")

    issue_date = models.DateField()
    due_date = models.DateField()
    paid_at = models.DateTimeField(null=True, blank=True)

    original_invoice = models.ForeignKey(
        "self", on_delete=models.PROTECT, null=True, blank=True, related_name="credit_notes"
    )
    correction_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "payment_system"
        db_table = "payment_commission_invoices"
        ordering = ["-year", "-month", "-created_at"]

    def __str__(self):
        return self.invoice_number

    @property
    def is_credit_note(self) -> bool:
        return self.invoice_type == self.TYPE_CREDIT_NOTE


class CommissionInvoiceLineItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    invoice = models.ForeignKey(CommissionInvoice, on_delete=models.CASCADE, related_name="line_items")
    commission_record_id = models.UUIDField(null=True, blank=True)
    order_id = models.UUIDField(null=True, blank=True)
    description = models.CharField(max_length=255)
    order_amount = models.DecimalField(max_digits=12, decimal_places=2)
    commission_rate = models.DecimalField(max_digits=7, decimal_places=4)
    amount = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        app_label = "payment_system"
        db_table = "payment_commission_invoice_line_items"
        ordering = ["id"]
