"""
InvoiceService - monthly commission invoices and credit notes.

Invoices bill a seller for the net commission recorded in a month; credit
notes (negative amounts) correct an issued invoice. PDFs are rendered with
reportlab and e-mailed to the store owner when an invoice is issued.
"""

import io
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import List

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from infrastructure.email import EmailException, EmailMessage
from payment_system.domain.models import CommissionInvoice, CommissionInvoiceLineItem, CommissionRecord
from payment_system.domain.services.settlement_service import period_bounds, validate_period
from payment_system.infra.observability.metrics import commission_invoices_total
from sellers.domain.models import Store
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok


TWO_PLACES = Decimal("0.01")


def next_number(prefix: str, year: int) -> str:
    """``{prefix}-{year}-{seq:05}``, sequential per prefix and year."""
    stem = f"{prefix}-{year}-"
    last = (
        CommissionInvoice.objects.filter(invoice_number__startswith=stem)
        .order_by("-invoice_number")
        .values_list("invoice_number", flat=True)
        .first()
    )
    sequence = int(last[len(stem):]) + 1 if last else 1
    return f"{stem}{sequence:05d}"


class InvoiceService(BaseService):
    def __init__(self, email_service=None):
        super().__init__()
        self.email_service = email_service

    @BaseService.log_performance
    @transaction.atomic
    def generate_invoice(self, seller_id, year: int, month: int) -> ServiceResult[CommissionInvoice]:
        invalid = validate_period(year, month)
        if invalid:
            return invalid
        store = Store.objects.select_related("owner").filter(id=seller_id).first()
        if not store:
            return service_err(ErrorCodes.NOT_FOUND, "Seller not found.")
        if CommissionInvoice.objects.filter(
            seller_id=seller_id, year=year, month=month, invoice_type=CommissionInvoice.TYPE_INVOICE
        ).exists():
            return service_err(ErrorCodes.ALREADY_EXISTS, f"An invoice already exists for {year}-{month:02d}.")

        start, end = period_bounds(year, month)
        records = list(
            CommissionRecord.objects.filter(seller_id=seller_id, calculated_at__gte=start, calculated_at__lt=end)
        )
        if not records:
            return service_err(ErrorCodes.NOT_FOUND, f"No commission records found for {year}-{month:02d}.")

        config = settings.INVOICE_SETTINGS
        tax_rate = Decimal(str(config["DEFAULT_TAX_RATE"]))
        net = sum((record.net_commission_amount for record in records), Decimal("0.00"))
        tax = (net * tax_rate / Decimal("100")).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        today = timezone.now().date()

        invoice = CommissionInvoice.objects.create(
            invoice_number=next_number("INV", year),
            seller=store,
            year=year,
            month=month,
            invoice_type=CommissionInvoice.TYPE_INVOICE,
            status=CommissionInvoice.STATUS_ISSUED,
            net_amount=net,
            tax_rate=tax_rate,
            tax_amount=tax,
            gross_amount=net + tax,
            currency=settings.PAYMENT_SETTINGS["CURRENCY"],
            issue_date=today,
            due_date=today + timedelta(days=config["PAYMENT_DUE_DAYS"]),
        )
        CommissionInvoiceLineItem.objects.bulk_create(
            [
                CommissionInvoiceLineItem(
                    invoice=invoice,
                    commission_record_id=record.id,
                    order_id=record.order_id,
                    description=f"Commission for Order {str(record.order_id)[:8]}...",
                    order_amount=record.order_amount,
                    commission_rate=record.commission_rate,
                    amount=record.net_commission_amount,
                )
                for record in records
            ]
        )
        commission_invoices_total.labels(invoice_type=invoice.invoice_type).inc()
        self.logger.info(f"Issued {invoice.invoice_number} to store {store.id}: {invoice.gross_amount}")
        transaction.on_commit(lambda: self.send_invoice(invoice.id))
        return service_ok(invoice)

    @BaseService.log_performance
    @transaction.atomic
    def create_credit_note(self, original_invoice_id, credit_amount: Decimal, reason: str) -> ServiceResult:
        if credit_amount is None or credit_amount <= 0:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Credit amount must be greater than zero.")
        if not (reason or "").strip():
            return service_err(ErrorCodes.VALIDATION_ERROR, "Correction reason is required.")

        original = CommissionInvoice.objects.select_for_update().filter(id=original_invoice_id).first()
        if not original or original.is_credit_note:
            return service_err(ErrorCodes.NOT_FOUND, "Invoice not found.")
        if original.status == CommissionInvoice.STATUS_CANCELLED:
            return service_err(ErrorCodes.INVALID_STATE, "Cannot create credit note for a cancelled invoice.")

        already_credited = -(
            original.credit_notes.aggregate(total=Sum("gross_amount"))["total"] or Decimal("0.00")
        )
        if credit_amount > original.gross_amount - already_credited:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Credit amount cannot exceed the original invoice amount.")

        credit_net = (-credit_amount / (1 + original.tax_rate / Decimal("100"))).quantize(
            TWO_PLACES, rounding=ROUND_HALF_UP
        )
        today = timezone.now().date()
        credit_note = CommissionInvoice.objects.create(
            invoice_number=next_number("CN", original.year),
            seller_id=original.seller_id,
            year=original.year,
            month=original.month,
            invoice_type=CommissionInvoice.TYPE_CREDIT_NOTE,
            status=CommissionInvoice.STATUS_ISSUED,
            net_amount=credit_net,
            tax_rate=original.tax_rate,
            tax_amount=-credit_amount - credit_net,
            gross_amount=-credit_amount,
            currency=original.currency,
            issue_date=today,
            due_date=today,
            original_invoice=original,
            correction_reason=reason,
        )
        CommissionInvoiceLineItem.objects.create(
            invoice=credit_note,
            description=f"Credit for {original.invoice_number}: {reason}"[:255],
            order_amount=Decimal("0.00"),
            commission_rate=Decimal("0"),
            amount=credit_net,
        )

        if credit_amount + already_credited >= original.gross_amount:
            original.status = CommissionInvoice.STATUS_CORRECTED
            original.correction_reason = reason
            original.save(update_fields=["status", "correction_reason", "updated_at"])

        commission_invoices_total.labels(invoice_type=credit_note.invoice_type).inc()
        return service_ok(credit_note)

    def get_invoice(self, invoice_id) -> ServiceResult[CommissionInvoice]:
        invoice = CommissionInvoice.objects.select_related("seller").filter(id=invoice_id).first()
        if not invoice:
            return service_err(ErrorCodes.NOT_FOUND, "Invoice not found.")
        return service_ok(invoice)

    def get_invoices_by_seller(self, seller_id) -> ServiceResult[List[CommissionInvoice]]:
        return service_ok(list(CommissionInvoice.objects.filter(seller_id=seller_id)))

    @transaction.atomic
    def mark_invoice_paid(self, invoice_id) -> ServiceResult[CommissionInvoice]:
        invoice = CommissionInvoice.objects.select_for_update().filter(id=invoice_id).first()
        if not invoice:
            return service_err(ErrorCodes.NOT_FOUND, "Invoice not found.")
        if invoice.is_credit_note:
            return service_err(ErrorCodes.INVALID_STATE, "Credit notes cannot be marked as paid.")
        if invoice.status != CommissionInvoice.STATUS_ISSUED:
            return service_err(ErrorCodes.INVALID_STATE, "Only issued invoices can be marked as paid.")
        invoice.status = CommissionInvoice.STATUS_PAID
        invoice.paid_at = timezone.now()
        invoice.save(update_fields=["status", "paid_at", "updated_at"])
        return service_ok(invoice)

    # PDF

    def render_pdf(self, invoice: CommissionInvoice) -> bytes:
        platform = settings.INVOICE_SETTINGS["PLATFORM_NAME"]
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=0.75 * inch,
            leftMargin=0.75 * inch,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
            title=invoice.invoice_number,
        )
        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "InvoiceTitle", parent=styles["Heading1"], fontSize=18, textColor=colors.HexColor("#1F3A5F")
        )
        right_style = ParagraphStyle("Right", parent=styles["Normal"], alignment=TA_RIGHT)

        heading = "Credit Note" if invoice.is_credit_note else "Commission Invoice"
        content = [
            Paragraph(f"{platform} {heading}", title_style),
            Spacer(1, 12),
        ]

        details = [
            ["Number:", invoice.invoice_number],
            ["Seller:", invoice.seller.name],
            ["Period:", f"{invoice.year}-{invoice.month:02d}"],
            ["Issue date:", f"{invoice.issue_date:%Y-%m-%d}"],
            ["Due date:", f"{invoice.due_date:%Y-%m-%d}"],
        ]
        if invoice.original_invoice_id:
            details.append(["Corrects:", invoice.original_invoice.invoice_number])
        details_table = Table(details, colWidths=[1.5 * inch, 4.5 * inch])
        details_table.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
                ]
            )
        )
        content += [details_table, Spacer(1, 18)]

        rows = [["Description", "Order amount", "Rate", "Amount"]]
        for item in invoice.line_items.all():
            rows.append(
                [
                    item.description,
                    f"{item.order_amount:.2f}",
                    f"{item.commission_rate:.2f}%",
                    f"{item.amount:.2f}",
                ]
            )
        lines_table = Table(rows, colWidths=[3.2 * inch, 1.2 * inch, 0.8 * inch, 1.0 * inch], repeatRows=1)
        lines_table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1F3A5F")),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#CCCCCC")),
                ]
            )
        )
        content += [lines_table, Spacer(1, 18)]

        for label, amount in (
            ("Net", invoice.net_amount),
            (f"Tax ({invoice.tax_rate:.2f}%)", invoice.tax_amount),
            ("Total", invoice.gross_amount),
        ):
            content.append(Paragraph(f"<b>{label}:</b> {amount:.2f} {invoice.currency}", right_style))
        if invoice.correction_reason and invoice.is_credit_note:
            content += [Spacer(1, 12), Paragraph(f"Reason: {invoice.correction_reason}", styles["Normal"])]

        doc.build(content)
        return buffer.getvalue()

    def generate_invoice_pdf(self, invoice_id, seller_id=None) -> ServiceResult[dict]:
        """PDF of the invoice; ``seller_id`` restricts it to the owning store."""
        invoice = (
            CommissionInvoice.objects.select_related("seller", "original_invoice").filter(id=invoice_id).first()
        )
        if not invoice:
            return service_err(ErrorCodes.NOT_FOUND, "Invoice not found.")
        if seller_id is not None and str(invoice.seller_id) != str(seller_id):
            return service_err(ErrorCodes.NOT_AUTHORIZED, "You are not authorized to access this invoice.")
        return service_ok({"filename": f"{invoice.invoice_number}.pdf", "content": self.render_pdf(invoice)})

    def send_invoice(self, invoice_id) -> bool:
        if not self.email_service:
            return False
        invoice = CommissionInvoice.objects.select_related("seller__owner").filter(id=invoice_id).first()
        if not invoice or not invoice.seller.owner.email:
            return False
        message = EmailMessage(
            subject=f"Commission invoice {invoice.invoice_number}",
            body=(
                f"Your commission invoice for {invoice.year}-{invoice.month:02d} is attached.\n\n"
                f"Total due: {invoice.gross_amount:.2f} {invoice.currency} by {invoice.due_date:%Y-%m-%d}."
            ),
            to=[invoice.seller.owner.email],
            attachments=[(f"{invoice.invoice_number}.pdf", self.render_pdf(invoice), "application/pdf")],
            tags=["commission_invoice"],
        )
        try:
            return self.email_service.send(message)
        except EmailException as e:
            self.logger.error(f"Invoice e-mail for {invoice.invoice_number} failed: {e}")
            return False
