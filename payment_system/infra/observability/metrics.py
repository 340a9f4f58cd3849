from prometheus_client import Counter, Gauge, Histogram


# Payment Metrics
payment_volume_total = Counter("payment_volume_total", "Total payment volume processed", ["currency", "status"])
payments_initiated_total = Counter("payments_initiated_total", "Payments started at checkout", ["method"])
payment_callback_duration = Histogram("payment_callback_seconds", "Payment callback handling time")

# Escrow Metrics
escrow_held_value = Gauge("escrow_held_value", "Current value of escrow entries on hold", ["currency"])
escrow_released_total = Counter("escrow_released_total", "Escrow entries released to sellers")

# Refund Metrics
refunds_total = Counter("refunds_total", "Refunds processed", ["refund_type", "status"])
refund_volume_total = Counter("refund_volume_total", "Total refunded amount", ["currency"])

# Payout Metrics
payouts_total = Counter("payouts_total", "Payouts by resulting status", ["status"])
payout_volume_total = Counter("payout_volume_total", "Total payout volume processed", ["currency", "status"])

# Settlement and Invoice Metrics
settlements_generated_total = Counter("settlements_generated_total", "Monthly settlements generated")
commission_invoices_total = Counter("commission_invoices_total", "Commission documents issued", ["invoice_type"])
