from prometheus_client import Counter, Gauge, Histogram


# Order Metrics
orders_placed_total = Counter("marketplace_orders_placed_total", "Total orders placed", ["status"])
order_value = Histogram(
    "marketplace_order_value",
    "Order value distribution",
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 5000, float("inf")],
)
sub_order_transitions_total = Counter(
    "marketplace_sub_order_transitions_total", "Seller sub-order status changes", ["status"]
)
orders_cancelled_total = Counter("marketplace_orders_cancelled_total", "Orders cancelled by buyers")

# Stock Metrics
stock_reservation_failures = Counter("marketplace_stock_reservation_failure", "Stock reservation failures")
stock_low_alert = Gauge("marketplace_stock_low_alert", "Products with low stock")

# Cart Metrics
cart_validation_duration = Histogram("marketplace_cart_validation_seconds", "Cart validation time")
cart_validations_total = Counter("marketplace_cart_validations_total", "Checkout validations", ["outcome"])
promo_codes_applied_total = Counter("marketplace_promo_codes_applied_total", "Promo codes applied to carts")

# Case Metrics
cases_opened_total = Counter("marketplace_cases_opened_total", "Return and complaint cases opened", ["case_type"])
cases_resolved_total = Counter("marketplace_cases_resolved_total", "Cases resolved", ["resolution"])
