"""
Prometheus Metrics

Seller onboarding and KYC review metrics.
"""

from prometheus_client import Counter, Gauge

onboarding_completed_total = Counter(
    "sellers_onboarding_completed_total", "Completed seller onboardings", ["seller_type"]
)

kyc_submissions_total = Counter("sellers_kyc_submissions_total", "KYC documents submitted", ["document_type"])

kyc_decisions_total = Counter("sellers_kyc_decisions_total", "KYC review decisions", ["decision"])
"""
Labels: decision (approved/rejected)

Example:
    kyc_decisions_total.labels(decision='approved').inc()
"""

kyc_pending_submissions = Gauge("sellers_kyc_pending_submissions", "KYC submissions awaiting review")
