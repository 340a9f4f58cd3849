"""
Prometheus Metrics

Authentication metrics, exposed at /api/auth/metrics/.
"""

from prometheus_client import Counter, Histogram

login_total = Counter("auth_login_total", "Total login attempts", ["status"])
"""
Labels: status (success/failed)

Example:
    login_total.labels(status='success').inc()
"""

login_failed = Counter("auth_login_failed", "Failed login attempts", ["reason"])

login_duration = Histogram(
    "auth_login_duration_seconds", "Login request duration in seconds", buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0]
)

registrations_total = Counter("auth_registrations_total", "Accounts created", ["account_type"])

role_changes_total = Counter("auth_role_changes_total", "Role assignments", ["role"])
