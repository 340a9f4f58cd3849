"""
Prometheus Metrics Endpoint

Every app mounts this view under its own prefix; they all expose the same
process-wide registry.
"""

from django.http import HttpResponse
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

# Importing the metric modules registers their collectors on REGISTRY.
import authentication.infra.observability.metrics  # noqa: F401
import marketplace.infra.observability.metrics  # noqa: F401
import payment_system.infra.observability.metrics  # noqa: F401
import sellers.infra.observability.metrics  # noqa: F401


def metrics(request):
    """
    Scrape target for identity, catalog, order, payment and seller counters.

    Unauthenticated: restrict access at the network layer in production.
    """
    return HttpResponse(generate_latest(REGISTRY), content_type=CONTENT_TYPE_LATEST)
