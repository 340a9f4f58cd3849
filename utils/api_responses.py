from rest_framework.response import Response

from utils.service_base import ServiceResult, http_status_for


def error_response(result: ServiceResult) -> Response:
    """
    Render a failed ServiceResult as {"detail", "errors"} with the mapped status.

    A dict carried on the failed result (e.g. the available stock) is merged
    into the body.
    """
    body = {"detail": result.error_detail, "errors": result.errors or [result.error_detail]}
    if isinstance(result.value, dict):
        body.update(result.value)
    return Response(body, status=http_status_for(result))


def page_params(request, default_size: int = 20):
    """Read page/page_size query params. Non-integers fall back to the defaults."""
    try:
        page = int(request.query_params.get("page", 1))
    except (TypeError, ValueError):
        page = 1
    try:
        page_size = int(request.query_params.get("page_size", default_size))
    except (TypeError, ValueError):
        page_size = default_size
    return page, page_size
