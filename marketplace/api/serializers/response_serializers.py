"""
Response Serializers for Marketplace API Documentation

These serializers describe shared response shapes for OpenAPI schema
generation. They are not used for validation.
"""

from rest_framework import serializers


class ErrorResponseSerializer(serializers.Serializer):
    """Standard error response"""

    detail = serializers.CharField(help_text="Human-readable error message")
    errors = serializers.ListField(child=serializers.CharField(), help_text="Every validation message")


class SuccessResponseSerializer(serializers.Serializer):
    """Generic success response"""

    message = serializers.CharField(help_text="Success message")


class PageSerializer(serializers.Serializer):
    """Pagination envelope; ``results`` is documented per endpoint."""

    count = serializers.IntegerField()
    page = serializers.IntegerField()
    page_size = serializers.IntegerField()
    num_pages = serializers.IntegerField()
    has_next = serializers.BooleanField()
    has_previous = serializers.BooleanField()


def page_data(page: dict, serializer_class) -> dict:
    """Serialize a service pagination dict with ``serializer_class`` for the results."""
    data = {key: value for key, value in page.items() if key != "results"}
    data["results"] = serializer_class(page["results"], many=True).data
    return data
