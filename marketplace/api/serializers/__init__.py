from .response_serializers import ErrorResponseSerializer, PageSerializer, SuccessResponseSerializer, page_data


__all__ = ["ErrorResponseSerializer", "PageSerializer", "SuccessResponseSerializer", "page_data"]
