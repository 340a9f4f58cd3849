"""
Base classes and utilities for the service layer.

Every domain service in Mercato returns a ``ServiceResult`` for expected
outcomes (validation failures, missing records, illegal state changes) and
reserves exceptions for conditions the caller cannot handle.

Usage:
    class EscrowService(BaseService):
        @BaseService.log_performance
        def release_escrow(self, order_id):
            ...
            return service_err(ErrorCodes.NOT_FOUND, "No escrow entries found for the specified order.")
"""

import logging
import time
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Callable, Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Outcome of a service operation.

    Attributes:
        ok: True if operation succeeded, False otherwise
        value: The success value (present if ok=True)
        error: Error code from ErrorCodes (present if ok=False)
        error_detail: Human-readable message, safe to show to API clients
        errors: Every validation message when more than one applies
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_detail: Optional[str] = None
    errors: List[str] = field(default_factory=list)

    def map(self, func: Callable[[T], Any]) -> "ServiceResult":
        """Transform the success value, passing errors through untouched."""
        if self.ok:
            return service_ok(func(self.value))
        return self

    def flat_map(self, func: Callable[[T], "ServiceResult"]) -> "ServiceResult":
        """Chain service operations that return ServiceResult."""
        if self.ok:
            return func(self.value)
        return self

    def to_dict(self) -> dict:
        if self.ok:
            return {"success": True, "data": self.value}
        return {
            "success": False,
            "error": {"code": self.error, "message": self.error_detail, "errors": self.errors},
        }


def service_ok(value: T = None) -> ServiceResult[T]:
    """
    Create a successful ServiceResult.

    Example:
        >>> return service_ok(order)
    """
    return ServiceResult(ok=True, value=value)


def service_err(error: str, error_detail: str = "", errors: Optional[List[str]] = None) -> ServiceResult:
    """
    Create a failed ServiceResult.

    Args:
        error: Error code (e.g., ErrorCodes.VALIDATION_ERROR)
        error_detail: Human-readable error message
        errors: Optional list of all validation messages

    Example:
        >>> return service_err(ErrorCodes.NOT_FOUND, "Order not found.")
    """
    detail = error_detail or error
    return ServiceResult(ok=False, error=error, error_detail=detail, errors=list(errors or [detail]))


def validation_err(errors: List[str]) -> ServiceResult:
    """Failed result carrying every collected validation message."""
    return service_err(ErrorCodes.VALIDATION_ERROR, errors[0], errors)


class BaseService:
    """
    Base class for all services providing common functionality.

    Provides:
    - Logging with class name
    - Performance timing decorator
    - Error handling utilities
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    @staticmethod
    def log_performance(func: Callable) -> Callable:
        """
        Decorator to log performance of service methods.

        Logs execution time, and a warning when the returned ServiceResult
        carries an error. Exceptions are logged and re-raised.
        """

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            start_time = time.time()
            method_name = f"{self.__class__.__name__}.{func.__name__}"

            try:
                self.logger.debug(f"{method_name} started")
                result = func(self, *args, **kwargs)
                elapsed_time = (time.time() - start_time) * 1000

                if isinstance(result, ServiceResult):
                    if result.ok:
                        self.logger.info(f"{method_name} completed successfully in {elapsed_time:.2f}ms")
                    else:
                        self.logger.warning(
                            f"{method_name} failed with error '{result.error}' in {elapsed_time:.2f}ms"
                        )
                else:
                    self.logger.info(f"{method_name} completed in {elapsed_time:.2f}ms")

                return result

            except Exception as e:
                elapsed_time = (time.time() - start_time) * 1000
                self.logger.error(
                    f"{method_name} raised exception after {elapsed_time:.2f}ms: {str(e)}",
                    exc_info=True,
                )
                raise

        return wrapper

    def wrap_exception(self, func: Callable, error_code: str = "internal_error") -> ServiceResult:
        """
        Execute a function and wrap any exception in a ServiceResult.

        Example:
            result = self.wrap_exception(lambda: Store.objects.get(id=store_id), ErrorCodes.NOT_FOUND)
        """
        try:
            return service_ok(func())
        except Exception as e:
            self.logger.error(f"Exception in {getattr(func, '__name__', 'callable')}: {str(e)}", exc_info=True)
            return service_err(error_code, str(e))


class ErrorCodes:
    """Standard error codes used across Mercato services."""

    # Generic
    NOT_FOUND = "not_found"
    NOT_AUTHORIZED = "not_authorized"
    VALIDATION_ERROR = "validation_error"
    INVALID_STATE = "invalid_state"
    CONFLICT = "conflict"
    INTERNAL_ERROR = "internal_error"

    # Identity
    EMAIL_TAKEN = "email_taken"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_INACTIVE = "account_inactive"

    # Catalog and cart
    PRODUCT_NOT_FOUND = "product_not_found"
    PRODUCT_UNAVAILABLE = "product_unavailable"
    INSUFFICIENT_STOCK = "insufficient_stock"
    CART_EMPTY = "cart_empty"
    ITEM_NOT_IN_CART = "item_not_in_cart"
    INVALID_PROMO_CODE = "invalid_promo_code"
    CHECKOUT_VALIDATION_FAILED = "checkout_validation_failed"

    # Orders and cases
    ORDER_NOT_FOUND = "order_not_found"
    INVALID_TRANSITION = "invalid_transition"
    RETURN_WINDOW_EXPIRED = "return_window_expired"
    CASE_ALREADY_RESOLVED = "case_already_resolved"

    # Payments
    PAYMENT_METHOD_UNAVAILABLE = "payment_method_unavailable"
    PROVIDER_ERROR = "provider_error"
    ALREADY_RELEASED = "already_released"
    ALREADY_REFUNDED = "already_refunded"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    RETRY_LIMIT_REACHED = "retry_limit_reached"
    ALREADY_EXISTS = "already_exists"

    # Sellers
    ONBOARDING_INCOMPLETE = "onboarding_incomplete"
    ONBOARDING_COMPLETED = "onboarding_completed"
    ROLE_ASSIGNMENT_FAILED = "role_assignment_failed"


ERROR_STATUS_MAP = {
    ErrorCodes.NOT_FOUND: 404,
    ErrorCodes.ORDER_NOT_FOUND: 404,
    ErrorCodes.PRODUCT_NOT_FOUND: 404,
    ErrorCodes.ITEM_NOT_IN_CART: 404,
    ErrorCodes.NOT_AUTHORIZED: 403,
    ErrorCodes.INVALID_CREDENTIALS: 401,
    ErrorCodes.ACCOUNT_INACTIVE: 403,
    ErrorCodes.CONFLICT: 409,
    ErrorCodes.ALREADY_EXISTS: 409,
    ErrorCodes.EMAIL_TAKEN: 409,
    ErrorCodes.PROVIDER_ERROR: 502,
    ErrorCodes.INTERNAL_ERROR: 500,
}


def http_status_for(result: ServiceResult) -> int:
    """HTTP status code a view should use for a failed result."""
    return ERROR_STATUS_MAP.get(result.error, 400)
