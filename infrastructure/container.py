"""
Dependency Injection Container
================================

Service locator for infrastructure adapters and domain services.

Usage:
    from infrastructure.container import container

    storage = container.storage()
    orders = container.order_service()
"""

import logging
from typing import Callable, Dict, Optional

from .email import EmailFactory, EmailServiceInterface
from .events import EventBus, get_event_bus
from .payments import PaymentFactory, PaymentProviderInterface
from .storage import StorageFactory, StorageInterface

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Lazily builds and caches service instances.

    Domain services are imported inside their accessors so that importing the
    container never pulls in Django models before the app registry is ready.
    """

    _instance: Optional["ServiceContainer"] = None
    _initialized: bool = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._storage: Optional[StorageInterface] = None
            self._email: Optional[EmailServiceInterface] = None
            self._payment: Optional[PaymentProviderInterface] = None
            self._services: Dict[str, object] = {}
            self._initialized = True
            logger.info("Service container initialized")

    # Infrastructure

    def storage(self) -> StorageInterface:
        if self._storage is None:
            self._storage = StorageFactory.create()
            logger.debug(f"Created storage service: {type(self._storage).__name__}")
        return self._storage

    def email(self, backend: Optional[str] = None) -> EmailServiceInterface:
        if self._email is None or backend is not None:
            self._email = EmailFactory.create(backend)
            logger.debug(f"Created email service: {type(self._email).__name__}")
        return self._email

    def payment(self, backend: Optional[str] = None) -> PaymentProviderInterface:
        if self._payment is None or backend is not None:
            self._payment = PaymentFactory.create(backend)
            logger.debug(f"Created payment service: {type(self._payment).__name__}")
        return self._payment

    def event_bus(self) -> EventBus:
        return get_event_bus()

    def _cached(self, name: str, factory: Callable[[], object]):
        if name not in self._services:
            self._services[name] = factory()
            logger.debug(f"Created {name}")
        return self._services[name]

    # Identity

    def auth_service(self):
        from authentication.domain.services.auth_service import AuthService

        return self._cached("auth_service", lambda: AuthService(email_service=self.email()))

    # Sellers

    def store_profile_service(self):
        from sellers.domain.services.store_profile_service import StoreProfileService

        return self._cached("store_profile_service", StoreProfileService)

    def payout_settings_service(self):
        from sellers.domain.services.payout_settings_service import PayoutSettingsService

        return self._cached("payout_settings_service", PayoutSettingsService)

    def onboarding_service(self):
        from sellers.domain.services.onboarding_service import SellerOnboardingService

        return self._cached("onboarding_service", SellerOnboardingService)

    def kyc_service(self):
        from sellers.domain.services.kyc_service import KycService

        return self._cached(
            "kyc_service",
            lambda: KycService(
                storage=self.storage(),
                email_service=self.email(),
                event_bus=self.event_bus(),
                auth_service=self.auth_service(),
            ),
        )

    def shipping_service(self):
        from sellers.domain.services.shipping_service import ShippingService

        return self._cached("shipping_service", ShippingService)

    # Marketplace

    def catalog_service(self):
        from marketplace.catalog.domain.services.catalog_service import CatalogService

        return self._cached("catalog_service", CatalogService)

    def shipping_calculator(self):
        from marketplace.cart.domain.services.shipping_calculator import ShippingCalculator

        return self._cached("shipping_calculator", ShippingCalculator)

    def promo_code_service(self):
        from marketplace.cart.domain.services.promo_code_service import PromoCodeService

        return self._cached("promo_code_service", PromoCodeService)

    def cart_service(self):
        from marketplace.cart.domain.services.cart_service import CartService

        return self._cached(
            "cart_service",
            lambda: CartService(
                promo_code_service=self.promo_code_service(),
                shipping_calculator=self.shipping_calculator(),
            ),
        )

    def checkout_validation_service(self):
        from marketplace.cart.domain.services.checkout_validation_service import CheckoutValidationService

        return self._cached("checkout_validation_service", CheckoutValidationService)

    def order_service(self):
        from marketplace.ordering.domain.services.order_service import OrderService

        return self._cached(
            "order_service",
            lambda: OrderService(
                catalog_service=self.catalog_service(),
                email_service=self.email(),
                event_bus=self.event_bus(),
                refund_service=self.refund_service(),
            ),
        )

    def return_service(self):
        from marketplace.ordering.domain.services.return_service import ReturnService

        return self._cached(
            "return_service",
            lambda: ReturnService(
                refund_service=self.refund_service(),
                order_service=self.order_service(),
                event_bus=self.event_bus(),
            ),
        )

    def checkout_service(self):
        from marketplace.ordering.domain.services.checkout_service import CheckoutService

        return self._cached(
            "checkout_service",
            lambda: CheckoutService(
                cart_service=self.cart_service(),
                checkout_validation_service=self.checkout_validation_service(),
                shipping_calculator=self.shipping_calculator(),
                promo_code_service=self.promo_code_service(),
                order_service=self.order_service(),
                catalog_service=self.catalog_service(),
                payment_service=self.payment_service(),
            ),
        )

    # Payments

    def payment_service(self):
        from payment_system.domain.services.payment_service import PaymentService

        return self._cached(
            "payment_service",
            lambda: PaymentService(provider=self.payment(), event_bus=self.event_bus()),
        )

    def escrow_service(self):
        from payment_system.domain.services.escrow_service import EscrowService

        return self._cached("escrow_service", EscrowService)

    def commission_service(self):
        from payment_system.domain.services.commission_service import CommissionService

        return self._cached("commission_service", CommissionService)

    def refund_service(self):
        from payment_system.domain.services.refund_service import RefundService

        return self._cached(
            "refund_service",
            lambda: RefundService(
                escrow_service=self.escrow_service(),
                commission_service=self.commission_service(),
                provider=self.payment(),
                event_bus=self.event_bus(),
            ),
        )

    def payout_service(self):
        from payment_system.domain.services.payout_service import PayoutService

        return self._cached(
            "payout_service",
            lambda: PayoutService(provider=self.payment(), event_bus=self.event_bus()),
        )

    def settlement_service(self):
        from payment_system.domain.services.settlement_service import SettlementService

        return self._cached("settlement_service", SettlementService)

    def invoice_service(self):
        from payment_system.domain.services.invoice_service import InvoiceService

        return self._cached("invoice_service", lambda: InvoiceService(email_service=self.email()))

    def reset(self):
        """Drop every cached instance. Used between tests."""
        self._storage = None
        self._email = None
        self._payment = None
        self._services = {}
        logger.info("Service container reset")


# Global singleton instance
container = ServiceContainer()
