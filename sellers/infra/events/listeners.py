import logging

from django.contrib.auth import get_user_model

from infrastructure.events import get_event_bus

logger = logging.getLogger(__name__)


def register_sellers_listeners():
    event_bus = get_event_bus()
    event_bus.subscribe("kyc.approved", handle_kyc_approved)
    event_bus.subscribe("kyc.rejected", handle_kyc_rejected)
    logger.info("Sellers event listeners registered")


def handle_kyc_approved(event_data):
    """
    Make sure an approved seller holds the seller role and an active store.

    KycService.approve already does both in-process. With the Redis bus this
    runs in the listener process and repairs a store left pending.
    """
    from infrastructure.container import container
    from sellers.domain.models import Store

    payload = event_data.get("payload", {})
    seller_id = payload.get("seller_id")
    if not seller_id:
        logger.error("[LISTENER] kyc.approved without seller_id")
        return

    if get_user_model().objects.filter(pk=seller_id).exclude(role__in=["seller", "admin"]).exists():
        result = container.auth_service().promote_to_seller(seller_id)
        if not result.success:
            logger.error(f"[LISTENER] Could not promote seller {seller_id}: {result.error}")

    if Store.objects.filter(owner_id=seller_id).exclude(status=Store.STATUS_ACTIVE).exists():
        container.store_profile_service().activate_store(seller_id)
        logger.info(f"[LISTENER] Activated store for seller {seller_id}")


def handle_kyc_rejected(event_data):
    payload = event_data.get("payload", {})
    logger.info(f"[LISTENER] KYC submission {payload.get('submission_id')} rejected: {payload.get('reason')}")
