"""
PayoutSettingsService - where a seller's money goes.
"""

from typing import Dict

from django.db import transaction

from sellers.domain.models import PayoutSettings
from utils.logging_utils import mask_value
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok, validation_err

from .validation import check_email, check_length, check_max_length


class PayoutSettingsService(BaseService):
    def __init__(self):
        super().__init__()

    @BaseService.log_performance
    def get_or_create_payout_settings(self, seller_id) -> ServiceResult[PayoutSettings]:
        settings_obj, created = PayoutSettings.objects.get_or_create(seller_id=seller_id)
        if created:
            self.logger.info(f"Created empty payout settings for seller {seller_id}")
        return service_ok(settings_obj)

    def validate(self, data: Dict) -> list:
        method = data.get("payout_method") or PayoutSettings.METHOD_BANK_TRANSFER
        errors = []

        if method == PayoutSettings.METHOD_BANK_TRANSFER:
            for message in (
                check_length(data.get("bank_name"), "Bank name", 2, 200),
                check_length(data.get("bank_account_number"), "Account number", 5, 50),
                check_length(data.get("bank_account_holder"), "Account holder name", 2, 200),
                check_max_length(data.get("bank_routing_number"), "Routing number", 20),
                check_max_length(data.get("bank_swift_code"), "SWIFT code", 11),
                check_max_length(data.get("bank_iban"), "IBAN", 34),
            ):
                if message:
                    errors.append(message)
        elif method == PayoutSettings.METHOD_PAYMENT_ACCOUNT:
            email = data.get("payment_account_email")
            account_id = data.get("payment_account_id")
            if not email and not account_id:
                errors.append("A payment account e-mail or account ID is required.")
            for message in (
                check_email(email, "Payment account e-mail"),
                check_max_length(account_id, "Payment account ID", 100),
            ):
                if message:
                    errors.append(message)
        else:
            errors.append(f"Invalid payout method '{method}'.")
        return errors

    @BaseService.log_performance
    @transaction.atomic
    def save_payout_settings(self, seller_id, data: Dict) -> ServiceResult[PayoutSettings]:
        errors = self.validate(data)
        if errors:
            return validation_err(errors)

        settings_obj, _ = PayoutSettings.objects.select_for_update().get_or_create(seller_id=seller_id)
        settings_obj.payout_method = data.get("payout_method") or PayoutSettings.METHOD_BANK_TRANSFER
        for field in (
            "bank_name",
            "bank_account_number",
            "bank_account_holder",
            "bank_routing_number",
            "bank_swift_code",
            "bank_iban",
            "payment_account_email",
            "payment_account_id",
        ):
            setattr(settings_obj, field, (data.get(field) or "").strip())
        settings_obj.save()

        self.logger.info(
            f"Saved {settings_obj.payout_method} payout settings for seller {seller_id} "
            f"(account {mask_value(settings_obj.destination)})"
        )
        return service_ok(settings_obj)

    def has_complete_payout_settings(self, seller_id) -> bool:
        settings_obj = PayoutSettings.objects.filter(seller_id=seller_id).first()
        if not settings_obj:
            return False
        data = {field.name: getattr(settings_obj, field.name) for field in PayoutSettings._meta.fields}
        return not self.validate(data)

    @BaseService.log_performance
    def get_payout_destination(self, seller_id) -> ServiceResult[str]:
        """Destination account for transfers, or not_found when settings are incomplete."""
        if not self.has_complete_payout_settings(seller_id):
            return service_err(ErrorCodes.NOT_FOUND, "Seller has no complete payout settings.")
        return service_ok(PayoutSettings.objects.get(seller_id=seller_id).destination)
