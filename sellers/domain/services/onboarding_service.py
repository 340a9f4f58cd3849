"""
SellerOnboardingService - the three onboarding steps and their completion.

Steps must be saved in order (store profile, verification, payout basics).
Completing onboarding creates the store in pending_verification and the
seller's payout settings; KYC approval then activates the store.
"""

from typing import Dict

from django.db import transaction
from django.utils import timezone

from sellers.domain.models import PayoutSettings, SellerOnboarding
from sellers.infra.observability.metrics import onboarding_completed_total
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok, validation_err

from .payout_settings_service import PayoutSettingsService
from .store_profile_service import StoreProfileService
from .validation import check_email, check_length, check_max_length

ALREADY_COMPLETED = "Onboarding has already been completed."
PROFILE_FIRST = "Please complete the store profile step first."
VERIFICATION_FIRST = "Please complete the verification step first."


class SellerOnboardingService(BaseService):
    def __init__(self, store_profile_service=None, payout_settings_service=None):
        super().__init__()
        self.store_profile_service = store_profile_service or StoreProfileService()
        self.payout_settings_service = payout_settings_service or PayoutSettingsService()

    @BaseService.log_performance
    def get_or_create_onboarding(self, seller_id) -> ServiceResult[SellerOnboarding]:
        onboarding, created = SellerOnboarding.objects.get_or_create(seller_id=seller_id)
        if created:
            self.logger.info(f"Started onboarding for seller {seller_id}")
        return service_ok(onboarding)

    def _locked(self, seller_id) -> SellerOnboarding:
        onboarding, _ = SellerOnboarding.objects.select_for_update().get_or_create(seller_id=seller_id)
        return onboarding

    # Validation

    def _store_profile_errors(self, store_name: str, store_description: str) -> list:
        return [
            e
            for e in (
                check_length(store_name, "Store name", 2, 200),
                check_length(store_description, "Store description", 10, 2000),
            )
            if e
        ]

    def _verification_errors(self, seller_type: str, data: Dict) -> list:
        if seller_type == SellerOnboarding.TYPE_INDIVIDUAL:
            checks = (
                check_length(data.get("full_name"), "Full name", 2, 200),
                check_length(data.get("personal_id_number"), "Personal ID number", 5, 50),
                check_length(data.get("address"), "Address", 5, 500),
                check_length(data.get("tax_id"), "Tax ID", 5, 50),
            )
        elif seller_type == SellerOnboarding.TYPE_COMPANY:
            checks = (
                check_length(data.get("business_name"), "Business name", 2, 200),
                check_max_length(data.get("registration_number"), "Registration number", 50),
                check_length(data.get("address"), "Address", 5, 500),
                check_length(data.get("tax_id"), "Tax ID", 5, 50),
                check_length(data.get("contact_person_name"), "Contact person name", 2, 200),
                check_email(data.get("contact_person_email"), "Contact person e-mail", required=True),
                check_length(data.get("contact_person_phone"), "Contact person phone", 1, 20),
            )
        else:
            return ["Seller type must be 'individual' or 'company'."]
        return [e for e in checks if e]

    def _payout_errors(self, bank_name: str, account_number: str, account_holder: str) -> list:
        return [
            e
            for e in (
                check_length(bank_name, "Bank name", 2, 200),
                check_length(account_number, "Account number", 5, 50),
                check_length(account_holder, "Account holder name", 2, 200),
            )
            if e
        ]

    # Steps

    @BaseService.log_performance
    @transaction.atomic
    def save_store_profile(self, seller_id, store_name: str, store_description: str) -> ServiceResult:
        onboarding = self._locked(seller_id)
        if onboarding.current_step == SellerOnboarding.STEP_COMPLETED:
            return service_err(ErrorCodes.ONBOARDING_COMPLETED, ALREADY_COMPLETED)

        errors = self._store_profile_errors(store_name, store_description)
        if errors:
            return validation_err(errors)

        onboarding.store_name = store_name.strip()
        onboarding.store_description = store_description.strip()
        onboarding.store_profile_completed = True
        if onboarding.current_step == SellerOnboarding.STEP_STORE_PROFILE:
            onboarding.current_step = SellerOnboarding.STEP_VERIFICATION
        onboarding.save()
        return service_ok(onboarding)

    @BaseService.log_performance
    @transaction.atomic
    def save_verification_data(self, seller_id, seller_type: str, data: Dict) -> ServiceResult:
        onboarding = self._locked(seller_id)
        if onboarding.current_step == SellerOnboarding.STEP_COMPLETED:
            return service_err(ErrorCodes.ONBOARDING_COMPLETED, ALREADY_COMPLETED)
        if not onboarding.store_profile_completed:
            return service_err(ErrorCodes.ONBOARDING_INCOMPLETE, PROFILE_FIRST)

        errors = self._verification_errors(seller_type, data)
        if errors:
            return validation_err(errors)

        onboarding.seller_type = seller_type
        for field in (
            "full_name",
            "personal_id_number",
            "business_name",
            "registration_number",
            "contact_person_name",
            "contact_person_email",
            "contact_person_phone",
            "address",
            "tax_id",
        ):
            setattr(onboarding, field, (data.get(field) or "").strip())
        onboarding.verification_completed = True
        if onboarding.current_step == SellerOnboarding.STEP_VERIFICATION:
            onboarding.current_step = SellerOnboarding.STEP_PAYOUT
        onboarding.save()
        return service_ok(onboarding)

    @BaseService.log_performance
    @transaction.atomic
    def save_payout_basics(self, seller_id, bank_name: str, account_number: str, account_holder: str) -> ServiceResult:
        onboarding = self._locked(seller_id)
        if onboarding.current_step == SellerOnboarding.STEP_COMPLETED:
            return service_err(ErrorCodes.ONBOARDING_COMPLETED, ALREADY_COMPLETED)
        if not onboarding.store_profile_completed:
            return service_err(ErrorCodes.ONBOARDING_INCOMPLETE, PROFILE_FIRST)
        if not onboarding.verification_completed:
            return service_err(ErrorCodes.ONBOARDING_INCOMPLETE, VERIFICATION_FIRST)

        errors = self._payout_errors(bank_name, account_number, account_holder)
        if errors:
            return validation_err(errors)

        onboarding.bank_name = bank_name.strip()
        onboarding.bank_account_number = account_number.strip()
        onboarding.bank_account_holder = account_holder.strip()
        onboarding.payout_completed = True
        onboarding.save()
        return service_ok(onboarding)

    @BaseService.log_performance
    @transaction.atomic
    def complete_onboarding(self, seller_id) -> ServiceResult:
        """
        Revalidate every step, then create the store and payout settings.
        """
        onboarding = self._locked(seller_id)
        if onboarding.status == SellerOnboarding.STATUS_PENDING_VERIFICATION:
            return service_err(ErrorCodes.ONBOARDING_COMPLETED, "Onboarding is already pending verification.")
        if onboarding.status == SellerOnboarding.STATUS_VERIFIED:
            return service_err(ErrorCodes.ONBOARDING_COMPLETED, "Onboarding has already been verified.")

        if not onboarding.store_profile_completed:
            return service_err(ErrorCodes.ONBOARDING_INCOMPLETE, PROFILE_FIRST)
        if not onboarding.verification_completed:
            return service_err(ErrorCodes.ONBOARDING_INCOMPLETE, VERIFICATION_FIRST)
        if not onboarding.payout_completed:
            return service_err(ErrorCodes.ONBOARDING_INCOMPLETE, "Please complete the payout step first.")

        data = {field.name: getattr(onboarding, field.name) for field in SellerOnboarding._meta.fields}
        errors = (
            self._store_profile_errors(onboarding.store_name, onboarding.store_description)
            + self._verification_errors(onboarding.seller_type, data)
            + self._payout_errors(
                onboarding.bank_name, onboarding.bank_account_number, onboarding.bank_account_holder
            )
        )
        if errors:
            return validation_err(errors)

        store_result = self.store_profile_service.create_or_update_store_profile(
            seller_id, {"name": onboarding.store_name, "description": onboarding.store_description}
        )
        if not store_result.ok:
            transaction.set_rollback(True)
            return store_result

        payout_result = self.payout_settings_service.save_payout_settings(
            seller_id,
            {
                "payout_method": PayoutSettings.METHOD_BANK_TRANSFER,
                "bank_name": onboarding.bank_name,
                "bank_account_number": onboarding.bank_account_number,
                "bank_account_holder": onboarding.bank_account_holder,
            },
        )
        if not payout_result.ok:
            transaction.set_rollback(True)
            return payout_result

        onboarding.status = SellerOnboarding.STATUS_PENDING_VERIFICATION
        onboarding.current_step = SellerOnboarding.STEP_COMPLETED
        onboarding.completed_at = timezone.now()
        onboarding.save()

        onboarding_completed_total.labels(seller_type=onboarding.seller_type).inc()
        self.logger.info(f"Seller {seller_id} completed onboarding; store {store_result.value.id} awaits KYC")
        return service_ok(onboarding)

    def is_onboarding_complete(self, seller_id) -> bool:
        return SellerOnboarding.objects.filter(
            seller_id=seller_id, current_step=SellerOnboarding.STEP_COMPLETED
        ).exists()

    @BaseService.log_performance
    def set_verification_status(self, seller_id, status: str) -> ServiceResult:
        """Record the KYC outcome on the onboarding record."""
        updated = SellerOnboarding.objects.filter(seller_id=seller_id).update(status=status, updated_at=timezone.now())
        if not updated:
            return service_err(ErrorCodes.NOT_FOUND, "Onboarding not found.")
        return service_ok(status)
