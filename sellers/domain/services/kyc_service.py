"""
KycService - seller verification documents and their review.

Documents go to the storage adapter under kyc/<seller_id>/. Approval promotes
the seller's user to the seller role and activates their store; if the role
change fails the submission is put back to its previous status.
"""

import io
import uuid
from typing import List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from infrastructure.email import EmailException, EmailMessage
from infrastructure.storage import StorageException
from sellers.domain.events import KycApprovedEvent, KycRejectedEvent, KycSubmittedEvent, kyc_payload
from sellers.domain.models import KycAuditLog, KycSubmission, SellerOnboarding
from sellers.infra.observability.metrics import kyc_decisions_total, kyc_pending_submissions, kyc_submissions_total
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok, validation_err

from .onboarding_service import SellerOnboardingService
from .store_profile_service import StoreProfileService

User = get_user_model()

EXTENSIONS = {"application/pdf": "pdf", "image/jpeg": "jpg", "image/png": "png"}


class KycService(BaseService):
    def __init__(
        self,
        storage=None,
        email_service=None,
        event_bus=None,
        auth_service=None,
        store_profile_service=None,
        onboarding_service=None,
    ):
        super().__init__()
        self.storage = storage
        self.email_service = email_service
        self.event_bus = event_bus
        self.auth_service = auth_service
        self.store_profile_service = store_profile_service or StoreProfileService()
        self.onboarding_service = onboarding_service or SellerOnboardingService()

    def _refresh_pending_gauge(self):
        kyc_pending_submissions.set(KycSubmission.objects.filter(status__in=KycSubmission.REVIEWABLE_STATUSES).count())

    def _audit(self, submission, action, old_status, performed_by, details=""):
        KycAuditLog.objects.create(
            submission=submission,
            action=action,
            old_status=old_status,
            new_status=submission.status,
            performed_by=performed_by,
            details=details,
        )

    def _notify(self, user, subject: str, body: str, tag: str):
        if not self.email_service:
            return
        try:
            self.email_service.send(EmailMessage(subject=subject, body=body, to=[user.email], tags=[tag]))
        except EmailException as e:
            self.logger.error(f"KYC notification to seller {user.id} failed: {e}")

    @BaseService.log_performance
    @transaction.atomic
    def submit(
        self, seller_id, document_type: str, file_name: str, content_type: str, data: Optional[bytes]
    ) -> ServiceResult[KycSubmission]:
        kyc_settings = settings.KYC_SETTINGS
        max_size = kyc_settings["MAX_FILE_SIZE_BYTES"]

        errors = []
        if not data:
            errors.append("Document file is required.")
        if document_type not in dict(KycSubmission.DOCUMENT_TYPE_CHOICES):
            errors.append("Invalid KYC document type.")
        if content_type not in kyc_settings["ALLOWED_CONTENT_TYPES"]:
            errors.append("Invalid document type. Only PDF, JPG, and PNG files are allowed.")
        if data and len(data) > max_size:
            errors.append(
                f"Document size exceeds the maximum allowed size of {max_size // (1024 * 1024)}MB."
            )
        if errors:
            return validation_err(errors)

        if not User.objects.filter(pk=seller_id).exists():
            return service_err(ErrorCodes.NOT_FOUND, "Seller user not found.")

        path = f"kyc/{seller_id}/{document_type}-{uuid.uuid4().hex}.{EXTENSIONS[content_type]}"
        try:
            stored = self.storage.upload(io.BytesIO(data), path, content_type)
        except StorageException as e:
            self.logger.error(f"KYC upload failed for seller {seller_id}: {e}")
            return service_err(ErrorCodes.INTERNAL_ERROR, "Failed to store the document. Please try again.")

        submission = KycSubmission.objects.create(
            seller_id=seller_id,
            document_type=document_type,
            file_name=file_name,
            content_type=content_type,
            file_size=len(data),
            storage_key=stored.key,
        )
        self._audit(
            submission,
            KycAuditLog.ACTION_SUBMITTED,
            "",
            submission.seller,
            f"KYC document submitted: {file_name} ({document_type})",
        )

        kyc_submissions_total.labels(document_type=document_type).inc()
        self._refresh_pending_gauge()
        KycSubmittedEvent(payload=kyc_payload(submission)).publish(self.event_bus)
        return service_ok(submission)

    # Queries

    def get_submissions_by_seller(self, seller_id) -> ServiceResult[List[KycSubmission]]:
        return service_ok(list(KycSubmission.objects.filter(seller_id=seller_id)))

    def get_submission(self, submission_id) -> ServiceResult[KycSubmission]:
        submission = KycSubmission.objects.select_related("seller").filter(id=submission_id).first()
        if not submission:
            return service_err(ErrorCodes.NOT_FOUND, "KYC submission not found.")
        return service_ok(submission)

    def get_all_submissions(self) -> ServiceResult[List[KycSubmission]]:
        return service_ok(list(KycSubmission.objects.select_related("seller")))

    def get_submissions_by_status(self, status: str) -> ServiceResult[List[KycSubmission]]:
        if status not in dict(KycSubmission.STATUS_CHOICES):
            return service_err(ErrorCodes.VALIDATION_ERROR, f"Invalid KYC status '{status}'.")
        return service_ok(list(KycSubmission.objects.select_related("seller").filter(status=status)))

    def is_seller_kyc_approved(self, seller_id) -> bool:
        return KycSubmission.objects.filter(seller_id=seller_id, status=KycSubmission.STATUS_APPROVED).exists()

    def get_audit_logs(self, submission_id) -> ServiceResult[List[KycAuditLog]]:
        return service_ok(list(KycAuditLog.objects.filter(submission_id=submission_id)))

    def get_document(self, submission_id) -> ServiceResult[bytes]:
        result = self.get_submission(submission_id)
        if not result.ok:
            return result
        try:
            return service_ok(self.storage.read(result.value.storage_key))
        except StorageException as e:
            self.logger.error(f"KYC document {submission_id} unreadable: {e}")
            return service_err(ErrorCodes.NOT_FOUND, "KYC document file not found.")

    # Review

    def _locked_submission(self, submission_id) -> Optional[KycSubmission]:
        return KycSubmission.objects.select_for_update().filter(id=submission_id).first()

    @BaseService.log_performance
    @transaction.atomic
    def start_review(self, submission_id, admin_user) -> ServiceResult[KycSubmission]:
        submission = self._locked_submission(submission_id)
        if not submission:
            return service_err(ErrorCodes.NOT_FOUND, "KYC submission not found.")
        if submission.status != KycSubmission.STATUS_PENDING:
            return service_err(ErrorCodes.INVALID_STATE, "Only pending submissions can be moved to review.")

        submission.status = KycSubmission.STATUS_UNDER_REVIEW
        submission.save(update_fields=["status"])
        self._audit(
            submission, KycAuditLog.ACTION_REVIEW_STARTED, KycSubmission.STATUS_PENDING, admin_user, "Review started"
        )
        return service_ok(submission)

    @BaseService.log_performance
    @transaction.atomic
    def approve(self, submission_id, admin_user) -> ServiceResult[KycSubmission]:
        """
        Approve a submission and promote the seller.

        Effects: seller role granted, store activated, onboarding verified,
        audit entry written. Once the transaction commits, kyc.approved is
        published and the seller is e-mailed.
        """
        submission = self._locked_submission(submission_id)
        if not submission:
            return service_err(ErrorCodes.NOT_FOUND, "KYC submission not found.")
        if submission.status not in KycSubmission.REVIEWABLE_STATUSES:
            return service_err(ErrorCodes.INVALID_STATE, "Submission cannot be approved in its current status.")

        seller = User.objects.filter(pk=submission.seller_id).first()
        if not seller:
            return service_err(ErrorCodes.NOT_FOUND, "Seller user not found.")

        old_status = submission.status
        submission.status = KycSubmission.STATUS_APPROVED
        submission.reviewed_at = timezone.now()
        submission.reviewed_by = admin_user
        submission.rejection_reason = ""
        submission.save()

        promotion = self.auth_service.promote_to_seller(seller.id)
        if not promotion.success:
            submission.status = old_status
            submission.reviewed_at = None
            submission.reviewed_by = None
            submission.save()
            self.logger.error(f"Seller role assignment failed for {seller.id}: {promotion.error}")
            return service_err(ErrorCodes.ROLE_ASSIGNMENT_FAILED, "Failed to assign Seller role.")

        store_result = self.store_profile_service.activate_store(seller.id)
        if not store_result.ok:
            self.logger.warning(f"Seller {seller.id} approved without a store: {store_result.error_detail}")
        self.onboarding_service.set_verification_status(seller.id, SellerOnboarding.STATUS_VERIFIED)

        self._audit(
            submission, KycAuditLog.ACTION_APPROVED, old_status, admin_user, "KYC approved; seller role assigned"
        )
        kyc_decisions_total.labels(decision="approved").inc()
        self._refresh_pending_gauge()

        def announce():
            KycApprovedEvent(payload=kyc_payload(submission, approved_by=str(admin_user.id))).publish(self.event_bus)
            self._notify(
                seller,
                "Your seller account has been verified",
                "Your verification documents were approved. Your store is now active and you can start selling.",
                "kyc_approved",
            )

        transaction.on_commit(announce)
        return service_ok(submission)

    @BaseService.log_performance
    @transaction.atomic
    def reject(self, submission_id, admin_user, reason: str) -> ServiceResult[KycSubmission]:
        if not reason or not reason.strip():
            return service_err(ErrorCodes.VALIDATION_ERROR, "Rejection reason is required.")

        submission = self._locked_submission(submission_id)
        if not submission:
            return service_err(ErrorCodes.NOT_FOUND, "KYC submission not found.")
        if submission.status not in KycSubmission.REVIEWABLE_STATUSES:
            return service_err(ErrorCodes.INVALID_STATE, "Submission cannot be rejected in its current status.")

        old_status = submission.status
        submission.status = KycSubmission.STATUS_REJECTED
        submission.reviewed_at = timezone.now()
        submission.reviewed_by = admin_user
        submission.rejection_reason = reason.strip()
        submission.save()

        self.onboarding_service.set_verification_status(submission.seller_id, SellerOnboarding.STATUS_REJECTED)
        self._audit(submission, KycAuditLog.ACTION_REJECTED, old_status, admin_user, f"Reason: {reason.strip()}")
        kyc_decisions_total.labels(decision="rejected").inc()
        self._refresh_pending_gauge()

        def announce():
            KycRejectedEvent(payload=kyc_payload(submission, reason=submission.rejection_reason)).publish(
                self.event_bus
            )
            self._notify(
                submission.seller,
                "Your verification documents were rejected",
                f"Your KYC submission was rejected for the following reason:\n\n{submission.rejection_reason}\n\n"
                "Please upload a corrected document.",
                "kyc_rejected",
            )

        transaction.on_commit(announce)
        return service_ok(submission)
