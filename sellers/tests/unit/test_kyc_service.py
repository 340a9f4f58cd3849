from unittest.mock import MagicMock

import pytest
from django.test import override_settings

from authentication.domain.services.results import Result
from authentication.tests.factories import AdminFactory, UserFactory
from infrastructure.container import container
from infrastructure.storage import StorageFile
from sellers.domain.models import KycAuditLog, KycSubmission, SellerOnboarding, Store
from sellers.domain.services.kyc_service import KycService
from sellers.tests.factories import KycSubmissionFactory, SellerOnboardingFactory, StoreFactory
from utils.service_base import ErrorCodes

PDF_BYTES = b"%PDF-1.4 test document"


@pytest.mark.unit
@pytest.mark.django_db
class TestKycSubmit:
    def setup_method(self):
        self.storage = MagicMock()
        self.storage.upload.return_value = StorageFile(
            key="kyc/doc.pdf", url="/media/kyc/doc.pdf", size=len(PDF_BYTES), content_type="application/pdf"
        )
        self.service = KycService(storage=self.storage, email_service=container.email())
        self.seller = UserFactory()

    def test_submit_stores_file_and_audits(self):
        result = self.service.submit(self.seller.id, "government_id", "passport.pdf", "application/pdf", PDF_BYTES)

        assert result.ok
        submission = result.value
        assert submission.status == KycSubmission.STATUS_PENDING
        assert submission.storage_key == "kyc/doc.pdf"
        self.storage.upload.assert_called_once()
        log = KycAuditLog.objects.get(submission=submission)
        assert log.details == "KYC document submitted: passport.pdf (government_id)"

    def test_rejects_content_type(self):
        result = self.service.submit(self.seller.id, "government_id", "doc.gif", "image/gif", PDF_BYTES)
        assert result.error_detail == "Invalid document type. Only PDF, JPG, and PNG files are allowed."
        self.storage.upload.assert_not_called()

    @override_settings(
        KYC_SETTINGS={"MAX_FILE_SIZE_BYTES": 5 * 1024 * 1024, "ALLOWED_CONTENT_TYPES": ["application/pdf"]}
    )
    def test_rejects_oversized_document(self):
        data = b"x" * (5 * 1024 * 1024 + 1)
        result = self.service.submit(self.seller.id, "government_id", "big.pdf", "application/pdf", data)
        assert result.error_detail == "Document size exceeds the maximum allowed size of 5MB."

    def test_requires_data_and_valid_type(self):
        result = self.service.submit(self.seller.id, "selfie", "x.pdf", "application/pdf", b"")
        assert not result.ok
        assert "Document file is required." in result.errors
        assert "Invalid KYC document type." in result.errors


@pytest.mark.unit
@pytest.mark.django_db
class TestKycReview:
    def setup_method(self):
        self.admin = AdminFactory()
        self.seller = UserFactory()
        self.store = StoreFactory(owner=self.seller, status=Store.STATUS_PENDING_VERIFICATION)
        self.onboarding = SellerOnboardingFactory(
            seller=self.seller, status=SellerOnboarding.STATUS_PENDING_VERIFICATION
        )
        self.submission = KycSubmissionFactory(seller=self.seller)
        self.service = container.kyc_service()

    def test_approve_promotes_and_activates(self, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            result = self.service.approve(self.submission.id, self.admin)

        assert result.ok
        self.seller.refresh_from_db()
        self.store.refresh_from_db()
        self.onboarding.refresh_from_db()
        assert self.seller.role == "seller"
        assert self.store.status == Store.STATUS_ACTIVE
        assert self.onboarding.status == SellerOnboarding.STATUS_VERIFIED
        assert result.value.reviewed_by == self.admin
        assert self.service.is_seller_kyc_approved(self.seller.id)
        assert len(container.email().messages_tagged("kyc_approved")) == 1

    def test_approve_publishes_event(self, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            self.service.approve(self.submission.id, self.admin)
        published = [e["event_type"] for e in container.event_bus().published]
        assert "kyc.approved" in published

    def test_cannot_approve_twice(self):
        self.service.approve(self.submission.id, self.admin)
        result = self.service.approve(self.submission.id, self.admin)
        assert result.error_detail == "Submission cannot be approved in its current status."

    def test_role_failure_reverts_status(self):
        auth_service = MagicMock()
        auth_service.promote_to_seller.return_value = Result(success=False, error="boom")
        service = KycService(storage=MagicMock(), auth_service=auth_service)

        result = service.approve(self.submission.id, self.admin)

        assert result.error == ErrorCodes.ROLE_ASSIGNMENT_FAILED
        assert result.error_detail == "Failed to assign Seller role."
        self.submission.refresh_from_db()
        assert self.submission.status == KycSubmission.STATUS_PENDING
        self.store.refresh_from_db()
        assert self.store.status == Store.STATUS_PENDING_VERIFICATION

    def test_reject_requires_reason(self):
        result = self.service.reject(self.submission.id, self.admin, "  ")
        assert result.error_detail == "Rejection reason is required."

    def test_reject(self, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            result = self.service.reject(self.submission.id, self.admin, "Document is blurry")

        assert result.ok
        assert result.value.status == KycSubmission.STATUS_REJECTED
        self.onboarding.refresh_from_db()
        assert self.onboarding.status == SellerOnboarding.STATUS_REJECTED
        assert len(container.email().messages_tagged("kyc_rejected")) == 1

    def test_decision_is_announced_only_after_commit(self, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks() as callbacks:
            self.service.approve(self.submission.id, self.admin)

        assert len(callbacks) == 1
        assert container.email().messages_tagged("kyc_approved") == []
        assert "kyc.approved" not in [e["event_type"] for e in container.event_bus().published]

        callbacks[0]()

        assert len(container.email().messages_tagged("kyc_approved")) == 1

    def test_start_review_then_approve(self):
        assert self.service.start_review(self.submission.id, self.admin).value.status == "under_review"
        assert self.service.approve(self.submission.id, self.admin).ok

        actions = [log.action for log in self.service.get_audit_logs(self.submission.id).value]
        assert set(actions) == {"review_started", "approved"}

    def test_reject_approved_submission_refused(self):
        self.service.approve(self.submission.id, self.admin)
        result = self.service.reject(self.submission.id, self.admin, "late")
        assert result.error_detail == "Submission cannot be rejected in its current status."
