from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import AdminRequired
from infrastructure.container import container
from sellers.api.serializers import KycAuditLogSerializer, KycRejectSerializer, KycSubmissionSerializer
from utils.api_responses import error_response


class AdminKycViewSet(viewsets.ViewSet):
    """Admin review queue for seller KYC submissions."""

    permission_classes = [AdminRequired]

    def get_service(self):
        return container.kyc_service()

    def _render(self, result):
        if not result.ok:
            return error_response(result)
        return Response(KycSubmissionSerializer(result.value).data)

    @extend_schema(
        operation_id="admin_kyc_list",
        summary="List KYC submissions",
        parameters=[OpenApiParameter(name="status", type=str, description="pending, under_review, approved, rejected")],
        responses={200: KycSubmissionSerializer(many=True)},
        tags=["Admin - KYC"],
    )
    def list(self, request):
        status_filter = request.query_params.get("status")
        service = self.get_service()
        result = service.get_submissions_by_status(status_filter) if status_filter else service.get_all_submissions()
        if not result.ok:
            return error_response(result)
        return Response(KycSubmissionSerializer(result.value, many=True).data)

    @extend_schema(operation_id="admin_kyc_retrieve", responses={200: KycSubmissionSerializer}, tags=["Admin - KYC"])
    def retrieve(self, request, pk=None):
        return self._render(self.get_service().get_submission(pk))

    @extend_schema(
        operation_id="admin_kyc_start_review",
        summary="Move a pending submission to under_review",
        request=None,
        responses={200: KycSubmissionSerializer},
        tags=["Admin - KYC"],
    )
    @action(detail=True, methods=["post"], url_path="start-review")
    def start_review(self, request, pk=None):
        return self._render(self.get_service().start_review(pk, request.user))

    @extend_schema(
        operation_id="admin_kyc_approve",
        summary="Approve a submission",
        description="""
        **What it receives:**
        - `pk`: submission id (must be pending or under_review)

        **What it returns:**
        - The approved submission. The seller is promoted and their store activated.
        """,
        request=None,
        responses={200: KycSubmissionSerializer, 400: OpenApiResponse(description="Not reviewable")},
        tags=["Admin - KYC"],
    )
    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        return self._render(self.get_service().approve(pk, request.user))

    @extend_schema(
        operation_id="admin_kyc_reject",
        summary="Reject a submission",
        request=KycRejectSerializer,
        responses={200: KycSubmissionSerializer, 400: OpenApiResponse(description="Reason missing or not reviewable")},
        tags=["Admin - KYC"],
    )
    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        reason = request.data.get("reason", "")
        return self._render(self.get_service().reject(pk, request.user, reason))

    @extend_schema(
        operation_id="admin_kyc_audit_logs",
        responses={200: KycAuditLogSerializer(many=True)},
        tags=["Admin - KYC"],
    )
    @action(detail=True, methods=["get"], url_path="audit-logs")
    def audit_logs(self, request, pk=None):
        result = self.get_service().get_audit_logs(pk)
        return Response(KycAuditLogSerializer(result.value, many=True).data)
