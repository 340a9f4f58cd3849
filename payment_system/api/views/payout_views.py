from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import AdminRequired
from infrastructure.container import container
from marketplace.api.serializers import ErrorResponseSerializer
from payment_system.api.serializers import (
    PayoutBatchResultSerializer,
    PayoutFilterSerializer,
    PayoutScheduleResultSerializer,
    PayoutSerializer,
    ProcessPayoutsRequestSerializer,
    SchedulePayoutsRequestSerializer,
)
from utils.api_responses import error_response


class AdminPayoutViewSet(viewsets.ViewSet):
    """
    Seller payouts for platform admins.

    Celery beat schedules and processes payouts on its own; these endpoints
    run the same steps on demand.
    """

    permission_classes = [AdminRequired]
    lookup_value_regex = "[0-9a-f-]{36}"

    def get_service(self):
        return container.payout_service()

    @extend_schema(
        operation_id="admin_payouts_list",
        parameters=[
            OpenApiParameter("seller_id", str),
            OpenApiParameter("status", str, description="scheduled, processing, paid or failed"),
            OpenApiParameter("from_date", str, description="YYYY-MM-DD"),
            OpenApiParameter("to_date", str, description="YYYY-MM-DD"),
        ],
        responses={200: PayoutSerializer(many=True), 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Admin Payouts"],
    )
    def list(self, request):
        filters = PayoutFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        data = filters.validated_data
        result = self.get_service().get_filtered_payouts(
            seller_id=data.get("seller_id"),
            status=data.get("status"),
            date_from=data.get("from_date"),
            date_to=data.get("to_date"),
        )
        if not result.ok:
            return error_response(result)
        return Response(PayoutSerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="admin_payouts_retrieve",
        responses={200: PayoutSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Admin Payouts"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_payout(pk)
        if not result.ok:
            return error_response(result)
        return Response(PayoutSerializer(result.value).data)

    @extend_schema(
        operation_id="admin_payouts_schedule",
        summary="Schedule payouts from released escrow",
        description="""
        **What it receives:**
        - `scheduled_at` and the `frequency` (weekly or monthly)

        **What it returns:**
        - The payouts created, one per seller and currency
        - `rolled_over`: sellers whose balance is below the minimum payout
        """,
        request=SchedulePayoutsRequestSerializer,
        responses={201: PayoutScheduleResultSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Payments - Admin Payouts"],
    )
    @action(detail=False, methods=["post"])
    def schedule(self, request):
        serializer = SchedulePayoutsRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = self.get_service().schedule_payouts(scheduled_at=data["scheduled_at"], frequency=data["frequency"])
        if not result.ok:
            return error_response(result)
        return Response(PayoutScheduleResultSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="admin_payouts_process",
        summary="Transfer the scheduled payouts that are due",
        request=ProcessPayoutsRequestSerializer,
        responses={200: PayoutBatchResultSerializer},
        tags=["Payments - Admin Payouts"],
    )
    @action(detail=False, methods=["post"])
    def process(self, request):
        serializer = ProcessPayoutsRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = self.get_service().process_scheduled_payouts(
            process_before=data["process_before"], batch_id=data["batch_id"] or None
        )
        if not result.ok:
            return error_response(result)
        return Response(PayoutBatchResultSerializer(result.value).data)

    @extend_schema(
        operation_id="admin_payouts_retry",
        summary="Retry a failed payout",
        responses={
            200: PayoutSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Not failed or out of retries"),
            404: OpenApiResponse(response=ErrorResponseSerializer),
        },
        tags=["Payments - Admin Payouts"],
    )
    @action(detail=True, methods=["post"])
    def retry(self, request, pk=None):
        result = self.get_service().retry_failed_payout(pk)
        if not result.ok:
            return error_response(result)
        return Response(PayoutSerializer(result.value).data)

    @extend_schema(
        operation_id="admin_payouts_retry_failed",
        summary="Retry every failed payout that has retries left",
        request=None,
        responses={200: OpenApiResponse(description="{'retried': int, 'paid': int}")},
        tags=["Payments - Admin Payouts"],
    )
    @action(detail=False, methods=["post"], url_path="retry-failed")
    def retry_failed(self, request):
        result = self.get_service().retry_all_failed_payouts()
        return Response(result.value)
