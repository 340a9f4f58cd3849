from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import BuyerRequired
from infrastructure.container import container
from marketplace.api.serializers import ErrorResponseSerializer
from payment_system.api.serializers import (
    BlikCodeRequestSerializer,
    InitiatePaymentRequestSerializer,
    PaymentCallbackRequestSerializer,
    PaymentInitiationSerializer,
    PaymentMethodSerializer,
    PaymentStatusSerializer,
)
from utils.api_responses import error_response


class PaymentViewSet(viewsets.ViewSet):
    """
    Buyer side of a payment: choosing a method, starting the payment and
    coming back from the provider.

    Checkout starts the payment for an order itself; ``initiate`` is the
    stand-alone entry point.
    """

    permission_classes = [BuyerRequired]
    lookup_value_regex = "[0-9a-f-]{36}"

    def get_service(self):
        return container.payment_service()

    @extend_schema(
        operation_id="payments_methods",
        summary="List the enabled payment methods",
        responses={200: PaymentMethodSerializer(many=True)},
        tags=["Payments"],
    )
    @action(detail=False, methods=["get"])
    def methods(self, request):
        result = self.get_service().get_payment_methods()
        return Response(PaymentMethodSerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="payments_initiate",
        summary="Start a payment",
        description="""
        **What it receives:**
        - `amount` and `payment_method`
        - `return_url`, optional `cancel_url` and `idempotency_key`
        - `blik_code` for a BLIK payment authorized straight away

        **What it returns:**
        - The transaction, the provider redirect URL and whether a BLIK code is still needed
        - The original transaction again when the `idempotency_key` was already used
        """,
        request=InitiatePaymentRequestSerializer,
        responses={
            201: PaymentInitiationSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            502: OpenApiResponse(response=ErrorResponseSerializer, description="Payment provider error"),
        },
        tags=["Payments"],
    )
    @action(detail=False, methods=["post"])
    def initiate(self, request):
        serializer = InitiatePaymentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = self.get_service().initiate_payment(
            buyer=request.user,
            amount=data["amount"],
            payment_method=data["payment_method"],
            return_url=data["return_url"],
            cancel_url=data["cancel_url"],
            idempotency_key=data["idempotency_key"] or None,
            blik_code=data["blik_code"] or None,
        )
        if not result.ok:
            return error_response(result)
        return Response(PaymentInitiationSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="payments_callback",
        summary="Report the provider outcome of a payment",
        description="""
        **What it receives:**
        - `transaction_id`, `is_success` and the provider `external_reference`

        **What it returns:**
        - The transaction with its display status
        - A transaction that is already final is returned unchanged
        """,
        request=PaymentCallbackRequestSerializer,
        responses={
            200: PaymentStatusSerializer,
            403: OpenApiResponse(response=ErrorResponseSerializer),
            404: OpenApiResponse(response=ErrorResponseSerializer),
        },
        tags=["Payments"],
    )
    @action(detail=False, methods=["post"])
    def callback(self, request):
        serializer = PaymentCallbackRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = self.get_service().handle_payment_callback(
            data["transaction_id"],
            request.user,
            is_success=data["is_success"],
            external_ref=data["external_reference"] or None,
        )
        if not result.ok:
            return error_response(result)
        return Response(PaymentStatusSerializer(result.value).data)

    @extend_schema(
        operation_id="payments_blik",
        summary="Submit the BLIK code of a pending payment",
        request=BlikCodeRequestSerializer,
        responses={
            200: PaymentStatusSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            502: OpenApiResponse(response=ErrorResponseSerializer, description="Code rejected by the provider"),
        },
        tags=["Payments"],
    )
    @action(detail=True, methods=["post"])
    def blik(self, request, pk=None):
        serializer = BlikCodeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().submit_blik_code(pk, request.user, serializer.validated_data["code"])
        if not result.ok:
            return error_response(result)
        return Response(PaymentStatusSerializer(result.value).data)

    @extend_schema(
        operation_id="payments_retrieve",
        summary="Status of one of the buyer's payments",
        responses={
            200: PaymentStatusSerializer,
            403: OpenApiResponse(response=ErrorResponseSerializer),
            404: OpenApiResponse(response=ErrorResponseSerializer),
        },
        tags=["Payments"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_transaction(pk, request.user)
        if not result.ok:
            return error_response(result)
        return Response(PaymentStatusSerializer(result.value).data)
