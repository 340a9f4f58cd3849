from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import BuyerRequired, SellerRequired
from infrastructure.container import container
from marketplace.api.serializers import ErrorResponseSerializer, SuccessResponseSerializer
from marketplace.ordering.api.serializers import (
    CanInitiateResponseSerializer,
    CaseMessageRequestSerializer,
    CaseMessageSerializer,
    CaseStatusRequestSerializer,
    ResolveCaseRequestSerializer,
    ReturnRequestCreateSerializer,
    ReturnRequestSerializer,
)
from marketplace.ordering.domain.models import CaseMessage, ReturnRequest
from utils.api_responses import error_response
from utils.rbac import is_admin
from utils.service_base import ErrorCodes, service_err


class CaseMessagesMixin:
    """Message thread endpoints shared by the buyer and seller case views."""

    def message_role(self, request):
        raise NotImplementedError

    @extend_schema(
        operation_id=None,
        request=CaseMessageRequestSerializer,
        responses={
            200: CaseMessageSerializer(many=True),
            201: CaseMessageSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            403: OpenApiResponse(response=ErrorResponseSerializer),
        },
        tags=["Marketplace - Cases"],
    )
    @action(detail=True, methods=["get", "post"])
    def messages(self, request, pk=None):
        service = container.return_service()
        role = self.message_role(request)
        if request.method == "GET":
            result = service.get_case_messages(pk, request.user, role)
            if not result.ok:
                return error_response(result)
            return Response(CaseMessageSerializer(result.value, many=True).data)

        serializer = CaseMessageRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = service.add_case_message(pk, request.user, role, serializer.validated_data["content"])
        if not result.ok:
            return error_response(result)
        return Response(CaseMessageSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id=None,
        request=None,
        responses={200: SuccessResponseSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Cases"],
    )
    @action(detail=True, methods=["post"])
    def viewed(self, request, pk=None):
        result = container.return_service().mark_case_activity_viewed(pk, request.user, self.message_role(request))
        if not result.ok:
            return error_response(result)
        return Response({"message": "Case marked as viewed."})


class CaseViewSet(CaseMessagesMixin, viewsets.ViewSet):
    """Returns and complaints opened by the authenticated buyer."""

    permission_classes = [BuyerRequired]

    def get_service(self):
        return container.return_service()

    def message_role(self, request):
        return CaseMessage.ROLE_BUYER

    @extend_schema(
        operation_id="cases_list",
        responses={200: ReturnRequestSerializer(many=True)},
        tags=["Marketplace - Cases"],
    )
    def list(self, request):
        result = self.get_service().get_return_requests_for_buyer(request.user)
        return Response(ReturnRequestSerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="cases_create",
        summary="Open a return or complaint",
        description="""
        **What it receives:**
        - `sub_order_id`, `case_type` (return or complaint), `reason` (max 2000)
        - Optional `selected_items`: list of `{item_id, quantity}`; empty means every item

        **What it returns:**
        - The case in `requested` status
        - 400 when the sub-order is not delivered or the return window has passed
        - 409 when an item already has an open case
        """,
        request=ReturnRequestCreateSerializer,
        responses={
            201: ReturnRequestSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            409: OpenApiResponse(response=ErrorResponseSerializer),
        },
        tags=["Marketplace - Cases"],
    )
    def create(self, request):
        serializer = ReturnRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = self.get_service().create_return_request(
            request.user,
            data["sub_order_id"],
            data["case_type"],
            data["reason"],
            [dict(item) for item in data["selected_items"]],
        )
        if not result.ok:
            return error_response(result)
        return Response(ReturnRequestSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="cases_retrieve",
        responses={200: ReturnRequestSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Cases"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_return_request(pk, request.user)
        if not result.ok:
            return error_response(result)
        return Response(ReturnRequestSerializer(result.value).data)

    @extend_schema(
        operation_id="cases_can_initiate",
        summary="Check whether a case can be opened for a sub-order",
        parameters=[OpenApiParameter("sub_order_id", str, required=True)],
        responses={200: CanInitiateResponseSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Cases"],
    )
    @action(detail=False, methods=["get"], url_path="can-initiate")
    def can_initiate(self, request):
        sub_order_id = request.query_params.get("sub_order_id")
        if not sub_order_id:
            return error_response(service_err(ErrorCodes.VALIDATION_ERROR, "Sub-order ID is required."))
        result = self.get_service().can_initiate_return(sub_order_id, request.user)
        if not result.ok:
            return error_response(result)
        return Response(CanInitiateResponseSerializer(result.value).data)


class SellerCaseViewSet(CaseMessagesMixin, viewsets.ViewSet):
    """Cases opened against the seller's store. Admins act with the admin role on messages."""

    permission_classes = [SellerRequired]

    def get_service(self):
        return container.return_service()

    def message_role(self, request):
        return CaseMessage.ROLE_ADMIN if is_admin(request.user) else CaseMessage.ROLE_SELLER

    def get_store_id(self, request):
        store = container.order_service().store_for_seller(request.user)
        return store.id if store else None

    def no_store(self):
        return error_response(service_err(ErrorCodes.NOT_FOUND, "You do not have a store yet."))

    @extend_schema(
        operation_id="seller_cases_list",
        parameters=[
            OpenApiParameter("status", str, enum=[choice for choice, _ in ReturnRequest.STATUS_CHOICES]),
            OpenApiParameter("sub_order_id", str),
        ],
        responses={200: ReturnRequestSerializer(many=True)},
        tags=["Marketplace - Cases"],
    )
    def list(self, request):
        store_id = self.get_store_id(request)
        if not store_id:
            return self.no_store()
        sub_order_id = request.query_params.get("sub_order_id")
        if sub_order_id:
            result = self.get_service().get_return_request_for_seller_sub_order(sub_order_id, store_id)
        else:
            result = self.get_service().get_cases_for_store(store_id, status=request.query_params.get("status"))
        if not result.ok:
            return error_response(result)
        return Response(ReturnRequestSerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="seller_cases_retrieve",
        responses={200: ReturnRequestSerializer, 404: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Cases"],
    )
    def retrieve(self, request, pk=None):
        store_id = self.get_store_id(request)
        if not store_id:
            return self.no_store()
        result = self.get_service().get_case_for_seller(pk, store_id)
        if not result.ok:
            return error_response(result)
        return Response(ReturnRequestSerializer(result.value).data)

    @extend_schema(
        operation_id="seller_cases_update_status",
        request=CaseStatusRequestSerializer,
        responses={200: ReturnRequestSerializer, 400: OpenApiResponse(response=ErrorResponseSerializer)},
        tags=["Marketplace - Cases"],
    )
    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request, pk=None):
        store_id = self.get_store_id(request)
        if not store_id:
            return self.no_store()
        serializer = CaseStatusRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().update_return_request_status(
            pk,
            store_id,
            serializer.validated_data["status"],
            seller_notes=serializer.validated_data["seller_notes"],
            changed_by=request.user,
        )
        if not result.ok:
            return error_response(result)
        return Response(ReturnRequestSerializer(result.value).data)

    @extend_schema(
        operation_id="seller_cases_resolve",
        summary="Resolve a case",
        description="""
        **What it receives:**
        - `resolution_type`: full_refund, partial_refund, replacement, repair or no_refund
        - `resolution_reason` (required for no_refund)
        - For refunds either `refund_id` of an existing refund or `refund_amount` for a new partial refund

        **What it returns:**
        - The completed case with the linked refund
        """,
        request=ResolveCaseRequestSerializer,
        responses={
            200: ReturnRequestSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            502: OpenApiResponse(response=ErrorResponseSerializer, description="Refund failed at the provider"),
        },
        tags=["Marketplace - Cases"],
    )
    @action(detail=True, methods=["post"])
    def resolve(self, request, pk=None):
        store_id = self.get_store_id(request)
        if not store_id:
            return self.no_store()
        serializer = ResolveCaseRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = self.get_service().resolve_case(
            pk,
            store_id,
            data["resolution_type"],
            resolution_reason=data["resolution_reason"],
            refund_id=data["refund_id"],
            refund_amount=data["refund_amount"],
            resolved_by=request.user,
        )
        if not result.ok:
            return error_response(result)
        return Response(ReturnRequestSerializer(result.value).data)
