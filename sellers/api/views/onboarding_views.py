from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from sellers.api.serializers import (
    KycSubmissionSerializer,
    KycUploadSerializer,
    OnboardingPayoutSerializer,
    OnboardingSerializer,
    OnboardingStoreProfileSerializer,
    OnboardingVerificationSerializer,
)
from utils.api_responses import error_response


class OnboardingViewSet(viewsets.ViewSet):
    """
    Seller onboarding wizard. Open to any signed-in user; the seller role is
    only granted after KYC approval.
    """

    permission_classes = [IsAuthenticated]

    def get_service(self):
        return container.onboarding_service()

    def _render(self, result, success_status=status.HTTP_200_OK):
        if not result.ok:
            return error_response(result)
        return Response(OnboardingSerializer(result.value).data, status=success_status)

    @extend_schema(
        operation_id="onboarding_retrieve",
        summary="Get (or start) own onboarding",
        responses={200: OnboardingSerializer},
        tags=["Sellers - Onboarding"],
    )
    def list(self, request):
        return self._render(self.get_service().get_or_create_onboarding(request.user.id))

    @extend_schema(
        operation_id="onboarding_store_profile",
        summary="Save the store profile step",
        description="""
        **What it receives:**
        - `store_name` (2..200 characters), `store_description` (10..2000 characters)

        **What it returns:**
        - The onboarding record, advanced to the verification step
        """,
        request=OnboardingStoreProfileSerializer,
        responses={200: OnboardingSerializer, 400: OpenApiResponse(description="Validation failed")},
        tags=["Sellers - Onboarding"],
    )
    @action(detail=False, methods=["post"], url_path="store-profile")
    def store_profile(self, request):
        serializer = OnboardingStoreProfileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._render(self.get_service().save_store_profile(request.user.id, **serializer.validated_data))

    @extend_schema(
        operation_id="onboarding_verification",
        summary="Save the verification step",
        description="""
        **What it receives:**
        - `seller_type`: `individual` or `company`, with the fields that type requires

        **What it returns:**
        - The onboarding record, advanced to the payout step
        """,
        request=OnboardingVerificationSerializer,
        responses={200: OnboardingSerializer, 400: OpenApiResponse(description="Validation failed")},
        tags=["Sellers - Onboarding"],
    )
    @action(detail=False, methods=["post"])
    def verification(self, request):
        serializer = OnboardingVerificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        seller_type = data.pop("seller_type")
        return self._render(self.get_service().save_verification_data(request.user.id, seller_type, data))

    @extend_schema(
        operation_id="onboarding_payout",
        summary="Save the payout basics step",
        request=OnboardingPayoutSerializer,
        responses={200: OnboardingSerializer, 400: OpenApiResponse(description="Validation failed")},
        tags=["Sellers - Onboarding"],
    )
    @action(detail=False, methods=["post"])
    def payout(self, request):
        serializer = OnboardingPayoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._render(self.get_service().save_payout_basics(request.user.id, **serializer.validated_data))

    @extend_schema(
        operation_id="onboarding_complete",
        summary="Complete onboarding",
        description="""
        **What it receives:**
        - Nothing; every saved step is revalidated

        **What it returns:**
        - The onboarding record in `pending_verification`. The store is created and waits for KYC approval.
        """,
        request=None,
        responses={200: OnboardingSerializer, 400: OpenApiResponse(description="A step is missing or invalid")},
        tags=["Sellers - Onboarding"],
    )
    @action(detail=False, methods=["post"])
    def complete(self, request):
        return self._render(self.get_service().complete_onboarding(request.user.id))


class KycSubmissionViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    def get_service(self):
        return container.kyc_service()

    @extend_schema(
        operation_id="kyc_list_own",
        summary="List own KYC submissions",
        responses={200: KycSubmissionSerializer(many=True)},
        tags=["Sellers - KYC"],
    )
    def list(self, request):
        result = self.get_service().get_submissions_by_seller(request.user.id)
        return Response(KycSubmissionSerializer(result.value, many=True).data)

    @extend_schema(
        operation_id="kyc_submit",
        summary="Upload a KYC document",
        description="""
        **What it receives:**
        - `document_type`: government_id, business_license, proof_of_address or tax_certificate
        - `file`: PDF, JPG or PNG, at most 5MB

        **What it returns:**
        - The pending submission
        """,
        request=KycUploadSerializer,
        responses={201: KycSubmissionSerializer, 400: OpenApiResponse(description="Invalid document")},
        tags=["Sellers - KYC"],
    )
    def create(self, request):
        serializer = KycUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data["file"]

        result = self.get_service().submit(
            request.user.id,
            serializer.validated_data["document_type"],
            upload.name,
            upload.content_type,
            upload.read(),
        )
        if not result.ok:
            return error_response(result)
        return Response(KycSubmissionSerializer(result.value).data, status=status.HTTP_201_CREATED)
