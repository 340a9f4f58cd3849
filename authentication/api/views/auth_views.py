from drf_spectacular.utils import OpenApiExample, OpenApiResponse, extend_schema
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.api.serializers import (
    LoginRequestSerializer,
    RegisterBuyerSerializer,
    RegisterSellerSerializer,
    UserSerializer,
)
from authentication.api.serializers.response_serializers import (
    ErrorResponseSerializer,
    LoginResponseSerializer,
    RegisterResponseSerializer,
)
from utils.service_base import ERROR_STATUS_MAP


def get_auth_service():
    from infrastructure.container import container

    return container.auth_service()


def error_response(result, default_status=status.HTTP_400_BAD_REQUEST):
    """Render a failed auth result as {"detail", "errors"}."""
    http_status = ERROR_STATUS_MAP.get(result.error_code, default_status)
    errors = getattr(result, "errors", None) or [result.error]
    return Response({"detail": result.error, "errors": errors}, status=http_status)


class RegisterBuyerAPIView(APIView):
    permission_classes = [permissions.AllowAny]

    @extend_schema(
        operation_id="auth_register_buyer",
        summary="Register a buyer account",
        description="""
        **What it receives:**
        - `email`, `password` and optional `first_name` / `last_name`

        **What it returns:**
        - The created user. Django password validators apply.
        """,
        request=RegisterBuyerSerializer,
        responses={
            201: OpenApiResponse(response=RegisterResponseSerializer, description="Account created"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Validation failed"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="E-mail already registered"),
        },
        tags=["Authentication"],
    )
    def post(self, request):
        serializer = RegisterBuyerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = get_auth_service().register_buyer(**serializer.validated_data)
        if not result.success:
            return error_response(result)

        return Response(
            {"message": result.message, "user": UserSerializer(result.user).data}, status=status.HTTP_201_CREATED
        )


class RegisterSellerAPIView(APIView):
    permission_classes = [permissions.AllowAny]

    @extend_schema(
        operation_id="auth_register_seller",
        summary="Register a seller account",
        description="""
        **What it receives:**
        - The buyer registration fields plus `business_name`

        **What it returns:**
        - The created user (role `buyer` until KYC approval) with seller onboarding started.
        """,
        request=RegisterSellerSerializer,
        responses={
            201: OpenApiResponse(response=RegisterResponseSerializer, description="Seller account created"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Validation failed"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="E-mail already registered"),
        },
        tags=["Authentication"],
    )
    def post(self, request):
        serializer = RegisterSellerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = get_auth_service().register_seller(**serializer.validated_data)
        if not result.success:
            return error_response(result)

        return Response(
            {"message": result.message, "user": UserSerializer(result.user).data}, status=status.HTTP_201_CREATED
        )


class LoginAPIView(APIView):
    permission_classes = [permissions.AllowAny]

    @extend_schema(
        operation_id="auth_login",
        summary="Login with email and password",
        description="""
        Authenticate with email and password and receive a JWT pair.

        Unknown e-mails and wrong passwords both return 401. Disabled accounts return 403.
        """,
        request=LoginRequestSerializer,
        responses={
            200: OpenApiResponse(
                response=LoginResponseSerializer,
                description="Login successful",
                examples=[
                    OpenApiExample(
                        "Successful Login",
                        value={
                            "message": "Login successful",
                            "access": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                            "refresh": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                            "user": {
                                "id": "123e4567-e89b-12d3-a456-426614174000",
                                "email": "user@example.com",
                                "role": "buyer",
                            },
                        },
                    )
                ],
            ),
            401: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid credentials"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Account disabled"),
        },
        tags=["Authentication"],
    )
    def post(self, request):
        result = get_auth_service().login(request.data.get("email"), request.data.get("password"))

        if not result.success:
            return error_response(result)

        return Response(
            {
                "message": result.message,
                "access": result.access_token,
                "refresh": result.refresh_token,
                "user": UserSerializer(result.user).data,
            },
            status=status.HTTP_200_OK,
        )
