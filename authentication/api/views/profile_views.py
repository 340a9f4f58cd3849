from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.api.serializers import (
    ChangePasswordSerializer,
    ProfileUpdateSerializer,
    SetRoleSerializer,
    UserSerializer,
)
from authentication.api.serializers.response_serializers import ErrorResponseSerializer, MessageResponseSerializer
from authentication.permissions import AdminRequired

from .auth_views import error_response, get_auth_service


class ProfileView(APIView):
    """
    Read or update own profile.
    """

    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(
        operation_id="profile_get_own",
        summary="Get own profile",
        responses={200: UserSerializer},
        tags=["Profile"],
    )
    def get(self, request):
        result = get_auth_service().get_profile(request.user)
        return Response(UserSerializer(result.data["user"]).data)

    @extend_schema(
        operation_id="profile_update_own",
        summary="Update own profile",
        description="""
        **What it receives:**
        - `first_name` and/or `last_name`

        **What it returns:**
        - The updated user
        """,
        request=ProfileUpdateSerializer,
        responses={
            200: UserSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Validation failed"),
        },
        tags=["Profile"],
    )
    def patch(self, request):
        serializer = ProfileUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        result = get_auth_service().update_profile(request.user, **serializer.validated_data)
        if not result.success:
            return error_response(result)
        return Response(UserSerializer(result.data["user"]).data)


class ChangePasswordView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(
        operation_id="profile_change_password",
        summary="Change password",
        request=ChangePasswordSerializer,
        responses={
            200: MessageResponseSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Password rejected"),
        },
        tags=["Profile"],
    )
    def post(self, request):
        serializer = ChangePasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = get_auth_service().change_password(request.user, **serializer.validated_data)
        if not result.success:
            return error_response(result)
        return Response({"message": result.message}, status=status.HTTP_200_OK)


class AdminSetRoleView(APIView):
    permission_classes = [AdminRequired]

    @extend_schema(
        operation_id="admin_set_user_role",
        summary="Assign a role to a user",
        request=SetRoleSerializer,
        responses={
            200: MessageResponseSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid role"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="User not found"),
        },
        tags=["Admin"],
    )
    def post(self, request, user_id):
        serializer = SetRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = get_auth_service().set_role(user_id, serializer.validated_data["role"])
        if not result.success:
            return error_response(result)
        return Response({"message": result.message})
