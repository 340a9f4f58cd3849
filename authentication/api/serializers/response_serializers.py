"""
Response Serializers for API Documentation

These serializers describe response bodies for OpenAPI schema generation.
They are NOT used for data validation.
"""

from rest_framework import serializers

from .auth_serializers import UserSerializer


class LoginResponseSerializer(serializers.Serializer):
    message = serializers.CharField(help_text="Success message")
    access = serializers.CharField(help_text="JWT access token")
    refresh = serializers.CharField(help_text="JWT refresh token")
    user = UserSerializer(help_text="User details")


class RegisterResponseSerializer(serializers.Serializer):
    message = serializers.CharField(help_text="Success message with next steps")
    user = UserSerializer(help_text="Newly registered user details")


class MessageResponseSerializer(serializers.Serializer):
    message = serializers.CharField()


class ErrorResponseSerializer(serializers.Serializer):
    """Standard error response"""

    detail = serializers.CharField(help_text="Error message")
    errors = serializers.ListField(child=serializers.CharField(), required=False, help_text="All validation messages")
