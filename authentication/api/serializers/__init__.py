from .auth_serializers import (
    ChangePasswordSerializer,
    LoginRequestSerializer,
    ProfileUpdateSerializer,
    RegisterBuyerSerializer,
    RegisterSellerSerializer,
    SetRoleSerializer,
    UserSerializer,
)


__all__ = [
    "UserSerializer",
    "RegisterBuyerSerializer",
    "RegisterSellerSerializer",
    "LoginRequestSerializer",
    "ChangePasswordSerializer",
    "ProfileUpdateSerializer",
    "SetRoleSerializer",
]
