from .auth_views import LoginAPIView, RegisterBuyerAPIView, RegisterSellerAPIView
from .profile_views import AdminSetRoleView, ChangePasswordView, ProfileView


__all__ = [
    "LoginAPIView",
    "RegisterBuyerAPIView",
    "RegisterSellerAPIView",
    "ProfileView",
    "ChangePasswordView",
    "AdminSetRoleView",
]
