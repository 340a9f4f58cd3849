from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from authentication.api.views import (
    AdminSetRoleView,
    ChangePasswordView,
    LoginAPIView,
    ProfileView,
    RegisterBuyerAPIView,
    RegisterSellerAPIView,
    health_views,
    metrics_views,
)


urlpatterns = [
    # Auth
    path("register/", RegisterBuyerAPIView.as_view(), name="register"),
    path("register/seller/", RegisterSellerAPIView.as_view(), name="register_seller"),
    path("login/", LoginAPIView.as_view(), name="login"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    # Profile
    path("profile/", ProfileView.as_view(), name="profile"),
    path("profile/change-password/", ChangePasswordView.as_view(), name="change_password"),
    # Admin
    path("admin/users/<uuid:user_id>/role/", AdminSetRoleView.as_view(), name="admin_set_role"),
    # Observability
    path("metrics/", metrics_views.metrics, name="metrics"),
    path("health/live/", health_views.health_live, name="health_live"),
    path("health/ready/", health_views.health_ready, name="health_ready"),
]
