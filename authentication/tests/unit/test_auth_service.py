import pytest
from django.contrib.auth import get_user_model

from authentication.domain.services.auth_service import AuthService
from authentication.tests.factories import UserFactory
from infrastructure.events import get_event_bus
from utils.service_base import ErrorCodes

User = get_user_model()

STRONG_PASSWORD = "Str0ng-Passw0rd!"


@pytest.mark.unit
@pytest.mark.django_db
class TestRegistration:
    def setup_method(self):
        self.service = AuthService()

    def test_register_buyer_creates_buyer(self):
        result = self.service.register_buyer("New.Buyer@Example.com", STRONG_PASSWORD, "Ada", "Lovelace")

        assert result.success
        assert result.user.email == "new.buyer@example.com"
        assert result.user.role == "buyer"
        assert result.user.check_password(STRONG_PASSWORD)

    def test_register_buyer_publishes_event(self):
        self.service.register_buyer("events@example.com", STRONG_PASSWORD)

        published = [e["event_type"] for e in get_event_bus().published]
        assert "user.registered" in published

    def test_register_duplicate_email(self):
        UserFactory(email="taken@example.com")

        result = self.service.register_buyer("TAKEN@example.com", STRONG_PASSWORD)

        assert not result.success
        assert result.error == "An account with this email already exists."
        assert result.error_code == ErrorCodes.EMAIL_TAKEN

    def test_register_weak_password(self):
        result = self.service.register_buyer("weak@example.com", "123")

        assert not result.success
        assert result.error_code == ErrorCodes.VALIDATION_ERROR
        assert len(result.errors) >= 1
        assert not User.objects.filter(email="weak@example.com").exists()

    def test_register_seller_starts_as_buyer(self):
        result = self.service.register_seller("shop@example.com", STRONG_PASSWORD, "Sam", "Shop", "Sam's Shop")

        assert result.success
        assert result.user.role == "buyer"


@pytest.mark.unit
@pytest.mark.django_db
class TestLogin:
    def setup_method(self):
        self.service = AuthService()
        self.user = UserFactory(email="login@example.com")

    def test_login_success_returns_tokens(self):
        result = self.service.login("login@example.com", "defaultpassword")

        assert result.success
        assert result.access_token
        assert result.refresh_token
        assert result.user == self.user

    def test_login_wrong_password(self):
        result = self.service.login("login@example.com", "wrong")

        assert not result.success
        assert result.error == "Invalid email or password."
        assert result.error_code == ErrorCodes.INVALID_CREDENTIALS

    def test_login_unknown_email_same_message(self):
        result = self.service.login("nobody@example.com", "defaultpassword")

        assert result.error == "Invalid email or password."

    def test_login_inactive_account_refused(self):
        self.user.is_active = False
        self.user.save()

        result = self.service.login("login@example.com", "defaultpassword")

        assert not result.success
        assert result.error_code == ErrorCodes.ACCOUNT_INACTIVE


@pytest.mark.unit
@pytest.mark.django_db
class TestPasswordAndProfile:
    def setup_method(self):
        self.service = AuthService()
        self.user = UserFactory()

    def test_change_password_wrong_current(self):
        result = self.service.change_password(self.user, "nope", STRONG_PASSWORD, STRONG_PASSWORD)
        assert result.error == "Current password is incorrect."

    def test_change_password_mismatch(self):
        result = self.service.change_password(self.user, "defaultpassword", STRONG_PASSWORD, "other")
        assert result.error == "New password and confirmation do not match."

    def test_change_password_same_as_current(self):
        result = self.service.change_password(self.user, "defaultpassword", "defaultpassword", "defaultpassword")
        assert result.error == "New password must be different from the current password."

    def test_change_password_success(self):
        result = self.service.change_password(self.user, "defaultpassword", STRONG_PASSWORD, STRONG_PASSWORD)

        assert result.success
        self.user.refresh_from_db()
        assert self.user.check_password(STRONG_PASSWORD)

    def test_update_profile(self):
        result = self.service.update_profile(self.user, first_name=" Grace ", last_name="Hopper")

        assert result.success
        self.user.refresh_from_db()
        assert self.user.first_name == "Grace"
        assert self.user.full_name == "Grace Hopper"


@pytest.mark.unit
@pytest.mark.django_db
class TestRoles:
    def setup_method(self):
        self.service = AuthService()

    def test_set_role_invalid(self):
        user = UserFactory()
        result = self.service.set_role(user.id, "superhero")

        assert not result.success
        assert result.error_code == ErrorCodes.VALIDATION_ERROR

    def test_set_role_admin(self):
        user = UserFactory()
        result = self.service.set_role(user.id, "admin")

        assert result.success
        user.refresh_from_db()
        assert user.role == "admin"

    def test_promote_to_seller(self):
        user = UserFactory()
        assert self.service.promote_to_seller(user.id).success
        user.refresh_from_db()
        assert user.role == "seller"

    def test_promote_missing_user(self):
        import uuid

        result = self.service.promote_to_seller(uuid.uuid4())
        assert result.error == "Seller user not found."
        assert result.error_code == ErrorCodes.NOT_FOUND
