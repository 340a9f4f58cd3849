"""
AuthService - account registration, login and role management.

Login issues a simplejwt access/refresh pair. Sellers register as buyers and
are promoted to the seller role only when an admin approves their KYC
submission.
"""

import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.domain.events import UserRegisteredEvent, UserRoleChangedEvent
from authentication.infra.observability.metrics import (
    login_duration,
    login_failed,
    login_total,
    registrations_total,
    role_changes_total,
)
from utils.logging_utils import mask_value
from utils.rbac import ROLE_BUYER, ROLES, ROLE_SELLER
from utils.service_base import ErrorCodes

from .results import LoginResult, RegisterResult, Result


User = get_user_model()
logger = logging.getLogger(__name__)

EMAIL_TAKEN_MESSAGE = "An account with this email already exists."
INVALID_LOGIN_MESSAGE = "Invalid email or password."


class AuthService:
    """
    Authentication service encapsulating all account business logic.
    """

    def __init__(self, email_service=None):
        self.email_service = email_service

    @staticmethod
    def normalize_email(email: Optional[str]) -> str:
        return (email or "").strip().lower()

    def _validate_new_account(self, email: str, password: str) -> list:
        errors = []
        if not email:
            errors.append("Email is required.")
        elif User.objects.filter(email__iexact=email).exists():
            errors.append(EMAIL_TAKEN_MESSAGE)

        if not password:
            errors.append("Password is required.")
        else:
            try:
                validate_password(password, User(email=email, username=email))
            except ValidationError as e:
                errors.extend(e.messages)
        return errors

    def _create_user(self, email: str, password: str, first_name: str, last_name: str, account_type: str):
        email = self.normalize_email(email)
        errors = self._validate_new_account(email, password)
        if errors:
            code = ErrorCodes.EMAIL_TAKEN if EMAIL_TAKEN_MESSAGE in errors else ErrorCodes.VALIDATION_ERROR
            return None, RegisterResult(success=False, error=errors[0], error_code=code, errors=errors)

        try:
            user = User.objects.create_user(
                username=email,
                email=email,
                password=password,
                first_name=(first_name or "").strip(),
                last_name=(last_name or "").strip(),
                role=ROLE_BUYER,
            )
        except IntegrityError:
            # Lost a race with a concurrent registration for the same e-mail
            return None, RegisterResult(
                success=False,
                error=EMAIL_TAKEN_MESSAGE,
                error_code=ErrorCodes.EMAIL_TAKEN,
                errors=[EMAIL_TAKEN_MESSAGE],
            )

        registrations_total.labels(account_type=account_type).inc()
        logger.info(f"Registered {account_type} account {user.id} ({mask_value(email)})")
        return user, None

    @transaction.atomic
    def register_buyer(self, email: str, password: str, first_name: str = "", last_name: str = "") -> RegisterResult:
        user, failure = self._create_user(email, password, first_name, last_name, "buyer")
        if failure:
            return failure
        UserRegisteredEvent.for_user(user, "buyer").publish()
        return RegisterResult(success=True, user=user, message="Account created successfully.")

    @transaction.atomic
    def register_seller(
        self, email: str, password: str, first_name: str = "", last_name: str = "", business_name: str = ""
    ) -> RegisterResult:
        """
        Create a seller account.

        The user starts with the buyer role and an in-progress onboarding
        record. KYC approval promotes them to seller.
        """
        user, failure = self._create_user(email, password, first_name, last_name, "seller")
        if failure:
            return failure

        from infrastructure.container import container

        onboarding_result = container.onboarding_service().get_or_create_onboarding(user.id)
        if not onboarding_result.ok:
            transaction.set_rollback(True)
            return RegisterResult(
                success=False,
                error=onboarding_result.error_detail,
                error_code=onboarding_result.error,
                errors=onboarding_result.errors,
            )

        onboarding = onboarding_result.value
        if business_name:
            onboarding.store_name = business_name.strip()[:200]
            onboarding.save(update_fields=["store_name", "updated_at"])

        UserRegisteredEvent.for_user(user, "seller").publish()
        return RegisterResult(
            success=True,
            user=user,
            message="Seller account created. Complete onboarding and KYC verification to start selling.",
        )

    def login(self, email: str, password: str) -> LoginResult:
        """
        Authenticate user with email/password and issue JWT tokens.

        Unknown e-mails and wrong passwords produce the same message.
        """
        with login_duration.time():
            email = self.normalize_email(email)
            if not email or not password:
                login_failed.labels(reason="missing_fields").inc()
                return LoginResult(
                    success=False,
                    error="Email and password are required.",
                    error_code=ErrorCodes.VALIDATION_ERROR,
                )

            user = User.objects.filter(email__iexact=email).first()
            if user is None or not user.check_password(password):
                login_total.labels(status="failed").inc()
                login_failed.labels(reason="invalid_credentials").inc()
                logger.info(f"Failed login for {mask_value(email)}")
                return LoginResult(
                    success=False, error=INVALID_LOGIN_MESSAGE, error_code=ErrorCodes.INVALID_CREDENTIALS
                )

            if not user.is_active:
                login_total.labels(status="failed").inc()
                login_failed.labels(reason="account_disabled").inc()
                return LoginResult(
                    success=False, error="This account has been disabled.", error_code=ErrorCodes.ACCOUNT_INACTIVE
                )

            refresh = RefreshToken.for_user(user)
            refresh["role"] = user.role
            refresh["email"] = user.email

            login_total.labels(status="success").inc()
            logger.info(f"User {user.id} logged in")
            return LoginResult(
                success=True,
                user=user,
                access_token=str(refresh.access_token),
                refresh_token=str(refresh),
                message="Login successful",
            )

    def change_password(self, user, current_password: str, new_password: str, confirm_password: str) -> Result:
        if not user.check_password(current_password or ""):
            return Result(
                success=False, error="Current password is incorrect.", error_code=ErrorCodes.VALIDATION_ERROR
            )
        if new_password != confirm_password:
            return Result(
                success=False,
                error="New password and confirmation do not match.",
                error_code=ErrorCodes.VALIDATION_ERROR,
            )
        if current_password == new_password:
            return Result(
                success=False,
                error="New password must be different from the current password.",
                error_code=ErrorCodes.VALIDATION_ERROR,
            )

        try:
            validate_password(new_password, user)
        except ValidationError as e:
            return Result(
                success=False, error=e.messages[0], error_code=ErrorCodes.VALIDATION_ERROR, errors=list(e.messages)
            )

        user.set_password(new_password)
        user.save(update_fields=["password", "updated_at"])
        logger.info(f"Password changed for user {user.id}")
        return Result(success=True, message="Password changed successfully.")

    def get_profile(self, user) -> Result:
        user.refresh_from_db()
        return Result(success=True, data={"user": user})

    def update_profile(self, user, first_name: Optional[str] = None, last_name: Optional[str] = None) -> Result:
        errors = []
        if first_name is not None and len(first_name.strip()) > 100:
            errors.append("First name must not exceed 100 characters.")
        if last_name is not None and len(last_name.strip()) > 100:
            errors.append("Last name must not exceed 100 characters.")
        if errors:
            return Result(success=False, error=errors[0], error_code=ErrorCodes.VALIDATION_ERROR, errors=errors)

        if first_name is not None:
            user.first_name = first_name.strip()
        if last_name is not None:
            user.last_name = last_name.strip()
        user.save(update_fields=["first_name", "last_name", "updated_at"])
        return Result(success=True, message="Profile updated successfully.", data={"user": user})

    def set_role(self, user_id, role: str) -> Result:
        """Assign a role to a user (admin operation)."""
        if role not in ROLES:
            return Result(
                success=False,
                error=f"Invalid role '{role}'. Must be one of: {', '.join(ROLES)}.",
                error_code=ErrorCodes.VALIDATION_ERROR,
            )

        updated = User.objects.filter(pk=user_id).update(role=role)
        if not updated:
            return Result(success=False, error="User not found.", error_code=ErrorCodes.NOT_FOUND)

        role_changes_total.labels(role=role).inc()
        UserRoleChangedEvent.for_user(user_id, role).publish()
        logger.info(f"Assigned role '{role}' to user {user_id}")
        return Result(success=True, message=f"Role '{role}' assigned.")

    def promote_to_seller(self, user_id) -> Result:
        """Grant the seller role after KYC approval."""
        if not User.objects.filter(pk=user_id).exists():
            return Result(success=False, error="Seller user not found.", error_code=ErrorCodes.NOT_FOUND)
        return self.set_role(user_id, ROLE_SELLER)
