"""
Business logic services for authentication.
"""

from .auth_service import AuthService
from .results import LoginResult, RegisterResult, Result


__all__ = ["AuthService", "LoginResult", "RegisterResult", "Result"]
