"""
Result objects for the authentication service layer.

Using dataclasses to return structured results from service methods
instead of mixed tuples or dicts.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class LoginResult:
    """Result of login attempt."""

    success: bool
    user: Optional[Any] = None  # CustomUser instance
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    message: Optional[str] = None


@dataclass
class RegisterResult:
    """Result of user registration attempt."""

    success: bool
    user: Optional[Any] = None  # CustomUser instance
    error: Optional[str] = None
    error_code: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    message: Optional[str] = None


@dataclass
class Result:
    """Generic result for simple operations."""

    success: bool
    message: str = ""
    data: Optional[Dict[str, Any]] = field(default_factory=dict)
    error: Optional[str] = None
    error_code: Optional[str] = None
    errors: List[str] = field(default_factory=list)
