"""
Email Service Interface
========================

Abstract base class for transactional e-mail (order confirmations, shipping
notices, KYC decisions, commission invoices).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass
class EmailMessage:
    """
    Represents an email message.

    Attributes:
        subject: Email subject line
        body: Plain text body
        to: Recipient addresses
        from_email: Sender address (uses DEFAULT_FROM_EMAIL if None)
        html_body: HTML alternative body
        attachments: (filename, content, mimetype) tuples
        tags: Free-form labels, used for logging and test assertions
    """

    subject: str
    body: str
    to: List[str]
    from_email: Optional[str] = None
    html_body: Optional[str] = None
    attachments: List[Tuple[str, bytes, str]] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)


class EmailServiceInterface(ABC):
    """
    Abstract interface for email operations.

    Concrete implementations:
        - SMTPEmailService: Django's configured mail backend
        - MockEmailService: keeps messages in memory
    """

    @abstractmethod
    def send(self, message: EmailMessage) -> bool:
        """
        Send a single email message.

        Raises:
            EmailException: If sending fails critically
        """
        pass

    def send_bulk(self, messages: List[EmailMessage]) -> int:
        """Send several messages, returning how many were sent."""
        return sum(1 for message in messages if self.send(message))


class EmailException(Exception):
    """Base exception for email operations."""

    pass
