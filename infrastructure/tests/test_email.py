"""
Email Infrastructure Tests
===========================

Unit tests for the email service abstraction layer.
"""

from unittest.mock import patch

from django.core import mail
from django.test import TestCase, override_settings

from infrastructure.email import (
    EmailException,
    EmailFactory,
    EmailMessage,
    EmailServiceInterface,
    MockEmailService,
    SMTPEmailService,
)


class EmailInterfaceTest(TestCase):
    def test_interface_is_abstract(self):
        with self.assertRaises(TypeError):
            EmailServiceInterface()


class MockEmailServiceTest(TestCase):
    """Test MockEmailService implementation."""

    def setUp(self):
        self.email_service = MockEmailService()

    def test_send_email(self):
        message = EmailMessage(subject="Order confirmed", body="Thanks!", to=["buyer@example.com"])

        self.assertTrue(self.email_service.send(message))
        self.assertEqual(self.email_service.get_sent_count(), 1)
        self.assertEqual(self.email_service.get_last_message(), message)

    def test_send_bulk_emails(self):
        messages = [EmailMessage(subject=f"Notice {i}", body="Body", to=[f"user{i}@example.com"]) for i in range(4)]

        self.assertEqual(self.email_service.send_bulk(messages), 4)
        self.assertEqual(self.email_service.get_sent_count(), 4)

    def test_messages_tagged(self):
        self.email_service.send(EmailMessage(subject="A", body="", to=["a@example.com"], tags=["order_shipped"]))
        self.email_service.send(EmailMessage(subject="B", body="", to=["b@example.com"], tags=["kyc_approved"]))

        [message] = self.email_service.messages_tagged("kyc_approved")
        self.assertEqual(message.subject, "B")

    def test_clear_sent_messages(self):
        self.email_service.send(EmailMessage(subject="A", body="", to=["a@example.com"]))
        self.email_service.clear_sent_messages()

        self.assertEqual(self.email_service.get_sent_count(), 0)
        self.assertIsNone(self.email_service.get_last_message())


@override_settings(
    EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend",
    DEFAULT_FROM_EMAIL="noreply@mercato.test",
)
class SMTPEmailServiceTest(TestCase):
    """Test SMTPEmailService against Django's locmem backend."""

    def setUp(self):
        self.email_service = SMTPEmailService()

    def test_send_plain_email(self):
        message = EmailMessage(subject="Your order shipped", body="Tracking: 1Z999", to=["buyer@example.com"])

        self.assertTrue(self.email_service.send(message))
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, "Your order shipped")
        self.assertEqual(mail.outbox[0].from_email, "noreply@mercato.test")

    def test_send_html_with_attachment(self):
        message = EmailMessage(
            subject="Commission invoice",
            body="Invoice attached",
            to=["seller@example.com"],
            html_body="<p>Invoice attached</p>",
            attachments=[("INV-2026-00001.pdf", b"%PDF-1.4", "application/pdf")],
        )

        self.assertTrue(self.email_service.send(message))
        sent = mail.outbox[0]
        self.assertEqual(sent.alternatives[0][1], "text/html")
        self.assertEqual(sent.attachments[0][0], "INV-2026-00001.pdf")

    def test_send_failure_raises(self):
        message = EmailMessage(subject="Hello", body="Body", to=["buyer@example.com"])

        with patch("infrastructure.email.smtp_service.EmailMultiAlternatives.send", side_effect=OSError("refused")):
            with self.assertRaises(EmailException):
                self.email_service.send(message)


class EmailFactoryTest(TestCase):
    def test_default_is_mock_in_tests(self):
        self.assertIsInstance(EmailFactory.create(), MockEmailService)

    def test_create_smtp_explicit(self):
        self.assertIsInstance(EmailFactory.create("smtp"), SMTPEmailService)

    def test_create_invalid_backend(self):
        with self.assertRaises(ValueError):
            EmailFactory.create("pigeon")
