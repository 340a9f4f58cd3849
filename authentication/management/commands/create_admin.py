"""
Create a platform administrator.

Usage:
    python manage.py create_admin --email "ops@example.com" --name "Ops Team"
    python manage.py create_admin --email "ops@example.com" --password "..." --superuser
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from utils.rbac import ROLE_ADMIN


class Command(BaseCommand):
    help = "Create a user with the admin role (or promote an existing one)"

    def add_arguments(self, parser):
        parser.add_argument("--email", type=str, required=True, help="Login e-mail of the admin")
        parser.add_argument("--name", type=str, default="", help="Full name (split into first and last name)")
        parser.add_argument("--password", type=str, default=None, help="Password (prompted for when omitted)")
        parser.add_argument("--superuser", action="store_true", help="Also grant Django admin site access")

    def split_name(self, full_name):
        parts = full_name.strip().split()
        if not parts:
            return "", ""
        return parts[0], " ".join(parts[1:])

    def handle(self, *args, **options):
        User = get_user_model()
        email = options["email"].strip().lower()
        first_name, last_name = self.split_name(options["name"])

        existing = User.objects.filter(email__iexact=email).first()
        if existing:
            existing.role = ROLE_ADMIN
            if options["superuser"]:
                existing.is_staff = True
                existing.is_superuser = True
            existing.save()
            self.stdout.write(self.style.SUCCESS(f"Promoted existing user {email} to admin"))
            return

        password = options["password"]
        if not password:
            import getpass

            password = getpass.getpass("Password: ")

        try:
            validate_password(password)
        except ValidationError as e:
            raise CommandError("; ".join(e.messages))

        with transaction.atomic():
            User.objects.create_user(
                username=email,
                email=email,
                password=password,
                first_name=first_name,
                last_name=last_name,
                role=ROLE_ADMIN,
                is_email_verified=True,
                is_staff=options["superuser"],
                is_superuser=options["superuser"],
            )

        self.stdout.write(self.style.SUCCESS(f"Created admin {email}"))
