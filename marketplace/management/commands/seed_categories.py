import logging

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils.text import slugify

from marketplace.models import Category


logger = logging.getLogger(__name__)

DEFAULT_TREE = {
    "Home & Living": ["Furniture", "Lighting", "Kitchenware", "Textiles"],
    "Fashion": ["Clothing", "Shoes", "Jewelry", "Bags"],
    "Art & Crafts": ["Prints", "Ceramics", "Woodwork"],
    "Electronics": ["Audio", "Accessories"],
}


class Command(BaseCommand):
    help = "Seeds the two-level catalog category tree. Existing slugs are left untouched."

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="List the categories without writing them")

    def handle(self, *args, **options):
        if options["dry_run"]:
            for parent_name, children in DEFAULT_TREE.items():
                self.stdout.write(f"{parent_name}: {', '.join(children)}")
            return

        created_count = 0
        with transaction.atomic():
            for parent_name, children in DEFAULT_TREE.items():
                parent, created = Category.objects.get_or_create(
                    slug=slugify(parent_name), defaults={"name": parent_name, "is_active": True}
                )
                created_count += int(created)
                for child_name in children:
                    _, created = Category.objects.get_or_create(
                        slug=slugify(f"{parent_name} {child_name}"),
                        defaults={"name": child_name, "parent": parent, "is_active": True},
                    )
                    created_count += int(created)

        logger.info(f"Seeded {created_count} categories")
        self.stdout.write(self.style.SUCCESS(f"Category seeding complete. Created {created_count} categories."))
