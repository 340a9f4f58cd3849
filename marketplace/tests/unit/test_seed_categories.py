from io import StringIO

import pytest
from django.core.management import call_command

from marketplace.models import Category


@pytest.mark.unit
@pytest.mark.django_db
class TestSeedCategories:
    def test_seeds_two_level_tree(self):
        call_command("seed_categories", stdout=StringIO())

        furniture = Category.objects.get(slug="home-living-furniture")
        assert furniture.parent.name == "Home & Living"
        assert Category.objects.filter(parent__isnull=True).count() == 4

    def test_is_idempotent(self):
        call_command("seed_categories", stdout=StringIO())
        total = Category.objects.count()

        out = StringIO()
        call_command("seed_categories", stdout=out)

        assert Category.objects.count() == total
        assert "Created 0 categories" in out.getvalue()

    def test_dry_run_writes_nothing(self):
        out = StringIO()
        call_command("seed_categories", "--dry-run", stdout=out)

        assert Category.objects.count() == 0
        assert "Fashion: Clothing, Shoes, Jewelry, Bags" in out.getvalue()
