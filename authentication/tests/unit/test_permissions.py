from unittest.mock import Mock

import pytest
from django.core.exceptions import PermissionDenied

from authentication.permissions import AdminRequired, BuyerRequired, SellerRequired
from authentication.tests.factories import AdminFactory, SellerFactory, UserFactory
from utils.rbac import ROLE_ADMIN, ROLE_SELLER, require_role


def _request(user):
    request = Mock()
    request.user = user
    return request


@pytest.mark.unit
@pytest.mark.django_db
class TestRolePermissions:
    def test_buyer_allowed_on_buyer_endpoints(self):
        assert BuyerRequired().has_permission(_request(UserFactory()), None)

    def test_buyer_denied_on_seller_endpoints(self):
        assert not SellerRequired().has_permission(_request(UserFactory()), None)

    def test_seller_can_shop(self):
        assert BuyerRequired().has_permission(_request(SellerFactory()), None)

    def test_admin_passes_seller_and_admin_checks(self):
        admin = AdminFactory()
        assert SellerRequired().has_permission(_request(admin), None)
        assert AdminRequired().has_permission(_request(admin), None)

    def test_role_rechecked_against_database(self):
        user = SellerFactory()
        type(user).objects.filter(pk=user.pk).update(role="buyer")

        # In-memory instance still says seller; the persisted role wins
        assert user.role == "seller"
        assert not SellerRequired().has_permission(_request(user), None)

    def test_anonymous_denied(self):
        anonymous = Mock(is_authenticated=False)
        assert not BuyerRequired().has_permission(_request(anonymous), None)


@pytest.mark.unit
@pytest.mark.django_db
class TestRequireRole:
    def test_passes_for_matching_role(self):
        require_role(SellerFactory(), [ROLE_SELLER])

    def test_admin_satisfies_seller_requirement(self):
        require_role(AdminFactory(), [ROLE_SELLER])

    def test_buyer_is_denied(self):
        with pytest.raises(PermissionDenied):
            require_role(UserFactory(), [ROLE_SELLER, ROLE_ADMIN])
