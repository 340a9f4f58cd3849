import uuid
from decimal import Decimal

import factory
from django.utils.text import slugify

from authentication.tests.factories import UserFactory
from marketplace.cart.domain.models import Cart, CartItem, PromoCode
from marketplace.catalog.domain.models import Category, Product
from marketplace.ordering.domain.models import (
    Order,
    OrderItem,
    ReturnRequest,
    SellerSubOrder,
    SellerSubOrderItem,
)
from sellers.tests.factories import StoreFactory


class CategoryFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Category

    name = factory.Sequence(lambda n: f"Category {n}")
    slug = factory.LazyAttribute(lambda o: slugify(o.name))
    is_active = True


class ProductFactory(factory.django.DjangoModelFactory):
    """An active product with stock."""

    class Meta:
        model = Product

    store = factory.SubFactory(StoreFactory)
    category = factory.SubFactory(CategoryFactory)
    title = factory.Sequence(lambda n: f"Product {n}")
    description = factory.Faker("sentence", nb_words=12)
    price = Decimal("25.00")
    stock = 10
    status = Product.STATUS_ACTIVE
    images = factory.LazyFunction(lambda: ["/uploads/products/cover.jpg"])


class CartFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Cart

    buyer = factory.SubFactory(UserFactory)


class CartItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = CartItem

    cart = factory.SubFactory(CartFactory)
    product = factory.SubFactory(ProductFactory)
    quantity = 1
    store_id = factory.LazyAttribute(lambda o: o.product.store_id)
    store_name = factory.LazyAttribute(lambda o: o.product.store.name)
    product_title = factory.LazyAttribute(lambda o: o.product.title)
    product_price = factory.LazyAttribute(lambda o: o.product.price)
    product_image_url = "/uploads/products/cover.jpg"


class PromoCodeFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = PromoCode

    code = factory.Sequence(lambda n: f"SAVE{n}")
    description = "Ten percent off"
    discount_type = PromoCode.DISCOUNT_PERCENTAGE
    discount_value = Decimal("10.00")
    scope = PromoCode.SCOPE_PLATFORM


class OrderFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Order

    buyer = factory.SubFactory(UserFactory)
    status = Order.STATUS_NEW
    payment_transaction_id = factory.LazyFunction(uuid.uuid4)
    payment_method_name = "credit_card"
    items_subtotal = Decimal("50.00")
    shipping_total = Decimal("5.00")
    discount_amount = Decimal("0.00")
    total_amount = Decimal("55.00")
    buyer_email = factory.LazyAttribute(lambda o: o.buyer.email)
    delivery_full_name = factory.Faker("name")
    delivery_address_line1 = "1 Main Street"
    delivery_city = "Springfield"
    delivery_postal_code = "12345"
    delivery_country = "US"


class OrderItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = OrderItem

    order = factory.SubFactory(OrderFactory)
    product = factory.SubFactory(ProductFactory)
    store_id = factory.LazyAttribute(lambda o: o.product.store_id)
    store_name = factory.LazyAttribute(lambda o: o.product.store.name)
    product_title = factory.LazyAttribute(lambda o: o.product.title)
    unit_price = Decimal("25.00")
    quantity = 2


class SellerSubOrderFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = SellerSubOrder

    order = factory.SubFactory(OrderFactory)
    store = factory.SubFactory(StoreFactory)
    store_name = factory.LazyAttribute(lambda o: o.store.name)
    sub_order_number = factory.Sequence(lambda n: f"ORD-TEST{n:04d}-S1")
    status = SellerSubOrder.STATUS_PAID
    items_subtotal = Decimal("50.00")
    shipping_cost = Decimal("5.00")
    total_amount = Decimal("55.00")


class SellerSubOrderItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = SellerSubOrderItem

    sub_order = factory.SubFactory(SellerSubOrderFactory)
    product = factory.SubFactory(ProductFactory, store=factory.SelfAttribute("..sub_order.store"))
    product_title = factory.LazyAttribute(lambda o: o.product.title)
    unit_price = Decimal("25.00")
    quantity = 2
    status = SellerSubOrderItem.STATUS_NEW


class ReturnRequestFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = ReturnRequest

    sub_order = factory.SubFactory(SellerSubOrderFactory, status=SellerSubOrder.STATUS_DELIVERED)
    buyer = factory.LazyAttribute(lambda o: o.sub_order.order.buyer)
    case_type = ReturnRequest.TYPE_RETURN
    reason = "The glaze is cracked."
