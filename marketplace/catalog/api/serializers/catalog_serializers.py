from rest_framework import serializers

from marketplace.catalog.domain.models import Category, Product


class CategorySerializer(serializers.ModelSerializer):
    parent = serializers.SlugRelatedField(slug_field="slug", read_only=True)

    class Meta:
        model = Category
        fields = ("id", "name", "slug", "parent", "is_active")
        read_only_fields = fields


class ProductListSerializer(serializers.ModelSerializer):
    """Product card: just what a listing needs."""

    store_name = serializers.CharField(source="store.name", read_only=True)
    category = serializers.SlugRelatedField(slug_field="slug", read_only=True)
    image_url = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ("id", "title", "price", "stock", "status", "store", "store_name", "category", "image_url")
        read_only_fields = fields

    def get_image_url(self, obj):
        return obj.images[0] if obj.images else None


class ProductDetailSerializer(serializers.ModelSerializer):
    store_name = serializers.CharField(source="store.name", read_only=True)
    store_slug = serializers.CharField(source="store.slug", read_only=True)
    category = CategorySerializer(read_only=True)

    class Meta:
        model = Product
        fields = (
            "id",
            "title",
            "description",
            "price",
            "stock",
            "status",
            "images",
            "store",
            "store_name",
            "store_slug",
            "category",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class ProductRequestSerializer(serializers.Serializer):
    # Ranges are checked by CatalogService so all messages come back together
    title = serializers.CharField()
    description = serializers.CharField(required=False, allow_blank=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    stock = serializers.IntegerField()
    category_id = serializers.UUIDField(required=False, allow_null=True)
    images = serializers.ListField(child=serializers.CharField(), required=False)


class ProductStatusRequestSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Product.STATUS_CHOICES)
