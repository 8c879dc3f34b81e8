from rest_framework import serializers

from .models import Category, Product


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ["id", "name", "slug"]


class ProductSerializer(serializers.ModelSerializer):
    category = serializers.StringRelatedField()
    category_slug = serializers.SlugRelatedField(source="category", read_only=True, slug_field="slug")
    in_stock = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id", "sku", "name", "slug", "description", "price",
            "category", "category_slug", "image_url", "stock", "in_stock",
            "is_active", "created_at", "updated_at",
        ]

    def get_in_stock(self, obj):
        return obj.stock > 0


class ProductListSerializer(serializers.ModelSerializer):
    category = serializers.StringRelatedField()

    class Meta:
        model = Product
        fields = ["id", "sku", "name", "slug", "price", "category", "image_url", "is_active"]
