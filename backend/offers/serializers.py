from rest_framework import serializers

from .models import DiscountCode, OrderBump, UpsellProduct


class DiscountValidateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class DiscountCodeSerializer(serializers.ModelSerializer):
    class Meta:
        model = DiscountCode
        fields = ('code', 'type', 'value')


class OrderBumpSerializer(serializers.ModelSerializer):
    price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    cart_item_id = serializers.CharField(read_only=True)
    in_cart = serializers.SerializerMethodField()

    class Meta:
        model = OrderBump
        fields = ('id', 'title', 'description', 'original_price', 'discounted_price', 'price',
                  'image_url', 'min_cart_value', 'cart_item_id', 'in_cart')

    def get_in_cart(self, obj):
        return obj.cart_item_id in self.context.get('cart_item_ids', ())


class UpsellProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = UpsellProduct
        fields = ('id', 'name', 'kind', 'price', 'description', 'image_url')
