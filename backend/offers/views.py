import logging

from rest_framework import generics, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from cart.session import get_cart, storage_for
from cart.state import ORDER_BUMP_PREFIX, CartState
from cart.views import cart_response
from orders.models import Order
from orders.paystack import build_inline_config

from .models import DiscountCode, DiscountError, OrderBump, UpsellProduct
from .serializers import (
    DiscountCodeSerializer,
    DiscountValidateSerializer,
    OrderBumpSerializer,
    UpsellProductSerializer,
)

logger = logging.getLogger(__name__)


class DiscountValidateView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = DiscountValidateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        subtotal = serializer.validated_data['subtotal']

        try:
            discount = DiscountCode.lookup(serializer.validated_data['code'])
        except DiscountError as e:
            return Response({"valid": False, "detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        data = DiscountCodeSerializer(discount).data
        data.update({
            "valid": True,
            "discount_amount": str(discount.discount_amount(subtotal)),
            "total": str(discount.apply(subtotal)),
        })
        return Response(data)


class OrderBumpListView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        cart = get_cart(request)
        state = CartState.from_storage(storage_for(request, cart))
        bumps = OrderBump.objects.applicable_to(state.product_subtotal)
        serializer = OrderBumpSerializer(
            bumps, many=True, context={'cart_item_ids': {item.id for item in state.items}}
        )
        return Response({
            "cart_product_subtotal": str(state.product_subtotal),
            "order_bumps": serializer.data,
        })


class OrderBumpDetailView(APIView):
    permission_classes = [AllowAny]

    def post(self, request, pk):
        cart = get_cart(request)
        state = CartState.from_storage(storage_for(request, cart))
        bump = OrderBump.objects.applicable_to(state.product_subtotal).filter(pk=pk).first()
        if bump is None:
            return Response({"detail": "Order bump not available for this cart."},
                            status=status.HTTP_400_BAD_REQUEST)

        # A bump is a single line; adding it twice is a no-op
        if state.find(bump.cart_item_id) is None:
            state.add(bump.to_cart_item())
            logger.info(f"Order bump {bump.pk} added to cart {cart.session_id}")
        return cart_response(cart, state)

    def delete(self, request, pk):
        cart = get_cart(request)
        state = CartState.from_storage(storage_for(request, cart))
        state.remove(f"{ORDER_BUMP_PREFIX}{pk}")
        return cart_response(cart, state)


class UpsellListView(generics.ListAPIView):
    permission_classes = [AllowAny]
    serializer_class = UpsellProductSerializer
    pagination_class = None

    def get_queryset(self):
        queryset = UpsellProduct.objects.filter(is_active=True)
        kind = self.request.query_params.get('kind')
        if kind:
            queryset = queryset.filter(kind=kind)
        return queryset


class UpsellPayView(APIView):
    permission_classes = [AllowAny]

    def post(self, request, pk):
        try:
            offer = UpsellProduct.objects.get(pk=pk, is_active=True)
        except UpsellProduct.DoesNotExist:
            return Response({"detail": "Offer not found."}, status=status.HTTP_404_NOT_FOUND)

        cart = get_cart(request)
        storage = storage_for(request, cart)
        info = storage.load_customer_info()
        if not info or not info.get('email'):
            return Response({"detail": "Customer information not found. Please complete checkout first."},
                            status=status.HTTP_400_BAD_REQUEST)

        item = offer.to_cart_item()
        order = Order.objects.create(
            customer_name=info.get('name', ''),
            customer_email=info['email'],
            customer_phone=info.get('phone') or '',
            delivery_address=info.get('address') or '',
            delivery_city=info.get('city') or '',
            delivery_state=info.get('state') or '',
            cart_items=[item.to_dict()],
            subtotal=offer.price,
            total_amount=offer.price,
            source='upsell',
        )
        storage.remember_payment_reference(order.payment_reference)
        logger.info(f"Upsell order {order.payment_reference} created for {order.customer_email}")

        return Response({
            "order_reference": order.payment_reference,
            "total_amount": str(order.total_amount),
            "paystack": build_inline_config(order),
        }, status=status.HTTP_201_CREATED)
