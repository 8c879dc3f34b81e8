import logging
from decimal import Decimal

from django.conf import settings
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from catalog.models import Product
from storefront.ratelimit import client_ip, rate_limiter

from .messaging import CartMessageHandler, is_allowed_origin
from .models import Cart
from .reconcile import CartReconciler
from .serializers import AddCartItemSerializer, CartSerializer, CartSyncSerializer, UpdateQuantitySerializer
from .session import attach_cart_cookie, beacon_for, get_cart, storage_for
from .state import CartState
from .storage import CartStorage, DatabaseBackend, EXTERNAL_MODE_KEY

logger = logging.getLogger(__name__)


def cart_response(cart, state, status_code=status.HTTP_200_OK, **extra):
    data = dict(CartSerializer(state).data)
    data["external_checkout_mode"] = state.storage.get_flag(EXTERNAL_MODE_KEY)
    data.update(extra)
    return attach_cart_cookie(Response(data, status=status_code), cart)


class CartView(APIView):
    def get(self, request):
        cart = get_cart(request)
        state = CartState.from_storage(storage_for(request, cart))
        return cart_response(cart, state)

    def delete(self, request):
        cart = get_cart(request)
        state = CartState.from_storage(storage_for(request, cart))
        state.clear()
        return cart_response(cart, state, detail="Cart cleared.")


class CartItemsView(APIView):
    def post(self, request):
        serializer = AddCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            product = Product.objects.select_related("category").get(
                sku=serializer.validated_data["sku"], is_active=True
            )
        except Product.DoesNotExist:
            return Response({"detail": "Product not found."}, status=status.HTTP_404_NOT_FOUND)

        cart = get_cart(request)
        state = CartState.from_storage(storage_for(request, cart))
        state.add(product.to_cart_item(serializer.validated_data["quantity"]))
        return cart_response(cart, state, status_code=status.HTTP_201_CREATED)


class CartItemDetailView(APIView):
    def patch(self, request, item_id):
        serializer = UpdateQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        cart = get_cart(request)
        state = CartState.from_storage(storage_for(request, cart))
        quantity = serializer.validated_data["quantity"]
        if quantity > 0 and not state.find(item_id):
            return Response({"detail": "Cart item not found."}, status=status.HTTP_404_NOT_FOUND)
        state.update_quantity(item_id, quantity)
        return cart_response(cart, state)

    def delete(self, request, item_id):
        cart = get_cart(request)
        state = CartState.from_storage(storage_for(request, cart))
        state.remove(item_id)
        return cart_response(cart, state)


class CartInitView(APIView):
    """Runs cart reconciliation for a checkout page load."""

    def get(self, request):
        url = request.query_params.get("url")
        if not url:
            return Response({"detail": "Missing url."}, status=status.HTTP_400_BAD_REQUEST)

        cart = get_cart(request)
        state = CartState.from_storage(storage_for(request, cart))
        beacon = beacon_for(request, request.query_params.get("parent_origin"))
        result = CartReconciler(state, beacon).reconcile(
            url, embedded=request.query_params.get("embedded") in ("1", "true")
        )

        redirect = None
        if result.redirect:
            redirect = {"url": result.redirect.url, "delay": result.redirect.delay, "direct": result.redirect.direct}

        return cart_response(
            cart,
            state,
            source=result.source,
            cleaned_url=result.cleaned_url,
            customer_info=result.customer_info,
            redirect=redirect,
            messages=result.messages,
        )


class CartMessagesView(APIView):
    def get(self, request):
        beacon = beacon_for(request, request.query_params.get("parent_origin"))
        return Response({"messages": beacon.poll(), "listening": beacon.is_open()})

    def post(self, request):
        cart = get_cart(request)
        state = CartState.from_storage(storage_for(request, cart))
        outcome = CartMessageHandler(state).handle(request.data, request.META.get("HTTP_ORIGIN"))
        if outcome is None:
            # ignored messages are not errors for the sender
            return cart_response(cart, state, status_code=status.HTTP_202_ACCEPTED, accepted=False, messages=[])
        return cart_response(
            cart,
            state,
            accepted=True,
            messages=[outcome.ack],
            redirect_url=outcome.redirect_url,
        )


class CartSyncView(APIView):
    """Lets the landing page stage a cart for a visitor before checkout opens."""

    def post(self, request):
        if not rate_limiter(settings.CART_SYNC_RATE_LIMIT, prefix="cart-sync").allow(client_ip(request)):
            logger.warning(f"Cart sync rate limit exceeded for {client_ip(request)}")
            return Response({"success": False, "error": "Rate limit exceeded"}, status=status.HTTP_429_TOO_MANY_REQUESTS)

        origin = request.META.get("HTTP_ORIGIN")
        if not is_allowed_origin(origin):
            logger.warning(f"Cart sync from invalid origin {origin}")
            return Response({"success": False, "error": "Invalid origin"}, status=status.HTTP_403_FORBIDDEN)

        serializer = CartSyncSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({"success": False, "error": serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        session_id = serializer.validated_data.get("session_id") or request.COOKIES.get(settings.CART_SESSION_COOKIE)
        if session_id:
            cart, _ = Cart.objects.get_or_create(session_id=session_id)
        else:
            cart = get_cart(request)

        items = serializer.validated_data["cartItems"]
        storage = CartStorage([DatabaseBackend(cart)])
        storage.write_handoff("TENERA_CART_UPDATE", [item.to_dict() for item in items])
        if serializer.validated_data.get("customerInfo"):
            storage.save_customer_info(dict(serializer.validated_data["customerInfo"]))

        total = sum((item.line_total for item in items), Decimal("0"))
        response = Response({
            "success": True,
            "session_id": cart.session_id,
            "syncedItems": [item.to_dict() for item in items],
            "totalAmount": str(total),
            "currency": settings.PAYSTACK_CURRENCY,
        }, status=status.HTTP_200_OK)
        return attach_cart_cookie(response, cart)
