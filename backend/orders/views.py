# orders/views.py

import json
import logging
from decimal import Decimal
from importlib import import_module

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.http import HttpResponse
from django.utils import timezone
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from cart.models import Cart
from cart.session import attach_cart_cookie, get_cart, storage_for
from cart.state import CartState
from cart.storage import CartStorage, DatabaseBackend, SessionBackend
from customers.models import Customer
from offers.models import DiscountCode, DiscountError
from storefront.ratelimit import client_ip, rate_limiter

from .emails import send_order_emails, send_payment_failed_emails
from .models import Order
from .paystack import build_inline_config, from_kobo, verify_signature
from .serializers import CheckoutSerializer, OrderStatusSerializer

logger = logging.getLogger(__name__)


class CheckoutView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        cart = get_cart(request)
        storage = storage_for(request, cart)
        state = CartState.from_storage(storage)
        if not state.items:
            return Response({"detail": "Cart is empty."}, status=status.HTTP_400_BAD_REQUEST)

        subtotal = state.total
        discount = None
        discount_amount = Decimal('0.00')
        if data.get('discount_code'):
            try:
                discount = DiscountCode.lookup(data['discount_code'])
            except DiscountError as e:
                return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)
            discount_amount = discount.discount_amount(subtotal)

        info = {k: v for k, v in data.items() if k != 'discount_code'}
        customer = Customer.from_checkout(info)

        if request.session.session_key is None:
            request.session.save()

        order = Order(
            customer=customer,
            customer_name=data['name'],
            customer_email=data['email'],
            customer_phone=data['phone'],
            delivery_address=data['address'],
            delivery_city=data['city'],
            delivery_state=data.get('state', ''),
            cart_items=[item.to_dict() for item in state.items],
            subtotal=subtotal,
            discount_code=discount,
            discount_amount=discount_amount,
            cart_session_id=cart.session_id,
            checkout_session_key=request.session.session_key,
        )
        order.total_amount = order.calculate_total()
        order.save()

        storage.save_customer_info(info)
        storage.remember_payment_reference(order.payment_reference)
        logger.info(f"🛒 Order {order.payment_reference} created for {order.customer_email} (₦{order.total_amount})")

        response = Response({
            "order_reference": order.payment_reference,
            "subtotal": str(order.subtotal),
            "discount_amount": str(order.discount_amount),
            "total_amount": str(order.total_amount),
            "paystack": build_inline_config(order),
        }, status=status.HTTP_201_CREATED)
        return attach_cart_cookie(response, cart)


def _clear_stored_cart(order, cart_session_id):
    """Empty the paid cart in the shopper's session and in the cart cookie's rows."""
    backends = []
    session = None
    if order.checkout_session_key:
        SessionStore = import_module(settings.SESSION_ENGINE).SessionStore
        if SessionStore().exists(order.checkout_session_key):
            session = SessionStore(session_key=order.checkout_session_key)
            backends.append(SessionBackend(session))
    cart = Cart.objects.filter(session_id=cart_session_id).first() if cart_session_id else None
    if cart is not None:
        backends.append(DatabaseBackend(cart))

    if not backends:
        logger.warning(f"⚠️ No stored cart left to clear for order {order.payment_reference}")
        return
    CartState(CartStorage(backends)).clear()
    if session is not None:
        session.save()
    logger.info(f"✅ Cart cleared for order {order.payment_reference}")


def _metadata(data):
    metadata = data.get('metadata') or {}
    if isinstance(metadata, str):
        try:
            metadata = json.loads(metadata)
        except ValueError:
            metadata = {}
    return metadata if isinstance(metadata, dict) else {}


def _order_from_charge(data, metadata):
    """Record a charge that reached the webhook without a checkout order."""
    cart_items = metadata.get('cart_items') or []
    if isinstance(cart_items, str):
        try:
            cart_items = json.loads(cart_items)
        except ValueError:
            cart_items = []
    customer = data.get('customer') or {}
    amount = from_kobo(data.get('amount') or 0)
    return Order.objects.create(
        payment_reference=data['reference'],
        customer_name=metadata.get('customer_name') or '',
        customer_email=customer.get('email') or '',
        customer_phone=metadata.get('customer_phone') or '',
        delivery_address=metadata.get('delivery_address') or '',
        delivery_city=metadata.get('delivery_city') or '',
        delivery_state=metadata.get('delivery_state') or '',
        cart_items=cart_items if isinstance(cart_items, list) else [],
        subtotal=amount,
        total_amount=amount,
        cart_session_id=metadata.get('cart_session_id') or '',
        source='webhook',
    )


def handle_charge_success(data):
    metadata = _metadata(data)
    reference = data.get('reference')

    with transaction.atomic():
        order = Order.objects.select_for_update().filter(payment_reference=reference).first()
        if order is None:
            order = _order_from_charge(data, metadata)
            logger.info(f"📦 Order {reference} created from webhook")

        newly_paid = order.payment_status != 'paid'
        if newly_paid:
            order.payment_status = 'paid'
            order.order_status = 'confirmed'
            order.paid_at = timezone.now()
            order.save(update_fields=['payment_status', 'order_status', 'paid_at', 'updated_at'])
            if order.discount_code_id:
                order.discount_code.redeem()

    # upsell orders are paid outside the cart
    if newly_paid and order.source != 'upsell':
        _clear_stored_cart(order, metadata.get('cart_session_id') or order.cart_session_id)

    send_order_emails(order)
    return order


def handle_charge_failed(data):
    order = Order.objects.filter(payment_reference=data.get('reference')).first()
    if order is None:
        return None
    if order.payment_status != 'paid':
        order.payment_status = 'failed'
        order.save(update_fields=['payment_status', 'updated_at'])
        send_payment_failed_emails(order)
    return order


class PaystackWebhookView(APIView):
    """Handle Paystack webhook events"""
    permission_classes = [AllowAny]
    authentication_classes = []

    @method_decorator(csrf_exempt)
    def dispatch(self, *args, **kwargs):
        return super().dispatch(*args, **kwargs)

    def post(self, request):
        limiter = rate_limiter(settings.PAYSTACK_WEBHOOK_RATE_LIMIT, prefix="paystack-webhook")
        if not limiter.allow(client_ip(request)):
            logger.warning(f"⚠️ Webhook rate limit exceeded for {client_ip(request)}")
            return HttpResponse(status=429)

        payload = request.body
        if not verify_signature(payload, request.META.get('HTTP_X_PAYSTACK_SIGNATURE', '')):
            logger.warning("⚠️ Rejected webhook with invalid signature")
            return HttpResponse(status=401)

        try:
            event = json.loads(payload)
        except ValueError:
            return HttpResponse(status=400)
        if not isinstance(event, dict) or not isinstance(event.get('data'), dict):
            return HttpResponse(status=400)

        data = event['data']
        if not data.get('reference'):
            return HttpResponse(status=400)

        if event.get('event') == 'charge.success':
            order = handle_charge_success(data)
            logger.info(f"✅ Payment confirmed for order {order.payment_reference}")
        elif event.get('event') == 'charge.failed':
            if handle_charge_failed(data) is None:
                return HttpResponse(status=404)
        else:
            logger.info(f"Ignoring webhook event {event.get('event')}")

        return HttpResponse(status=200)


class OrderStatusView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, reference):
        try:
            order = Order.objects.get(payment_reference=reference)
        except Order.DoesNotExist:
            return Response({"detail": "Order not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(OrderStatusSerializer(order).data)


class DashboardView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        orders = Order.objects.aggregate(
            total=Count('id'),
            paid=Count('id', filter=Q(payment_status='paid')),
            pending=Count('id', filter=Q(payment_status='pending')),
            failed=Count('id', filter=Q(payment_status='failed')),
            revenue=Sum('total_amount', filter=Q(payment_status='paid')),
        )
        return Response({
            "orders": {k: orders[k] for k in ('total', 'paid', 'pending', 'failed')},
            "revenue": str((orders['revenue'] or Decimal('0')).quantize(Decimal('0.01'))),
            "customers": Customer.objects.count(),
            "active_discount_codes": DiscountCode.objects.filter(is_active=True).count(),
            "awaiting_shipment": Order.objects.filter(
                payment_status='paid', order_status__in=['confirmed', 'processing']
            ).count(),
        })
