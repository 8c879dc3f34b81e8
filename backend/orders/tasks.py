import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from orders.emails import send_abandoned_checkout_emails, send_order_emails, send_shipping_confirmation
from orders.models import Order

logger = logging.getLogger(__name__)


@shared_task
def send_order_emails_task(order_id):
    try:
        order = Order.objects.get(id=order_id)
    except Order.DoesNotExist:
        return
    send_order_emails(order)


@shared_task
def send_order_shipped_email_task(order_id):
    try:
        order = Order.objects.get(id=order_id)
    except Order.DoesNotExist:
        return
    if order.shipping_email_sent:
        return
    if send_shipping_confirmation(order):
        Order.objects.filter(id=order.id).update(shipping_email_sent=True)


@shared_task
def notify_abandoned_checkouts():
    cutoff = timezone.now() - timedelta(minutes=settings.ABANDONED_CHECKOUT_AFTER_MINUTES)
    abandoned = Order.objects.filter(
        payment_status='pending',
        abandoned_notified=False,
        created_at__lt=cutoff,
    ).exclude(source='upsell')

    notified = 0
    for order in abandoned:
        customer_success, _ = send_abandoned_checkout_emails(order)
        # the reminder is what must not repeat
        if customer_success:
            Order.objects.filter(id=order.id).update(abandoned_notified=True)
            notified += 1

    if notified:
        logger.info(f"🛒 Sent {notified} abandoned checkout reminder(s)")
    return notified
