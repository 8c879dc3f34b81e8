# orders/emails.py

from django.utils import timezone
import logging
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.conf import settings

logger = logging.getLogger(__name__)


def _context(order):
    return {
        'order': order,
        'frontend_url': settings.FRONTEND_URL,
        'current_year': timezone.now().year,
    }


def _send(subject, template, context, to):
    html_content = render_to_string(f'emails/{template}.html', context)
    text_content = render_to_string(f'emails/{template}.txt', context)

    email = EmailMultiAlternatives(
        subject=subject,
        body=text_content,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=to
    )
    email.attach_alternative(html_content, "text/html")
    email.send(fail_silently=False)


def send_order_emails(order):
    """
    Send order confirmation emails to both customer and staff
    Only sends once - prevents duplicates

    Returns:
        tuple: (customer_success, staff_success)
    """
    if order.email_sent:
        logger.info(f"⏭️  Emails already sent for order {order.payment_reference}, skipping")
        return (True, True)

    customer_success = send_customer_confirmation(order)
    staff_success = send_staff_notification(order)

    if customer_success and staff_success:
        order.email_sent = True
        order.email_sent_at = timezone.now()
        order.save(update_fields=['email_sent', 'email_sent_at'])
        logger.info(f"✅ Emails sent and marked for order {order.payment_reference}")

    return (customer_success, staff_success)


def send_customer_confirmation(order):
    """Send order confirmation email to customer"""
    try:
        _send(
            f'Order Confirmation - {order.payment_reference}',
            'customer_order_confirmation',
            _context(order),
            [order.get_recipient_email()],
        )
        logger.info(f"✅ Customer email sent to {order.customer_email} for order {order.payment_reference}")
        return True
    except Exception as e:
        logger.error(f"❌ Failed to send customer email for {order.payment_reference}: {str(e)}")
        return False


def send_staff_notification(order):
    """Send order notification email to staff"""
    try:
        _send(
            f'🔔 New Order {order.payment_reference} - ₦{order.total_amount}',
            'staff_order_notification',
            _context(order),
            [settings.STAFF_ORDER_EMAIL],
        )
        logger.info(f"✅ Staff notification sent to {settings.STAFF_ORDER_EMAIL} for order {order.payment_reference}")
        return True
    except Exception as e:
        logger.error(f"❌ Failed to send staff notification for {order.payment_reference}: {str(e)}")
        return False


def send_payment_failed_emails(order):
    """Send payment failed notifications to customer and staff"""
    customer_success = False
    staff_success = False

    try:
        message_customer = f"""
Dear {order.customer_name or 'Customer'},

We encountered an issue processing your payment for order {order.payment_reference}.

Order Details:
- Order Number: {order.payment_reference}
- Total Amount: ₦{order.total_amount}

Please try placing your order again or reply to this email and our team will help.

Best regards,
The Tenera Wellness Team
        """

        EmailMultiAlternatives(
            subject=f'Payment Issue - Order {order.payment_reference}',
            body=message_customer,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[order.get_recipient_email()]
        ).send(fail_silently=False)
        customer_success = True
        logger.info(f"✅ Payment failed email sent to customer {order.customer_email}")

    except Exception as e:
        logger.error(f"❌ Failed to send payment failed email to customer: {str(e)}")

    try:
        message_staff = f"""
PAYMENT FAILED ALERT

Order: {order.payment_reference}
Customer: {order.customer_name} <{order.customer_email}>
Phone: {order.customer_phone or 'N/A'}
Amount: ₦{order.total_amount}

Action: Follow up with customer.
        """

        EmailMultiAlternatives(
            subject=f'⚠️ Payment Failed - Order {order.payment_reference}',
            body=message_staff,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[settings.STAFF_ORDER_EMAIL]
        ).send(fail_silently=False)
        staff_success = True
        logger.info("✅ Payment failed notification sent to staff")

    except Exception as e:
        logger.error(f"❌ Failed to send payment failed notification to staff: {str(e)}")

    return (customer_success, staff_success)


def send_shipping_confirmation(order):
    """
    Send shipping confirmation email to customer with tracking number

    Returns:
        bool: True if email sent successfully, False otherwise
    """
    if not order.tracking_number:
        logger.warning(f"⚠️ No tracking number for order {order.payment_reference}, email not sent")
        return False

    try:
        _send(
            f'Your Order Has Shipped - {order.payment_reference}',
            'shipping_confirmation',
            _context(order),
            [order.get_recipient_email()],
        )
        logger.info(f"✅ Shipping confirmation sent to {order.customer_email} for order {order.payment_reference} (Tracking: {order.tracking_number})")
        return True
    except Exception as e:
        logger.error(f"❌ Failed to send shipping confirmation for {order.payment_reference}: {str(e)}")
        return False


def send_abandoned_checkout_emails(order):
    """Remind the customer about an unpaid checkout and let staff know"""
    customer_success = False
    staff_success = False

    try:
        _send(
            'You left something in your cart!',
            'abandoned_checkout_reminder',
            _context(order),
            [order.get_recipient_email()],
        )
        customer_success = True
        logger.info(f"✅ Checkout reminder sent to {order.customer_email} for order {order.payment_reference}")
    except Exception as e:
        logger.error(f"❌ Failed to send checkout reminder for {order.payment_reference}: {str(e)}")

    try:
        lines = "\n".join(f"- {line['name']} x{line['quantity']}" for line in order.line_items)
        message_staff = f"""
ABANDONED CHECKOUT

Order: {order.payment_reference}
Customer: {order.customer_name} <{order.customer_email}>
Phone: {order.customer_phone or 'N/A'}
Amount: ₦{order.total_amount}
Started: {order.created_at:%Y-%m-%d %H:%M}

{lines}
        """

        EmailMultiAlternatives(
            subject=f'🛒 Abandoned Checkout - Order {order.payment_reference}',
            body=message_staff,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[settings.STAFF_ORDER_EMAIL]
        ).send(fail_silently=False)
        staff_success = True
        logger.info(f"✅ Abandoned checkout notification sent to staff for {order.payment_reference}")
    except Exception as e:
        logger.error(f"❌ Failed to send abandoned checkout notification to staff: {str(e)}")

    return (customer_success, staff_success)
