from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver
from .models import Order
from .tasks import send_order_shipped_email_task


@receiver(post_save, sender=Order)
def order_post_save(sender, instance, created, **kwargs):
    if not created and instance._previous_status != instance.order_status:
        if instance.order_status == 'shipped' and not instance.shipping_email_sent:
            order_id = instance.id
            transaction.on_commit(lambda: send_order_shipped_email_task.delay(order_id))
    instance._previous_status = instance.order_status
