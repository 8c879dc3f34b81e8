import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils import timezone
from django.utils.html import strip_tags

from .models import EmailCampaign, ScheduledEmail
from .tracking import with_open_pixel

logger = logging.getLogger(__name__)


def schedule_campaign(campaign, recipients, send_at=None):
    """Queue one tracked copy of ``campaign`` per recipient."""
    send_at = send_at or timezone.now()
    emails = ScheduledEmail.objects.bulk_create([
        ScheduledEmail(
            campaign=campaign,
            to_email=recipient,
            subject=campaign.subject,
            html=with_open_pixel(campaign.html, campaign.pk, recipient),
            send_at=send_at,
        )
        for recipient in recipients
    ])
    campaign.status = 'scheduled'
    campaign.save(update_fields=['status'])
    logger.info(f"📅 Campaign {campaign.pk} scheduled for {len(emails)} recipient(s)")
    return emails


@shared_task
def send_due_scheduled_emails():
    due = ScheduledEmail.objects.filter(status='pending', send_at__lte=timezone.now())
    results = []

    for scheduled in due:
        try:
            email = EmailMultiAlternatives(
                subject=scheduled.subject,
                body=strip_tags(scheduled.html),
                from_email=settings.DEFAULT_FROM_EMAIL,
                to=[scheduled.to_email]
            )
            email.attach_alternative(scheduled.html, "text/html")
            email.send(fail_silently=False)
            scheduled.status = 'sent'
            scheduled.sent_at = timezone.now()
            scheduled.error = None
        except Exception as e:
            logger.error(f"❌ Failed to send scheduled email {scheduled.pk} to {scheduled.to_email}: {str(e)}")
            scheduled.status = 'error'
            scheduled.error = str(e) or 'Exception'
        scheduled.save(update_fields=['status', 'sent_at', 'error', 'updated_at'])
        results.append({"id": scheduled.pk, "status": scheduled.status, "error": scheduled.error})

    campaign_ids = {s.campaign_id for s in due if s.campaign_id}
    for campaign in EmailCampaign.objects.filter(pk__in=campaign_ids):
        if not campaign.scheduled_emails.filter(status='pending').exists():
            campaign.status = 'sent'
            campaign.save(update_fields=['status'])

    if results:
        logger.info(f"✅ Processed {len(results)} scheduled email(s)")
    return results
