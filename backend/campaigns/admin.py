from django.contrib import admin

from customers.models import Customer

from .models import EmailCampaign, EmailEvent, ScheduledEmail
from .tasks import schedule_campaign


@admin.register(EmailCampaign)
class EmailCampaignAdmin(admin.ModelAdmin):
    list_display = ('name', 'subject', 'status', 'created_at')
    list_filter = ('status',)
    search_fields = ('name', 'subject')
    actions = ['send_to_newsletter_customers']

    @admin.action(description='Schedule for newsletter customers now')
    def send_to_newsletter_customers(self, request, queryset):
        recipients = list(Customer.objects.filter(newsletter=True).values_list('email', flat=True))
        for campaign in queryset:
            schedule_campaign(campaign, recipients)
        self.message_user(request, f"Scheduled {queryset.count()} campaign(s) for {len(recipients)} recipient(s).")


@admin.register(ScheduledEmail)
class ScheduledEmailAdmin(admin.ModelAdmin):
    list_display = ('to_email', 'subject', 'send_at', 'status', 'sent_at')
    list_filter = ('status', 'campaign')
    search_fields = ('to_email', 'subject')
    readonly_fields = ('sent_at', 'error', 'created_at', 'updated_at')


@admin.register(EmailEvent)
class EmailEventAdmin(admin.ModelAdmin):
    list_display = ('campaign_id', 'recipient', 'type', 'url', 'created_at')
    list_filter = ('type',)
    search_fields = ('campaign_id', 'recipient')
