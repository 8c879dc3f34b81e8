from django.db import models


class EmailCampaign(models.Model):
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('scheduled', 'Scheduled'),
        ('sent', 'Sent'),
    ]

    name = models.CharField(max_length=200)
    subject = models.CharField(max_length=255)
    html = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.name


class ScheduledEmail(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('sent', 'Sent'),
        ('error', 'Error'),
    ]

    campaign = models.ForeignKey(
        EmailCampaign,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='scheduled_emails'
    )
    to_email = models.EmailField()
    subject = models.CharField(max_length=255)
    html = models.TextField()
    send_at = models.DateTimeField(db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    error = models.TextField(blank=True, null=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['send_at']

    def __str__(self):
        return f"{self.subject} -> {self.to_email}"


class EmailEvent(models.Model):
    OPEN = 'open'
    CLICK = 'click'
    TYPE_CHOICES = [
        (OPEN, 'Open'),
        (CLICK, 'Click'),
    ]

    # Kept as text so emails sent by external tools can be tracked too
    campaign_id = models.CharField(max_length=100, db_index=True)
    recipient = models.CharField(max_length=254)
    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    url = models.URLField(max_length=2000, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.type} {self.campaign_id} {self.recipient}"
