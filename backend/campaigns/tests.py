from datetime import timedelta
from unittest import mock

import pytest
from django.core import mail
from django.utils import timezone

from campaigns.models import EmailCampaign, EmailEvent, ScheduledEmail
from campaigns.tasks import schedule_campaign, send_due_scheduled_emails
from campaigns.tracking import TRANSPARENT_GIF, is_safe_redirect, with_open_pixel

pytestmark = pytest.mark.django_db


def test_pixel_logs_open_and_returns_gif(api_client):
    res = api_client.get("/t/pixel/", {"c": "7", "r": "ada@example.com"})

    assert res.status_code == 200
    assert res["Content-Type"] == "image/gif"
    assert "no-cache" in res["Cache-Control"]
    assert "no-store" in res["Cache-Control"]
    assert res.content == TRANSPARENT_GIF
    event = EmailEvent.objects.get()
    assert (event.campaign_id, event.recipient, event.type) == ("7", "ada@example.com", "open")


def test_tracking_requires_parameters(api_client):
    assert api_client.get("/t/pixel/", {"c": "7"}).status_code == 400
    assert api_client.get("/t/click/", {"c": "7", "r": "ada@example.com"}).status_code == 400
    assert EmailEvent.objects.count() == 0


def test_click_logs_and_redirects(api_client):
    target = "https://www.teneraholisticandwellness.com/shop"

    res = api_client.get("/t/click/", {"c": "7", "r": "ada@example.com", "u": target})

    assert res.status_code == 302
    assert res["Location"] == target
    assert EmailEvent.objects.get().url == target


def test_click_refuses_non_web_targets(api_client):
    res = api_client.get("/t/click/", {"c": "7", "r": "ada@example.com", "u": "javascript:alert(1)"})

    assert res.status_code == 400
    assert is_safe_redirect("//evil.test") is False
    assert is_safe_redirect("http://shop.test/x") is True


def test_stats_counts_events(api_client, admin_client):
    for recipient in ("ada@example.com", "ada@example.com", "bola@example.com"):
        EmailEvent.objects.create(campaign_id="7", recipient=recipient, type=EmailEvent.OPEN)
    EmailEvent.objects.create(campaign_id="7", recipient="ada@example.com", type=EmailEvent.CLICK, url="https://a.test")
    EmailEvent.objects.create(campaign_id="8", recipient="ada@example.com", type=EmailEvent.OPEN)

    assert api_client.get("/t/stats/", {"c": "7"}).status_code == 401
    assert admin_client.get("/t/stats/").status_code == 400
    res = admin_client.get("/t/stats/", {"c": "7"})

    assert res.data == {
        "campaign": "7", "opens": 3, "clicks": 1, "unique_opens": 2, "unique_clicks": 1,
    }


def test_with_open_pixel_goes_before_body_close():
    html = with_open_pixel("<html><body><p>Hi</p></body></html>", 7, "ada@example.com")

    assert "/t/pixel/?c=7&r=ada%40example.com" in html
    assert html.endswith("</body></html>")


def test_schedule_campaign_queues_tracked_copies():
    campaign = EmailCampaign.objects.create(name="Launch", subject="New teas", html="<p>Hello</p>")

    schedule_campaign(campaign, ["ada@example.com", "bola@example.com"])

    assert ScheduledEmail.objects.count() == 2
    assert all("/t/pixel/" in s.html for s in ScheduledEmail.objects.all())
    campaign.refresh_from_db()
    assert campaign.status == "scheduled"


def test_send_due_scheduled_emails():
    campaign = EmailCampaign.objects.create(name="Launch", subject="New teas", html="<p>Hello</p>")
    schedule_campaign(campaign, ["ada@example.com"], send_at=timezone.now() - timedelta(minutes=1))
    later = ScheduledEmail.objects.create(
        to_email="bola@example.com", subject="Later", html="<p>Later</p>", send_at=timezone.now() + timedelta(hours=1)
    )

    results = send_due_scheduled_emails()

    assert [r["status"] for r in results] == ["sent"]
    assert len(mail.outbox) == 1
    assert mail.outbox[0].to == ["ada@example.com"]
    assert mail.outbox[0].alternatives[0][1] == "text/html"
    later.refresh_from_db()
    assert later.status == "pending"
    campaign.refresh_from_db()
    assert campaign.status == "sent"

    assert send_due_scheduled_emails() == []


def test_failed_send_is_marked_error():
    scheduled = ScheduledEmail.objects.create(
        to_email="ada@example.com", subject="Hi", html="<p>Hi</p>", send_at=timezone.now()
    )

    with mock.patch("campaigns.tasks.EmailMultiAlternatives.send", side_effect=ConnectionError("smtp down")):
        send_due_scheduled_emails()

    scheduled.refresh_from_db()
    assert scheduled.status == "error"
    assert scheduled.error == "smtp down"
    assert scheduled.sent_at is None
