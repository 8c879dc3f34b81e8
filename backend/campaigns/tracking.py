import base64
from urllib.parse import urlencode, urlparse

from django.conf import settings

TRANSPARENT_GIF = base64.b64decode("R0lGODlhAQABAPAAAP///wAAACH5BAAAAAAALAAAAAABAAEAAAICRAEAOw==")


def is_safe_redirect(url):
    parsed = urlparse(url or "")
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def pixel_url(campaign_id, recipient):
    query = urlencode({"c": campaign_id, "r": recipient})
    return f"{settings.BACKEND_URL}/t/pixel/?{query}"


def click_url(campaign_id, recipient, url):
    query = urlencode({"c": campaign_id, "r": recipient, "u": url})
    return f"{settings.BACKEND_URL}/t/click/?{query}"


def with_open_pixel(html, campaign_id, recipient):
    tag = f'<img src="{pixel_url(campaign_id, recipient)}" width="1" height="1" alt="" style="display:none" />'
    if "</body>" in html:
        return html.replace("</body>", f"{tag}</body>", 1)
    return html + tag
