"""
Cross-origin cart messages.

Inbound messages come from the landing page (or the page embedding the
checkout) through ``POST /api/cart/messages/``. Outbound messages are handed
back to the checkout page as envelopes, each naming the window it is meant
for and an explicit target origin for ``postMessage``.
"""
import logging
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from django.conf import settings
from django.utils import timezone

from .serializers import gate_cart_items
from .storage import EXTERNAL_MODE_KEY, unwrap_cart_payload

logger = logging.getLogger(__name__)

CART_DATA = "CART_DATA"
TENERA_CART_UPDATE = "TENERA_CART_UPDATE"
CART_READY = "CART_READY"
IFRAME_READY = "IFRAME_READY"
CART_RECEIVED = "CART_RECEIVED"

MESSAGE_SOURCE = "lovable_app"


def origin_of(url):
    parts = urlsplit(url or "")
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"


def is_allowed_origin(origin, allowed_origins=None):
    if allowed_origins is None:
        allowed_origins = settings.CART_ALLOWED_ORIGINS
    return bool(origin) and origin in allowed_origins


def _timestamp():
    return timezone.now().isoformat()


def cart_ready_message():
    return {"type": CART_READY, "timestamp": _timestamp(), "source": MESSAGE_SOURCE}


def iframe_ready_message():
    return {"type": IFRAME_READY, "timestamp": _timestamp(), "source": MESSAGE_SOURCE}


def cart_received_message(item_count):
    return {"type": CART_RECEIVED, "success": True, "itemCount": item_count, "timestamp": _timestamp()}


def envelope(message, target, target_origin):
    return {"target": target, "targetOrigin": target_origin, "message": message}


class ReadyBeacon:
    """
    Announces ``CART_READY`` for a bounded window after page load.

    State lives in the session so the checkout page can poll for due
    messages: one burst right away, then one every ``interval`` seconds until
    ``window`` seconds have passed since ``start``.
    """

    STATE_KEY = "cartReadyBeacon"

    def __init__(self, session, own_origin, parent_origin, interval=None, window=None, clock=time.time):
        self.session = session
        self.own_origin = own_origin
        self.parent_origin = parent_origin
        self.interval = settings.CART_READY_INTERVAL if interval is None else interval
        self.window = settings.CART_READY_WINDOW if window is None else window
        self.clock = clock

    def start(self, embedded=False):
        self.session[self.STATE_KEY] = {"started_at": self.clock(), "last_sent_at": None, "embedded": embedded}
        return self.poll()

    def is_open(self):
        state = self.session.get(self.STATE_KEY)
        return bool(state) and self.clock() - state["started_at"] < self.window

    def poll(self):
        state = self.session.get(self.STATE_KEY)
        if not state:
            return []
        now = self.clock()
        if now - state["started_at"] >= self.window:
            return []
        last = state["last_sent_at"]
        if last is not None and now - last < self.interval:
            return []
        self.session[self.STATE_KEY] = dict(state, last_sent_at=now)
        return self._burst(state["embedded"])

    def _burst(self, embedded):
        message = cart_ready_message()
        envelopes = [envelope(message, "window", self.own_origin)]
        if embedded and self.parent_origin:
            envelopes.append(envelope(message, "parent", self.parent_origin))
            envelopes.append(envelope(iframe_ready_message(), "parent", self.parent_origin))
        return envelopes


@dataclass
class MessageOutcome:
    item_count: int
    ack: dict
    redirect_url: Optional[str] = None


class CartMessageHandler:
    """Applies ``CART_DATA`` pushes from an allowed origin to the cart."""

    def __init__(self, state, allowed_origins=None):
        self.state = state
        self.allowed_origins = settings.CART_ALLOWED_ORIGINS if allowed_origins is None else allowed_origins

    def handle(self, payload, origin):
        if not is_allowed_origin(origin, self.allowed_origins):
            logger.warning(f"Ignoring cart message from disallowed origin {origin}")
            return None
        if not isinstance(payload, dict):
            logger.warning("Ignoring cart message that is not an object")
            return None

        kind = payload.get("type")
        if kind == CART_DATA:
            raw_items = payload.get("cart")
        elif kind == TENERA_CART_UPDATE:
            raw_items = unwrap_cart_payload(payload)
        else:
            logger.debug(f"Ignoring message of type {kind}")
            return None

        if not isinstance(raw_items, list):
            logger.warning(f"Ignoring {kind} message: cart is not an array")
            return None

        items = gate_cart_items(raw_items, source=f"{kind} message")
        if not items:
            logger.warning(f"Ignoring {kind} message: no valid cart items")
            return None

        self.state.replace(items)
        self.state.storage.set_flag(EXTERNAL_MODE_KEY, True)

        redirect_url = payload.get("redirectUrl")
        if not isinstance(redirect_url, str) or not redirect_url:
            redirect_url = None

        logger.info(f"Accepted {kind} message from {origin} with {len(items)} item(s)")
        return MessageOutcome(
            item_count=len(items),
            ack=envelope(cart_received_message(len(items)), "source", origin),
            redirect_url=redirect_url,
        )
