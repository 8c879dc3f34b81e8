"""
Cart storage across the well-known keys shared with the landing-page system.

The landing page and older checkout scripts each read the cart from a
different key, so every save fans the same JSON string out to all of them.
Two backends are used per visitor: the Django session (tab scoped) and
``CartStorageEntry`` rows attached to the cart cookie (survives sessions).
"""
import json
import logging
from collections import namedtuple

from django.utils import timezone

from .models import CartStorageEntry

logger = logging.getLogger(__name__)

# Keys this application writes on every save, in load priority order.
CART_KEYS = ("cart", "cartItems", "pendingOrderData", "systemeCart", "teneraCart")

# Keys only the landing page writes; dropped once a cart has been saved.
HANDOFF_KEYS = ("TENERA_CART_UPDATE", "TeneraShoppingCart")

LOAD_ORDER = ("TENERA_CART_UPDATE", "TeneraShoppingCart") + CART_KEYS

EXTERNAL_SOURCES = frozenset({"TENERA_CART_UPDATE", "teneraCart", "TeneraShoppingCart", "systemeCart"})

SNAPSHOT_KEY = "teneraCartData"
EXTERNAL_MODE_KEY = "externalCheckoutMode"
CUSTOMER_INFO_KEY = "customerInfo"
CUSTOMER_EMAIL_KEY = "customerEmail"
PAYMENT_REFERENCE_KEY = "lastPaymentReference"

StorageResult = namedtuple("StorageResult", ["items", "source"])

# Envelope shapes the landing page has used over time, most nested first.
_ENVELOPE_PATHS = (
    ("data", "data", "cartItems"),
    ("data", "cartItems"),
    ("data", "data"),
    ("data",),
    ("cartItems",),
    ("items",),
)


def unwrap_cart_payload(payload):
    """Return the list of raw cart items inside ``payload``, or ``[]``."""
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    for path in _ENVELOPE_PATHS:
        value = payload
        for part in path:
            value = value.get(part) if isinstance(value, dict) else None
        if isinstance(value, list):
            return value
    return []


class SessionBackend:
    def __init__(self, session):
        self.session = session

    def get(self, key):
        return self.session.get(key)

    def set(self, key, value):
        self.session[key] = value

    def delete(self, key):
        self.session.pop(key, None)


class DatabaseBackend:
    def __init__(self, cart):
        self.cart = cart

    def get(self, key):
        entry = self.cart.entries.filter(key=key).first()
        return entry.value if entry else None

    def set(self, key, value):
        CartStorageEntry.objects.update_or_create(cart=self.cart, key=key, defaults={"value": value})

    def delete(self, key):
        self.cart.entries.filter(key=key).delete()


class CartStorage:
    def __init__(self, backends):
        self.backends = list(backends)

    def save(self, items):
        try:
            raw_items = [item.to_dict() for item in items]
            payload = json.dumps(raw_items)
            snapshot = json.dumps({"items": raw_items, "timestamp": timezone.now().isoformat()})
            for backend in self.backends:
                for key in CART_KEYS:
                    backend.set(key, payload)
                backend.set(SNAPSHOT_KEY, snapshot)
                for key in HANDOFF_KEYS:
                    backend.delete(key)
            logger.debug(f"Saved {len(raw_items)} cart line(s) to {len(self.backends)} backend(s)")
        except Exception:
            logger.exception("Error saving cart to storage")

    def load(self, keys=LOAD_ORDER):
        for key in keys:
            for backend in self.backends:
                raw = backend.get(key)
                if not raw:
                    continue
                try:
                    parsed = json.loads(raw)
                except (TypeError, ValueError):
                    logger.warning(f"Skipping malformed cart data in {key}")
                    continue
                items = unwrap_cart_payload(parsed)
                if items:
                    logger.info(f"Loaded {len(items)} cart item(s) from {key}")
                    return StorageResult(items, key)
        return StorageResult([], None)

    def write_handoff(self, key, raw_items):
        """Stage a cart pushed by the landing page for the next reconciliation."""
        payload = json.dumps({"data": {"cartItems": raw_items}, "timestamp": timezone.now().isoformat()})
        for backend in self.backends:
            backend.set(key, payload)

    def set_flag(self, key, enabled):
        for backend in self.backends:
            backend.set(key, "true" if enabled else "false")

    def get_flag(self, key):
        return any(backend.get(key) == "true" for backend in self.backends)

    def save_customer_info(self, info):
        try:
            payload = json.dumps(info)
        except (TypeError, ValueError):
            logger.warning("Customer info is not serializable, not stored")
            return
        for backend in self.backends:
            backend.set(CUSTOMER_INFO_KEY, payload)
            if info.get("email"):
                backend.set(CUSTOMER_EMAIL_KEY, info["email"])

    def load_customer_info(self):
        for backend in self.backends:
            raw = backend.get(CUSTOMER_INFO_KEY)
            if not raw:
                continue
            try:
                info = json.loads(raw)
            except (TypeError, ValueError):
                logger.warning("Skipping malformed customer info")
                continue
            if isinstance(info, dict):
                return info
        return None

    def remember_payment_reference(self, reference):
        for backend in self.backends:
            backend.set(PAYMENT_REFERENCE_KEY, reference)

    def last_payment_reference(self):
        for backend in self.backends:
            reference = backend.get(PAYMENT_REFERENCE_KEY)
            if reference:
                return reference
        return None
