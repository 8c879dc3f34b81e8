import json
import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit, urlunsplit

from customers.serializers import CustomerInfoSerializer

from .serializers import gate_cart_items
from .state import restore_items
from .storage import EXTERNAL_MODE_KEY, EXTERNAL_SOURCES, HANDOFF_KEYS, LOAD_ORDER

logger = logging.getLogger(__name__)

URL_SOURCE = "url"
DEFAULT_REDIRECT_DELAY = 1500

# Stripped from the address once the cart it carried has been adopted.
CONSUMED_PARAMS = ("cart", "t")


@dataclass
class RedirectInstruction:
    url: Optional[str]
    delay: int = DEFAULT_REDIRECT_DELAY
    direct: bool = False


@dataclass
class ReconcileResult:
    items: list
    source: Optional[str]
    external_mode: bool
    cleaned_url: str
    customer_info: Optional[dict] = None
    redirect: Optional[RedirectInstruction] = None
    messages: list = field(default_factory=list)


def _decode_json_param(value):
    # landing pages encode the JSON before URLSearchParams encodes it again
    try:
        return json.loads(value)
    except ValueError:
        return json.loads(unquote(value))


def strip_params(url, names):
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in names]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def _redirect_from(params):
    redirect_url = params.get("redirectUrl")
    if params.get("redirect") != "true" and not redirect_url:
        return None
    try:
        delay = int(params.get("delay", DEFAULT_REDIRECT_DELAY))
    except ValueError:
        delay = DEFAULT_REDIRECT_DELAY
    return RedirectInstruction(url=redirect_url, delay=delay, direct=params.get("direct") == "true")


class CartReconciler:
    """
    Decides the cart a checkout page starts with.

    Sources are tried in order (URL, then stored keys) and the first one that
    yields valid items replaces the cart in full. A reconciler runs once; later
    calls return the first result.
    """

    def __init__(self, state, beacon):
        self.state = state
        self.storage = state.storage
        self.beacon = beacon
        self._result = None

    def reconcile(self, url, embedded=False):
        if self._result is not None:
            return self._result

        params = dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))
        items, source, external = [], None, False
        cleaned_url = url

        if params.get("cart"):
            items = self._items_from_url(params["cart"])
            if items:
                source, external = URL_SOURCE, True
                cleaned_url = strip_params(url, CONSUMED_PARAMS)
                logger.info(f"Found {len(items)} cart item(s) in URL")

        customer_info = None
        if params.get("customerInfo"):
            customer_info = self._customer_info_from_url(params["customerInfo"])

        if source is None:
            stored = self.storage.load(keys=LOAD_ORDER)
            if stored.source in HANDOFF_KEYS:
                items = gate_cart_items(stored.items, source=stored.source)
            elif stored.items:
                items = restore_items(stored.items, stored.source)
            if items:
                source = stored.source
                external = source in EXTERNAL_SOURCES
                logger.info(f"Restored {len(items)} cart item(s) from {source}")

        if source is not None:
            self.state.replace(items)
        if external:
            self.storage.set_flag(EXTERNAL_MODE_KEY, True)

        self._result = ReconcileResult(
            items=list(self.state.items),
            source=source,
            external_mode=self.storage.get_flag(EXTERNAL_MODE_KEY),
            cleaned_url=cleaned_url,
            customer_info=customer_info or self.storage.load_customer_info(),
            redirect=_redirect_from(params),
            messages=self.beacon.start(embedded=embedded),
        )
        return self._result

    def _items_from_url(self, raw):
        try:
            parsed = _decode_json_param(raw)
        except ValueError:
            logger.warning("Ignoring cart URL parameter: not valid JSON")
            return []
        return gate_cart_items(parsed, source=URL_SOURCE)

    def _customer_info_from_url(self, raw):
        try:
            parsed = _decode_json_param(raw)
        except ValueError:
            logger.warning("Ignoring customerInfo URL parameter: not valid JSON")
            return None
        serializer = CustomerInfoSerializer(data=parsed)
        if not serializer.is_valid():
            logger.warning(f"Ignoring customerInfo URL parameter: {serializer.errors}")
            return None
        info = dict(serializer.validated_data)
        self.storage.save_customer_info(info)
        return info
