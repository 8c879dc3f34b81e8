import uuid

from django.conf import settings

from .messaging import ReadyBeacon, is_allowed_origin, origin_of
from .models import Cart
from .state import CartState
from .storage import CartStorage, DatabaseBackend, SessionBackend


def get_cart(request, create=True):
    """Return the cart named by the cart cookie, creating both when missing."""
    session_id = request.COOKIES.get(settings.CART_SESSION_COOKIE)
    if session_id:
        cart = Cart.objects.filter(session_id=session_id).first()
        if cart or not create:
            return cart
    elif not create:
        return None
    return Cart.objects.create(session_id=session_id or str(uuid.uuid4()))


def storage_for(request, cart):
    return CartStorage([SessionBackend(request.session), DatabaseBackend(cart)])


def cart_state_for(request, cart=None):
    cart = cart or get_cart(request)
    return CartState.from_storage(storage_for(request, cart))


def beacon_for(request, parent_origin=None):
    if not is_allowed_origin(parent_origin):
        parent_origin = settings.CART_ALLOWED_ORIGINS[0] if settings.CART_ALLOWED_ORIGINS else None
    return ReadyBeacon(request.session, own_origin=origin_of(settings.FRONTEND_URL), parent_origin=parent_origin)


def attach_cart_cookie(response, cart):
    response.set_cookie(
        key=settings.CART_SESSION_COOKIE,
        value=cart.session_id,
        max_age=settings.CART_COOKIE_AGE,
        httponly=False,
        samesite='None',  # the landing page embeds checkout cross-site
        secure=not settings.DEBUG,
        path='/',
    )
    return response
