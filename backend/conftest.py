from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from cart.storage import CartStorage
from catalog.models import Category, Product
from customers.models import User


class MemoryBackend:
    """Dict-backed storage backend standing in for a browser store."""

    def __init__(self, data=None):
        self.data = dict(data or {})

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def memory_backend():
    return MemoryBackend()


@pytest.fixture
def memory_storage(memory_backend):
    return CartStorage([memory_backend])


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def product(db):
    category = Category.objects.create(name="Teas", slug="teas")
    return Product.objects.create(sku="TEN-TEA", name="Detox Tea", price=Decimal("14000.00"), category=category, stock=20)


@pytest.fixture
def admin_user(db):
    return User.objects.create_superuser(email="admin@tenera.test", password="S3cure-pass!")


@pytest.fixture
def support_user(db):
    return User.objects.create_user(email="support@tenera.test", password="S3cure-pass!")


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client
