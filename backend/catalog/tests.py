from decimal import Decimal

import pytest

from catalog.models import Category, Product

pytestmark = pytest.mark.django_db


@pytest.fixture
def products(product):
    oils = Category.objects.create(name="Oils", slug="oils")
    Product.objects.create(sku="TEN-OIL", name="Castor Oil", price=Decimal("9500"), category=oils)
    Product.objects.create(sku="TEN-OLD", name="Old Blend", price=Decimal("5000"), is_active=False)
    return Product.objects.all()


def test_slug_is_generated_from_name(product):
    assert product.slug == "detox-tea"


def test_list_shows_active_products_only(api_client, products):
    res = api_client.get("/api/products/")

    assert res.status_code == 200
    assert res.data["count"] == 2
    assert {p["sku"] for p in res.data["results"]} == {"TEN-TEA", "TEN-OIL"}


def test_list_filters(api_client, products):
    by_category = api_client.get("/api/products/", {"category": "oils"})
    by_price = api_client.get("/api/products/", {"min_price": "10000"})
    by_search = api_client.get("/api/products/", {"search": "detox"})

    assert [p["sku"] for p in by_category.data["results"]] == ["TEN-OIL"]
    assert [p["sku"] for p in by_price.data["results"]] == ["TEN-TEA"]
    assert [p["sku"] for p in by_search.data["results"]] == ["TEN-TEA"]


def test_detail_by_slug(api_client, product):
    res = api_client.get("/api/products/detox-tea/")

    assert res.status_code == 200
    assert res.data["sku"] == "TEN-TEA"
    assert api_client.get("/api/products/missing/").status_code == 404


def test_to_cart_item(product):
    item = product.to_cart_item(quantity=3)

    assert item.id == item.sku == "TEN-TEA"
    assert item.category == "Teas"
    assert item.line_total == Decimal("42000")
