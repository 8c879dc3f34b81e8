import pytest
from rest_framework.test import APIClient

from customers.models import Customer, CustomerTag, User

pytestmark = pytest.mark.django_db


def _login(email, password="S3cure-pass!"):
    client = APIClient()
    res = client.post("/api/admin/login/", {"email": email, "password": password}, format="json")
    assert res.status_code == 200, res.content
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {res.data['access']}")
    return client, res.data["refresh"]


def test_login_returns_tokens_and_me(admin_user):
    client, _ = _login(admin_user.email)

    res = client.get("/api/admin/me/")

    assert res.data["email"] == "admin@tenera.test"
    assert res.data["role"] == User.ROLE_ADMIN


def test_login_with_wrong_password_fails(admin_user):
    res = APIClient().post("/api/admin/login/", {"email": admin_user.email, "password": "nope"}, format="json")

    assert res.status_code == 401


def test_logout_blacklists_refresh_token(admin_user):
    client, refresh = _login(admin_user.email)

    assert client.post("/api/admin/logout/", {"refresh_token": refresh}, format="json").status_code == 200
    res = client.post("/api/admin/token/refresh/", {"refresh": refresh}, format="json")
    assert res.status_code == 401


def test_admin_changes_user_role(admin_client, support_user):
    res = admin_client.post(f"/api/admin/users/{support_user.pk}/role/", {"role": "manager"}, format="json")

    assert res.status_code == 200, res.content
    support_user.refresh_from_db()
    assert support_user.role == User.ROLE_MANAGER
    assert support_user.is_superuser is False

    admin_client.post(f"/api/admin/users/{support_user.pk}/role/", {"role": "admin"}, format="json")
    support_user.refresh_from_db()
    assert support_user.is_superuser is True


def test_admin_cannot_demote_self(admin_client, admin_user):
    res = admin_client.post(f"/api/admin/users/{admin_user.pk}/role/", {"role": "support"}, format="json")

    assert res.status_code == 400
    admin_user.refresh_from_db()
    assert admin_user.role == User.ROLE_ADMIN


def test_only_admins_manage_users(support_user):
    client = APIClient()
    client.force_authenticate(user=support_user)

    assert client.get("/api/admin/users/").status_code == 403
    assert client.post(f"/api/admin/users/{support_user.pk}/role/", {"role": "admin"}, format="json").status_code == 403


def test_admin_creates_user(admin_client):
    res = admin_client.post("/api/admin/users/", {
        "email": "manager@tenera.test",
        "password": "An0ther-pass!",
        "password2": "An0ther-pass!",
        "role": "manager",
    }, format="json")

    assert res.status_code == 201, res.content
    user = User.objects.get(email="manager@tenera.test")
    assert user.role == User.ROLE_MANAGER
    assert user.check_password("An0ther-pass!")


def test_tag_assignment(admin_client):
    customer = Customer.objects.create(email="ada@example.com", name="Ada Obi")
    vip = CustomerTag.objects.create(name="VIP")
    repeat = CustomerTag.objects.create(name="Repeat buyer")
    url = f"/api/admin/customers/{customer.pk}/tags/"

    admin_client.post(url, {"tag_ids": [vip.pk]}, format="json")
    res = admin_client.post(url, {"tag_ids": [repeat.pk]}, format="json")
    assert {t["name"] for t in res.data["tags"]} == {"VIP", "Repeat buyer"}

    res = admin_client.post(url, {"tag_ids": [repeat.pk], "replace": True}, format="json")
    assert [t["name"] for t in res.data["tags"]] == ["Repeat buyer"]


def test_customer_list_filters_by_tag(admin_client):
    vip = CustomerTag.objects.create(name="VIP")
    Customer.objects.create(email="ada@example.com").tags.add(vip)
    Customer.objects.create(email="bola@example.com")

    res = admin_client.get("/api/admin/customers/", {"tags": vip.pk})

    assert [c["email"] for c in res.data] == ["ada@example.com"]


def test_customer_list_is_staff_only(api_client):
    assert api_client.get("/api/admin/customers/").status_code == 401


def test_from_checkout_updates_existing_customer():
    Customer.from_checkout({"email": "ada@example.com", "name": "Ada", "city": "Ikeja"})

    customer = Customer.from_checkout({"email": "ada@example.com", "name": "Ada Obi", "phone": "08012345678"})

    assert Customer.objects.count() == 1
    assert customer.name == "Ada Obi"
    assert customer.city == "Ikeja"
    assert customer.phone == "08012345678"
