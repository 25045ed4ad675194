import pytest

from tests.support import API, png


@pytest.fixture
def create_product(client):
    def _create(account, **fields):
        data = {"name": "Rice 50kg", "price": "52000", "category": "Groceries & Essentials", "quantity": "4"}
        data.update(fields)
        resp = client.post(f"{API}/products/create", data=data, headers=account["headers"])
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _create


def test_create_product_with_image(client, media, seller):
    resp = client.post(
        f"{API}/products/create",
        data={"name": "Blender", "price": "35000.50", "category": "Home & Kitchen", "description": "2L jar"},
        files={"product_img": png("blender.webp")},
        headers=seller["headers"],
    )
    assert resp.status_code == 201
    product = resp.json()["data"]
    assert product["seller_id"] == seller["seller_id"]
    assert product["price"] == 35000.5
    assert product["category"] == "Home & Kitchen"
    assert product["product_img"].startswith("https://media.example.com/tradelink/products/")
    assert len(media.stored) == 1


def test_create_product_permissions(client, user):
    data = {"name": "Rice", "price": "10"}
    assert client.post(f"{API}/products/create", data=data).status_code == 401
    resp = client.post(f"{API}/products/create", data=data, headers=user["headers"])
    assert resp.status_code == 403


def test_create_product_without_seller_profile(client, seller):
    client.delete(f"{API}/sellers/delete/profile", headers=seller["headers"])
    resp = client.post(f"{API}/products/create", data={"name": "Rice", "price": "10"}, headers=seller["headers"])
    assert resp.status_code == 404
    assert resp.json()["message"] == "Seller profile not found"


@pytest.mark.parametrize(
    "data",
    [
        {"price": "10"},
        {"name": "Rice", "price": "cheap"},
        {"name": "Rice", "price": "-1"},
        {"name": "Rice", "price": "10", "category": "Spaceships"},
        {"name": "Rice", "price": "10", "quantity": "-3"},
    ],
)
def test_create_product_validation(client, db, seller, data):
    resp = client.post(f"{API}/products/create", data=data, headers=seller["headers"])
    assert resp.status_code == 400
    assert db["product"].count_documents({}) == 0


def test_create_product_rejects_non_image(client, seller):
    resp = client.post(
        f"{API}/products/create",
        data={"name": "Rice", "price": "10"},
        files={"product_img": ("doc.pdf", b"%PDF-1.4", "application/pdf")},
        headers=seller["headers"],
    )
    assert resp.status_code == 400


def test_get_product(client, seller, create_product):
    product = create_product(seller)
    resp = client.get(f"{API}/products/{product['id']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "Rice 50kg"

    assert client.get(f"{API}/products/not-an-id").status_code == 400
    resp = client.get(f"{API}/products/{'a' * 24}")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Product not found"


def test_list_products_with_filters(client, seller, create_product):
    create_product(seller, name="Rice 50kg", price="52000")
    create_product(seller, name="Brown Rice 5kg", price="9000")
    create_product(seller, name="Sneakers", price="25000", category="Fashion & Clothing")

    def names(**params):
        resp = client.get(f"{API}/products/", params=params)
        assert resp.status_code == 200
        return sorted(p["name"] for p in resp.json()["data"])

    assert len(names()) == 3
    assert names(category="Fashion & Clothing") == ["Sneakers"]
    assert names(search="rice") == ["Brown Rice 5kg", "Rice 50kg"]
    assert names(min_price=10000) == ["Rice 50kg", "Sneakers"]
    assert names(max_price=25000) == ["Brown Rice 5kg", "Sneakers"]
    assert names(search="rice", min_price=10000, max_price=60000) == ["Rice 50kg"]


def test_seller_products(client, make_account, create_product):
    first = make_account("seller")
    second = make_account("seller")
    create_product(first, name="Yam")
    create_product(second, name="Garri")

    resp = client.get(f"{API}/products/seller/{first['seller_id']}")
    assert resp.status_code == 200
    assert [p["name"] for p in resp.json()["data"]] == ["Yam"]

    resp = client.get(f"{API}/products/seller/123")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid id"


def test_update_product(client, media, make_account, create_product):
    owner = make_account("seller")
    other = make_account("seller")
    product = create_product(owner)

    resp = client.put(
        f"{API}/products/{product['id']}",
        data={"price": "50000", "description": "New harvest"},
        files={"product_img": png()},
        headers=owner["headers"],
    )
    assert resp.status_code == 200
    updated = resp.json()["data"]
    assert updated["price"] == 50000
    assert updated["description"] == "New harvest"
    assert updated["name"] == "Rice 50kg"
    assert updated["product_img"]

    resp = client.put(f"{API}/products/{product['id']}", data={"category": "Nope"}, headers=owner["headers"])
    assert resp.status_code == 400

    resp = client.put(f"{API}/products/{product['id']}", data={"price": "1"}, headers=other["headers"])
    assert resp.status_code == 404


def test_delete_product(client, db, make_account, create_product):
    owner = make_account("seller")
    other = make_account("seller")
    product = create_product(owner)

    assert client.delete(f"{API}/products/{product['id']}", headers=other["headers"]).status_code == 404
    resp = client.delete(f"{API}/products/{product['id']}", headers=owner["headers"])
    assert resp.status_code == 200
    assert db["product"].count_documents({}) == 0
    assert client.delete(f"{API}/products/{product['id']}", headers=owner["headers"]).status_code == 404
