import pytest
from restify import DB
from shop_models import Order, Product, Stock, User

PREFIX = "/admin/rest"


def ids(response, key="product_id"):
    return sorted(item[key] for item in response.json["data"])


def test_model_info(client):
    response = client.get(f"{PREFIX}/product")
    assert response.status_code == 200
    info = response.json["data"]
    assert info["name"] == "Product"
    assert info["id"] == "product"
    fields = {fld["name"]: fld for fld in info["fields"]}
    assert fields["product_id"]["pk"] is True
    assert fields["unit_price"]["default"] == 0
    assert fields["unit_price"]["label"] == "Unit Price"
    names = [endpoint["name"] for endpoint in info["endpoints"]]
    assert "PAGINATE" in names
    assert "SET" not in names


def test_model_info_hides_excluded_fields(client):
    fields = [fld["name"] for fld in client.get(f"{PREFIX}/user").json["data"]["fields"]]
    assert "email" in fields
    assert "password" not in fields


def test_models(client):
    response = client.get(f"{PREFIX}/models")
    assert response.status_code == 200
    assert [item["id"] for item in response.json["data"]] == ["user", "product", "order", "article", "stock"]
    assert response.json["total"] == 5


def test_create(client, shop, fetch):
    response = client.put(f"{PREFIX}/product", json={"name": "lamp shade", "unit_price": 12.5, "category": "light"})
    assert response.status_code == 200
    data = response.json["data"]
    assert data["product_id"] == 5
    assert data["name"] == "lamp shade"
    assert data["deleted_at"] is None
    assert response.json["success"] is True
    assert [row["name"] for row in fetch(Product, Product.product_id == 5)] == ["lamp shade"]


def test_create_runs_model_hook(client, fetch):
    response = client.put(f"{PREFIX}/user", json={"name": "Carol", "email": "carol@example.com", "password": "secret"})
    assert response.status_code == 200
    data = response.json["data"]
    assert len(data["user_id"]) == 36
    assert "password" not in data
    with client.application.app_context():
        stored = DB.session.get(User, data["user_id"])
        assert stored.password != "secret"
        assert len(stored.password) == 64


def test_create_ignores_associations(client, shop, fetch):
    response = client.put(
        f"{PREFIX}/user", json={"name": "Carol", "email": "carol@example.com", "orders": [{"quantity": 1}]}
    )
    assert response.status_code == 200
    assert len(fetch(Order)) == 3


def test_create_validation_error(client, fetch):
    response = client.put(f"{PREFIX}/user", json={"name": "Carol"})
    assert response.status_code == 412
    assert response.json["success"] is False
    assert response.json["data"] is None
    assert response.json["error"] == "email: is required"
    assert response.json["validation_error"] == [{"field": "email", "error": "is required"}]
    assert fetch(User) == []


def test_create_invalid_email(client):
    response = client.put(f"{PREFIX}/user", json={"name": "Carol", "email": "nope"})
    assert response.status_code == 412
    assert response.json["validation_error"] == [{"field": "email", "error": "must be a valid email address"}]


def test_create_invalid_body(client):
    response = client.put(f"{PREFIX}/product", data="{not json", content_type="application/json")
    assert response.status_code == 400
    assert response.json["success"] is False


def test_create_invalid_value(client, fetch):
    response = client.put(f"{PREFIX}/product", json={"name": "lamp", "unit_price": "cheap"})
    assert response.status_code == 400
    assert "unit_price" in response.json["error"]
    assert fetch(Product) == []


def test_get(client, shop):
    response = client.get(f"{PREFIX}/product/3")
    assert response.status_code == 200
    assert response.json["data"]["name"] == "chair"
    assert response.json["data"]["created_at"] == "2024-03-10 00:00:00"


def test_get_not_found(client, shop):
    response = client.get(f"{PREFIX}/product/99")
    assert response.status_code == 404
    assert response.json["error"] == "object does not exist"
    assert response.json["data"] is None
    assert response.json["total"] == 0


def test_get_invalid_key(client, shop):
    assert client.get(f"{PREFIX}/product/abc").status_code == 400


def test_get_composite_key(client, shop):
    response = client.get(f"{PREFIX}/stock/north/2")
    assert response.status_code == 200
    assert response.json["data"] == {"warehouse": "north", "product_id": 2, "quantity": 5, "note": None}
    assert client.get(f"{PREFIX}/stock/south/2").status_code == 404


def test_update_partial(client, shop, fetch):
    response = client.patch(f"{PREFIX}/product/1", json={"unit_price": 35, "name": ""})
    assert response.status_code == 200
    assert response.json["data"]["name"] == "desk lamp"
    assert response.json["data"]["unit_price"] == 35
    row = fetch(Product, Product.product_id == 1)[0]
    assert row["name"] == "desk lamp"
    assert row["unit_price"] == 35


def test_update_ignores_primary_key(client, shop, fetch):
    response = client.patch(f"{PREFIX}/product/1", json={"product_id": 10, "category": "lamps"})
    assert response.status_code == 200
    assert response.json["data"]["product_id"] == 1
    assert fetch(Product, Product.product_id == 10) == []


def test_update_composite_key(client, shop, fetch):
    response = client.patch(f"{PREFIX}/stock/north/1", json={"quantity": 11})
    assert response.status_code == 200
    assert fetch(Stock, Stock.warehouse == "north", Stock.product_id == 1)[0]["quantity"] == 11
    assert fetch(Stock, Stock.warehouse == "south", Stock.product_id == 1)[0]["quantity"] == 7


def test_update_not_found(client, shop):
    assert client.patch(f"{PREFIX}/product/99", json={"name": "x"}).status_code == 404


def test_replace_writes_zero_values(client, shop, fetch):
    response = client.put(f"{PREFIX}/product/1", json={"name": "desk lamp", "category": ""})
    assert response.status_code == 200
    assert fetch(Product, Product.product_id == 1)[0]["category"] == ""


def test_replace_validates_all_fields(client, shop, fetch):
    response = client.put(f"{PREFIX}/product/1", json={"name": ""})
    assert response.status_code == 412
    assert response.json["validation_error"] == [{"field": "name", "error": "is required"}]
    assert fetch(Product, Product.product_id == 1)[0]["name"] == "desk lamp"


def test_soft_delete(client, shop, fetch):
    response = client.delete(f"{PREFIX}/product/2")
    assert response.status_code == 200
    assert response.json["success"] is True
    assert fetch(Product, Product.product_id == 2)[0]["deleted_at"] is not None

    assert client.get(f"{PREFIX}/product/2").status_code == 404
    assert client.patch(f"{PREFIX}/product/2", json={"name": "x"}).status_code == 404
    assert ids(client.get(f"{PREFIX}/product/all")) == [1, 3, 4]
    assert ids(client.get(f"{PREFIX}/product/all?deleted_at[notnull]")) == [2]


def test_delete(client, shop, fetch):
    assert client.delete(f"{PREFIX}/order/3").status_code == 200
    assert sorted(row["order_id"] for row in fetch(Order)) == [1, 2]
    assert client.delete(f"{PREFIX}/order/3").status_code == 404


def test_delete_composite_key(client, shop, fetch):
    assert client.delete(f"{PREFIX}/stock/north/1").status_code == 200
    assert sorted((row["warehouse"], row["product_id"]) for row in fetch(Stock)) == [("north", 2), ("south", 1)]


def test_disabled_endpoint(client, shop):
    assert client.post(f"{PREFIX}/product/set?category[eq]=light", json=[]).status_code == 405


def test_batch_create(app, client, shop, fetch):
    app.config["BATCH_CHUNK_SIZE"] = 2
    body = [{"name": "a", "category": "misc"}, {"name": "b", "category": "misc"}, {"name": "c", "category": "misc"}]
    response = client.put(f"{PREFIX}/product/batch", json=body)
    assert response.status_code == 200
    assert response.json["total"] == 3
    assert [item["name"] for item in response.json["data"]] == ["a", "b", "c"]
    assert sorted(row["name"] for row in fetch(Product, Product.category == "misc")) == ["a", "b", "c"]


def test_batch_create_expects_list(client, fetch):
    response = client.put(f"{PREFIX}/product/batch", json={"name": "a"})
    assert response.status_code == 400
    assert fetch(Product) == []


def test_batch_update(client, shop, fetch):
    response = client.patch(f"{PREFIX}/product/batch?category[eq]=light", json={"category": "lighting"})
    assert response.status_code == 200
    assert response.json["total"] == 2
    assert sorted(row["product_id"] for row in fetch(Product, Product.category == "lighting")) == [1, 2]


def test_batch_update_return(client, shop):
    response = client.patch(f"{PREFIX}/product/batch?category[eq]=light&return=1", json={"category": "lighting"})
    assert response.status_code == 200
    assert ids(response) == [1, 2]
    assert {item["category"] for item in response.json["data"]} == {"lighting"}


def test_batch_update_skips_soft_deleted(client, shop, fetch):
    client.delete(f"{PREFIX}/product/2")
    response = client.patch(f"{PREFIX}/product/batch?category[eq]=light", json={"category": "lighting"})
    assert response.json["total"] == 1
    assert fetch(Product, Product.product_id == 2)[0]["category"] == "light"


def test_batch_update_unsafe(client, shop, fetch):
    response = client.patch(f"{PREFIX}/product/batch", json={"category": "lighting"})
    assert response.status_code == 400
    assert response.json["error"] == "unsafe request"
    assert fetch(Product, Product.category == "lighting") == []

    response = client.patch(f"{PREFIX}/product/batch?unsafe=1", json={"category": "lighting"})
    assert response.status_code == 200
    assert response.json["total"] == 4


def test_batch_update_nothing_to_update(client, shop):
    response = client.patch(f"{PREFIX}/product/batch?category[eq]=light", json={"category": ""})
    assert response.status_code == 400
    assert response.json["error"] == "nothing to update"


def test_batch_delete(client, shop, fetch):
    response = client.delete(f"{PREFIX}/order/batch?status[eq]=new")
    assert response.status_code == 200
    assert response.json["total"] == 2
    assert [row["order_id"] for row in fetch(Order)] == [2]


def test_batch_delete_return(client, shop, fetch):
    response = client.delete(f"{PREFIX}/order/batch?status[eq]=new&return=1")
    assert response.status_code == 200
    assert ids(response, "order_id") == [1, 3]
    assert [row["order_id"] for row in fetch(Order)] == [2]


def test_batch_delete_unsafe(client, shop, fetch):
    response = client.delete(f"{PREFIX}/order/batch")
    assert response.status_code == 400
    assert response.json["error"] == "unsafe request"
    assert len(fetch(Order)) == 3

    assert client.delete(f"{PREFIX}/order/batch?unsafe=1").status_code == 200
    assert fetch(Order) == []


def test_batch_delete_soft(client, shop, fetch):
    response = client.delete(f"{PREFIX}/product/batch?category[eq]=furniture")
    assert response.status_code == 200
    assert response.json["total"] == 2
    rows = {row["product_id"]: row for row in fetch(Product)}
    assert rows[3]["deleted_at"] is not None
    assert rows[4]["deleted_at"] is not None
    assert rows[1]["deleted_at"] is None
    assert ids(client.get(f"{PREFIX}/product/all")) == [1, 2]


def test_all_order(client, shop):
    response = client.get(f"{PREFIX}/product/all?order=unit_price.desc")
    assert [item["product_id"] for item in response.json["data"]] == [4, 3, 2, 1]
    assert response.json["total"] == 4


def test_all_invalid_order_ignored(client, shop):
    response = client.get(f"{PREFIX}/product/all?order=unit_price,bogus.asc,product_id.desc")
    assert response.status_code == 200
    assert [item["product_id"] for item in response.json["data"]] == [4, 3, 2, 1]


def test_all_unknown_order_direction_ignored(client, shop):
    response = client.get(f"{PREFIX}/product/all?order=unit_price.sideways,product_id.desc")
    assert response.status_code == 200
    assert [item["product_id"] for item in response.json["data"]] == [4, 3, 2, 1]


def test_all_offset_limit(client, shop):
    response = client.get(f"{PREFIX}/product/all?order=product_id.asc&offset=1&limit=2")
    assert [item["product_id"] for item in response.json["data"]] == [2, 3]


def test_all_fields(client, shop):
    response = client.get(f"{PREFIX}/product/all?fields=name,bogus")
    assert response.status_code == 200
    assert all(set(item) == {"name"} for item in response.json["data"])


def test_get_associations(client, shop):
    data = client.get(f"{PREFIX}/user/u1?associations=orders").json["data"]
    assert sorted(order["order_id"] for order in data["orders"]) == [1, 2]
    assert "articles" not in data


def test_get_all_associations(client, shop):
    data = client.get(f"{PREFIX}/user/u1?associations=1").json["data"]
    assert len(data["orders"]) == 2
    assert [article["title"] for article in data["articles"]] == ["Lamps"]


def test_get_deep_associations(client, shop):
    data = client.get(f"{PREFIX}/user/u1?associations=deep").json["data"]
    products = sorted(order["product"]["name"] for order in data["orders"])
    assert products == ["chair", "desk lamp"]


def test_invalid_association_ignored(client, shop):
    response = client.get(f"{PREFIX}/user/u1?associations=bogus,orders.bogus")
    assert response.status_code == 200
    assert "orders" not in response.json["data"]


def test_join(client, shop):
    data = client.get(f"{PREFIX}/order/all?join=product&order=order_id.asc").json["data"]
    assert [order["product"]["name"] for order in data] == ["desk lamp", "chair", "chair"]


@pytest.mark.parametrize("path", ["/product/all", "/product/paginate", "/product/3"])
def test_read_endpoints_dont_write(client, shop, fetch, path):
    assert client.get(f"{PREFIX}{path}").status_code == 200
    assert len(fetch(Product)) == 4
