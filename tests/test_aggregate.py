import pytest

PREFIX = "/admin/rest"


def aggregate(client, query):
    return client.get(f"{PREFIX}/product/aggregate?{query}")


def test_group_by(client, shop):
    response = aggregate(client, "fields=unit_price.sum,product_id.count&group_by=category&unsafe=1")
    assert response.status_code == 200
    data = sorted(response.json["data"], key=lambda row: row["category"])
    assert data == [
        {"category": "furniture", "unit_price.sum": 370, "product_id.count": 2},
        {"category": "light", "unit_price.sum": 110, "product_id.count": 2},
    ]
    assert response.json["total"] == 2


def test_without_group_by(client, shop):
    response = aggregate(client, "fields=*.count,unit_price.max,unit_price.min,unit_price.avg&category[eq]=light")
    assert response.status_code == 200
    assert response.json["data"] == {"*.count": 2, "unit_price.max": 80, "unit_price.min": 30, "unit_price.avg": 55}


def test_invalid_aggregates_are_skipped(client, shop):
    response = aggregate(client, "fields=unit_price.sum,bogus.sum,name,*.sum&category[eq]=light")
    assert response.status_code == 200
    assert response.json["data"] == {"unit_price.sum": 110}


def test_invalid_group_by_is_ignored(client, shop):
    response = aggregate(client, "fields=unit_price.sum&group_by=bogus&unsafe=1")
    assert response.status_code == 200
    assert response.json["data"] == {"unit_price.sum": 480}


def test_soft_deleted_rows_are_excluded(client, shop):
    client.delete(f"{PREFIX}/product/4")
    response = aggregate(client, "fields=unit_price.sum&unsafe=1")
    assert response.json["data"] == {"unit_price.sum": 230}


@pytest.mark.parametrize(
    "query, error",
    [
        ("category[eq]=light", "fields parameter is required"),
        ("fields=name&unsafe=1", "fields parameter should contain aggregate functions field_name.aggregate_function"),
        ("fields=unit_price.sum", "unsafe request"),
        ("fields=unit_price.sum&group_by=category", "unsafe request"),
    ],
)
def test_bad_requests(client, shop, query, error):
    response = aggregate(client, query)
    assert response.status_code == 400
    assert response.json["error"] == error


def test_disabled(client, shop):
    endpoints = [endpoint["name"] for endpoint in client.get(f"{PREFIX}/article", headers={"X-User": "u1"}).json["data"]["endpoints"]]
    assert "AGGREGATE" not in endpoints
