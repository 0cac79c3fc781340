import datetime
import pytest
from restify.errors import BadRequestError, InvalidFilterError
from restify.filters import FilterClause, between_values, parse_filters

PREFIX = "/admin/rest"


def product_ids(client, query):
    response = client.get(f"{PREFIX}/product/all?{query}")
    assert response.status_code == 200, response.json
    return sorted(item["product_id"] for item in response.json["data"])


def test_parse_filters():
    clauses = parse_filters("unit_price%5Bgte%5D=50&name[contains]=desk+lamp&order=name.asc&page=2")
    assert clauses == [
        FilterClause("unit_price", "gte", "50"),
        FilterClause("name", "contains", "desk lamp"),
    ]


def test_parse_filters_without_value():
    assert parse_filters("deleted_at[isnull]") == [FilterClause("deleted_at", "isnull", "")]


def test_parse_filters_unknown_operator():
    with pytest.raises(InvalidFilterError):
        parse_filters("name[like]=lamp")


def test_between_values():
    assert between_values("2024-01-01,2024-02-01 10:00") == (
        datetime.datetime(2024, 1, 1),
        datetime.datetime(2024, 2, 1, 10, 0),
    )
    with pytest.raises(BadRequestError):
        between_values("2024-01-01")
    with pytest.raises(BadRequestError):
        between_values("2024-01-01,not a date")
    with pytest.raises(BadRequestError):
        between_values("1,2")


@pytest.mark.parametrize(
    "query, expected",
    [
        ("unit_price[gte]=80", [2, 3, 4]),
        ("unit_price[gt]=80", [3, 4]),
        ("unit_price[lt]=80", [1]),
        ("unit_price[lte]=80", [1, 2]),
        ("category[eq]=light", [1, 2]),
        ("category[neq]=light", [3, 4]),
        ("product_id[in]=1,3,7", [1, 3]),
        ("product_id[notin]=1,2", [3, 4]),
        ("name[contains]=lamp", [1, 2]),
        ("name[contains]=desk%20lamp", [1]),
        ("name[contains]=_", []),
        ("name[contains]=%25", []),
        ("created_at[between]=2024-02-01,2024-03-31", [2, 3]),
        ("category[eq]=light&unit_price[gte]=50", [2]),
    ],
)
def test_filter_operators(client, shop, query, expected):
    assert product_ids(client, query) == expected


def test_custom_column_filter(client, shop):
    assert product_ids(client, "keywords[contains]=led,wood") == [1, 3]


def test_filters_apply_to_paginate(client, shop):
    response = client.get(f"{PREFIX}/product/paginate?category[eq]=furniture")
    assert sorted(item["product_id"] for item in response.json["data"]) == [3, 4]
    assert response.json["total"] == 2


def test_unknown_column(client, shop):
    response = client.get(f"{PREFIX}/product/all?bogus[eq]=1")
    assert response.status_code == 400
    assert response.json["error"] == "column does not exist: bogus"
    assert response.json["data"] is None


def test_unknown_operator(client, shop):
    response = client.get(f"{PREFIX}/product/all?name[like]=lamp")
    assert response.status_code == 400
    assert response.json["success"] is False


@pytest.mark.parametrize("query", ["unit_price[gt]=cheap", "created_at[between]=2024-02-01", "created_at[between]=1,2"])
def test_invalid_filter_value(client, shop, query):
    assert client.get(f"{PREFIX}/product/all?{query}").status_code == 400


def test_soft_deleted_rows_only_on_request(client, shop):
    client.delete(f"{PREFIX}/product/3")
    assert product_ids(client, "category[eq]=furniture") == [4]
    assert product_ids(client, "category[eq]=furniture&deleted_at[notnull]") == [3]
    assert product_ids(client, "category[eq]=furniture&deleted_at[isnull]") == [4]


def test_filters_on_batch_endpoints(client, shop, fetch):
    response = client.delete(f"{PREFIX}/order/batch?quantity[gte]=2&status[in]=new,paid")
    assert response.status_code == 200
    assert response.json["total"] == 2


def test_null_filters(client, shop):
    response = client.get(f"{PREFIX}/stock/all?note[isnull]")
    assert sorted((item["warehouse"], item["product_id"]) for item in response.json["data"]) == [("north", 2), ("south", 1)]
    response = client.get(f"{PREFIX}/stock/all?note[notnull]=1")
    assert [item["note"] for item in response.json["data"]] == ["shelf a"]
