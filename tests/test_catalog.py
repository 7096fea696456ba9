"""
Catalog reader tests.

Tests verify:
- Only active products are listed, ordered by id
- Unknown category slug drops the filter instead of failing
- Featured list is capped and excludes inactive products
- Search / material / gemstone / price filters
- id precedence and validation vs not-found, including out-of-range ids
"""

import pytest

from storefront.catalog import FEATURED_LIMIT
from storefront.database import get_db
from storefront.main import app
from storefront.models import Product


def _ids(response):
    assert response.status_code == 200, response.text
    return [p["id"] for p in response.json()]


def test_list_products_returns_active_only_in_id_order(client):
    assert _ids(client.get("/api/products")) == [1, 2, 3]


def test_product_money_fields(client):
    data = client.get("/api/products/1").json()
    assert data["price"] == "90.00"
    assert data["priceCents"] == 9000
    assert data["category"]["slug"] == "necklaces"
    assert data["materials"] == ["Sterling Silver", "Amethyst"]


def test_category_filter(client):
    assert _ids(client.get("/api/products", params={"category": "necklaces"})) == [1, 3]
    assert _ids(client.get("/api/products", params={"category": "RINGS"})) == [2]


def test_unknown_category_returns_full_active_list(client):
    assert _ids(client.get("/api/products", params={"category": "nonexistent-slug"})) == [1, 2, 3]


def test_category_all_means_no_filter(client):
    assert _ids(client.get("/api/products", params={"category": "all"})) == [1, 2, 3]


def test_featured_excludes_inactive(client):
    assert _ids(client.get("/api/products", params={"featured": "true"})) == [1, 2]


def test_featured_is_capped(client, db):
    for i in range(FEATURED_LIMIT + 2):
        db.add(Product(name=f"Featured {i}", price_cents=1000, is_active=True, is_featured=True))
    db.commit()

    ids = _ids(client.get("/api/products", params={"featured": "true"}))
    assert len(ids) == FEATURED_LIMIT
    assert ids == sorted(ids)


def test_search_matches_name_description_and_stones(client):
    assert _ids(client.get("/api/products", params={"search": "amethyst"})) == [1]
    assert _ids(client.get("/api/products", params={"search": "SILVER"})) == [1, 2]
    assert _ids(client.get("/api/products", params={"search": "rose quartz"})) == [3]


def test_material_and_gemstone_filters(client):
    # Retired ring is also gold vermeil but inactive
    assert _ids(client.get("/api/products", params={"material": "gold"})) == [3]
    assert _ids(client.get("/api/products", params={"gemstone": "tourmaline"})) == [2]
    assert _ids(client.get("/api/products", params={"gemstone": "diamond"})) == []


def test_price_range(client):
    params = {"minPrice": "50", "maxPrice": "100"}
    assert _ids(client.get("/api/products", params=params)) == [1]
    assert _ids(client.get("/api/products", params={"maxPrice": "45.50"})) == [3]


def test_price_range_inverted_is_validation_error(client):
    response = client.get("/api/products", params={"minPrice": "100", "maxPrice": "50"})
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_negative_price_is_validation_error(client):
    response = client.get("/api/products", params={"minPrice": "-1"})
    assert response.status_code == 400


def test_non_numeric_price_is_validation_error(client):
    response = client.get("/api/products", params={"minPrice": "cheap"})
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["retryable"] is False


def test_id_param_returns_single_product(client):
    response = client.get("/api/products", params={"id": "2", "featured": "true"})
    assert response.status_code == 200
    assert response.json()["name"] == "Black Tourmaline Protection Ring"


def test_non_numeric_id_is_validation_not_not_found(client):
    response = client.get("/api/products", params={"id": "abc"})
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.parametrize("path, params", [
    ("/api/products/99999999999999999999", None),
    ("/api/products/2147483648", None),
    ("/api/products", {"id": "99999999999999999999"}),
])
def test_id_beyond_integer_range_is_validation_error(client, path, params):
    response = client.get(path, params=params)
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert response.json()["retryable"] is False


def test_largest_integer_id_is_not_found(client):
    assert client.get("/api/products/2147483647").status_code == 404


def test_price_beyond_integer_range_is_validation_error(client):
    response = client.get("/api/products", params={"maxPrice": "1e30"})
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_missing_product_is_not_found(client):
    response = client.get("/api/products/999999")
    assert response.status_code == 404
    assert response.json() == {
        "error": "Product not found",
        "code": "NOT_FOUND",
        "retryable": False,
        "details": {"product_id": 999999},
    }


def test_inactive_product_still_resolves_by_id(client):
    data = client.get("/api/products/4").json()
    assert data["isActive"] is False


def test_categories(client):
    response = client.get("/api/categories")
    assert [c["slug"] for c in response.json()] == ["necklaces", "rings"]

    assert client.get("/api/categories/rings").json()["name"] == "Rings"
    assert client.get("/api/categories/bangles").status_code == 404


def test_no_database_is_retryable_upstream_failure(client):
    def no_db():
        yield None

    app.dependency_overrides[get_db] = no_db
    response = client.get("/api/products")
    assert response.status_code == 503
    body = response.json()
    assert body["code"] == "UPSTREAM_FAILURE"
    assert body["retryable"] is True
