"""Product construction, normalization and immutability."""
from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pytest

from catalog_search.exceptions import InvalidProductError
from catalog_search.product import Product

from conftest import make_product


def _create(**overrides):
    fields = dict(
        name="  iPhone 15 Pro ",
        description=" Latest Apple smartphone ",
        category=" Electronics ",
        subcategories=[" Smartphones ", "", "   ", "Apple", "Apple"],
        price=999.99,
        latitude=40.7128,
        longitude=-74.006,
    )
    fields.update(overrides)
    return Product.create(**fields)


def test_create_assigns_identity_timestamps_and_zero_popularity():
    product = _create()

    assert product.id
    assert product.popularity == 0
    assert product.created_at == product.updated_at
    assert product.created_at.tzinfo is not None
    assert product.created_at.microsecond % 1000 == 0


def test_create_generates_distinct_ids():
    assert _create().id != _create().id


def test_strings_are_trimmed_and_blank_subcategories_dropped():
    product = _create()

    assert product.name == "iPhone 15 Pro"
    assert product.description == "Latest Apple smartphone"
    assert product.category == "Electronics"
    # duplicates are kept, order preserved
    assert product.subcategories == ("Smartphones", "Apple", "Apple")


@pytest.mark.parametrize("field", ["name", "category"])
@pytest.mark.parametrize("value", ["", "   ", None])
def test_blank_required_fields_are_rejected(field, value):
    with pytest.raises(InvalidProductError):
        _create(**{field: value})


@pytest.mark.parametrize(
    "overrides",
    [
        {"price": -0.01},
        {"latitude": 90.5},
        {"latitude": -91},
        {"longitude": 180.1},
        {"longitude": -181},
        {"price": float("nan")},
        {"price": float("inf")},
        {"price": "10"},
        {"latitude": float("nan")},
        {"longitude": float("-inf")},
    ],
)
def test_out_of_range_values_are_rejected(overrides):
    with pytest.raises(InvalidProductError):
        _create(**overrides)


def test_invalid_product_error_is_a_value_error():
    with pytest.raises(ValueError):
        _create(name=" ")


def test_reconstitute_keeps_identity_and_timestamps():
    created = datetime(2023, 5, 1, 12, 0, tzinfo=timezone.utc)
    product = make_product(id="abc", created_at=created, updated_at=created, popularity=7)

    assert product.id == "abc"
    assert product.created_at == created
    assert product.popularity == 7


def test_reconstitute_normalizes_like_create():
    product = make_product(name="  Desk  ", subcategories=[" Office ", " "])

    assert product.name == "Desk"
    assert product.subcategories == ("Office",)


def test_reconstitute_defaults_missing_popularity_and_subcategories():
    product = make_product(popularity=None, subcategories=None)

    assert product.popularity == 0
    assert product.subcategories == ()


def test_reconstitute_requires_an_id():
    with pytest.raises(InvalidProductError):
        make_product(id="")


def test_naive_timestamps_are_treated_as_utc():
    naive = datetime(2024, 1, 1, 0, 0)
    product = make_product(created_at=naive, updated_at=naive)

    assert product.created_at == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_product_is_immutable(product):
    with pytest.raises(FrozenInstanceError):
        product.name = "Other"


def test_to_dict_returns_fresh_containers(product):
    snapshot = product.to_dict()
    snapshot["subcategories"].append("Hacked")

    assert product.subcategories == ("Laptops", "Computers")
    assert product.to_dict()["subcategories"] == ["Laptops", "Computers"]


@pytest.mark.parametrize("popularity", [-1, 1.5, True, "3"])
def test_popularity_must_be_a_non_negative_integer(popularity):
    with pytest.raises(InvalidProductError):
        make_product(popularity=popularity)
