"""
Unit tests for the rating aggregate (no HTTP, no database).
"""
import pytest
from datetime import datetime, timedelta, timezone

from oauth_platform.oauth_platform.common.errors import ValidationError
from oauth_platform.oauth_platform.catalog_service.models import Product
from oauth_platform.oauth_platform.catalog_service.ratings import (
    rating_counts,
    recompute_aggregates,
    remove_rating,
    reviews,
    upsert_rating,
)

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def product():
    return Product(title="Lamp", description="Desk lamp", img_src="lamp.jpg", price=20.0, stock=3,
                   seller_name="Lumen", seller_address="1 Light St", category="lighting")


def test_empty_sequence_aggregates_to_zero():
    assert recompute_aggregates([]) == (0.0, 0)
    assert rating_counts([]) == {5: 0, 4: 0, 3: 0, 2: 0, 1: 0}


def test_three_distinct_raters(product):
    upsert_rating(product, "u1", 5, now=T0)
    upsert_rating(product, "u2", 5, now=T0)
    upsert_rating(product, "u3", 4, now=T0)

    assert product.total_ratings == 3
    assert product.avg_rating == pytest.approx(14 / 3)
    assert rating_counts(product.ratings) == {5: 2, 4: 1, 3: 0, 2: 0, 1: 0}


def test_upsert_is_idempotent_per_user(product):
    assert upsert_rating(product, "u1", 4, "Nice", now=T0) is True
    assert upsert_rating(product, "u1", 4, "Nice", now=T0) is False

    assert len(product.ratings) == 1
    assert product.total_ratings == 1
    assert product.avg_rating == 4


def test_update_replaces_score_and_refreshes_timestamp(product):
    upsert_rating(product, "u1", 2, "Meh", now=T0)
    later = T0 + timedelta(days=1)
    upsert_rating(product, "u1", 5, "Grew on me", now=later)

    entry = product.ratings[0]
    assert entry["rating"] == 5
    assert entry["review"] == "Grew on me"
    assert entry["createdAt"] == later.isoformat()
    assert product.avg_rating == 5


def test_empty_review_keeps_previous_text(product):
    upsert_rating(product, "u1", 3, "Decent light", now=T0)
    upsert_rating(product, "u1", 4, "", now=T0)
    upsert_rating(product, "u1", 4, None, now=T0)

    assert product.ratings[0]["review"] == "Decent light"
    assert product.ratings[0]["rating"] == 4


def test_new_entry_without_review_stores_empty_text(product):
    upsert_rating(product, "u1", 3, now=T0)
    assert product.ratings[0]["review"] == ""


@pytest.mark.parametrize("bad", [0, 6, -1, None])
def test_rating_out_of_range_rejected(product, bad):
    with pytest.raises(ValidationError):
        upsert_rating(product, "u1", bad, now=T0)
    assert not product.ratings


def test_missing_user_rejected(product):
    with pytest.raises(ValidationError):
        upsert_rating(product, "", 3, now=T0)


@pytest.mark.parametrize("edge", [1, 5])
def test_rating_bounds_accepted(product, edge):
    upsert_rating(product, "u1", edge, now=T0)
    assert product.avg_rating == edge


def test_remove_rating(product):
    upsert_rating(product, "u1", 5, now=T0)
    upsert_rating(product, "u2", 1, now=T0)

    assert remove_rating(product, "u1") is True
    assert product.total_ratings == 1
    assert product.avg_rating == 1
    assert all(entry["userId"] != "u1" for entry in product.ratings)


def test_remove_rating_for_unknown_user(product):
    upsert_rating(product, "u1", 5, now=T0)

    assert remove_rating(product, "nobody") is False
    assert product.total_ratings == 1


def test_removing_last_rating_resets_average(product):
    upsert_rating(product, "u1", 3, now=T0)
    remove_rating(product, "u1")

    assert product.ratings == []
    assert product.avg_rating == 0
    assert product.total_ratings == 0


def test_reviews_skip_blank_and_sort_newest_first(product):
    upsert_rating(product, "old", 4, "First!", now=T0)
    upsert_rating(product, "quiet", 5, "   ", now=T0 + timedelta(hours=1))
    upsert_rating(product, "silent", 2, now=T0 + timedelta(hours=2))
    upsert_rating(product, "new", 3, "Bulb died", now=T0 + timedelta(hours=3))

    result = reviews(product.ratings)

    assert [entry["userId"] for entry in result] == ["new", "old"]
