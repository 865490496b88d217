"""
Rating aggregate logic for catalog products.

Ratings live inside the product as a list of dicts::

    {"userId": "u1", "rating": 4, "review": "Solid", "createdAt": "2024-01-01T10:00:00+00:00"}

Every mutation builds a fresh list and hands it to
``Product.replace_ratings``, which recomputes ``avg_rating`` and
``total_ratings`` in the same step, so the derived fields are always written
together with the ratings they describe.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..common.errors import ValidationError

MIN_RATING = 1
MAX_RATING = 5


def recompute_aggregates(entries: Sequence[Dict[str, Any]]) -> Tuple[float, int]:
    """Return ``(avg_rating, total_ratings)`` for a rating sequence; an empty one averages 0."""
    total = len(entries)
    if total == 0:
        return 0.0, 0
    return sum(entry["rating"] for entry in entries) / total, total


def validate_rating(user_id: Optional[str], rating: Optional[int]) -> None:
    if not user_id or rating is None or isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError("Valid userId and rating (1-5) are required.")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError("Valid userId and rating (1-5) are required.")


def _timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def upsert_rating(
    product,
    user_id: str,
    rating: int,
    review: Optional[str] = None,
    now: Optional[datetime] = None,
) -> bool:
    """
    Insert or update ``user_id``'s rating on ``product``.

    An existing entry gets the new score and a fresh ``createdAt``; its review
    is only replaced when a non-empty one is supplied. Returns True when a new
    entry was appended.

    Raises:
        ValidationError: missing user id, or rating outside 1..5
    """
    validate_rating(user_id, rating)
    timestamp = _timestamp(now)
    entries = [dict(entry) for entry in product.ratings or []]

    for entry in entries:
        if str(entry["userId"]) == str(user_id):
            entry["rating"] = rating
            if review:
                entry["review"] = review
            entry["createdAt"] = timestamp
            created = False
            break
    else:
        entries.append({
            "userId": str(user_id),
            "rating": rating,
            "review": review or "",
            "createdAt": timestamp,
        })
        created = True

    product.replace_ratings(entries)
    return created


def remove_rating(product, user_id: str) -> bool:
    """Drop ``user_id``'s rating from ``product``. Returns False if the user never rated it."""
    entries = product.ratings or []
    remaining = [dict(entry) for entry in entries if str(entry["userId"]) != str(user_id)]
    if len(remaining) == len(entries):
        return False
    product.replace_ratings(remaining)
    return True


def rating_counts(entries: Sequence[Dict[str, Any]]) -> Dict[int, int]:
    """Histogram of star values; every bucket from 5 down to 1 is present."""
    counts = {star: 0 for star in range(MAX_RATING, MIN_RATING - 1, -1)}
    for entry in entries:
        counts[entry["rating"]] = counts.get(entry["rating"], 0) + 1
    return counts


def reviews(entries: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Entries carrying a non-blank review, most recent first."""
    with_text = [entry for entry in entries if (entry.get("review") or "").strip()]
    return sorted(
        with_text,
        key=lambda entry: datetime.fromisoformat(entry["createdAt"]),
        reverse=True,
    )
