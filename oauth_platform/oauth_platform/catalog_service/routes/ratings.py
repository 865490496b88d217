"""
Rating and review routes.

Ratings are sub-objects of a product: every write loads the product,
changes its rating list through ``catalog_service.ratings`` and commits the
list together with the recomputed aggregates in one transaction.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...common.config import Settings, get_settings
from ...common.errors import InternalError, NotFoundError
from ...common.tracing import route_span
from ..db import get_db
from ..models import Product
from ..ratings import rating_counts, remove_rating, reviews, upsert_rating
from ..schemas import MessageResponse, ProductCollection, ProductOut, RatingIn, RatingStats, ReviewList
from .products import get_product_or_404, to_out

router = APIRouter(prefix="/products", tags=["ratings"])
logger = logging.getLogger(__name__)


@router.get("/top-rated", response_model=ProductCollection)
def top_rated_products(
    limit: Optional[int] = Query(None, ge=1),
    min_ratings: int = Query(1, ge=0, alias="minRatings"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Products with at least ``minRatings`` ratings, best average first. ``minRatings=0`` falls back to 1."""
    limit = limit or settings.TOP_RATED_DEFAULT_LIMIT
    min_ratings = min_ratings or 1
    products = (
        db.query(Product)
        .filter(Product.total_ratings >= min_ratings)
        .order_by(Product.avg_rating.desc(), Product.total_ratings.desc(), Product.id.asc())
        .limit(limit)
        .all()
    )
    return ProductCollection(total=len(products), products=to_out(products))


@router.post("/{product_id}/rate", response_model=ProductOut)
def rate_product(product_id: str, payload: RatingIn, request: Request, db: Session = Depends(get_db)):
    with route_span(request, "rate_product") as span:
        span.set_tag("product_id", product_id)
        span.log("finding_product")
        product = get_product_or_404(db, product_id, for_update=True)

        span.log("saving_rating")
        try:
            created = upsert_rating(product, payload.user_id, payload.rating, payload.review)
            db.commit()
            db.refresh(product)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Rating error: {e}")
            raise InternalError("Rating failed.") from e

        logger.info(
            "Rating %s: product_id=%s user_id=%s rating=%s avg_rating=%.2f total_ratings=%s",
            "added" if created else "updated", product.id, payload.user_id, payload.rating,
            product.avg_rating, product.total_ratings
        )
        return ProductOut.model_validate(product)


@router.get("/{product_id}/ratings", response_model=RatingStats)
def rating_statistics(product_id: str, db: Session = Depends(get_db)):
    product = get_product_or_404(db, product_id)
    return RatingStats(
        product_id=product.id,
        avg_rating=product.avg_rating,
        total_ratings=product.total_ratings,
        rating_counts=rating_counts(product.ratings or [])
    )


@router.get("/{product_id}/reviews", response_model=ReviewList)
def list_reviews(product_id: str, db: Session = Depends(get_db)):
    product = get_product_or_404(db, product_id)
    entries = reviews(product.ratings or [])
    return ReviewList(product_id=product.id, total_reviews=len(entries), reviews=entries)


@router.delete("/{product_id}/ratings/{user_id}", response_model=MessageResponse)
def delete_rating(product_id: str, user_id: str, request: Request, db: Session = Depends(get_db)):
    with route_span(request, "delete_rating") as span:
        span.set_tag("product_id", product_id)
        product = get_product_or_404(db, product_id, for_update=True)

        if not remove_rating(product, user_id):
            db.rollback()
            raise NotFoundError("Rating not found for this user.")

        span.log("saving_product")
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Delete rating error: {e}")
            raise InternalError("Error deleting rating.") from e

        logger.info("Rating deleted: product_id=%s user_id=%s", product_id, user_id)
        return MessageResponse(message="Rating deleted successfully.")
