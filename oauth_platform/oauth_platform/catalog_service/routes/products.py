"""
Product catalog routes: CRUD, filtered listing, search and aggregate views.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...common.config import Settings, get_settings
from ...common.errors import InternalError, NotFoundError, QueryError, ServiceError, ValidationError
from ...common.tracing import route_span
from ..db import get_db
from ..models import Product
from ..schemas import (
    CatalogSummary,
    CategoryList,
    MessageResponse,
    ProductCollection,
    ProductCreate,
    ProductListResponse,
    ProductOut,
    ProductUpdate,
    SellerCount,
)

router = APIRouter(prefix="/products", tags=["products"])
logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "createdAt": Product.created_at,
    "updatedAt": Product.updated_at,
    "title": Product.title,
    "price": Product.price,
    "stock": Product.stock,
    "category": Product.category,
    "sellerName": Product.seller_name,
    "avgRating": Product.avg_rating,
    "totalRatings": Product.total_ratings,
}

SEARCH_FIELDS = (Product.title, Product.description, Product.category, Product.seller_name)


def get_product_or_404(db: Session, product_id: str, for_update: bool = False) -> Product:
    query = db.query(Product).filter(Product.id == product_id)
    if for_update:
        # Row lock on backends that support it; serializes rating writers per product
        query = query.with_for_update()
    product = query.first()
    if not product:
        raise NotFoundError("Product not found.")
    return product


def to_out(products) -> List[ProductOut]:
    return [ProductOut.model_validate(product) for product in products]


@router.post("/bulk", response_model=List[ProductOut], status_code=status.HTTP_201_CREATED)
def bulk_create_products(payload: List[ProductCreate], request: Request, db: Session = Depends(get_db)):
    with route_span(request, "bulk_create_products") as span:
        span.log("validating_input")
        if not payload:
            raise ValidationError("Please provide an array of products.")

        span.log("saving_products")
        products = [Product(**item.model_dump()) for item in payload]
        try:
            db.add_all(products)
            db.commit()
            for product in products:
                db.refresh(product)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Bulk create error: {e}")
            raise InternalError("Bulk creation failed.") from e

        span.set_tag("count", len(products))
        logger.info("Bulk created %s products", len(products))
        return to_out(products)


@router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(payload: ProductCreate, request: Request, db: Session = Depends(get_db)):
    with route_span(request, "create_product") as span:
        product = Product(**payload.model_dump())
        span.log("saving_product")
        try:
            db.add(product)
            db.commit()
            db.refresh(product)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Create error: {e}")
            raise InternalError("Product creation failed.") from e

        logger.info("Product created: id=%s title=%s", product.id, product.title)
        return ProductOut.model_validate(product)


@router.get("", response_model=ProductListResponse)
def list_products(
    category: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    min_rating: Optional[float] = Query(None, alias="minRating"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    order: str = "desc",
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """
    List products with optional filters, sorting and pagination.

    Filters combine with AND: exact ``category``, inclusive price range and a
    minimum average rating. ``skip = (page - 1) * limit``.

    Raises:
        QueryError: unknown ``sortBy`` field
    """
    sort_column = SORT_FIELDS.get(sort_by)
    if sort_column is None:
        raise QueryError(f"Cannot sort by '{sort_by}'. Use one of: {', '.join(SORT_FIELDS)}")
    limit = limit or settings.DEFAULT_PAGE_SIZE

    query = db.query(Product)
    if category:
        query = query.filter(Product.category == category)
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)
    if min_rating is not None:
        query = query.filter(Product.avg_rating >= min_rating)

    total = query.count()
    direction = sort_column.asc() if order == "asc" else sort_column.desc()
    products = (
        query.order_by(direction, Product.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return ProductListResponse(total=total, page=page, limit=limit, products=to_out(products))


@router.get("/search", response_model=ProductCollection)
def search_products(q: Optional[str] = None, db: Session = Depends(get_db)):
    """Case-insensitive substring match over title, description, category and seller."""
    if not q or not q.strip():
        raise ValidationError("Search query required.")

    products = db.query(Product).filter(
        or_(*(column.icontains(q, autoescape=True) for column in SEARCH_FIELDS))
    ).order_by(Product.created_at.desc()).all()
    return ProductCollection(total=len(products), products=to_out(products))


@router.get("/available", response_model=ProductCollection)
def available_products(in_stock: bool = Query(False, alias="inStock"), db: Session = Depends(get_db)):
    query = db.query(Product)
    if in_stock:
        query = query.filter(Product.stock > 0)
    products = query.all()
    return ProductCollection(total=len(products), products=to_out(products))


@router.get("/categories", response_model=CategoryList)
def list_categories(db: Session = Depends(get_db)):
    categories = [row[0] for row in db.query(Product.category).distinct().order_by(Product.category).all()]
    return CategoryList(total=len(categories), categories=categories)


@router.get("/featured", response_model=List[ProductOut])
def featured_products(
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Random sample of products."""
    limit = limit or settings.FEATURED_DEFAULT_LIMIT
    return to_out(db.query(Product).order_by(func.random()).limit(limit).all())


@router.get("/top-sellers", response_model=List[SellerCount])
def top_sellers(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    product_count = func.count(Product.id)
    rows = (
        db.query(Product.seller_name, product_count)
        .group_by(Product.seller_name)
        .order_by(product_count.desc(), Product.seller_name.asc())
        .limit(settings.TOP_SELLERS_LIMIT)
        .all()
    )
    return [SellerCount(seller_name=seller, total_products=count) for seller, count in rows]


@router.get("/stats/summary", response_model=CatalogSummary)
def catalog_summary(db: Session = Depends(get_db)):
    total_products = db.query(Product).count()
    total_sellers = db.query(Product.seller_name).distinct().count()
    categories = [row[0] for row in db.query(Product.category).distinct().order_by(Product.category).all()]
    return CatalogSummary(total_products=total_products, total_sellers=total_sellers, categories=categories)


@router.get("/seller/{seller_name}", response_model=ProductCollection)
def products_by_seller(seller_name: str, db: Session = Depends(get_db)):
    products = db.query(Product).filter(Product.seller_name == seller_name).all()
    return ProductCollection(total=len(products), products=to_out(products))


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: str, db: Session = Depends(get_db)):
    return ProductOut.model_validate(get_product_or_404(db, product_id))


@router.put("/{product_id}", response_model=ProductOut)
def update_product(product_id: str, payload: ProductUpdate, db: Session = Depends(get_db)):
    try:
        product = get_product_or_404(db, product_id)
        for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(product, field, value)
        db.commit()
        db.refresh(product)
        return ProductOut.model_validate(product)
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Update error: {e}")
        raise InternalError("Update failed.") from e


@router.delete("/{product_id}", response_model=MessageResponse)
def delete_product(product_id: str, db: Session = Depends(get_db)):
    try:
        product = get_product_or_404(db, product_id)
        db.delete(product)
        db.commit()
        logger.info("Product deleted: id=%s", product_id)
        return MessageResponse(message="Product deleted.")
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Delete error: {e}")
        raise InternalError("Delete failed.") from e
