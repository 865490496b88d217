"""
Pydantic schemas for the catalog API.

Field names are snake_case in Python and camelCase on the wire
(``img_src`` <-> ``imgSrc``).
"""
from datetime import datetime
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]
Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ProductCreate(CamelModel):
    title: Title
    description: NonEmptyStr
    img_src: NonEmptyStr
    price: float = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    seller_name: NonEmptyStr
    seller_address: NonEmptyStr
    category: NonEmptyStr


class ProductUpdate(CamelModel):
    """Catalog fields only; ratings and their aggregates change through the rating routes."""
    title: Optional[Title] = None
    description: Optional[NonEmptyStr] = None
    img_src: Optional[NonEmptyStr] = None
    price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    seller_name: Optional[NonEmptyStr] = None
    seller_address: Optional[NonEmptyStr] = None
    category: Optional[NonEmptyStr] = None


class RatingIn(CamelModel):
    user_id: NonEmptyStr
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = None


class RatingOut(CamelModel):
    user_id: str
    rating: int
    review: str = ""
    created_at: datetime


class ProductOut(CamelModel):
    id: str
    title: str
    description: str
    img_src: str
    price: float
    stock: int
    seller_name: str
    seller_address: str
    category: str
    ratings: List[RatingOut] = []
    avg_rating: float = 0.0
    total_ratings: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductListResponse(CamelModel):
    total: int
    page: int
    limit: int
    products: List[ProductOut]


class ProductCollection(CamelModel):
    total: int
    products: List[ProductOut]


class CategoryList(CamelModel):
    total: int
    categories: List[str]


class SellerCount(CamelModel):
    seller_name: str
    total_products: int


class CatalogSummary(CamelModel):
    total_products: int
    total_sellers: int
    categories: List[str]


class RatingStats(CamelModel):
    product_id: str
    avg_rating: float
    total_ratings: int
    rating_counts: Dict[int, int]


class ReviewList(CamelModel):
    product_id: str
    total_reviews: int
    reviews: List[RatingOut]


class MessageResponse(BaseModel):
    message: str
