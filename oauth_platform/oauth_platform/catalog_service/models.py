"""
Catalog SQLAlchemy models.

A product row is the whole aggregate: its ratings are kept inline in a JSON
column next to the derived ``avg_rating``/``total_ratings`` fields.
"""
from sqlalchemy import Column, DateTime, Float, Integer, JSON, String, Text, Index
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.sql.schema import CheckConstraint
from datetime import datetime
import uuid

from .db import Base
from .ratings import recompute_aggregates


class Product(Base):
    __tablename__ = "products"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    img_src = Column(String, nullable=False)
    price = Column(Float, CheckConstraint("price >= 0.0"), nullable=False)
    stock = Column(Integer, CheckConstraint("stock >= 0"), nullable=False, default=0)
    seller_name = Column(String, nullable=False)
    seller_address = Column(String, nullable=False)
    category = Column(String, nullable=False)

    # [{"userId", "rating", "review", "createdAt"}], at most one entry per user
    ratings = Column(JSON, nullable=False, default=list)
    avg_rating = Column(Float, nullable=False, default=0.0)
    total_ratings = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('ix_products_category', 'category'),
        Index('ix_products_seller_name', 'seller_name'),
        Index('ix_products_avg_rating', 'avg_rating'),
        Index('ix_products_total_ratings', 'total_ratings'),
    )

    def replace_ratings(self, entries) -> None:
        """Swap in a new rating sequence and recompute the derived fields with it."""
        self.ratings = [dict(entry) for entry in entries]
        self.avg_rating, self.total_ratings = recompute_aggregates(self.ratings)
        flag_modified(self, "ratings")

    def __repr__(self):
        return f"<Product(id={self.id}, title={self.title}, category={self.category}, price={self.price}, avg_rating={self.avg_rating}, total_ratings={self.total_ratings})>"
