#storefront/data/models/cart.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime

from storefront.data.database import Base


class CartModel(Base):
    """Trwaly slot koszyka: caly koszyk zapisany jako jeden dokument json."""

    __tablename__ = "carts"

    cart_key = Column(String(128), primary_key=True)
    schema_version = Column(Integer, nullable=False, default=2)
    payload = Column(Text, nullable=False, default="[]")
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
