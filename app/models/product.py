"""
Product catalog model
Only the fields the shipping and cart-recovery code reads; the catalog itself
is maintained by the admin back-office.
"""
import uuid
from sqlalchemy import Column, String, Numeric, Integer, Boolean, DateTime

from app.models.base import Base
from app.utils.helpers import utcnow


class Product(Base):
    """Sellable product"""
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sku = Column(String(64), unique=True, index=True, nullable=True)

    # Basic info
    name = Column(String(255), nullable=False)
    name_sv = Column(String(255), nullable=True)
    name_en = Column(String(255), nullable=True)
    category = Column(String(100), index=True, nullable=True)

    # Pricing (SEK)
    price = Column(Numeric(10, 2), nullable=False)

    # Shipping
    weight = Column(Numeric(8, 3), default=0)  # kg

    # Inventory
    stock = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
