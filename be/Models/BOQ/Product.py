"""
Product Catalog Model

One table holds every catalog category (NVR, camera, switch, ...). The
category column decides which REST collection an item is served from.
Price is mutable: changing it moves the valuation of BOQs that are still
pending, never of committed ones.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Float, UniqueConstraint
from Database.session import Base, new_document_id


class Product(Base):
    __tablename__ = 'products'
    __table_args__ = (
        UniqueConstraint('category', 'name', name='uq_product_category_name'),
    )

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(32), unique=True, index=True, default=new_document_id)
    category = Column(String(30), nullable=False, index=True)
    name = Column(String(200), nullable=False, index=True)
    price = Column(Float, nullable=False, default=0)
    currency = Column(String(10), nullable=False, default='INR')
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
