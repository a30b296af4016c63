"""
Installed Product Model
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, JSON
from sqlalchemy.orm import relationship
from Database.session import Base, new_document_id


class InstalledProduct(Base):
    __tablename__ = 'installed_products'

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(32), unique=True, index=True, default=new_document_id)
    product_name = Column(String(200), nullable=False, index=True)
    group = Column(String(100), nullable=True)
    serial_number = Column(String(200), nullable=False)
    installation_date = Column(DateTime, nullable=False)
    state = Column(String(20), nullable=False, default='Installed')
    remarks = Column(Text, nullable=True)
    # ids of UploadedFile rows
    installation_images = Column(JSON, nullable=False, default=list)
    replaced_at = Column(DateTime, nullable=True)

    boq_id = Column(Integer, ForeignKey('boqs.id'), nullable=False, index=True)
    boq_item_id = Column(Integer, ForeignKey('boq_items.id'), nullable=False, index=True)
    bus_stand_id = Column(Integer, ForeignKey('bus_stands.id'), nullable=True, index=True)
    installed_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    boq = relationship("BOQ")
    boq_item = relationship("BOQItem")
    bus_stand = relationship("BusStand")
    installed_by = relationship("User", foreign_keys=[installed_by_id])
