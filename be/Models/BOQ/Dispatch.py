"""
Material Dispatch Model

A dispatch moves a quantity of one material from a district store to one of
its assemblies. It is created Pending by the district side and becomes
Delivered once the receiving assembly confirms it.

Database Tables: dispatches
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from Database.session import Base, new_document_id


class Dispatch(Base):
    __tablename__ = 'dispatches'
    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_dispatch_quantity_positive'),
    )

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(32), unique=True, index=True, default=new_document_id)
    material_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    state = Column(String(20), nullable=False, default='Pending', index=True)
    remarks = Column(Text, nullable=True)

    from_district_id = Column(Integer, ForeignKey('districts.id'), nullable=False, index=True)
    to_assembly_id = Column(Integer, ForeignKey('assemblies.id'), nullable=False, index=True)
    photo_id = Column(Integer, ForeignKey('uploaded_files.id'), nullable=True)

    dispatched_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    dispatched_on = Column(DateTime, default=datetime.utcnow)
    received_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    received_on = Column(DateTime, nullable=True)

    from_district = relationship("District")
    to_assembly = relationship("Assembly")
    photo = relationship("UploadedFile")
    dispatched_by = relationship("User", foreign_keys=[dispatched_by_id])
    received_by = relationship("User", foreign_keys=[received_by_id])
