"""
BOQ (Bill of Quantities) Models

A BOQ is raised against one bus stand (and its division, depot and station)
and lists product rows with requested quantities. Its ``state`` follows the
approval lifecycle defined in utils.boq_state_machine.

Pricing columns on BOQItem:
    price                 catalog price recorded when the row was created
    unit_price_at_commit  written exactly once, when the BOQ leaves a
                          pending state; committed valuations read it

``installed_count`` is the server-side installation quota counter. It is only
ever incremented through a guarded UPDATE (see InstallationRoute) so it can
never exceed ``qty``.

Database Tables: boqs, boq_items
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, Float, Date, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from Database.session import Base, new_document_id


class BOQ(Base):
    __tablename__ = 'boqs'

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(32), unique=True, index=True, default=new_document_id)

    division_id = Column(Integer, ForeignKey('divisions.id'), nullable=True, index=True)
    depot_id = Column(Integer, ForeignKey('depots.id'), nullable=True, index=True)
    bus_station_id = Column(Integer, ForeignKey('bus_stations.id'), nullable=True, index=True)
    bus_stand_id = Column(Integer, ForeignKey('bus_stands.id'), nullable=True, index=True)

    state = Column(String(30), nullable=False, default='Pending', index=True)
    total_cost = Column(Float, nullable=False, default=0)
    remarks = Column(Text, nullable=True)
    survey_date = Column(Date, nullable=True)

    raised_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    approved_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    confirmed_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    committed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    division = relationship("Division")
    depot = relationship("Depot")
    bus_station = relationship("BusStation")
    bus_stand = relationship("BusStand")
    raised_by = relationship("User", foreign_keys=[raised_by_id])
    approved_by = relationship("User", foreign_keys=[approved_by_id])
    confirmed_by = relationship("User", foreign_keys=[confirmed_by_id])

    items = relationship(
        "BOQItem",
        back_populates="boq",
        cascade="all, delete-orphan",
        order_by="BOQItem.id",
    )


class BOQItem(Base):
    __tablename__ = 'boq_items'
    __table_args__ = (
        CheckConstraint('qty > 0', name='ck_boq_item_qty_positive'),
        CheckConstraint('installed_count <= qty', name='ck_boq_item_quota'),
    )

    id = Column(Integer, primary_key=True, index=True)
    boq_id = Column(Integer, ForeignKey('boqs.id'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=True)

    category = Column(String(30), nullable=False)
    name = Column(String(200), nullable=False)
    group = Column(String(100), nullable=False)
    qty = Column(Integer, nullable=False)
    price = Column(Float, nullable=False, default=0)
    unit_price_at_commit = Column(Float, nullable=True)
    installed_count = Column(Integer, nullable=False, default=0)

    boq = relationship("BOQ", back_populates="items")
    product = relationship("Product")
