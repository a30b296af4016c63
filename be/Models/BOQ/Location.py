"""
Polling-station Location and Survey Models

Districts group assemblies, assemblies group polling-station locations; a
Location is keyed by (assembly, PS number). A district and each of its
assemblies may have a coordinator assigned. Surveys record field visits to a
location (GPS fix, signal strength per carrier, site condition, photos).

Database Tables: districts, assemblies, locations, surveys
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, JSON, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from Database.session import Base, new_document_id


class District(Base):
    __tablename__ = 'districts'

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(32), unique=True, index=True, default=new_document_id)
    name = Column(String(200), unique=True, nullable=False, index=True)
    code = Column(String(50), nullable=True)
    coordinator_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    coordinator = relationship("User")
    assemblies = relationship("Assembly", back_populates="district", order_by="Assembly.assembly_no")


class Assembly(Base):
    __tablename__ = 'assemblies'

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(32), unique=True, index=True, default=new_document_id)
    assembly_no = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=True)
    district_id = Column(Integer, ForeignKey('districts.id'), nullable=True, index=True)
    coordinator_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)

    district = relationship("District", back_populates="assemblies")
    coordinator = relationship("User")
    locations = relationship("Location", back_populates="assembly")


class Location(Base):
    __tablename__ = 'locations'
    __table_args__ = (
        UniqueConstraint('assembly_id', 'ps_no', name='uq_location_assembly_ps'),
    )

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(32), unique=True, index=True, default=new_document_id)
    ps_no = Column(String(50), nullable=False, index=True)
    ps_name = Column(String(300), nullable=False)
    ps_location = Column(String(300), nullable=True)
    latitude = Column(String(50), nullable=True)
    longitude = Column(String(50), nullable=True)
    assembly_id = Column(Integer, ForeignKey('assemblies.id'), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    assembly = relationship("Assembly", back_populates="locations")
    surveys = relationship("Survey", back_populates="location")


class Survey(Base):
    __tablename__ = 'surveys'

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(32), unique=True, index=True, default=new_document_id)
    location_id = Column(Integer, ForeignKey('locations.id'), nullable=False, index=True)
    latitude = Column(String(50), nullable=True)
    longitude = Column(String(50), nullable=True)
    power_available = Column(Boolean, nullable=True)
    network_available = Column(Boolean, nullable=True)
    # signal bars per carrier, 0-5
    airtel_signal = Column(Integer, nullable=False, default=0)
    jio_signal = Column(Integer, nullable=False, default=0)
    site_condition = Column(String(50), nullable=True)
    work_status = Column(String(30), nullable=False, default='Completed')
    remarks = Column(Text, nullable=True)
    photos = Column(JSON, nullable=False, default=list)
    surveyed_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    survey_date = Column(DateTime, default=datetime.utcnow)

    location = relationship("Location", back_populates="surveys")
    surveyed_by = relationship("User")
