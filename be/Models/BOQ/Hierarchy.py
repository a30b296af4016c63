"""
Site Hierarchy Models

This module defines the four-level location hierarchy a BOQ is raised
against: Division -> Depot -> BusStation -> BusStand.

Every child references exactly one parent. Stations and stands also keep a
direct reference to their division (and depot for stands) so that collection
filters such as ``filters[division][documentId][$eq]`` work at every level
without joins.

Database Tables: divisions, depots, bus_stations, bus_stands
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from Database.session import Base, new_document_id


class Division(Base):
    __tablename__ = 'divisions'

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(32), unique=True, index=True, default=new_document_id)
    name = Column(String(200), unique=True, nullable=False, index=True)
    code = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    depots = relationship("Depot", back_populates="division")


class Depot(Base):
    __tablename__ = 'depots'
    __table_args__ = (
        UniqueConstraint('division_id', 'name', name='uq_depot_division_name'),
    )

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(32), unique=True, index=True, default=new_document_id)
    name = Column(String(200), nullable=False, index=True)
    code = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    state = Column(String(20), nullable=False, default='active')
    division_id = Column(Integer, ForeignKey('divisions.id'), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    division = relationship("Division", back_populates="depots")
    bus_stations = relationship("BusStation", back_populates="depot")


class BusStation(Base):
    __tablename__ = 'bus_stations'
    __table_args__ = (
        UniqueConstraint('depot_id', 'name', name='uq_station_depot_name'),
    )

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(32), unique=True, index=True, default=new_document_id)
    name = Column(String(200), nullable=False, index=True)
    address = Column(String(500), nullable=True)
    latitude = Column(String(50), nullable=True)
    longitude = Column(String(50), nullable=True)
    division_id = Column(Integer, ForeignKey('divisions.id'), nullable=False, index=True)
    depot_id = Column(Integer, ForeignKey('depots.id'), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    division = relationship("Division")
    depot = relationship("Depot", back_populates="bus_stations")
    bus_stands = relationship("BusStand", back_populates="bus_station")


class BusStand(Base):
    __tablename__ = 'bus_stands'

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(32), unique=True, index=True, default=new_document_id)
    name = Column(String(300), unique=True, nullable=False, index=True)
    platform_number = Column(String(50), nullable=True)
    division_id = Column(Integer, ForeignKey('divisions.id'), nullable=False, index=True)
    depot_id = Column(Integer, ForeignKey('depots.id'), nullable=False, index=True)
    bus_station_id = Column(Integer, ForeignKey('bus_stations.id'), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    division = relationship("Division")
    depot = relationship("Depot")
    bus_station = relationship("BusStation", back_populates="bus_stands")
