from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from Schemas.BOQ.CommonSchema import RelationRef


class _Out(BaseModel):
    id: int
    document_id: str = Field(..., alias="documentId")
    name: str

    class Config:
        from_attributes = True
        populate_by_name = True


class DivisionOut(_Out):
    code: Optional[str] = None


class DepotOut(_Out):
    code: Optional[str] = None
    address: Optional[str] = None
    state: Optional[str] = None
    division: Optional[RelationRef] = None


class BusStationOut(_Out):
    address: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    division: Optional[RelationRef] = None
    depot: Optional[RelationRef] = None


class BusStandOut(_Out):
    platform_number: Optional[str] = None
    division: Optional[RelationRef] = None
    depot: Optional[RelationRef] = None
    bus_station: Optional[RelationRef] = None


class ProductOut(_Out):
    category: str
    price: float
    currency: str
    updated_at: Optional[datetime] = None


class DivisionCreate(BaseModel):
    name: str = Field(..., min_length=1)
    code: Optional[str] = None


class DepotCreate(BaseModel):
    name: str = Field(..., min_length=1)
    code: Optional[str] = None
    address: Optional[str] = None
    state: str = "active"
    division: Any = Field(..., description="documentId or {connect: [documentId]}")


class BusStationCreate(BaseModel):
    name: str = Field(..., min_length=1)
    address: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    depot: Any = Field(..., description="documentId or {connect: [documentId]}")


class BusStandCreate(BaseModel):
    name: str = Field(..., min_length=1)
    platform_number: Optional[str] = None
    bus_station: Any = Field(..., description="documentId or {connect: [documentId]}")


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    price: float = Field(0, ge=0)
    currency: str = "INR"


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
