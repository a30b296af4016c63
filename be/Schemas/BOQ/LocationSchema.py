from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from Schemas.Admin.UserSchema import UserRef
from Schemas.BOQ.CommonSchema import RelationRef


class AssemblyCreate(BaseModel):
    assembly_no: str = Field(..., min_length=1)
    name: Optional[str] = None
    district: Any = None


class AssemblyOut(BaseModel):
    id: int
    document_id: str = Field(..., alias="documentId")
    assembly_no: str
    name: Optional[str] = None
    district: Optional[RelationRef] = None
    coordinator: Optional[UserRef] = None

    class Config:
        populate_by_name = True


class LocationCreate(BaseModel):
    ps_no: str = Field(..., min_length=1)
    ps_name: str = Field(..., min_length=1)
    ps_location: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    assembly: Any = None


class LocationOut(BaseModel):
    id: int
    document_id: str = Field(..., alias="documentId")
    ps_no: str
    ps_name: str
    ps_location: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    assembly: Optional[RelationRef] = None

    class Config:
        populate_by_name = True


class SurveyCreate(BaseModel):
    location: Any
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    power_available: Optional[bool] = None
    network_available: Optional[bool] = None
    airtel_signal: int = Field(0, ge=0, le=5, description="Signal bars, 0-5")
    jio_signal: int = Field(0, ge=0, le=5, description="Signal bars, 0-5")
    site_condition: Optional[str] = None
    work_status: str = "Completed"
    remarks: Optional[str] = None
    photos: List[int] = []


class SurveyOut(BaseModel):
    id: int
    document_id: str = Field(..., alias="documentId")
    location: Optional[RelationRef] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    power_available: Optional[bool] = None
    network_available: Optional[bool] = None
    airtel_signal: int = 0
    jio_signal: int = 0
    site_condition: Optional[str] = None
    work_status: str
    remarks: Optional[str] = None
    photos: List[int] = []
    surveyed_by: Optional[UserRef] = None
    survey_date: Optional[datetime] = None

    class Config:
        populate_by_name = True


class LocationImportResult(BaseModel):
    uploaded: int
    skipped: List[Dict[str, Any]]


class HierarchyImportResult(BaseModel):
    rows: int
    created: Dict[str, int]
    skipped: List[str]
    errors: List[str]


class UploadedFileOut(BaseModel):
    id: int
    document_id: str = Field(..., alias="documentId")
    name: str
    url: str
    mime: Optional[str] = None
    size: int

    class Config:
        from_attributes = True
        populate_by_name = True
