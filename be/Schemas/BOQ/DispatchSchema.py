from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from Schemas.Admin.UserSchema import UserRef
from Schemas.BOQ.CommonSchema import RelationRef


class DispatchCreate(BaseModel):
    from_district: Any
    to_assembly: Any
    material_name: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    remarks: Optional[str] = None
    photo: Optional[int] = Field(None, description="Id returned by /upload")


class DispatchReceive(BaseModel):
    remarks: Optional[str] = None


class DispatchOut(BaseModel):
    id: int
    document_id: str = Field(..., alias="documentId")
    material_name: str
    quantity: int
    state: str
    remarks: Optional[str] = None
    from_district: Optional[RelationRef] = None
    to_assembly: Optional[RelationRef] = None
    photo_url: Optional[str] = None
    dispatched_by: Optional[UserRef] = None
    dispatched_on: Optional[datetime] = None
    received_by: Optional[UserRef] = None
    received_on: Optional[datetime] = None

    class Config:
        populate_by_name = True
