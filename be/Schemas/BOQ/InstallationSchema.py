from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

from Schemas.Admin.UserSchema import UserRef
from Schemas.BOQ.CommonSchema import RelationRef


class InstallationCreate(BaseModel):
    boq: Any = Field(..., description="documentId or {connect: [documentId]} of an Approved BOQ")
    boq_item: Optional[int] = Field(None, description="BOQ line item id")
    product_name: Optional[str] = Field(None, description="Used to find the line when boq_item is not given")
    serial_number: str = Field(..., min_length=1)
    installation_date: datetime
    installation_images: List[int] = []
    remarks: Optional[str] = None


class InstallationStateUpdate(BaseModel):
    state: Literal["Faulty", "Replaced"]
    remarks: str = Field(..., min_length=1, description="Reason for the status change")


class InstalledProductOut(BaseModel):
    id: int
    document_id: str = Field(..., alias="documentId")
    product_name: str
    group: Optional[str] = None
    serial_number: str
    installation_date: datetime
    state: str
    remarks: Optional[str] = None
    installation_images: List[int] = []
    replaced_at: Optional[datetime] = None
    boq: Optional[RelationRef] = None
    boq_item_id: int
    bus_stand: Optional[RelationRef] = None
    installed_by: Optional[UserRef] = None

    class Config:
        populate_by_name = True
