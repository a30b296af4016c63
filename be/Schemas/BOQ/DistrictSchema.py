from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from Schemas.Admin.UserSchema import UserRef
from Schemas.BOQ.CommonSchema import RelationRef


class DistrictCreate(BaseModel):
    name: str = Field(..., min_length=1)
    code: Optional[str] = None
    coordinator: Any = None


class DistrictOut(BaseModel):
    id: int
    document_id: str = Field(..., alias="documentId")
    name: str
    code: Optional[str] = None
    coordinator: Optional[UserRef] = None
    assemblies: List[RelationRef] = []
    created_at: Optional[datetime] = None

    class Config:
        populate_by_name = True


class CoordinatorCreate(BaseModel):
    """A coordinator account assigned to a district or to one assembly."""
    username: str = Field(..., min_length=3)
    email: str
    password: str = Field(..., min_length=8)
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    district: Any = None
    assembly: Any = None


class CoordinatorOut(UserRef):
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    districts: List[RelationRef] = []
    assemblies: List[RelationRef] = []
    registered_at: Optional[datetime] = None


class InstallationTotals(BaseModel):
    requested: int = 0
    installed: int = 0
    remaining: int = 0
    by_state: Dict[str, int] = {}


class DashboardSummary(BaseModel):
    district: Optional[RelationRef] = None
    assemblies: int
    locations: int
    surveys: int
    boqs: int
    boqs_by_state: Dict[str, int]
    installations: InstallationTotals
    dispatches_by_state: Dict[str, int]
