from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from Schemas.Admin.UserSchema import UserRef
from Schemas.BOQ.CommonSchema import RelationRef

SelectionRows = Optional[List[Dict[str, Any]]]


class BOQCreate(BaseModel):
    """
    Write payload for a new BOQ.

    Relations are ``{"connect": [documentId]}`` (or a bare documentId).
    Every ``*_selection`` field is a list of rows shaped
    ``{<refKey>: {"connect": [documentId]}, "count": n}``.
    """
    division: Any = None
    depot: Any = None
    bus_station: Any = None
    bus_stand: Any = None
    survey_date: Optional[date] = None
    remarks: Optional[str] = None

    nvr_selection: SelectionRows = None
    camera_selection: SelectionRows = None
    switch_selection: SelectionRows = None
    rack_selection: SelectionRows = None
    pole_selection: SelectionRows = None
    wpf_selection: SelectionRows = None
    cable_selection: SelectionRows = None
    conduit_selection: SelectionRows = None
    wire_selection: SelectionRows = None
    ups_selection: SelectionRows = None
    lcd_selection: SelectionRows = None


class BOQItemOut(BaseModel):
    id: int
    name: str
    group: str
    category: str
    qty: int
    price: float
    unit_price_at_commit: Optional[float] = None
    unit_price: float
    line_total: float
    installed_count: int
    product: Optional[RelationRef] = None


class BOQOut(BaseModel):
    id: int
    document_id: str = Field(..., alias="documentId")
    state: str
    division: Optional[RelationRef] = None
    depot: Optional[RelationRef] = None
    bus_station: Optional[RelationRef] = None
    bus_stand: Optional[RelationRef] = None
    remarks: Optional[str] = None
    survey_date: Optional[date] = None
    total_cost: float
    computed_total: float
    raised_by: Optional[UserRef] = None
    approved_by: Optional[UserRef] = None
    confirmed_by: Optional[UserRef] = None
    committed_at: Optional[datetime] = None
    items: List[BOQItemOut]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        populate_by_name = True


class ReconciliationRowOut(BaseModel):
    item_id: int
    name: str
    group: str
    qty: int
    installed_count: int
    remaining: int
    fully_installed: bool
    can_add_installation: bool


class ReconciliationOut(BaseModel):
    document_id: str = Field(..., alias="documentId")
    state: str
    items: List[ReconciliationRowOut]
    all_installed: bool

    class Config:
        populate_by_name = True


class BOQImportResult(BaseModel):
    created: int
    skipped: List[str]
    errors: List[str]


class NotifyRequest(BaseModel):
    boqId: Any
