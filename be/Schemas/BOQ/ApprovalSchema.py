from pydantic import BaseModel, Field
from typing import Optional, List


class TransitionRequest(BaseModel):
    state: str = Field(..., description="Target BOQ state")
    remarks: Optional[str] = None


class TransitionResponse(BaseModel):
    document_id: str = Field(..., alias="documentId")
    previous_state: str
    state: str
    total_cost: float
    prices_committed: bool

    class Config:
        populate_by_name = True


class AvailableTransitions(BaseModel):
    document_id: str = Field(..., alias="documentId")
    state: str
    role: Optional[str] = None
    available: List[str]

    class Config:
        populate_by_name = True


class TransitionRule(BaseModel):
    source: str
    target: str
    required_role: str
