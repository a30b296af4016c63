from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class CreateUser(BaseModel):
    email: str
    password: str = Field(..., min_length=8)
    username: str = Field(..., min_length=3)
    role: str = "surveyor"


class UserRef(BaseModel):
    id: int
    document_id: str = Field(..., alias="documentId")
    username: str
    email: Optional[str] = None

    class Config:
        from_attributes = True
        populate_by_name = True


class UserOut(UserRef):
    role: Optional[str] = None
    registered_at: Optional[datetime] = None


def user_ref(user) -> Optional[UserRef]:
    if user is None:
        return None
    return UserRef(id=user.id, document_id=user.document_id, username=user.username, email=user.email)
