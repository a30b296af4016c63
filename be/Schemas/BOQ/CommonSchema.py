"""
Shared response shapes: the collection envelope and relation references.
"""

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginationMeta(BaseModel):
    page: int
    page_size: int = Field(..., alias="pageSize")
    page_count: int = Field(..., alias="pageCount")
    total: int

    class Config:
        populate_by_name = True


class CollectionMeta(BaseModel):
    pagination: PaginationMeta


class CollectionResponse(BaseModel, Generic[T]):
    data: List[T]
    meta: CollectionMeta


class EntityResponse(BaseModel, Generic[T]):
    data: T


class WriteRequest(BaseModel, Generic[T]):
    data: T


class RelationRef(BaseModel):
    id: int
    document_id: str = Field(..., alias="documentId")
    name: Optional[str] = None

    class Config:
        from_attributes = True
        populate_by_name = True


def relation_ref(row, name_attr: str = "name") -> Optional[RelationRef]:
    if row is None:
        return None
    return RelationRef(id=row.id, document_id=row.document_id, name=getattr(row, name_attr, None))
