"""
Collection schemas for API requests/responses
"""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class CollectionCreate(BaseModel):
    """Schema for creating a collection"""
    owner_type: str = Field(..., min_length=1, max_length=255)
    owner_id: int
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    parent_id: Optional[int] = None


class CollectionRead(BaseModel):
    """Schema for collection read response"""
    id: int
    owner_type: str
    owner_id: int
    name: str
    description: Optional[str]
    parent_id: Optional[int]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CollectionDeleted(BaseModel):
    collection_id: int
    collections_deleted: int
