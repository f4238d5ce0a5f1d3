"""
Save schemas for API requests/responses
"""
from pydantic import AliasChoices, BaseModel, Field
from datetime import datetime
from typing import Any, Dict, Optional


class SaveRead(BaseModel):
    """Schema for a save record"""
    id: int
    saver_type: str
    saver_id: int
    saveable_type: str
    saveable_id: int
    collection_id: Optional[int]
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias=AliasChoices("save_metadata", "metadata"))
    order_column: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SaveToggle(BaseModel):
    """Schema for toggling a save"""
    collection_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class SaveUpdate(BaseModel):
    """Schema for updating a save; an explicit null collection_id unfiles it"""
    collection_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class SaveToggleResult(BaseModel):
    saved: bool
    saver_type: str
    saver_id: int
    saveable_type: str
    saveable_id: int


class SaveCount(BaseModel):
    saveable_type: str
    saveable_id: int
    times_saved: int
