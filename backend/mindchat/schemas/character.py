"""Schemas for the character catalogue."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

CHARACTER_KEY_PATTERN = r"^[a-z0-9-]+$"


class CharacterCreate(BaseModel):
    key: str = Field(..., min_length=1, max_length=50, pattern=CHARACTER_KEY_PATTERN)
    name: str = Field(..., min_length=1, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=500)
    base_prompt: str = Field(..., min_length=10, max_length=4000)
    style_tags: List[str] = Field(default_factory=list, max_length=20)


class CharacterUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=500)
    base_prompt: Optional[str] = Field(None, min_length=10, max_length=4000)
    style_tags: Optional[List[str]] = Field(None, max_length=20)
    is_active: Optional[bool] = None


class CharacterOut(BaseModel):
    id: str
    key: str
    name: str
    avatar_url: Optional[str] = None
    style_tags: List[str] = Field(default_factory=list)
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CharacterListResponse(BaseModel):
    characters: List[CharacterOut]
    count: int
