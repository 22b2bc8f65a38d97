"""Schemas for the prayer journal."""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

PRAYER_CATEGORIES = [
    "gratidao",
    "pedido",
    "intercessao",
    "contemplacao",
    "confissao",
    "louvor",
    "adoracao",
    "peticao",
]

PrayerCategory = Literal[
    "gratidao",
    "pedido",
    "intercessao",
    "contemplacao",
    "confissao",
    "louvor",
    "adoracao",
    "peticao",
]
Privacy = Literal["privada", "publica"]


class PrayerCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    category: PrayerCategory
    content: str = Field(..., min_length=1, max_length=10000)
    emotions: List[str] = Field(default_factory=list, max_length=20)
    minutes_spent: Optional[int] = Field(None, ge=0, le=1440)
    privacy: Privacy = "privada"
    is_favorite: bool = False


class PrayerUpdate(BaseModel):
    """Only the fields sent are changed."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[PrayerCategory] = None
    content: Optional[str] = Field(None, min_length=1, max_length=10000)
    emotions: Optional[List[str]] = Field(None, max_length=20)
    minutes_spent: Optional[int] = Field(None, ge=0, le=1440)
    privacy: Optional[Privacy] = None
    is_favorite: Optional[bool] = None


class PrayerOut(BaseModel):
    id: str
    title: str
    category: str
    content: str
    emotions: List[str] = Field(default_factory=list)
    minutes_spent: Optional[int] = None
    privacy: str
    is_favorite: bool
    created_at: datetime
    updated_at: datetime


class PrayerListResponse(BaseModel):
    prayers: List[PrayerOut]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PrayerCategoriesResponse(BaseModel):
    categories: List[str]


class PrayerSummaryStats(BaseModel):
    total_prayers: int
    favorite_count: int
    favorite_percentage: int
    # Prayers written in the last 7 days
    recent_activity: int
    total_minutes: int
    average_minutes: int


class CategoryCount(BaseModel):
    category: str
    count: int
    percentage: int


class PrayerStatsResponse(BaseModel):
    summary: PrayerSummaryStats
    category_distribution: List[CategoryCount]
    insights: List[str]
