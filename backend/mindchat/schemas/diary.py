"""Schemas for the faith diary."""
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

EMOTIONAL_CLIMATES = [
    "paz",
    "alegria",
    "gratidao",
    "esperanca",
    "ansiedade",
    "tristeza",
    "confusao",
    "medo",
    "raiva",
    "solidao",
    "contentamento",
    "adoracao",
    "reflexao",
    "contemplacao",
]

# Suggestions for the client's emotion picker; entries may use other labels
DIARY_EMOTIONS = [
    "alegria",
    "tristeza",
    "ansiedade",
    "paz",
    "gratidao",
    "esperanca",
    "medo",
    "amor",
    "raiva",
    "confusao",
    "fe",
    "duvida",
    "contentamento",
    "preocupacao",
    "serenidade",
]

Climate = Literal[
    "paz",
    "alegria",
    "gratidao",
    "esperanca",
    "ansiedade",
    "tristeza",
    "confusao",
    "medo",
    "raiva",
    "solidao",
    "contentamento",
    "adoracao",
    "reflexao",
    "contemplacao",
]
Privacy = Literal["privada", "publica"]

ListField = List[str]


class DiaryEntryCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    content: str = Field(..., min_length=1, max_length=20000)
    emotions: ListField = Field(default_factory=list, max_length=20)
    verses: ListField = Field(default_factory=list, max_length=20)
    gratitude: ListField = Field(default_factory=list, max_length=20)
    prayers: ListField = Field(default_factory=list, max_length=20)
    reflections: Optional[str] = Field(None, max_length=10000)
    climate: Optional[Climate] = None
    privacy: Privacy = "privada"
    is_favorite: bool = False


class DiaryEntryUpdate(BaseModel):
    """Only the fields sent are changed."""
    title: Optional[str] = Field(None, max_length=200)
    content: Optional[str] = Field(None, min_length=1, max_length=20000)
    emotions: Optional[ListField] = Field(None, max_length=20)
    verses: Optional[ListField] = Field(None, max_length=20)
    gratitude: Optional[ListField] = Field(None, max_length=20)
    prayers: Optional[ListField] = Field(None, max_length=20)
    reflections: Optional[str] = Field(None, max_length=10000)
    climate: Optional[Climate] = None
    privacy: Optional[Privacy] = None
    is_favorite: Optional[bool] = None


class DiaryEntryOut(BaseModel):
    id: str
    title: Optional[str] = None
    content: str
    emotions: ListField = Field(default_factory=list)
    verses: ListField = Field(default_factory=list)
    gratitude: ListField = Field(default_factory=list)
    prayers: ListField = Field(default_factory=list)
    reflections: Optional[str] = None
    climate: Optional[str] = None
    privacy: str
    is_favorite: bool
    created_at: datetime
    updated_at: datetime


class DiaryEntryListResponse(BaseModel):
    entries: List[DiaryEntryOut]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_prev: bool


class DiarySearchResponse(BaseModel):
    query: str
    entries: List[DiaryEntryOut]


class DiaryEntrySummary(BaseModel):
    """Compact entry for timeline views."""
    id: str
    title: Optional[str] = None
    emotions: ListField = Field(default_factory=list)
    climate: Optional[str] = None
    gratitude: ListField = Field(default_factory=list)
    created_at: datetime


class DiaryDateRangeResponse(BaseModel):
    start: datetime
    end: datetime
    entries: List[DiaryEntrySummary]


class ClimatesResponse(BaseModel):
    climates: List[str]


class EmotionsResponse(BaseModel):
    emotions: List[str]


class DiarySummaryStats(BaseModel):
    total_entries: int
    favorite_count: int
    favorite_percentage: int
    # Entries written in the last 7 days
    recent_activity: int
    entries_this_month: int
    total_gratitude_items: int
    total_prayer_items: int


class ClimateCount(BaseModel):
    climate: str
    count: int
    percentage: int


class EmotionCount(BaseModel):
    emotion: str
    count: int


class DiaryStatsResponse(BaseModel):
    summary: DiarySummaryStats
    climate_distribution: List[ClimateCount]
    top_emotions: List[EmotionCount]
    # "YYYY-Www" -> entries, last 4 weeks
    weekly_activity: Dict[str, int]
    # "YYYY-MM" -> entries, last 6 months
    monthly_activity: Dict[str, int]
    insights: List[str]
