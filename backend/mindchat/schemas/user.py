"""Schemas for the profile data the chat prompts are personalised with."""
from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, Field

ResponseStyle = Literal["BREVE", "DETALHADA", "ESPIRITUAL", "PRATICA"]


class PreferencesUpdate(BaseModel):
    response_style: Optional[ResponseStyle] = None
    favorites: Optional[List[str]] = Field(None, max_length=50)


class PreferencesOut(BaseModel):
    response_style: ResponseStyle
    favorites: List[str] = Field(default_factory=list)


class QuestionnaireIn(BaseModel):
    """All answers are optional; list answers are free-text items."""
    age_range: Optional[str] = Field(None, max_length=50)
    current_situation: Optional[str] = Field(None, max_length=1000)
    anxiety_frequency: Optional[str] = Field(None, max_length=50)
    sadness_handling: Optional[str] = Field(None, max_length=1000)
    social_life: Optional[str] = Field(None, max_length=1000)
    love_relationships: Optional[str] = Field(None, max_length=1000)
    work_feeling: Optional[str] = Field(None, max_length=1000)
    motivation: Optional[List[str]] = Field(None, max_length=10)
    routine: Optional[str] = Field(None, max_length=1000)
    sleep: Optional[str] = Field(None, max_length=50)
    self_knowledge_goal: Optional[List[str]] = Field(None, max_length=10)
    values: Optional[List[str]] = Field(None, max_length=10)
    challenge: Optional[str] = Field(None, max_length=1000)
    childhood_influence: Optional[str] = Field(None, max_length=1000)


class QuestionnaireOut(QuestionnaireIn):
    id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    """Only the fields sent are changed."""
    display_name: Optional[str] = Field(None, min_length=2, max_length=50)
    avatar_url: Optional[str] = Field(None, max_length=500)
    favorites: Optional[List[Annotated[str, Field(min_length=1, max_length=50)]]] = Field(
        None, max_length=10
    )
    response_style: Optional[ResponseStyle] = None


class ProfileOut(BaseModel):
    id: str
    username: str
    display_name: str
    avatar_url: Optional[str] = None
    favorites: List[str] = Field(default_factory=list)
    response_style: ResponseStyle
    created_at: datetime
    updated_at: Optional[datetime] = None
