"""
Pydantic schemas for the BeanBook FastAPI backend.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from shared.constants import MAX_BIO_LENGTH, MAX_BREW_TITLE_LENGTH, MAX_NOTES_LENGTH
from shared.types import BrewMethod, GrindSize, RoastLevel


class CredentialsRequest(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., min_length=1, max_length=4096)


class SessionResponse(BaseModel):
    uid: str
    email: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None


class BagPayload(BaseModel):
    brand_name: str = Field(..., min_length=1, max_length=200)
    roast_level: RoastLevel = RoastLevel.MEDIUM
    origin: str = Field(default="", max_length=200)
    location: str = Field(default="", max_length=200)


class BrewPayload(BaseModel):
    title: str = Field(..., min_length=1, max_length=MAX_BREW_TITLE_LENGTH)
    method: BrewMethod
    coffee_grams: float = Field(..., gt=0)
    water_grams: float = Field(..., gt=0)
    brew_time_seconds: int = Field(..., ge=0)
    grind_size: GrindSize
    notes: str = Field(default="", max_length=MAX_NOTES_LENGTH)
    bag: Optional[BagPayload] = None


class BrewUpdatePayload(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=MAX_BREW_TITLE_LENGTH)
    method: Optional[BrewMethod] = None
    coffee_grams: Optional[float] = Field(default=None, gt=0)
    water_grams: Optional[float] = Field(default=None, gt=0)
    brew_time_seconds: Optional[int] = Field(default=None, ge=0)
    grind_size: Optional[GrindSize] = None
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)


class CreatedResponse(BaseModel):
    id: str


class StatusResponse(BaseModel):
    status: Literal["ok"]


class BrewResponse(BaseModel):
    brew: dict


class BrewListResponse(BaseModel):
    brews: list[dict]


class BagListResponse(BaseModel):
    bags: list[dict]


class FavoriteResponse(BaseModel):
    brew_id: str
    favorited: bool


class ProfileUpdateRequest(BaseModel):
    display_name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=MAX_BIO_LENGTH)
    photo_url: Optional[str] = Field(default=None, max_length=2048)


class ProfileResponse(BaseModel):
    profile: Optional[dict] = None
    needs_onboarding: bool


class PushTokenRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=4096)


class StockPicturesResponse(BaseModel):
    urls: list[str]


class ReminderRequest(BaseModel):
    hour: int = Field(default=8, ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)


class ReminderResponse(BaseModel):
    scheduled: bool
    hour: Optional[int] = None
    minute: Optional[int] = None


class CalendarDay(BaseModel):
    date: str
    weekday: int
    count: int


class BrewCalendarResponse(BaseModel):
    days: list[CalendarDay]
    weeks: int
    aspect_ratio: float
