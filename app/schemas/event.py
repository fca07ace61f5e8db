from enum import Enum
from pydantic import BaseModel, Field
from datetime import date
from typing import List, Optional
from app.schemas.base import CamelModel

class EventStatus(str, Enum):
    OPEN = "open"
    UPCOMING = "upcoming"
    PAST = "past"
    CANCELLED = "cancelled"
    DRAFT = "draft"
    PUBLISHED = "published"
    COMPLETED = "completed"
    PENDING = "pending"

# Statuses a Visitor Can Browse and Join
JOINABLE_STATUSES = (EventStatus.OPEN.value, EventStatus.UPCOMING.value, EventStatus.PUBLISHED.value)

# Statuses a Host May Set on Their Own Event, Everything Else Goes Through Admin Moderation
HOST_SETTABLE_STATUSES = (EventStatus.DRAFT.value, EventStatus.PENDING.value, EventStatus.CANCELLED.value)

class EventLocation(BaseModel):
    venue: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None

class EventCreateSchema(CamelModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = None
    event_type: Optional[str] = Field(None, alias="type")
    category: Optional[str] = None
    event_date: date = Field(..., alias="date")
    start_time: Optional[str] = Field(None, alias="time", pattern=r"^\d{2}:\d{2}(:\d{2})?$")
    duration: int = Field(60, gt=0, description="Duration in minutes")
    location: EventLocation = EventLocation()
    price: float = Field(0.0, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    max_participants: int = Field(..., gt=0)
    image_url: Optional[str] = Field(None, alias="image")
    images: List[str] = []
    requirements: List[str] = []
    tags: List[str] = []
    is_public: bool = True
    event_status: Optional[EventStatus] = Field(None, alias="status")

class EventUpdateSchema(CamelModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = None
    event_type: Optional[str] = Field(None, alias="type")
    category: Optional[str] = None
    event_date: Optional[date] = Field(None, alias="date")
    start_time: Optional[str] = Field(None, alias="time", pattern=r"^\d{2}:\d{2}(:\d{2})?$")
    duration: Optional[int] = Field(None, gt=0)
    location: Optional[EventLocation] = None
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    max_participants: Optional[int] = Field(None, gt=0)
    image_url: Optional[str] = Field(None, alias="image")
    images: Optional[List[str]] = None
    requirements: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None
    event_status: Optional[EventStatus] = Field(None, alias="status")

class EventStatusUpdate(BaseModel):
    status: EventStatus

class EventReportCreate(BaseModel):
    reason: str = Field(..., min_length=3, max_length=1000)
