from enum import Enum
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from app.schemas.base import CamelModel

class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"

class ParticipantInfo(CamelModel):
    full_name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None

class PaymentIntentCreateSchema(CamelModel):
    event_id: str
    quantity: int = Field(1, ge=1, le=10)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    participant_info: Optional[ParticipantInfo] = None

class BookingConfirmSchema(CamelModel):
    booking_id: str
    payment_intent_id: Optional[str] = None
