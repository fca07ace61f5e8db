from pydantic import Field
from typing import Optional
from app.schemas.base import CamelModel

class ReviewCreateSchema(CamelModel):
    event_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=2000)

class ReviewUpdateSchema(CamelModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)
