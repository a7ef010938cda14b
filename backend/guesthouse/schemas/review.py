import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    country: str = Field(min_length=1, max_length=100)
    comment: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)
    date: datetime | None = None

    model_config = {"str_strip_whitespace": True}


class ReviewResponse(BaseModel):
    id: uuid.UUID
    name: str
    country: str
    comment: str
    rating: int
    date: datetime

    model_config = {"from_attributes": True}
