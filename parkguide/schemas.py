"""
Pydantic schemas for the parks API.

Bodies use camelCase keys on the wire (`parkId`, `reviewerName`, ...);
the Python side stays snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints
from pydantic.alias_generators import to_camel


# Required text: surrounding whitespace is dropped, and nothing may remain empty.
NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ContactMessagePayload(ApiModel):
    name: NonBlankStr
    email: EmailStr
    message: NonBlankStr


class ParkReviewPayload(ApiModel):
    park_id: NonBlankStr
    reviewer_name: NonBlankStr
    rating: int = Field(..., ge=1, le=5, strict=True)
    review_text: NonBlankStr


class ContactMessageOut(ApiModel):
    id: str
    name: str
    email: str
    message: str
    created_at: datetime


class ParkReviewOut(ApiModel):
    id: str
    park_id: str
    reviewer_name: str
    rating: int
    review_text: str
    created_at: datetime


class ContactMessageResponse(ApiModel):
    success: Literal[True] = True
    message: ContactMessageOut


class ParkReviewResponse(ApiModel):
    success: Literal[True] = True
    review: ParkReviewOut


class ParkReviewListResponse(ApiModel):
    success: Literal[True] = True
    reviews: list[ParkReviewOut]


class ErrorResponse(ApiModel):
    success: Literal[False] = False
    error: str


class HealthResponse(ApiModel):
    status: Literal["ok"] = "ok"
    storage: Literal["memory", "sql"]
