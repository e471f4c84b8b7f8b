"""
HTTP routes for the parks API.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from parkguide.config import Settings, get_settings
from parkguide.db import (
    DEFAULT_ALL_REVIEWS_LIMIT,
    DEFAULT_PARK_REVIEWS_LIMIT,
    ParkReviewRecord,
    ParkStore,
)
from parkguide.dependencies import get_park_store, storage_kind
from parkguide.pagination import coerce_window
from parkguide.schemas import (
    ContactMessageOut,
    ContactMessagePayload,
    ContactMessageResponse,
    ErrorResponse,
    HealthResponse,
    ParkReviewListResponse,
    ParkReviewOut,
    ParkReviewPayload,
    ParkReviewResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Generic messages for bodies that fail validation, keyed by route name.
INVALID_PAYLOAD_ERRORS = {
    "create_contact_message": "Invalid contact form data",
    "create_park_review": "Invalid review data",
}
DEFAULT_INVALID_PAYLOAD_ERROR = "Invalid request data"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(by_alias=True),
    )


def _review_out(review: ParkReviewRecord) -> ParkReviewOut:
    return ParkReviewOut(**review.as_dict())


@router.post(
    "/contact",
    response_model=ContactMessageResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def create_contact_message(
    payload: ContactMessagePayload, store: ParkStore = Depends(get_park_store)
):
    """
    Store a contact-form submission. There is no read endpoint for these.
    """
    try:
        record = store.create_contact_message(
            name=payload.name, email=payload.email, message=payload.message
        )
    except Exception:
        logger.exception("Contact form error")
        return error_response(500, "Failed to save contact message")
    return ContactMessageResponse(message=ContactMessageOut(**record.as_dict()))


@router.post(
    "/reviews",
    response_model=ParkReviewResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def create_park_review(
    payload: ParkReviewPayload, store: ParkStore = Depends(get_park_store)
):
    try:
        record = store.create_park_review(
            park_id=payload.park_id,
            reviewer_name=payload.reviewer_name,
            rating=payload.rating,
            review_text=payload.review_text,
        )
    except Exception:
        logger.exception("Review submission error")
        return error_response(500, "Failed to save review")
    return ParkReviewResponse(review=_review_out(record))


@router.get(
    "/reviews/{park_id}",
    response_model=ParkReviewListResponse,
    responses={500: {"model": ErrorResponse}},
)
def list_park_reviews(
    park_id: str,
    limit: str | None = Query(None),
    offset: str | None = Query(None),
    store: ParkStore = Depends(get_park_store),
    settings: Settings = Depends(get_settings),
):
    window = coerce_window(
        limit,
        offset,
        default_limit=DEFAULT_PARK_REVIEWS_LIMIT,
        max_limit=settings.max_page_limit,
    )
    try:
        reviews = store.get_park_reviews(park_id, window.limit, window.offset)
    except Exception:
        logger.exception("Get reviews error for park %s", park_id)
        return error_response(500, "Failed to fetch reviews")
    return ParkReviewListResponse(reviews=[_review_out(r) for r in reviews])


@router.get(
    "/reviews",
    response_model=ParkReviewListResponse,
    responses={500: {"model": ErrorResponse}},
)
def list_all_reviews(
    limit: str | None = Query(None),
    offset: str | None = Query(None),
    store: ParkStore = Depends(get_park_store),
    settings: Settings = Depends(get_settings),
):
    window = coerce_window(
        limit,
        offset,
        default_limit=DEFAULT_ALL_REVIEWS_LIMIT,
        max_limit=settings.max_page_limit,
    )
    try:
        reviews = store.get_all_reviews(window.limit, window.offset)
    except Exception:
        logger.exception("Get all reviews error")
        return error_response(500, "Failed to fetch reviews")
    return ParkReviewListResponse(reviews=[_review_out(r) for r in reviews])


@router.get("/health", response_model=HealthResponse)
def health(store: ParkStore = Depends(get_park_store)):
    return HealthResponse(storage=storage_kind(store))
