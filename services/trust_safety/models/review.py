"""
Review and Complaint Models
===========================

Inputs reported by the review and reporting flows. Each submission feeds
the rating and complaint counters on a provider or client profile.

Version: 0.1.0
"""

from pydantic import BaseModel, Field

from shared.exceptions import ValidationError


MIN_RATING = 1
MAX_RATING = 5

# Ratings at or below this count as negative reviews
NEGATIVE_REVIEW_MAX_RATING = 2


def check_rating(rating: int) -> int:
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}",
            details={"rating": rating},
        )
    return rating


class ReviewSubmission(BaseModel):
    """One star rating left after a completed booking."""

    # Range is checked by the service so the error type is a domain ValidationError
    rating: int
    comment: str | None = Field(default=None, max_length=2000)
    booking_id: str | None = None


class ComplaintRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)
    booking_id: str | None = None


class FeedbackReceipt(BaseModel):
    """Public acknowledgement returned to whoever left a review or complaint."""

    entity_id: str
    average_rating: float
    total_reviews: int
