"""Reviews router — guest reviews, newest first."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from guesthouse.database import get_db
from guesthouse.models.review import Review
from guesthouse.schemas.review import ReviewCreate, ReviewResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=201, response_model=ReviewResponse)
async def create_review(req: ReviewCreate, db: AsyncSession = Depends(get_db)):
    """Publish a review. Rating must be 1-5; the date defaults to now."""
    review = Review(
        name=req.name,
        country=req.country,
        comment=req.comment,
        rating=req.rating,
    )
    if req.date is not None:
        review.date = req.date
    db.add(review)
    await db.commit()

    logger.info(f"Review {review.id} ({review.rating}/5) from {review.country}")
    return ReviewResponse.model_validate(review)


@router.get("", response_model=list[ReviewResponse])
async def list_reviews(
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """List reviews, newest first."""
    result = await db.execute(select(Review).order_by(Review.date.desc()).limit(limit))
    return [ReviewResponse.model_validate(r) for r in result.scalars().all()]
