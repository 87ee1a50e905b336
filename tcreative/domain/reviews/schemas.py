"""Review domain schemas"""

from typing import Optional

from pydantic import BaseModel


class ReviewRow(BaseModel):
    id: int
    client: str
    initials: str
    rating: int
    serviceName: str
    source: Optional[str] = None
    date: str
    text: str
    status: str  # pending, approved, featured, hidden
    reply: Optional[str] = None


class RatingBucket(BaseModel):
    stars: int
    count: int
    pct: int


class ReviewStats(BaseModel):
    totalReviews: int
    avgRating: float
    pendingCount: int
    featuredCount: int
    withReplyCount: int
    fiveStarCount: int
    ratingDist: list[RatingBucket]


class ReviewReply(BaseModel):
    reply: str = ""


class FeaturedReview(BaseModel):
    id: int
    client: str
    rating: int
    serviceName: str
    text: str
    reply: Optional[str] = None
