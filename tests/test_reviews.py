import pytest

from tcreative.domain.reviews.service import ReviewService, round_half_up, ui_status
from tcreative.models import Review

from .conftest import auth_headers


@pytest.fixture
def make_review(db):
    def _make(client=None, **kwargs):
        values = {"rating": 5, "body": "Beautiful work", "service_name": "Classic Lash Set"}
        values.update(kwargs)
        review = Review(client_id=client.id if client else None, **values)
        db.add(review)
        db.commit()
        db.refresh(review)
        return review

    return _make


def test_ui_status_derivation():
    assert ui_status(Review(status="approved", is_featured=True)) == "featured"
    assert ui_status(Review(status="approved", is_featured=False)) == "approved"
    assert ui_status(Review(status="rejected", is_featured=False)) == "hidden"
    assert ui_status(Review(status="pending", is_featured=False)) == "pending"


def test_round_half_up():
    assert round_half_up(4.25, 1) == 4.3
    assert round_half_up(4.35, 1) == 4.4
    assert round_half_up(2.5) == 3.0


def test_stats_with_no_reviews(db):
    stats = ReviewService(db).get_review_stats()
    assert stats["totalReviews"] == 0
    assert stats["avgRating"] == 0
    assert [bucket["pct"] for bucket in stats["ratingDist"]] == [0, 0, 0, 0, 0]


def test_stats_counts_and_distribution(client, assistant, customer, make_review):
    make_review(customer, rating=5, status="approved", is_featured=True)
    make_review(customer, rating=4, staff_response="Thank you!")
    make_review(customer, rating=4)
    make_review(customer, rating=4)

    response = client.get("/reviews/stats", headers=auth_headers(assistant))
    assert response.status_code == 200
    stats = response.json()
    assert stats["totalReviews"] == 4
    assert stats["avgRating"] == 4.3
    assert stats["pendingCount"] == 3
    assert stats["featuredCount"] == 1
    assert stats["withReplyCount"] == 1
    assert stats["fiveStarCount"] == 1
    assert stats["ratingDist"][0] == {"stars": 5, "count": 1, "pct": 25}
    assert stats["ratingDist"][1] == {"stars": 4, "count": 3, "pct": 75}


def test_reviews_are_staff_only(client, customer):
    assert client.get("/reviews", headers=auth_headers(customer)).status_code == 403


def test_list_rows_use_client_name(client, assistant, customer, make_review):
    make_review(customer)
    make_review(None, body=None, service_name=None)

    rows = client.get("/reviews", headers=auth_headers(assistant)).json()
    by_author = {row["client"]: row for row in rows}
    assert by_author["Maya Lopez"]["initials"] == "ML"
    assert by_author["Unknown"]["initials"] == "?"
    assert by_author["Unknown"]["serviceName"] == "General"
    assert by_author["Unknown"]["text"] == ""


def test_feature_then_reject(client, assistant, customer, make_review):
    review = make_review(customer)
    headers = auth_headers(assistant)

    featured = client.post(f"/reviews/{review.id}/feature", headers=headers).json()
    assert featured["status"] == "featured"

    hidden = client.post(f"/reviews/{review.id}/reject", headers=headers).json()
    assert hidden["status"] == "hidden"


def test_reply_is_trimmed_and_blank_clears(client, db, assistant, customer, make_review):
    review = make_review(customer)
    headers = auth_headers(assistant)

    saved = client.put(f"/reviews/{review.id}/reply", json={"reply": "  See you soon!  "}, headers=headers)
    assert saved.json()["reply"] == "See you soon!"

    cleared = client.put(f"/reviews/{review.id}/reply", json={"reply": "   "}, headers=headers)
    assert cleared.json()["reply"] is None
    db.refresh(review)
    assert review.staff_responded_at is None


def test_moderating_missing_review_is_404(client, assistant):
    assert client.post("/reviews/999/approve", headers=auth_headers(assistant)).status_code == 404


def test_featured_feed_is_public(client, customer, make_review):
    make_review(customer, status="approved", is_featured=True)
    make_review(customer, status="pending", is_featured=True)
    make_review(customer, status="approved", is_featured=False)

    response = client.get("/reviews/featured")
    assert response.status_code == 200
    assert len(response.json()) == 1
    assert response.json()[0]["client"] == "Maya Lopez"
