from typing import Dict, Optional
from uuid import uuid4
from ..db.session import get_session
from ..models.product import Product
from ..models.review import Review
from ..models.user import User
from ..utils.dto import to_review_dto
from .errors import NotFound, StoreError


class ReviewService:
    """Product reviews, one per user and product."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def list_for_product(self, product_id: Optional[str]) -> Dict:
        if not product_id:
            raise StoreError("productId обязателен")
        with self._session_factory() as session:
            rows = (
                session.query(Review, User.name)
                .join(User, User.id == Review.user_id)
                .filter(Review.product_id == product_id)
                .order_by(Review.created_at.desc())
                .all()
            )
            reviews = [to_review_dto(r, user_name=name) for r, name in rows]
        distribution = [0, 0, 0, 0, 0]
        for r in reviews:
            distribution[r["rating"] - 1] += 1
        total = len(reviews)
        average = sum(r["rating"] for r in reviews) / total if total else 0
        return {
            "reviews": reviews,
            "stats": {
                "totalReviews": total,
                "averageRating": average,
                "ratingDistribution": distribution,
            },
        }

    def create(self, *, user_id: str, product_id: Optional[str], rating, comment: Optional[str] = None) -> Dict:
        try:
            score = int(rating)
        except (TypeError, ValueError):
            score = 0
        if not product_id or score < 1 or score > 5:
            raise StoreError("Некорректные данные")
        with self._session_factory() as session:
            if not session.get(Product, product_id):
                raise NotFound("Товар не найден")
            existing = (
                session.query(Review.id)
                .filter(Review.user_id == user_id, Review.product_id == product_id)
                .first()
            )
            if existing:
                raise StoreError("Вы уже оставили отзыв на этот товар")
            review = Review(
                id=str(uuid4()),
                user_id=user_id,
                product_id=product_id,
                rating=score,
                comment=(comment or "").strip() or None,
            )
            session.add(review)
            session.flush()
            user = session.get(User, user_id)
            return to_review_dto(review, user_name=user.name if user else None)
