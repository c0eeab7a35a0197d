from typing import Dict, List, Optional, Tuple
import logging
import random
import threading
import time
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from ..db.session import get_session
from ..models.product import Product, ProductSize
from ..models.review import Review
from ..models.size import Size
from ..models.user import User
from ..utils.pagination import normalize_paging, page_meta
from ..utils.dto import to_product_dto, to_review_dto
from .errors import NotFound, StoreError


logger = logging.getLogger(__name__)

SORT_ORDERS = {
    "price-asc": (Product.price.asc(),),
    "price-desc": (Product.price.desc(),),
    "name": (Product.name.asc(),),
    "created": (Product.created_at.desc(),),
}


class CatalogService:
    """Storefront catalog queries.

    Only published, non-deleted products are visible. List results are kept
    in a small per-instance cache that admin writes clear through
    ``invalidate_cache``.
    """

    def __init__(self, session_factory=get_session, cache_ttl_seconds: int = 60, max_cache_entries: int = 256,
                 clock=time.time):
        self._session_factory = session_factory
        self._cache_ttl_seconds = cache_ttl_seconds
        self._max_cache_entries = max_cache_entries
        self._clock = clock
        # key -> (ts, result)
        self._cache: Dict[Tuple, Tuple[float, Dict]] = {}
        self._cache_lock = threading.Lock()

    @staticmethod
    def _visible(q):
        return q.filter(Product.published.is_(True), Product.deleted_at.is_(None))

    @staticmethod
    def _rating_map(session, product_ids: List[str]) -> Dict[str, Tuple[float, int]]:
        if not product_ids:
            return {}
        rows = (
            session.query(Review.product_id, func.avg(Review.rating), func.count(Review.id))
            .filter(Review.product_id.in_(product_ids))
            .group_by(Review.product_id)
            .all()
        )
        return {pid: (round(float(avg or 0), 1), int(cnt)) for pid, avg, cnt in rows}

    def _with_ratings(self, session, rows) -> List[Dict]:
        ratings = self._rating_map(session, [r.id for r in rows])
        items = []
        for r in rows:
            dto = to_product_dto(r)
            avg, cnt = ratings.get(r.id, (0, 0))
            dto["averageRating"] = avg
            dto["reviewCount"] = cnt
            items.append(dto)
        return items

    def list_products(
        self,
        *,
        search: Optional[str] = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
        shuffle: bool = False,
        color: Optional[str] = None,
        size: Optional[str] = None,
        min_price=None,
        max_price=None,
    ) -> Dict:
        p, ps = normalize_paging(page, limit)
        cache_key = (search or "", sort or "", p, ps, color or "", size or "", str(min_price), str(max_price))
        now = self._clock()
        if not shuffle:
            cached = self._cache.get(cache_key)
            if cached and now - cached[0] <= self._cache_ttl_seconds:
                return cached[1]

        with self._session_factory() as session:
            q = self._visible(session.query(Product))
            if search:
                like = f"%{search}%"
                q = q.filter(
                    or_(
                        Product.name.ilike(like),
                        Product.description.ilike(like),
                        Product.sku.ilike(like),
                    )
                )
            if color:
                q = q.filter(Product.color_id == color)
            if size:
                q = q.filter(
                    Product.id.in_(
                        session.query(ProductSize.product_id)
                        .join(Size, Size.id == ProductSize.size_id)
                        .filter(or_(Size.id == size, Size.name == size))
                    )
                )
            if min_price is not None:
                q = q.filter(Product.price >= min_price)
            if max_price is not None:
                q = q.filter(Product.price <= max_price)

            total = q.count()
            if shuffle:
                rows = q.all()
                random.shuffle(rows)
                rows = rows[(p - 1) * ps : p * ps]
            else:
                order_by = SORT_ORDERS.get(sort or "created", SORT_ORDERS["created"])
                rows = q.order_by(*order_by).offset((p - 1) * ps).limit(ps).all()

            result = {"products": self._with_ratings(session, rows), "pagination": page_meta(p, ps, total)}
        if not shuffle:
            self._store(cache_key, now, result)
        return result

    def _store(self, key: Tuple, now: float, result: Dict) -> None:
        with self._cache_lock:
            expired = [k for k, (ts, _) in self._cache.items() if now - ts > self._cache_ttl_seconds]
            for k in expired:
                del self._cache[k]
            # oldest first, dicts keep insertion order
            while self._cache and len(self._cache) >= self._max_cache_entries:
                del self._cache[next(iter(self._cache))]
            self._cache[key] = (now, result)

    def get_product_by_slug(self, slug: str) -> Dict:
        with self._session_factory() as session:
            product = self._visible(session.query(Product)).filter(Product.slug == slug).first()
            if not product:
                raise NotFound("Товар не найден")
            reviews = (
                session.query(Review, User.name)
                .join(User, User.id == Review.user_id)
                .filter(Review.product_id == product.id)
                .order_by(Review.created_at.desc())
                .all()
            )
            dto = self._with_ratings(session, [product])[0]
            dto["reviews"] = [to_review_dto(r, user_name=name) for r, name in reviews]
            return dto

    def search(self, q: Optional[str], limit: int = 10) -> Dict:
        query = (q or "").strip()
        if not query:
            raise StoreError("Параметр поиска обязателен")
        _, lim = normalize_paging(1, limit, max_page_size=50)
        like = f"%{query}%"
        with self._session_factory() as session:
            rows = (
                self._visible(session.query(Product))
                .filter(
                    or_(
                        Product.name.ilike(like),
                        Product.description.ilike(like),
                        Product.sku.ilike(like),
                    )
                )
                .order_by(Product.created_at.desc())
                .limit(lim)
                .all()
            )
            items = self._with_ratings(session, rows)
        for it in items:
            it["totalReviews"] = it["reviewCount"]
        return {"products": items, "total": len(items), "query": query}

    def register_view(self, slug: str) -> Dict:
        """Bump the view counter; failures are logged and never reach the client."""
        try:
            with self._session_factory() as session:
                updated = (
                    session.query(Product)
                    .filter(Product.slug == slug)
                    .update({Product.view_count: Product.view_count + 1}, synchronize_session=False)
                )
            return {"success": True, "updated": bool(updated)}
        except SQLAlchemyError:
            logger.exception("failed to register view for %s", slug)
            return {"success": True, "updated": False}

    def invalidate_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()
