"""Dashboard figures for the admin panel."""

from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Callable, Dict, List
from sqlalchemy import distinct, func
from ..db.session import get_session
from ..models.activity import AuthLog, UserActivity
from ..models.color import Color
from ..models.enums import OrderStatus, Role
from ..models.order import Order, OrderItem
from ..models.product import Product, ProductSize
from ..models.size import Size
from ..models.user import User
from ..utils.dto import to_order_dto
from ..utils.pagination import parse_int


REVENUE_STATUSES = (OrderStatus.DELIVERED.value, OrderStatus.PROCESSING.value, OrderStatus.SHIPPED.value)


def _contact(user, fallback: str) -> str:
    if user is None:
        return fallback
    return user.phone or user.email or fallback


class AnalyticsService:
    def __init__(self, session_factory=get_session, clock: Callable[[], datetime] = datetime.utcnow):
        self._session_factory = session_factory
        self._clock = clock

    def _window(self, days: int):
        today = self._clock().date()
        start = datetime.combine(today - timedelta(days=days), time.min)
        end = datetime.combine(today, time.max)
        return start, end

    @staticmethod
    def _period(start: datetime, end: datetime, days: int) -> Dict:
        return {"start": start.strftime("%d.%m.%Y"), "end": end.strftime("%d.%m.%Y"), "days": days}

    def stats(self) -> Dict:
        with self._session_factory() as session:
            recent = session.query(Order, User).outerjoin(User, User.id == Order.user_id) \
                .order_by(Order.created_at.desc()).limit(5).all()
            revenue = session.query(func.coalesce(func.sum(Order.total), 0)).scalar()
            return {
                "totalProducts": session.query(Product).filter(Product.published.is_(True)).count(),
                "totalOrders": session.query(Order).count(),
                "totalUsers": session.query(User).count(),
                "totalRevenue": float(revenue or 0),
                "recentOrders": [to_order_dto(o, user=u) for o, u in recent],
                "topProducts": self._top_products(session),
            }

    @staticmethod
    def _top_products(session, limit: int = 5) -> List[Dict]:
        rows = (
            session.query(Product.id, Product.name, func.sum(OrderItem.quantity).label("qty"))
            .join(OrderItem, OrderItem.product_id == Product.id)
            .group_by(Product.id, Product.name)
            .order_by(func.sum(OrderItem.quantity).desc())
            .limit(limit)
            .all()
        )
        return [{"productId": pid, "name": name, "quantity": int(qty or 0)} for pid, name, qty in rows]

    def analytics(self, range_days=7) -> Dict:
        days = max(parse_int(range_days, 7), 1)
        start, end = self._window(days)
        today = self._clock().date()
        with self._session_factory() as session:
            created = (
                session.query(User.created_at)
                .filter(User.role == Role.USER.value, User.created_at >= start, User.created_at <= end)
                .all()
            )
            per_day: Dict[str, int] = {}
            for (ts,) in created:
                key = ts.strftime("%Y-%m-%d")
                per_day[key] = per_day.get(key, 0) + 1
            registrations = []
            for offset in range(days, -1, -1):
                day = today - timedelta(days=offset)
                key = day.strftime("%Y-%m-%d")
                registrations.append({"date": key, "registrations": per_day.get(key, 0), "label": day.strftime("%d.%m")})

            auth_rows = (
                session.query(AuthLog.type, AuthLog.success, func.count(AuthLog.id))
                .filter(AuthLog.created_at >= start, AuthLog.created_at <= end)
                .group_by(AuthLog.type, AuthLog.success)
                .all()
            )
            conversion: Dict[str, Dict[str, int]] = {}
            for kind, success, count in auth_rows:
                bucket = conversion.setdefault(kind, {"total": 0, "success": 0})
                bucket["total"] += count
                if success:
                    bucket["success"] += count
            auth_conversion = [
                {
                    "type": kind,
                    "total": b["total"],
                    "success": b["success"],
                    "conversion": round(b["success"] / b["total"] * 100) if b["total"] else 0,
                }
                for kind, b in conversion.items()
            ]

            activity_rows = (
                session.query(UserActivity.user_id, func.count(UserActivity.id).label("cnt"))
                .filter(UserActivity.created_at >= start, UserActivity.created_at <= end)
                .group_by(UserActivity.user_id)
                .order_by(func.count(UserActivity.id).desc())
                .limit(10)
                .all()
            )
            user_activity = []
            for uid, cnt in activity_rows:
                user = session.get(User, uid)
                user_activity.append(
                    {
                        "userId": uid,
                        "activities": cnt,
                        "contact": _contact(user, "Неизвестно"),
                        "name": (user.name if user else None) or "Пользователь",
                    }
                )

            in_range = (Order.created_at >= start, Order.created_at <= end)
            sales_rows = (
                session.query(Order.user_id, func.sum(Order.total), func.count(Order.id))
                .filter(*in_range, Order.status.in_(REVENUE_STATUSES))
                .group_by(Order.user_id)
                .order_by(func.sum(Order.total).desc())
                .limit(10)
                .all()
            )
            sales = []
            for uid, total, cnt in sales_rows:
                user = session.get(User, uid) if uid else None
                sales.append(
                    {
                        "userId": uid,
                        "totalSales": float(total or 0),
                        "orderCount": cnt,
                        "contact": _contact(user, "Гость"),
                        "name": (user.name if user else None) or "Пользователь",
                    }
                )

            revenue = (
                session.query(func.coalesce(func.sum(Order.total), 0))
                .filter(*in_range, Order.status.in_(REVENUE_STATUSES))
                .scalar()
            )
            summary = {
                "totalUsers": session.query(User).filter(User.role == Role.USER.value).count(),
                "newUsers": len(created),
                "totalOrders": session.query(Order).filter(*in_range).count(),
                "totalRevenue": float(Decimal(str(revenue or 0))),
            }
        return {
            "period": self._period(start, end, days),
            "summary": summary,
            "registrations": registrations,
            "authConversion": auth_conversion,
            "userActivity": user_activity,
            "salesByUser": sales,
        }

    def sizes_colors(self, range_days=30) -> Dict:
        """Size and color popularity from order lines placed in the window."""
        days = max(parse_int(range_days, 30), 1)
        start, end = self._window(days)
        with self._session_factory() as session:
            active_sizes = (
                session.query(func.count(distinct(ProductSize.size_id)))
                .join(Product, Product.id == ProductSize.product_id)
                .filter(Product.published.is_(True))
                .scalar()
            )
            active_colors = (
                session.query(func.count(distinct(Product.color_id)))
                .filter(Product.published.is_(True), Product.color_id.isnot(None))
                .scalar()
            )
            window = (Order.created_at >= start, Order.created_at <= end)
            size_stats = dict(
                (sid, (orders, qty))
                for sid, orders, qty in session.query(
                    OrderItem.size_id, func.count(distinct(OrderItem.order_id)), func.sum(OrderItem.quantity)
                )
                .join(Order, Order.id == OrderItem.order_id)
                .filter(*window, OrderItem.size_id.isnot(None))
                .group_by(OrderItem.size_id)
                .all()
            )
            color_stats = dict(
                (cid, (orders, qty))
                for cid, orders, qty in session.query(
                    OrderItem.color_id, func.count(distinct(OrderItem.order_id)), func.sum(OrderItem.quantity)
                )
                .join(Order, Order.id == OrderItem.order_id)
                .filter(*window, OrderItem.color_id.isnot(None))
                .group_by(OrderItem.color_id)
                .all()
            )
            sizes = session.query(Size).order_by(Size.sort_order.asc(), Size.name.asc()).all()
            colors = session.query(Color).order_by(Color.name.asc()).all()
            size_popularity = [
                {
                    "size": s.id,
                    "sizeName": s.name,
                    "russianSize": s.russian_size,
                    "orders": size_stats.get(s.id, (0, 0))[0],
                    "quantity": int(size_stats.get(s.id, (0, 0))[1] or 0),
                }
                for s in sizes
            ]
            color_popularity = [
                {
                    "color": c.id,
                    "colorName": c.name,
                    "hexCode": c.hex_code,
                    "orders": color_stats.get(c.id, (0, 0))[0],
                    "quantity": int(color_stats.get(c.id, (0, 0))[1] or 0),
                }
                for c in colors
            ]
            summary = {
                "totalSizes": len(sizes),
                "totalColors": len(colors),
                "activeSizes": int(active_sizes or 0),
                "activeColors": int(active_colors or 0),
            }
        return {
            "period": self._period(start, end, days),
            "summary": summary,
            "sizePopularity": size_popularity,
            "colorPopularity": color_popularity,
        }
