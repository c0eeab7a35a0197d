from typing import Dict, List, Optional
from uuid import uuid4
from decimal import Decimal
import logging
import random
import string
import time
from ..db.session import get_session
from ..models.address import Address
from ..models.cart_item import CartItem
from ..models.enums import OrderStatus
from ..models.order import Order, OrderItem
from ..models.product import Product
from ..models.size import Size
from ..models.user import User
from ..utils.dto import to_order_dto
from ..utils.pagination import normalize_paging, page_meta
from ..utils.validators import amount_differs, ensure_positive_int, normalize_phone
from .errors import AccessDenied, Conflict, NotFound, StoreError
from .logging import log_event


logger = logging.getLogger(__name__)

EXPRESS_SHIPPING_FEE = Decimal("500")
ORDER_STATUSES = {s.value for s in OrderStatus}

STATUS_MESSAGES = {
    "PENDING": "Ваш заказ ожидает обработки",
    "CONFIRMED": "Ваш заказ подтвержден и принят в работу",
    "PROCESSING": "Ваш заказ находится в обработке",
    "SHIPPED": "Ваш заказ отправлен и скоро будет доставлен",
    "DELIVERED": "Ваш заказ успешно доставлен",
    "CANCELLED": "Ваш заказ отменен",
}


def generate_order_number(prefix: str = "ORD") -> str:
    ms = int(time.time() * 1000)
    tail = "".join(random.choices(string.ascii_uppercase + string.digits, k=5))
    return f"{prefix}-{ms}-{tail}"


def shipping_fee(method: Optional[str]) -> Decimal:
    return EXPRESS_SHIPPING_FEE if method == "express" else Decimal("0")


class OrderService:
    """Order creation and retrieval backed by DB.

    Totals are always priced from the catalog; amounts sent by the client
    are only compared and logged. Creating an order inserts the order with
    its items and decrements product stock inside one transaction.
    """

    def __init__(self, session_factory=get_session, notifier=None, mailer=None):
        self._session_factory = session_factory
        self._notifier = notifier
        self._mailer = mailer

    # -- helpers ---------------------------------------------------------

    @staticmethod
    def _resolve_size_id(session, item: Dict) -> Optional[str]:
        if item.get("sizeId"):
            return item["sizeId"]
        name = item.get("size")
        if name:
            size = session.query(Size).filter(Size.name == name).first()
            return size.id if size else None
        return None

    def _build_items(self, session, order: Order, items: List[Dict]) -> Decimal:
        """Attach priced items to ``order`` and reserve stock; return the items total."""
        total = Decimal("0")
        for raw in items:
            product_id = raw.get("productId")
            qnty = ensure_positive_int(raw.get("quantity", 1), "quantity")
            product = session.get(Product, product_id) if product_id else None
            if not product or product.deleted_at is not None:
                raise NotFound(f"Товар с ID {product_id} не найден")
            # conditional update keeps concurrent orders from overselling
            reserved = (
                session.query(Product)
                .filter(Product.id == product.id, Product.stock >= qnty)
                .update({Product.stock: Product.stock - qnty}, synchronize_session=False)
            )
            if not reserved:
                raise Conflict(f"Недостаточно товара «{product.name}» на складе")
            price = Decimal(str(product.effective_price))
            total += price * qnty
            order.items.append(
                OrderItem(
                    id=str(uuid4()),
                    product_id=product.id,
                    size_id=self._resolve_size_id(session, raw),
                    color_id=raw.get("colorId") or product.color_id,
                    quantity=qnty,
                    price=price,
                )
            )
        return total

    def _notify_created(self, order: Dict) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.notify_new_order(order)
        except Exception:
            logger.exception("order notification failed for %s", order.get("orderNumber"))

    # -- storefront ------------------------------------------------------

    def create_order(
        self,
        *,
        user_id: str,
        items: List[Dict],
        address: Optional[Dict],
        shipping_method: Optional[str] = None,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Dict:
        if not items:
            raise StoreError("Корзина не может быть пустой")
        if not address or not address.get("street") or not address.get("city"):
            raise StoreError("Необходимо указать адрес доставки")

        with self._session_factory() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFound("Пользователь не найден")
            addr = (
                session.query(Address)
                .filter(
                    Address.user_id == user_id,
                    Address.street == address["street"],
                    Address.city == address["city"],
                    Address.postal_code == (address.get("zipCode") or address.get("postalCode") or ""),
                )
                .first()
            )
            if not addr:
                full_name = " ".join(p for p in (address.get("firstName"), address.get("lastName")) if p)
                addr = Address(
                    id=str(uuid4()),
                    user_id=user_id,
                    name=full_name or address.get("name") or user.name,
                    street=address["street"],
                    city=address["city"],
                    postal_code=address.get("zipCode") or address.get("postalCode") or "",
                    country=address.get("country") or "Россия",
                    phone=address.get("phone") or "",
                )
                session.add(addr)
                session.flush()

            fee = shipping_fee(shipping_method)
            order = Order(
                id=str(uuid4()),
                order_number=generate_order_number(),
                user_id=user_id,
                address_id=addr.id,
                status=OrderStatus.PENDING.value,
                shipping_cost=fee,
                shipping_method=shipping_method,
                payment_method=payment_method,
                customer_name=addr.name or user.name,
                customer_email=user.email,
                customer_phone=address.get("phone") or user.phone,
                comment=notes,
            )
            order.total = self._build_items(session, order, items) + fee
            session.add(order)
            session.query(CartItem).filter(CartItem.user_id == user_id).delete(synchronize_session=False)
            session.flush()
            session.refresh(order)
            dto = to_order_dto(order)

        log_event("info", "order.created", order_id=dto["id"], order_number=dto["orderNumber"],
                  items=len(dto["items"]), total=dto["total"])
        self._notify_created(dto)
        return dto

    def create_simple_order(
        self,
        *,
        user_id: Optional[str],
        items: List[Dict],
        address: Optional[Dict],
        shipping_method: Optional[str] = None,
        payment_method: Optional[str] = None,
        comment: Optional[str] = None,
        client_total=None,
    ) -> Dict:
        """Checkout for guests and signed-in users alike."""
        if not items or not address:
            raise StoreError("Отсутствуют необходимые данные для создания заказа")

        with self._session_factory() as session:
            user = session.get(User, user_id) if user_id else None
            fee = shipping_fee(shipping_method)
            order = Order(
                id=str(uuid4()),
                order_number=generate_order_number(),
                status=OrderStatus.PENDING.value,
                shipping_cost=fee,
                shipping_method=shipping_method,
                payment_method=payment_method,
                customer_name=address.get("fullName"),
                customer_email=address.get("email") or (user.email if user else None),
                customer_phone=address.get("phone"),
                comment=comment,
            )
            if user:
                addr = Address(
                    id=str(uuid4()),
                    user_id=user.id,
                    name=address.get("fullName"),
                    street=address.get("street") or "",
                    city=address.get("city") or "Не указан",
                    postal_code=address.get("zipCode") or "",
                    country=address.get("country") or "Россия",
                    phone=address.get("phone"),
                )
                session.add(addr)
                session.flush()
                order.user_id = user.id
                order.address_id = addr.id
            else:
                order.comment = (
                    f"{comment or ''}\n\nАдрес доставки:\n{address.get('fullName') or ''}\n"
                    f"{address.get('street') or ''}\n{address.get('city') or 'Не указан'}\n"
                    f"Тел: {address.get('phone') or ''}"
                )

            order.total = self._build_items(session, order, items) + fee
            session.add(order)
            session.flush()
            session.refresh(order)
            dto = to_order_dto(order)

        if client_total is not None and amount_differs(client_total, dto["total"]):
            log_event("warning", "order.client_total_mismatch", order_id=dto["id"],
                      client_total=str(client_total), total=dto["total"])
        log_event("info", "order.created", order_id=dto["id"], order_number=dto["orderNumber"],
                  items=len(dto["items"]), total=dto["total"], guest=user_id is None)
        self._notify_created(dto)
        return dto

    def create_quick_order(
        self,
        *,
        user_id: Optional[str],
        customer_name: Optional[str],
        customer_phone: Optional[str],
        customer_address: Optional[str],
        comment: Optional[str] = None,
    ) -> Dict:
        if not customer_phone or not customer_name or not customer_address:
            raise StoreError("Все поля обязательны для заполнения")
        with self._session_factory() as session:
            if not user_id:
                phone = "+" + normalize_phone(customer_phone)
                user = session.query(User).filter(User.phone == phone).first()
                if not user:
                    user = User(id=str(uuid4()), phone=phone, name=customer_name, role="USER")
                    session.add(user)
                    session.flush()
                user_id = user.id
            addr = Address(
                id=str(uuid4()),
                user_id=user_id,
                name="Адрес быстрого заказа",
                street=customer_address,
                city="",
                country="Россия",
                phone=customer_phone,
            )
            session.add(addr)
            session.flush()
            order = Order(
                id=str(uuid4()),
                order_number=f"QO-{int(time.time() * 1000)}",
                user_id=user_id,
                address_id=addr.id,
                total=Decimal("0"),
                status=OrderStatus.PENDING.value,
                customer_name=customer_name,
                customer_phone=customer_phone,
                comment=comment,
            )
            session.add(order)
            session.flush()
            result = {
                "id": order.id,
                "orderNumber": order.order_number,
                "customerName": customer_name,
                "customerPhone": customer_phone,
                "customerAddress": customer_address,
                "comment": comment,
            }
        log_event("info", "order.quick_created", order_id=result["id"], order_number=result["orderNumber"])
        return result

    def list_user_orders(self, *, user_id: str) -> List[Dict]:
        with self._session_factory() as session:
            rows = session.query(Order).filter(Order.user_id == user_id).order_by(Order.created_at.desc()).all()
            return [to_order_dto(o) for o in rows]

    def get_user_order(self, *, user_id: str, order_id: str) -> Dict:
        with self._session_factory() as session:
            o = session.get(Order, order_id)
            if not o:
                raise NotFound("Заказ не найден")
            if o.user_id != user_id:
                raise AccessDenied("Доступ запрещен")
            return to_order_dto(o)

    # -- admin -----------------------------------------------------------

    def list_orders(self, *, status: Optional[str] = None, page: int = 1, limit: int = 20) -> Dict:
        p, ps = normalize_paging(page, limit)
        with self._session_factory() as session:
            q = session.query(Order, User).outerjoin(User, User.id == Order.user_id)
            if status:
                q = q.filter(Order.status == status)
            total = q.count()
            rows = q.order_by(Order.created_at.desc()).offset((p - 1) * ps).limit(ps).all()
            return {
                "orders": [to_order_dto(o, user=u) for o, u in rows],
                "pagination": page_meta(p, ps, total),
            }

    def update_status(self, *, order_id: str, status: Optional[str], message: Optional[str] = None) -> Dict:
        if not status:
            raise StoreError("Необходимо указать статус")
        if status not in ORDER_STATUSES:
            raise StoreError("Некорректный статус заказа")
        with self._session_factory() as session:
            o = session.get(Order, order_id)
            if not o:
                raise NotFound("Заказ не найден")
            previous = o.status
            o.status = status
            session.flush()
            user = session.get(User, o.user_id) if o.user_id else None
            dto = to_order_dto(o, user=user)

        log_event("info", "order.status_changed", order_id=order_id, old=previous, new=status)
        email = (dto.get("user") or {}).get("email") or dto.get("customerEmail")
        if self._mailer is not None and email:
            try:
                self._mailer.send_status_update(email, dto, status, message or STATUS_MESSAGES.get(status))
            except Exception:
                logger.exception("status email failed for %s", dto["orderNumber"])
        if self._notifier is not None and previous != status:
            try:
                self._notifier.notify_order_status(dto, previous, status)
            except Exception:
                logger.exception("status notification failed for %s", dto["orderNumber"])
        return dto

    def delete_order(self, *, order_id: str) -> Dict:
        with self._session_factory() as session:
            o = session.get(Order, order_id)
            if not o:
                raise NotFound("Заказ не найден")
            address_id = o.address_id
            # items go with the order through the relationship cascade
            session.delete(o)
            session.flush()
            if address_id:
                still_used = session.query(Order.id).filter(Order.address_id == address_id).first()
                if not still_used:
                    session.query(Address).filter(Address.id == address_id).delete(synchronize_session=False)
        log_event("info", "order.deleted", order_id=order_id)
        return {"success": True, "message": "Заказ успешно удален"}
