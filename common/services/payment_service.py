from decimal import Decimal
from typing import Dict, Optional
import logging

from ..db.session import get_session
from ..models.enums import OrderStatus, PaymentStatus
from ..models.order import Order
from ..models.user import User
from ..utils.dto import to_order_dto
from ..utils.validators import amount_differs
from .errors import AccessDenied, NotFound, StoreError
from .logging import log_event


logger = logging.getLogger(__name__)

# gateway status -> (order status or None, payment status)
NOTIFICATION_STATUSES = {
    "CONFIRMED": (OrderStatus.PROCESSING.value, PaymentStatus.PAID.value),
    "AUTHORIZED": (OrderStatus.PROCESSING.value, PaymentStatus.PAID.value),
    "CANCELED": (None, PaymentStatus.CANCELLED.value),
    "REJECTED": (None, PaymentStatus.FAILED.value),
    "DEADLINE_EXPIRED": (None, PaymentStatus.EXPIRED.value),
}

LOCKED_ORDER_STATUSES = {OrderStatus.DELIVERED.value, OrderStatus.PROCESSING.value}


class PaymentService:
    """Online payment lifecycle for orders.

    ``create_payment`` always charges the stored order total. Gateway
    notifications are authenticated by their token before anything is
    written.
    """

    def __init__(self, session_factory=get_session, *, tbank=None, yookassa=None, mailer=None):
        self._session_factory = session_factory
        self._tbank = tbank
        self._yookassa = yookassa
        self._mailer = mailer

    def _payable_order(self, session, order_id: Optional[str], user_id: Optional[str]) -> Order:
        if not order_id:
            raise StoreError("Не указан ID заказа")
        order = session.get(Order, order_id)
        if order is None:
            raise NotFound("Заказ не найден")
        if user_id and order.user_id and order.user_id != user_id:
            raise AccessDenied("Нет доступа к этому заказу")
        if order.payment_status == PaymentStatus.PAID.value or order.status in LOCKED_ORDER_STATUSES:
            raise StoreError("Заказ уже оплачен или обрабатывается")
        return order

    def create_payment(self, *, order_id: Optional[str], user_id: Optional[str] = None,
                       amount=None, email: Optional[str] = None, phone: Optional[str] = None) -> Dict:
        if self._tbank is None:
            raise StoreError("Платежная система не настроена", status_code=503)
        with self._session_factory() as session:
            order = self._payable_order(session, order_id, user_id)
            total = Decimal(order.total or 0)
            if amount is not None and amount_differs(amount, total):
                log_event("warning", "payment.amount_mismatch", order_id=order.id,
                          client_amount=str(amount), order_total=str(total))
            user = session.get(User, order.user_id) if order.user_id else None
            items = [
                {"name": item.product.name if item.product else "Товар",
                 "price": item.price, "quantity": item.quantity}
                for item in order.items
            ]
            result = self._tbank.init_payment(
                order_id=order.id,
                amount=total,
                customer_email=email or order.customer_email or (user.email if user else None),
                customer_phone=phone or order.customer_phone or (user.phone if user else None),
                items=items,
                shipping_cost=order.shipping_cost,
            )
            order.payment_id = str(result.get("PaymentId"))
            order.payment_method = "tbank"
            order.payment_status = PaymentStatus.PENDING.value
            order.payment_data = {"status": result.get("Status"), "paymentUrl": result.get("PaymentURL")}
        log_event("info", "payment.created", order_id=order_id, payment_id=result.get("PaymentId"),
                  amount=str(total))
        return {
            "success": True,
            "paymentId": str(result.get("PaymentId")),
            "paymentUrl": result.get("PaymentURL"),
            "orderId": order_id,
            "amount": float(total),
        }

    def handle_notification(self, payload: Dict) -> int:
        """Apply a gateway callback; returns the HTTP status to answer with."""

        if self._tbank is None or not self._tbank.verify_notification(payload):
            log_event("warning", "payment.invalid_signature", order_id=payload.get("OrderId"))
            return 400
        order_id = payload.get("OrderId")
        if not order_id:
            return 400
        status = payload.get("Status")
        mapping = NOTIFICATION_STATUSES.get(status)
        confirmation = None
        with self._session_factory() as session:
            order = session.get(Order, order_id)
            if order is None:
                log_event("warning", "payment.unknown_order", order_id=order_id)
                return 404
            if mapping is None:
                log_event("info", "payment.status_ignored", order_id=order_id, status=status)
                return 200
            order_status, payment_status = mapping
            was_paid = order.payment_status == PaymentStatus.PAID.value
            if order_status:
                order.status = order_status
            order.payment_status = payment_status
            note = f"T-Bank: {status} ({payload.get('PaymentId')})"
            order.comment = f"{order.comment}\n{note}" if order.comment else note
            order.payment_data = {**(order.payment_data or {}), "status": status,
                                  "paymentId": payload.get("PaymentId")}
            if payment_status == PaymentStatus.PAID.value and not was_paid:
                user = session.get(User, order.user_id) if order.user_id else None
                email = order.customer_email or (user.email if user else None)
                if email:
                    confirmation = (email, to_order_dto(order, user=user))
        log_event("info", "payment.notification", order_id=order_id, status=status)
        if confirmation and self._mailer is not None:
            try:
                self._mailer.send_order_confirmation(*confirmation)
            except Exception:
                logger.exception("Failed to send order confirmation for %s", order_id)
        return 200

    def create_yookassa_payment(self, *, order_id: Optional[str], user_id: Optional[str] = None) -> Dict:
        if self._yookassa is None:
            raise StoreError("Платежная система не настроена", status_code=503)
        with self._session_factory() as session:
            order = self._payable_order(session, order_id, user_id)
            total = Decimal(order.total or 0)
            result = self._yookassa.create_payment(total, order.id)
            order.payment_id = result.get("id")
            order.payment_method = "yookassa"
            order.payment_status = PaymentStatus.PENDING.value
        confirmation = result.get("confirmation") or {}
        return {
            "success": True,
            "paymentId": result.get("id"),
            "confirmationUrl": confirmation.get("confirmation_url"),
        }
