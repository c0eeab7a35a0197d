from typing import Dict, Optional
from uuid import uuid4
from decimal import Decimal
from ..db.session import get_session
from ..models.product import Product
from ..models.cart_item import CartItem
from ..models.size import Size
from ..models.wishlist_item import WishlistItem
from ..utils.dto import to_product_dto, to_size_dto
from ..utils.validators import ensure_positive_int
from .errors import NotFound, StoreError


class CartService:
    """Cart operations backed by DB."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    @staticmethod
    def _line(item: CartItem, product: Product, size: Optional[Size]) -> Dict:
        unit = Decimal(str(product.effective_price))
        return {
            "id": item.id,
            "productId": item.product_id,
            "sizeId": item.size_id,
            "quantity": item.quantity,
            "unitPrice": float(unit),
            "lineTotal": float(unit * item.quantity),
            "product": to_product_dto(product),
            "size": to_size_dto(size) if size is not None else None,
        }

    def get_cart(self, *, user_id: str) -> Dict:
        with self._session_factory() as session:
            rows = (
                session.query(CartItem, Product, Size)
                .join(Product, Product.id == CartItem.product_id)
                .outerjoin(Size, Size.id == CartItem.size_id)
                .filter(CartItem.user_id == user_id)
                .order_by(CartItem.added_at.asc())
                .all()
            )
            items = [self._line(it, prod, size) for it, prod, size in rows]
        total = sum((Decimal(str(it["lineTotal"])) for it in items), Decimal("0"))
        return {
            "items": items,
            "total": float(total),
            "itemCount": sum(it["quantity"] for it in items),
        }

    def add_item(self, *, user_id: str, product_id: str, quantity=1, size_id: Optional[str] = None) -> Dict:
        if not product_id:
            raise StoreError("Не указан товар")
        qnty = ensure_positive_int(quantity if quantity is not None else 1, "quantity")
        with self._session_factory() as session:
            prod = (
                session.query(Product)
                .filter(Product.id == product_id, Product.published.is_(True), Product.deleted_at.is_(None))
                .first()
            )
            if not prod:
                raise NotFound("Товар не найден")
            if size_id and not session.get(Size, size_id):
                raise NotFound("Размер не найден")

            # Merge with an existing line for the same product and size
            existing = (
                session.query(CartItem)
                .filter(
                    CartItem.user_id == user_id,
                    CartItem.product_id == product_id,
                    CartItem.size_id.is_(None) if not size_id else CartItem.size_id == size_id,
                )
                .first()
            )
            new_q = (existing.quantity if existing else 0) + qnty
            if prod.stock is not None and new_q > int(prod.stock):
                raise StoreError("Недостаточно товара на складе")
            if existing:
                existing.quantity = new_q
                item = existing
            else:
                item = CartItem(
                    id=str(uuid4()),
                    user_id=user_id,
                    product_id=product_id,
                    size_id=size_id or None,
                    quantity=qnty,
                )
                session.add(item)
            session.flush()
            size = session.get(Size, item.size_id) if item.size_id else None
            return self._line(item, prod, size)

    def update_item(self, *, user_id: str, item_id: str, quantity) -> Dict:
        qnty = ensure_positive_int(quantity, "quantity")
        with self._session_factory() as session:
            it = session.query(CartItem).filter(CartItem.id == item_id, CartItem.user_id == user_id).first()
            if not it:
                raise NotFound("Товар в корзине не найден")
            prod = session.get(Product, it.product_id)
            if prod and prod.stock is not None and qnty > int(prod.stock):
                raise StoreError("Недостаточно товара на складе")
            it.quantity = qnty
            session.flush()
            size = session.get(Size, it.size_id) if it.size_id else None
            return self._line(it, prod, size)

    def remove_item(self, *, user_id: str, item_id: str) -> Dict:
        with self._session_factory() as session:
            deleted = (
                session.query(CartItem)
                .filter(CartItem.id == item_id, CartItem.user_id == user_id)
                .delete(synchronize_session=False)
            )
            if not deleted:
                raise NotFound("Товар в корзине не найден")
        return {"success": True}

    def clear(self, *, user_id: str) -> Dict:
        with self._session_factory() as session:
            removed = session.query(CartItem).filter(CartItem.user_id == user_id).delete(synchronize_session=False)
        return {"success": True, "removed": removed}


class WishlistService:
    """Saved products per user."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def list_items(self, *, user_id: str):
        with self._session_factory() as session:
            rows = (
                session.query(WishlistItem, Product)
                .join(Product, Product.id == WishlistItem.product_id)
                .filter(WishlistItem.user_id == user_id)
                .order_by(WishlistItem.created_at.desc())
                .all()
            )
            return [
                {"id": w.id, "productId": w.product_id, "product": to_product_dto(p), "createdAt": w.created_at.isoformat() + "Z"}
                for w, p in rows
            ]

    def add(self, *, user_id: str, product_id: str) -> Dict:
        if not product_id:
            raise StoreError("Не указан товар")
        with self._session_factory() as session:
            prod = (
                session.query(Product)
                .filter(Product.id == product_id, Product.published.is_(True), Product.deleted_at.is_(None))
                .first()
            )
            if not prod:
                raise NotFound("Товар не найден")
            exists = (
                session.query(WishlistItem.id)
                .filter(WishlistItem.user_id == user_id, WishlistItem.product_id == product_id)
                .first()
            )
            if exists:
                raise StoreError("Товар уже в избранном")
            item = WishlistItem(id=str(uuid4()), user_id=user_id, product_id=product_id)
            session.add(item)
            session.flush()
            return {"id": item.id, "productId": product_id, "product": to_product_dto(prod)}

    def remove(self, *, user_id: str, product_id: str) -> Dict:
        with self._session_factory() as session:
            deleted = (
                session.query(WishlistItem)
                .filter(WishlistItem.user_id == user_id, WishlistItem.product_id == product_id)
                .delete(synchronize_session=False)
            )
            if not deleted:
                raise NotFound("Товар не найден в избранном")
        return {"success": True}
