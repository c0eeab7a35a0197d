"""Product administration: create, edit and retire catalog items."""

from datetime import datetime
from typing import Callable, Dict, List, Optional
from uuid import uuid4
from sqlalchemy.exc import IntegrityError
from ..db.session import get_session
from ..models.cart_item import CartItem
from ..models.color import Color
from ..models.order import OrderItem
from ..models.product import Product, ProductSize
from ..models.review import Review
from ..models.size import Size
from ..models.wishlist_item import WishlistItem
from ..utils.dto import to_product_dto
from ..utils.security import detect_sql_injection, log_suspicious_activity, sanitize_input
from ..utils.slug import create_product_slug, make_unique_slug
from ..utils.validators import parse_money
from .errors import Conflict, NotFound, StoreError
from .logging import log_event


DEFAULT_CATEGORY = "одежда"
CHECKED_FIELDS = ("name", "description", "sku")


class ProductAdminService:
    def __init__(self, session_factory=get_session, on_change: Optional[Callable[[], None]] = None):
        self._session_factory = session_factory
        self._on_change = on_change

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    @staticmethod
    def _screen(data: Dict, audit: Optional[Dict]) -> None:
        for field in CHECKED_FIELDS:
            value = data.get(field)
            if isinstance(value, str) and detect_sql_injection(value):
                audit = audit or {}
                log_suspicious_activity(
                    "invalid_input",
                    ip=audit.get("ip") or "unknown",
                    user_agent=audit.get("user_agent"),
                    user_id=audit.get("user_id"),
                    path=audit.get("path"),
                    data={"suspiciousField": field},
                )
                raise StoreError("Обнаружены недопустимые символы в данных")

    @staticmethod
    def _stock(value) -> int:
        try:
            return max(int(value or 0), 0)
        except (TypeError, ValueError):
            raise StoreError("Остаток должен быть числом")

    @staticmethod
    def _slug_for(session, name: str, size_ids: List[str], color_id: Optional[str], sku: str,
                  exclude_id: Optional[str] = None) -> str:
        sizes = [s.name for s in session.query(Size).filter(Size.id.in_(size_ids)).all()] if size_ids else []
        color = session.get(Color, color_id) if color_id else None
        base = create_product_slug(
            name,
            sizes=sizes,
            colors=[color.name] if color else [],
            category=DEFAULT_CATEGORY,
            sku=sku,
        )

        def taken(slug: str) -> bool:
            q = session.query(Product.id).filter(Product.slug == slug)
            if exclude_id:
                q = q.filter(Product.id != exclude_id)
            return q.first() is not None

        return make_unique_slug(base, taken)

    @staticmethod
    def _replace_sizes(product: Product, size_ids: List[str], stock: int) -> None:
        product.sizes = [
            ProductSize(id=str(uuid4()), size_id=sid, stock=stock)
            for sid in dict.fromkeys(size_ids)
        ]

    def list_products(self) -> List[Dict]:
        with self._session_factory() as session:
            rows = session.query(Product).order_by(Product.created_at.desc()).all()
            return [to_product_dto(p) for p in rows]

    def get_product(self, product_id: str) -> Dict:
        with self._session_factory() as session:
            product = session.get(Product, product_id)
            if not product:
                raise NotFound("Товар не найден")
            return to_product_dto(product)

    def create_product(self, data: Dict, *, audit: Optional[Dict] = None) -> Dict:
        size_ids = data.get("sizeIds") or []
        if not data.get("name") or not data.get("sku") or data.get("price") in (None, "") \
                or not size_ids or not data.get("colorId"):
            raise StoreError("Не заполнены обязательные поля (название, SKU, цена, размеры, цвет)")
        self._screen(data, audit)
        name = sanitize_input(data["name"])
        sku = sanitize_input(data["sku"])
        description = sanitize_input(data["description"]) if data.get("description") else None
        price = parse_money(data["price"])
        sale_price = parse_money(data.get("salePrice"), "salePrice", required=False)
        stock = self._stock(data.get("stock"))

        with self._session_factory() as session:
            if session.query(Product.id).filter(Product.sku == sku).first():
                raise StoreError("Товар с таким артикулом уже существует")
            if not session.get(Color, data["colorId"]):
                raise StoreError("Цвет не найден")
            known = {s.id for s in session.query(Size).filter(Size.id.in_(size_ids)).all()}
            if len(known) != len(set(size_ids)):
                raise StoreError("Размер не найден")
            product = Product(
                id=str(uuid4()),
                name=name,
                slug=self._slug_for(session, name, size_ids, data["colorId"], sku),
                description=description,
                price=price,
                sale_price=sale_price,
                sku=sku,
                stock=stock,
                images=list(data.get("images") or []),
                color_id=data["colorId"],
                published=bool(data.get("published", False)),
            )
            self._replace_sizes(product, size_ids, stock)
            session.add(product)
            session.flush()
            session.refresh(product)
            dto = to_product_dto(product)
        log_event("info", "product.created", product_id=dto["id"], sku=sku, slug=dto["slug"])
        self._changed()
        return dto

    def update_product(self, product_id: str, data: Dict, *, audit: Optional[Dict] = None) -> Dict:
        self._screen(data, audit)
        with self._session_factory() as session:
            product = session.get(Product, product_id)
            if not product:
                raise NotFound("Товар не найден")
            name_changed = False
            if data.get("name"):
                name = sanitize_input(data["name"])
                name_changed = name != product.name
                product.name = name
            if "description" in data:
                product.description = sanitize_input(data["description"]) if data["description"] else None
            if data.get("sku"):
                sku = sanitize_input(data["sku"])
                if sku != product.sku:
                    dup = session.query(Product.id).filter(Product.sku == sku, Product.id != product_id).first()
                    if dup:
                        raise StoreError("Товар с таким артикулом уже существует")
                    product.sku = sku
            if "price" in data:
                product.price = parse_money(data["price"])
            if "salePrice" in data:
                product.sale_price = parse_money(data["salePrice"], "salePrice", required=False)
            if "stock" in data:
                product.stock = self._stock(data["stock"])
            if "images" in data:
                product.images = list(data["images"] or [])
            if "published" in data:
                product.published = bool(data["published"])
                if product.published:
                    product.deleted_at = None
            if data.get("colorId"):
                if not session.get(Color, data["colorId"]):
                    raise StoreError("Цвет не найден")
                product.color_id = data["colorId"]
            size_ids = data.get("sizeIds")
            if size_ids is not None:
                self._replace_sizes(product, size_ids, product.stock)
            if name_changed:
                current_sizes = size_ids if size_ids is not None else [ps.size_id for ps in product.sizes]
                product.slug = self._slug_for(
                    session, product.name, current_sizes, product.color_id, product.sku, exclude_id=product.id
                )
            session.flush()
            session.refresh(product)
            dto = to_product_dto(product)
        log_event("info", "product.updated", product_id=product_id, slug=dto["slug"])
        self._changed()
        return dto

    def delete_product(self, product_id: str) -> Dict:
        """Remove a product, or hide it when past orders still reference it.

        Returns ``{"soft_deleted": bool, ...}``.
        """
        try:
            with self._session_factory() as session:
                product = session.get(Product, product_id)
                if not product:
                    raise NotFound("Товар не найден")
                referenced = session.query(OrderItem.id).filter(OrderItem.product_id == product_id).first()
                if referenced:
                    product.published = False
                    product.deleted_at = datetime.utcnow()
                    result = {
                        "message": "Товар скрыт из каталога, так как присутствует в заказах.",
                        "soft_deleted": True,
                    }
                else:
                    for model in (CartItem, WishlistItem, Review):
                        session.query(model).filter(model.product_id == product_id).delete(synchronize_session=False)
                    session.delete(product)
                    result = {"soft_deleted": False}
        except IntegrityError:
            raise Conflict("Невозможно удалить товар: он связан с другими записями в системе")
        log_event("info", "product.deleted", product_id=product_id, soft=result["soft_deleted"])
        self._changed()
        return result
