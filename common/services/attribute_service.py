from typing import Dict, List, Optional
from uuid import uuid4
from ..db.session import get_session
from ..models.color import Color
from ..models.product import Product, ProductSize
from ..models.size import Size
from ..utils.dto import to_color_dto, to_size_dto
from .errors import Conflict, NotFound, StoreError


HEX_LENGTHS = (4, 7)


class AttributeService:
    """Colors and sizes that products are described with."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def list_colors(self) -> List[Dict]:
        with self._session_factory() as session:
            return [to_color_dto(c) for c in session.query(Color).order_by(Color.name.asc()).all()]

    def create_color(self, *, name: Optional[str], hex_code: Optional[str]) -> Dict:
        name = (name or "").strip()
        hex_code = (hex_code or "").strip()
        if not name or not hex_code:
            raise StoreError("Не заполнены обязательные поля")
        if not hex_code.startswith("#") or len(hex_code) not in HEX_LENGTHS:
            raise StoreError("Некорректный HEX-код цвета")
        with self._session_factory() as session:
            if session.query(Color.id).filter(Color.name == name).first():
                raise Conflict("Такой цвет уже существует")
            color = Color(id=str(uuid4()), name=name, hex_code=hex_code)
            session.add(color)
            session.flush()
            return to_color_dto(color)

    def delete_color(self, color_id: str) -> Dict:
        with self._session_factory() as session:
            color = session.get(Color, color_id)
            if not color:
                raise NotFound("Цвет не найден")
            if session.query(Product.id).filter(Product.color_id == color_id).first():
                raise Conflict("Цвет используется в товарах")
            session.delete(color)
        return {"success": True}

    def list_sizes(self) -> List[Dict]:
        with self._session_factory() as session:
            rows = session.query(Size).order_by(Size.sort_order.asc(), Size.name.asc()).all()
            return [to_size_dto(s) for s in rows]

    def create_size(self, *, name: Optional[str], russian_size: Optional[str], sort_order=0) -> Dict:
        name = (name or "").strip()
        russian_size = (str(russian_size).strip() if russian_size is not None else "")
        if not name or not russian_size:
            raise StoreError("Не заполнены обязательные поля")
        with self._session_factory() as session:
            if session.query(Size.id).filter(Size.name == name).first():
                raise Conflict("Такой размер уже существует")
            size = Size(id=str(uuid4()), name=name, russian_size=russian_size, sort_order=int(sort_order or 0))
            session.add(size)
            session.flush()
            return to_size_dto(size)

    def delete_size(self, size_id: str) -> Dict:
        with self._session_factory() as session:
            size = session.get(Size, size_id)
            if not size:
                raise NotFound("Размер не найден")
            if session.query(ProductSize.id).filter(ProductSize.size_id == size_id).first():
                raise Conflict("Размер используется в товарах")
            session.delete(size)
        return {"success": True}
