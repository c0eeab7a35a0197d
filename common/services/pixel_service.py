from typing import Dict, List
from uuid import uuid4
from ..db.session import get_session
from ..models.enums import PixelPlacement, PixelType
from ..models.tracking_pixel import TrackingPixel
from ..utils.dto import to_pixel_dto
from .errors import NotFound, StoreError


PIXEL_TYPES = {t.value for t in PixelType}
PLACEMENTS = {p.value for p in PixelPlacement}


class PixelService:
    """Third-party analytics snippets injected into storefront pages."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    @staticmethod
    def _validate(name, pixel_type, pixel_id, placement) -> None:
        if not name or not pixel_type:
            raise StoreError("Название и тип пикселя обязательны")
        if pixel_type not in PIXEL_TYPES:
            raise StoreError("Неизвестный тип пикселя")
        if pixel_type != PixelType.CUSTOM_HTML.value and not pixel_id:
            raise StoreError("ID пикселя обязателен для данного типа")
        if placement not in PLACEMENTS:
            raise StoreError("Неверное расположение пикселя")

    def list_pixels(self) -> List[Dict]:
        with self._session_factory() as session:
            rows = session.query(TrackingPixel).order_by(TrackingPixel.created_at.desc()).all()
            return [to_pixel_dto(p) for p in rows]

    def list_active(self) -> List[Dict]:
        with self._session_factory() as session:
            rows = (
                session.query(TrackingPixel)
                .filter(TrackingPixel.is_active.is_(True))
                .order_by(TrackingPixel.created_at.asc())
                .all()
            )
            return [
                {k: v for k, v in to_pixel_dto(p).items() if k not in ("description", "createdAt", "updatedAt")}
                for p in rows
            ]

    def get_pixel(self, pixel_id: str) -> Dict:
        with self._session_factory() as session:
            pixel = session.get(TrackingPixel, pixel_id)
            if not pixel:
                raise NotFound("Пиксель не найден")
            return to_pixel_dto(pixel)

    def create_pixel(self, data: Dict) -> Dict:
        placement = data.get("placement") or PixelPlacement.HEAD.value
        self._validate(data.get("name"), data.get("type"), data.get("pixelId"), placement)
        with self._session_factory() as session:
            pixel = TrackingPixel(
                id=str(uuid4()),
                name=data["name"],
                type=data["type"],
                pixel_id=data.get("pixelId") or "",
                code=data.get("code"),
                is_active=data.get("isActive") if data.get("isActive") is not None else True,
                placement=placement,
                description=data.get("description"),
            )
            session.add(pixel)
            session.flush()
            return to_pixel_dto(pixel)

    def update_pixel(self, pixel_id: str, data: Dict) -> Dict:
        with self._session_factory() as session:
            pixel = session.get(TrackingPixel, pixel_id)
            if not pixel:
                raise NotFound("Пиксель не найден")
            name = data.get("name", pixel.name)
            pixel_type = data.get("type", pixel.type)
            ext_id = data.get("pixelId", pixel.pixel_id)
            placement = data.get("placement") or pixel.placement
            self._validate(name, pixel_type, ext_id, placement)
            pixel.name = name
            pixel.type = pixel_type
            pixel.pixel_id = ext_id or ""
            pixel.placement = placement
            if "code" in data:
                pixel.code = data["code"]
            if "isActive" in data:
                pixel.is_active = bool(data["isActive"])
            if "description" in data:
                pixel.description = data["description"]
            session.flush()
            return to_pixel_dto(pixel)

    def delete_pixel(self, pixel_id: str) -> Dict:
        with self._session_factory() as session:
            pixel = session.get(TrackingPixel, pixel_id)
            if not pixel:
                raise NotFound("Пиксель не найден")
            session.delete(pixel)
        return {"success": True}
