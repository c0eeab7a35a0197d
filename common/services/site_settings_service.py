from typing import Dict, List
from uuid import uuid4
from ..db.session import get_session
from ..models.site_setting import SiteSetting
from .errors import StoreError


DEFAULT_SETTINGS = {
    "site_title": {
        "value": "NAKEN Store - Стильная одежда для легендарных людей",
        "type": "text",
        "category": "seo",
        "description": "Основной заголовок сайта",
    },
    "site_description": {
        "value": "Интернет-магазин стильной одежды NAKEN. Мужская и женская одежда высокого качества "
                 "✅ Бесплатная доставка от 3000₽ ✅ Скидки до 50% ✅ Примерка при получении ✅ Возврат 14 дней",
        "type": "textarea",
        "category": "seo",
        "description": "Описание сайта для поисковых систем",
    },
    "site_logo": {
        "value": "/images/logo.png",
        "type": "image",
        "category": "branding",
        "description": "Логотип сайта",
    },
    "site_keywords": {
        "value": "одежда интернет магазин, NAKEN Store, мужская одежда, женская одежда, стильная одежда",
        "type": "text",
        "category": "seo",
        "description": "Ключевые слова для SEO",
    },
    "site_author": {
        "value": "NAKEN Store",
        "type": "text",
        "category": "general",
        "description": "Автор сайта",
    },
}


class SiteSettingsService:
    """Key/value site settings with built-in defaults."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def initialize_defaults(self) -> None:
        with self._session_factory() as session:
            existing = {k for (k,) in session.query(SiteSetting.key).all()}
            for key, meta in DEFAULT_SETTINGS.items():
                if key not in existing:
                    session.add(SiteSetting(id=str(uuid4()), key=key, **meta))

    def get_settings(self) -> Dict[str, str]:
        data = {key: meta["value"] for key, meta in DEFAULT_SETTINGS.items()}
        with self._session_factory() as session:
            rows = session.query(SiteSetting).all()
        if not rows:
            self.initialize_defaults()
        for row in rows:
            data[row.key] = row.value
        return data

    def list_detailed(self) -> List[Dict]:
        self.initialize_defaults()
        with self._session_factory() as session:
            rows = session.query(SiteSetting).order_by(SiteSetting.category.asc(), SiteSetting.key.asc()).all()
            return [
                {
                    "key": r.key,
                    "value": r.value,
                    "type": r.type,
                    "category": r.category,
                    "description": r.description,
                }
                for r in rows
            ]

    def update_settings(self, values: Dict[str, str]) -> Dict[str, str]:
        if not isinstance(values, dict) or not values:
            raise StoreError("Нет данных для сохранения")
        with self._session_factory() as session:
            for key, value in values.items():
                if value is None:
                    continue
                row = session.query(SiteSetting).filter(SiteSetting.key == key).first()
                if row:
                    row.value = str(value)
                else:
                    meta = DEFAULT_SETTINGS.get(key, {})
                    session.add(
                        SiteSetting(
                            id=str(uuid4()),
                            key=key,
                            value=str(value),
                            type=meta.get("type", "text"),
                            category=meta.get("category", "general"),
                            description=meta.get("description"),
                        )
                    )
        return self.get_settings()
