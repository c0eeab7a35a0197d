"""Search-engine facing documents: robots.txt, sitemap, Yandex YML feed, product metadata."""

from datetime import datetime
from typing import Callable, Dict, List
import xml.etree.ElementTree as ET
from sqlalchemy import func
from ..db.session import get_session
from ..models.product import Product
from ..models.review import Review
from ..utils.seo import (
    generate_product_keywords,
    generate_seo_description,
    generate_structured_description,
    validate_seo_description,
)
from .errors import NotFound


PRIVATE_PATHS = ["/admin/", "/api/", "/auth/", "/_next/", "/checkout/", "/cart/", "/profile/"]
BLOCKED_DOCUMENTS = ["*.pdf", "*.doc", "*.docx"]

STATIC_PAGES = [
    ("", "1.0", "daily"),
    ("/catalog", "0.9", "daily"),
    ("/contacts", "0.9", "monthly"),
    ("/delivery", "0.8", "monthly"),
    ("/payment", "0.8", "monthly"),
    ("/returns", "0.8", "monthly"),
    ("/cart", "0.7", "weekly"),
    ("/checkout", "0.7", "weekly"),
    ("/terms", "0.6", "yearly"),
    ("/privacy", "0.6", "yearly"),
    ("/offer", "0.6", "yearly"),
    ("/intro", "0.5", "monthly"),
]
SITEMAP_PRODUCT_LIMIT = 500
SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"


def _iso(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


def _price_text(value) -> str:
    text = f"{value:f}" if value is not None else "0"
    return text.rstrip("0").rstrip(".") if "." in text else text


def _to_xml(root: ET.Element) -> str:
    ET.indent(root, space="  ")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode")


class SeoService:
    def __init__(self, base_url: str, session_factory=get_session, clock: Callable[[], datetime] = datetime.utcnow):
        self._base_url = base_url.rstrip("/")
        self._session_factory = session_factory
        self._clock = clock

    def robots_txt(self) -> str:
        lines: List[str] = ["User-Agent: *", "Allow: /"]
        lines += [f"Disallow: {p}" for p in PRIVATE_PATHS + BLOCKED_DOCUMENTS]
        lines += ["", "User-Agent: Yandex", "Allow: /"]
        lines += [f"Disallow: {p}" for p in PRIVATE_PATHS]
        lines += ["Crawl-delay: 1", "", f"Host: {self._base_url}", f"Sitemap: {self._base_url}/sitemap.xml", ""]
        return "\n".join(lines)

    def _published(self, session):
        return session.query(Product).filter(
            Product.published.is_(True),
            Product.deleted_at.is_(None),
            Product.slug.isnot(None),
            Product.slug != "",
        )

    def sitemap_xml(self) -> str:
        now = _iso(self._clock())
        root = ET.Element("urlset", {"xmlns": SITEMAP_NS})
        for path, priority, freq in STATIC_PAGES:
            self._url(root, f"{self._base_url}{path}", now, freq, priority)
        with self._session_factory() as session:
            rows = self._published(session).order_by(Product.updated_at.desc()).limit(SITEMAP_PRODUCT_LIMIT).all()
            for p in rows:
                self._url(root, f"{self._base_url}/product/{p.slug}", _iso(p.updated_at), "weekly", "0.8")
        return _to_xml(root)

    @staticmethod
    def _url(root, loc: str, lastmod: str, freq: str, priority: str) -> None:
        url = ET.SubElement(root, "url")
        ET.SubElement(url, "loc").text = loc
        ET.SubElement(url, "lastmod").text = lastmod
        ET.SubElement(url, "changefreq").text = freq
        ET.SubElement(url, "priority").text = priority

    def _absolute(self, path: str) -> str:
        return path if path.startswith(("http://", "https://")) else f"{self._base_url}{path}"

    def yandex_feed(self) -> str:
        root = ET.Element("yml_catalog", {"date": _iso(self._clock())})
        shop = ET.SubElement(root, "shop")
        ET.SubElement(shop, "name").text = "Naken"
        ET.SubElement(shop, "company").text = "Naken Store"
        ET.SubElement(shop, "url").text = self._base_url
        currencies = ET.SubElement(shop, "currencies")
        ET.SubElement(currencies, "currency", {"id": "RUR", "rate": "1"})
        categories = ET.SubElement(shop, "categories")
        ET.SubElement(categories, "category", {"id": "1"}).text = "Все товары"
        offers = ET.SubElement(shop, "offers")
        with self._session_factory() as session:
            for p in self._published(session).order_by(Product.created_at.desc()).all():
                offer = ET.SubElement(offers, "offer", {"id": p.sku, "available": "true" if p.stock > 0 else "false"})
                ET.SubElement(offer, "url").text = f"{self._base_url}/product/{p.slug}"
                ET.SubElement(offer, "price").text = _price_text(p.effective_price)
                if p.sale_price:
                    ET.SubElement(offer, "oldprice").text = _price_text(p.price)
                ET.SubElement(offer, "currencyId").text = "RUR"
                ET.SubElement(offer, "categoryId").text = "1"
                images = list(p.images or []) or ["/placeholder.jpg"]
                for img in images:
                    ET.SubElement(offer, "picture").text = self._absolute(img)
                ET.SubElement(offer, "name").text = p.name
                ET.SubElement(offer, "description").text = p.description or ""
                ET.SubElement(offer, "vendorCode").text = p.sku
                ET.SubElement(offer, "param", {"name": "Цвет"}).text = p.color.name if p.color else "N/A"
                for ps in p.sizes:
                    if ps.size is not None:
                        ET.SubElement(offer, "param", {"name": "Размер"}).text = ps.size.russian_size or ps.size.name
        return _to_xml(root)

    def product_metadata(self, slug: str) -> Dict:
        with self._session_factory() as session:
            p = self._published(session).filter(Product.slug == slug).first()
            if not p:
                raise NotFound("Товар не найден")
            avg, count = (
                session.query(func.avg(Review.rating), func.count(Review.id))
                .filter(Review.product_id == p.id)
                .one()
            )
            sizes = [ps.size.name for ps in p.sizes if ps.size is not None]
            colors = [p.color.name] if p.color else []
            details = dict(
                description=p.description,
                sale_price=p.sale_price,
                sizes=sizes,
                colors=colors,
                year=self._clock().year,
            )
            description = generate_seo_description(p.name, p.price, **details)
            url = f"{self._base_url}/product/{p.slug}"
            images = [self._absolute(i) for i in (p.images or [])]
            json_ld = {
                "@context": "https://schema.org",
                "@type": "Product",
                "name": p.name,
                "description": description,
                "sku": p.sku,
                "image": images,
                "brand": {"@type": "Brand", "name": "NAKEN"},
                "offers": {
                    "@type": "Offer",
                    "url": url,
                    "priceCurrency": "RUB",
                    "price": float(p.effective_price),
                    "availability": "https://schema.org/InStock" if p.stock > 0 else "https://schema.org/OutOfStock",
                    "seller": {"@type": "Organization", "name": "NAKEN Store"},
                },
            }
            if count:
                json_ld["aggregateRating"] = {
                    "@type": "AggregateRating",
                    "ratingValue": round(float(avg), 1),
                    "reviewCount": int(count),
                }
            return {
                "title": f"{p.name} | NAKEN Store",
                "description": description,
                "structuredDescription": generate_structured_description(p.name, p.price, **details),
                "keywords": generate_product_keywords(p.name, p.price, sizes=sizes),
                "canonical": url,
                "images": images,
                "jsonLd": json_ld,
                "validation": validate_seo_description(description),
            }
