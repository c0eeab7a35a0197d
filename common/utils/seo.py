from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional


STORE_NAME = "NAKEN Store"
POPULAR_SIZES = {"XS", "S", "M", "L", "XL", "XXL"}


def format_price(value) -> str:
    """Format like ru-RU currency output: ``12 990 ₽``."""
    amount = int(Decimal(str(value or 0)).quantize(Decimal("1")))
    grouped = f"{amount:,}".replace(",", " ")
    return f"{grouped} ₽"


def discount_percent(price, sale_price) -> int:
    price = Decimal(str(price))
    if not price:
        return 0
    return int(((price - Decimal(str(sale_price))) / price * 100).quantize(Decimal("1")))


def truncate_to_seo_length(text: str, max_length: int = 160) -> str:
    if len(text) <= max_length:
        return text
    truncated = text[:max_length]
    cut = max(truncated.rfind("."), truncated.rfind(","), truncated.rfind(" "))
    if cut > max_length * 0.8:
        return text[: cut + (1 if truncated[cut] == "." else 0)]
    return truncated.strip() + "..."


def generate_seo_description(
    name: str,
    price,
    *,
    description: Optional[str] = None,
    sale_price=None,
    sizes: Optional[List[str]] = None,
    colors: Optional[List[str]] = None,
    category: Optional[str] = None,
    year: Optional[int] = None,
) -> str:
    if description and len(description) >= 50:
        return truncate_to_seo_length(description)

    parts = [name]
    if sizes:
        if len(sizes) > 3:
            parts.append(f"размеры {', '.join(sizes[:3])} и др.")
        else:
            parts.append(f"размеры {', '.join(sizes)}")
    if colors:
        if len(colors) > 2:
            parts.append(f"в цветах {', '.join(colors[:2])} и др.")
        else:
            parts.append(f"в {' и '.join(colors)} цвете")
    if sale_price:
        parts.append(f"по цене {format_price(sale_price)} (скидка {discount_percent(price, sale_price)}%)")
    else:
        parts.append(f"за {format_price(price)}")

    benefits = ["высокое качество", "быстрая доставка по России", "возврат 14 дней"]
    if sale_price:
        benefits.insert(0, "скидка до 50%")
    benefit_text = ", ".join(benefits)
    text = f"{' '.join(parts)} в интернет-магазине {STORE_NAME}. {benefit_text[:1].upper()}{benefit_text[1:]}."

    if len(text) < 120:
        text += f" Стильная {(category or 'одежда').lower()}, модные тренды {year or datetime.utcnow().year}."
    return truncate_to_seo_length(text)


def generate_product_keywords(
    name: str,
    price,
    *,
    category: Optional[str] = None,
    brand: Optional[str] = None,
    sizes: Optional[Iterable[str]] = None,
) -> str:
    keywords = [name, STORE_NAME]
    if category:
        cat = category.lower()
        keywords += [cat, f"купить {cat}", f"{cat} интернет магазин"]
    if brand and brand != "NAKEN":
        keywords += [brand, f"{brand} {category or 'одежда'}"]
    popular = [s for s in (sizes or []) if s.upper() in POPULAR_SIZES]
    if popular:
        keywords.append(f"размер {popular[0]}")
    amount = Decimal(str(price or 0))
    if amount < 2000:
        keywords += ["недорогая одежда", "одежда до 2000"]
    elif amount > 5000:
        keywords += ["премиум одежда", "дизайнерская одежда"]
    keywords += [
        "одежда онлайн",
        "модная одежда",
        "стильная одежда",
        "одежда с доставкой",
        "магазин одежды москва",
    ]
    return ", ".join(keywords)


def generate_structured_description(name: str, price, **kwargs) -> str:
    sections = [generate_seo_description(name, price, **kwargs)]
    features = []
    if kwargs.get("sizes"):
        features.append(f"🔹 Размеры: {', '.join(kwargs['sizes'])}")
    if kwargs.get("colors"):
        features.append(f"🔹 Цвета: {', '.join(kwargs['colors'])}")
    features += [
        "🔹 Материал: высококачественные ткани",
        "🔹 Уход: машинная стирка при 30°C",
        "🔹 Страна: дизайн NAKEN Store",
    ]
    sections.append("\n**Характеристики:**\n" + "\n".join(features))
    benefits = [
        "✅ Бесплатная доставка от 3000₽",
        "✅ Примерка при получении",
        "✅ Возврат в течение 14 дней",
        "✅ Гарантия качества",
        "✅ Быстрая доставка по России",
    ]
    sections.append("\n**Почему выбирают нас:**\n" + "\n".join(benefits))
    return "\n".join(sections)


def validate_seo_description(description: str) -> Dict:
    warnings: List[str] = []
    suggestions: List[str] = []
    if len(description) < 50:
        warnings.append("Описание слишком короткое (минимум 50 символов)")
    if len(description) > 160:
        warnings.append("Описание слишком длинное для meta description (максимум 160 символов)")
        suggestions.append("Сократите описание до 160 символов для лучшего отображения в поисковых результатах")
    lower = description.lower()
    if not any(token in lower for token in ("₽", "руб", "цена")):
        suggestions.append("Добавьте информацию о цене")
    if "naken" not in lower:
        suggestions.append("Упомяните бренд NAKEN Store")
    if not any(token in lower for token in ("качеств", "стильн", "модн")):
        suggestions.append("Добавьте слова о качестве или стиле товара")
    return {"isValid": not warnings, "warnings": warnings, "suggestions": suggestions}
