import re
from typing import Callable, Iterable, Optional


TRANSLIT_MAP = {
    "а": "a", "б": "b", "в": "v", "г": "g", "д": "d",
    "е": "e", "ё": "e", "ж": "zh", "з": "z", "и": "i",
    "й": "j", "к": "k", "л": "l", "м": "m", "н": "n",
    "о": "o", "п": "p", "р": "r", "с": "s", "т": "t",
    "у": "u", "ф": "f", "х": "h", "ц": "c", "ч": "ch",
    "ш": "sh", "щ": "sch", "ъ": "", "ы": "y", "ь": "",
    "э": "e", "ю": "yu", "я": "ya",
}

SIZE_PRIORITY = ("m", "l", "s", "xl", "xs", "xxl")
MAX_SLUG_LENGTH = 100


def transliterate(text: str) -> str:
    return "".join(TRANSLIT_MAP.get(ch, ch) for ch in (text or "").lower())


def create_slug(text: str) -> str:
    slug = transliterate(text)
    slug = re.sub(r"[^a-z0-9\s_-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")


def _compact(text: str, limit: int) -> str:
    return re.sub(r"[^a-z0-9]", "", transliterate(text))[:limit]


def _pick_size(sizes: list) -> str:
    for wanted in SIZE_PRIORITY:
        for size in sizes:
            if wanted in size.lower():
                return size
    return sizes[0]


def create_product_slug(
    name: str,
    *,
    sizes: Optional[Iterable[str]] = None,
    colors: Optional[Iterable[str]] = None,
    category: Optional[str] = None,
    sku: Optional[str] = None,
) -> str:
    """Build an ASCII slug like ``odezhda-futbolka-oversize-m-chernyj-0042``.

    Parts are the category prefix, the transliterated name, the most
    common size, the first color and the SKU tail.
    """
    clean = re.sub(r"[^\w\s-]", "", name or "")
    clean = re.sub(r"\s+", " ", clean).strip()
    base = transliterate(clean)
    base = re.sub(r"[^a-z0-9\s-]", "", base)
    base = re.sub(r"\s+", "-", base)
    base = re.sub(r"-+", "-", base).strip("-")
    if len(base) < 3:
        base = "product"

    if category:
        prefix = _compact(category, 10)
        if len(prefix) >= 2:
            base = f"{prefix}-{base}"

    sizes = [s for s in (sizes or []) if s]
    if sizes:
        size_part = _compact(_pick_size(sizes), 5)
        if size_part:
            base += "-" + size_part

    colors = [c for c in (colors or []) if c]
    if colors:
        color_part = _compact(colors[0], 8)
        if len(color_part) >= 2:
            base += "-" + color_part

    if sku:
        sku_part = re.sub(r"[^a-z0-9]", "", sku.lower())[-4:]
        if len(sku_part) >= 2:
            base += "-" + sku_part

    slug = re.sub(r"-+", "-", base).strip("-")[:MAX_SLUG_LENGTH].strip("-")
    return slug or "product"


def make_unique_slug(base: str, exists: Callable[[str], bool]) -> str:
    """Append ``-1``, ``-2``... until ``exists`` reports the slug as free."""
    slug = base
    counter = 1
    while exists(slug):
        slug = f"{base}-{counter}"
        counter += 1
    return slug
