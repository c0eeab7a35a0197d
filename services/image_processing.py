"""Pillow transforms that fit product photos into the masonry grid."""

from __future__ import annotations

import random
from io import BytesIO
from typing import Dict, Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError


MASONRY_SIZES: Dict[str, Dict] = {
    "square_small": {"width": 300, "height": 300, "ratio": "1:1"},
    "square_medium": {"width": 400, "height": 400, "ratio": "1:1"},
    "square_large": {"width": 500, "height": 500, "ratio": "1:1"},
    "portrait_small": {"width": 300, "height": 400, "ratio": "3:4"},
    "portrait_medium": {"width": 350, "height": 500, "ratio": "7:10"},
    "portrait_large": {"width": 400, "height": 600, "ratio": "2:3"},
    "landscape_small": {"width": 400, "height": 300, "ratio": "4:3"},
    "landscape_medium": {"width": 500, "height": 350, "ratio": "10:7"},
    "landscape_large": {"width": 600, "height": 400, "ratio": "3:2"},
    "tall_portrait": {"width": 300, "height": 500, "ratio": "3:5"},
    "tall_portrait_large": {"width": 350, "height": 600, "ratio": "7:12"},
    "wide_landscape": {"width": 600, "height": 300, "ratio": "2:1"},
    "wide_landscape_large": {"width": 700, "height": 350, "ratio": "2:1"},
}

# Portrait shapes look best in the grid, so they are drawn more often.
SIZE_WEIGHTS = {
    "square_small": 2,
    "square_medium": 3,
    "square_large": 2,
    "portrait_small": 3,
    "portrait_medium": 4,
    "portrait_large": 3,
    "landscape_small": 2,
    "landscape_medium": 2,
    "landscape_large": 1,
    "tall_portrait": 3,
    "tall_portrait_large": 2,
    "wide_landscape": 1,
    "wide_landscape_large": 1,
}

SIZE_DESCRIPTIONS = {
    "square_small": "Маленький квадрат - идеален для иконок",
    "square_medium": "Средний квадрат - универсальный размер",
    "square_large": "Большой квадрат - для акцентов",
    "portrait_small": "Маленький портрет - компактный",
    "portrait_medium": "Средний портрет - сбалансированный",
    "portrait_large": "Большой портрет - выразительный",
    "landscape_small": "Маленький альбом - горизонтальный",
    "landscape_medium": "Средний альбом - панорамный",
    "landscape_large": "Большой альбом - широкий вид",
    "tall_portrait": "Высокий портрет - эффектный",
    "tall_portrait_large": "Очень высокий - доминирующий",
    "wide_landscape": "Широкий альбом - панорама",
    "wide_landscape_large": "Очень широкий - баннерный",
}

SIZE_LIMITS = {
    "minWidth": 300,
    "maxWidth": 800,
    "minHeight": 300,
    "maxHeight": 1200,
    "maxFileSize": 15 * 1024 * 1024,
    "supportedFormats": ["jpeg", "jpg", "png", "webp"],
}

THUMBNAIL_SIZE = (150, 150)


class ImageProcessingError(ValueError):
    pass


def size_category(key: str) -> str:
    if "square" in key:
        return "square"
    if "portrait" in key or "tall" in key:
        return "portrait"
    if "landscape" in key or "wide" in key:
        return "landscape"
    return "special"


def best_masonry_size(width: int, height: int) -> str:
    aspect = width / height
    if 0.9 <= aspect <= 1.1:
        side = min(width, height)
        if side >= 500:
            return "square_large"
        if side >= 400:
            return "square_medium"
        return "square_small"
    if aspect < 0.9:
        if aspect <= 0.6:
            return "tall_portrait_large" if height >= 600 else "tall_portrait"
        if aspect <= 0.7:
            return "portrait_large" if height >= 600 else "portrait_medium"
        return "portrait_small"
    if aspect >= 1.8:
        return "wide_landscape_large" if width >= 700 else "wide_landscape"
    if aspect >= 1.4:
        return "landscape_large" if width >= 600 else "landscape_medium"
    return "landscape_small"


def random_masonry_size(rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    keys = list(MASONRY_SIZES)
    return rng.choices(keys, weights=[SIZE_WEIGHTS.get(k, 1) for k in keys], k=1)[0]


def _open(binary: bytes) -> Image.Image:
    try:
        image = Image.open(BytesIO(binary))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageProcessingError("Не удалось прочитать изображение") from exc
    return ImageOps.exif_transpose(image).convert("RGB")


def _encode(image: Image.Image, quality: int, progressive: bool = True) -> bytes:
    out = BytesIO()
    image.save(out, format="JPEG", quality=quality, progressive=progressive)
    return out.getvalue()


def process_for_masonry(binary: bytes, size_key: Optional[str] = None,
                        rng: Optional[random.Random] = None) -> Tuple[bytes, Dict]:
    """Center-crop to a masonry cell and re-encode as progressive JPEG.

    ``size_key="random"`` draws a weighted cell shape to vary the grid.
    """
    image = _open(binary)
    if size_key == "random":
        size_key = random_masonry_size(rng)
    if size_key is not None and size_key not in MASONRY_SIZES:
        raise ImageProcessingError(f"Неизвестный размер: {size_key}")
    key = size_key or best_masonry_size(image.width, image.height)
    target = MASONRY_SIZES[key]
    fitted = ImageOps.fit(image, (target["width"], target["height"]), Image.LANCZOS, centering=(0.5, 0.5))
    processed = _encode(fitted, 95)
    if len(processed) > SIZE_LIMITS["maxFileSize"]:
        processed = _encode(fitted, 90)
    return processed, {
        "width": target["width"],
        "height": target["height"],
        "format": "jpeg",
        "size": len(processed),
        "sizeKey": key,
        "ratio": target["ratio"],
    }


def process_keep_ratio(binary: bytes, max_width: int = 1200, max_height: int = 1200) -> Tuple[bytes, Dict]:
    image = _open(binary)
    # thumbnail() never enlarges
    image.thumbnail((max_width, max_height), Image.LANCZOS)
    processed = _encode(image, 95)
    return processed, {
        "width": image.width,
        "height": image.height,
        "format": "jpeg",
        "size": len(processed),
        "aspectRatio": image.width / image.height,
    }


def create_thumbnail(binary: bytes) -> bytes:
    image = _open(binary)
    return _encode(ImageOps.fit(image, THUMBNAIL_SIZE, Image.LANCZOS), 80, progressive=False)


def describe_sizes() -> Dict:
    sizes = [
        {"key": key, **spec, "category": size_category(key),
         "description": SIZE_DESCRIPTIONS.get(key, "Специальный размер")}
        for key, spec in MASONRY_SIZES.items()
    ]
    return {
        "success": True,
        "limits": SIZE_LIMITS,
        "sizes": {cat: [s for s in sizes if s["category"] == cat]
                  for cat in ("square", "portrait", "landscape", "special")},
        "allSizes": sizes,
        "recommendations": {
            "forMasonry": "Для красивой Masonry сетки рекомендуем портретные и квадратные размеры",
            "forProductCatalog": "Для каталога товаров лучше использовать квадратные размеры",
            "forGallery": "Для галереи подойдут все размеры с акцентом на tall_portrait",
        },
    }
