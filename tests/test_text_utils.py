from decimal import Decimal

import pytest

from common.utils.security import RateLimiter, detect_sql_injection, get_client_ip, sanitize_input, validate_file
from common.utils.seo import (
    discount_percent,
    format_price,
    generate_seo_description,
    truncate_to_seo_length,
    validate_seo_description,
)
from common.utils.slug import create_product_slug, create_slug, make_unique_slug, transliterate
from common.utils.validators import amount_differs, ensure_positive_int, normalize_phone, parse_money


def test_transliterate_cyrillic():
    assert transliterate("Щука") == "schuka"
    assert transliterate("Ёжик") == "ezhik"


def test_create_slug_is_ascii():
    slug = create_slug("Платье  вечернее, красное!")
    assert slug == "plate-vechernee-krasnoe"
    assert slug.isascii()


def test_product_slug_combines_category_size_color_and_sku():
    slug = create_product_slug(
        "Футболка оверсайз",
        sizes=["L", "M"],
        colors=["Черный"],
        category="одежда",
        sku="NK-0042",
    )
    assert slug == "odezhda-futbolka-oversajz-m-chernyj-0042"


def test_product_slug_falls_back_for_short_names():
    assert create_product_slug("!!") == "product"


def test_make_unique_slug_appends_counter():
    taken = {"hudi", "hudi-1"}
    assert make_unique_slug("hudi", taken.__contains__) == "hudi-2"
    assert make_unique_slug("kurtka", taken.__contains__) == "kurtka"


def test_format_price_groups_thousands():
    assert format_price(12990) == "12 990 ₽"
    assert format_price(Decimal("500.00")) == "500 ₽"


def test_discount_percent():
    assert discount_percent(4990, 3990) == 20


def test_seo_description_fits_meta_length():
    text = generate_seo_description(
        "Худи оверсайз", 4990, sale_price=3990, sizes=["S", "M", "L", "XL"], colors=["Черный"], year=2026
    )
    assert len(text) <= 160
    assert "NAKEN Store" in text


def test_long_description_is_truncated_on_a_boundary():
    text = "Очень теплое худи. " * 20
    result = truncate_to_seo_length(text)
    assert len(result) <= 160
    assert result == result.rstrip()
    assert not result.endswith("...")


def test_validate_seo_description_flags_short_text():
    report = validate_seo_description("Худи")
    assert report["isValid"] is False
    assert report["warnings"]


def test_normalize_phone():
    assert normalize_phone("8 (900) 123-45-67") == "79001234567"
    assert normalize_phone("9001234567") == "79001234567"


def test_ensure_positive_int():
    assert ensure_positive_int("3", "quantity") == 3
    for bad in (0, -1, "x", None, float("inf")):
        with pytest.raises(ValueError):
            ensure_positive_int(bad, "quantity")


def test_amount_differs():
    assert not amount_differs("3990.00", 3990)
    assert amount_differs(1, 3990)
    assert amount_differs("abc", 3990)
    assert amount_differs({"value": 1}, 3990)


def test_parse_money():
    assert parse_money("12.5") == Decimal("12.50")
    assert parse_money("", required=False) is None
    with pytest.raises(ValueError):
        parse_money("-1")
    for bad in ("NaN", "Infinity", "abc"):
        with pytest.raises(ValueError):
            parse_money(bad)


def test_sql_injection_detection():
    assert detect_sql_injection("1; DROP TABLE product")
    assert detect_sql_injection("exec xp_cmdshell")
    assert not detect_sql_injection("Худи оверсайз")


def test_sanitize_input_strips_markup_and_limits_length():
    assert sanitize_input("  <b>Худи</b> ") == "bХуди/b"
    assert len(sanitize_input("x" * 5000)) == 1000
    assert sanitize_input(None) == ""


def test_client_ip_prefers_forwarded_header():
    assert get_client_ip({"X-Forwarded-For": "10.0.0.1, 10.0.0.2"}) == "10.0.0.1"
    assert get_client_ip({"X-Real-IP": "10.0.0.9"}) == "10.0.0.9"


def test_validate_file_reports_type_and_size():
    errors = validate_file("doc.pdf", "application/pdf", 20 * 1024 * 1024, max_size=15 * 1024 * 1024)
    assert len(errors) == 2


def test_rate_limiter_blocks_after_limit_and_resets_after_window():
    now = [0.0]
    limiter = RateLimiter(2, 60, clock=lambda: now[0])
    assert limiter.hit("ip").success
    assert limiter.hit("ip").success
    assert not limiter.hit("ip").success
    assert limiter.hit("other").success
    now[0] = 61.0
    assert limiter.hit("ip").success
