from io import BytesIO

from PIL import Image

from common.db.session import get_session
from common.models import Product
from services.image_processing import MASONRY_SIZES


def _product_body(catalog, **extra):
    body = {
        "name": "Худи оверсайз",
        "sku": "NK-HOODIE-777",
        "price": 5490,
        "stock": 4,
        "sizeIds": [catalog["size_m"]],
        "colorId": catalog["color_id"],
        "published": True,
    }
    body.update(extra)
    return body


def _png(width, height, color=(200, 30, 30)):
    buf = BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    buf.seek(0)
    return buf


def test_create_product_builds_slug(client, admin_headers, catalog):
    resp = client.post("/api/admin/products", json=_product_body(catalog), headers=admin_headers)

    assert resp.status_code == 201
    product = resp.get_json()
    assert product["slug"] == "odezhda-hudi-oversajz-m-chernyj-e777"
    assert product["sizes"][0]["stock"] == 4
    assert product["color"]["name"] == "Черный"


def test_product_slug_collision_gets_suffix(client, admin_headers, catalog):
    client.post("/api/admin/products", json=_product_body(catalog), headers=admin_headers)
    second = client.post("/api/admin/products", json=_product_body(catalog, sku="XX-E777"), headers=admin_headers)
    assert second.get_json()["slug"] == "odezhda-hudi-oversajz-m-chernyj-e777-1"


def test_create_product_validation(client, admin_headers, catalog):
    missing = client.post("/api/admin/products", json=_product_body(catalog, sizeIds=[]), headers=admin_headers)
    injected = client.post("/api/admin/products", json=_product_body(catalog, name="x'; DROP TABLE product"),
                           headers=admin_headers)
    dup_sku = client.post("/api/admin/products", json=_product_body(catalog, sku="NK-TEE-002"),
                          headers=admin_headers)

    assert missing.status_code == 400
    assert injected.status_code == 400
    assert injected.get_json()["error"] == "Обнаружены недопустимые символы в данных"
    assert dup_sku.status_code == 400


def test_product_change_is_visible_in_catalog(client, admin_headers, catalog):
    client.get("/api/products")
    client.put(f"/api/admin/products/{catalog['tee']}", json={"published": False}, headers=admin_headers)

    slugs = [p["slug"] for p in client.get("/api/products").get_json()["products"]]
    assert "futbolka-basic" not in slugs


def test_delete_unordered_product_is_hard(client, admin_headers, catalog):
    resp = client.delete(f"/api/admin/products/{catalog['tee']}", headers=admin_headers)
    assert resp.status_code == 204
    assert client.get(f"/api/admin/products/{catalog['tee']}", headers=admin_headers).status_code == 404


def test_delete_ordered_product_is_soft(client, admin_headers, user_headers, catalog):
    client.post("/api/orders", headers=user_headers, json={
        "items": [{"productId": catalog["tee"], "quantity": 1, "sizeId": catalog["size_l"]}],
        "address": {"street": "ул. Мира 1", "city": "Пермь"},
    })

    resp = client.delete(f"/api/admin/products/{catalog['tee']}", headers=admin_headers)

    assert resp.status_code == 200
    assert resp.get_json()["soft_deleted"] is True
    with get_session() as session:
        product = session.get(Product, catalog["tee"])
        assert product.published is False
        assert product.deleted_at is not None


def test_colors_and_sizes(client, admin_headers, catalog):
    bad_hex = client.post("/api/admin/colors", json={"name": "Белый", "hexCode": "fff"}, headers=admin_headers)
    created = client.post("/api/admin/colors", json={"name": "Белый", "hexCode": "#fff"}, headers=admin_headers)
    duplicate = client.post("/api/admin/colors", json={"name": "Белый", "hexCode": "#ffffff"},
                            headers=admin_headers)

    assert bad_hex.status_code == 400
    assert created.status_code == 201
    assert duplicate.status_code == 409
    assert client.delete(f"/api/admin/colors/{catalog['color_id']}", headers=admin_headers).status_code == 409
    assert client.delete(f"/api/admin/colors/{created.get_json()['id']}", headers=admin_headers).status_code == 200

    size = client.post("/api/admin/sizes", json={"name": "XS", "russianSize": "42", "sortOrder": 0},
                       headers=admin_headers).get_json()
    names = [s["name"] for s in client.get("/api/admin/sizes", headers=admin_headers).get_json()]
    assert names == ["XS", "M", "L"]
    assert client.delete(f"/api/admin/sizes/{catalog['size_m']}", headers=admin_headers).status_code == 409
    assert client.delete(f"/api/admin/sizes/{size['id']}", headers=admin_headers).status_code == 200


def test_role_changes(client, admin, admin_headers, user):
    own = client.patch(f"/api/admin/users/{admin['id']}", json={"role": "USER"}, headers=admin_headers)
    bad = client.patch(f"/api/admin/users/{user['id']}", json={"role": "ROOT"}, headers=admin_headers)
    ok = client.patch(f"/api/admin/users/{user['id']}", json={"role": "ADMIN"}, headers=admin_headers)

    assert own.status_code == 400
    assert own.get_json()["error"] == "Нельзя изменить свою роль"
    assert bad.status_code == 400
    assert ok.get_json()["role"] == "ADMIN"


def test_pixels_crud_and_public_feed(client, admin_headers):
    missing_id = client.post("/api/admin/pixels", json={"name": "FB", "type": "FACEBOOK_PIXEL"},
                             headers=admin_headers)
    assert missing_id.status_code == 400

    custom = client.post("/api/admin/pixels", json={"name": "Свой код", "type": "CUSTOM_HTML",
                                                    "code": "<script></script>", "placement": "BODY_END"},
                         headers=admin_headers).get_json()
    metrika = client.post("/api/admin/pixels", json={"name": "Метрика", "type": "YANDEX_METRIKA",
                                                     "pixelId": "12345"},
                          headers=admin_headers).get_json()
    assert metrika["placement"] == "HEAD"
    client.put(f"/api/admin/pixels/{custom['id']}", json={"isActive": False}, headers=admin_headers)

    active = client.get("/api/pixels/active")
    assert active.headers["Cache-Control"] == "public, s-maxage=300, stale-while-revalidate=600"
    pixels = active.get_json()["pixels"]
    assert [p["id"] for p in pixels] == [metrika["id"]]
    assert "description" not in pixels[0]

    assert client.delete(f"/api/admin/pixels/{metrika['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/admin/pixels/{metrika['id']}", headers=admin_headers).status_code == 404


def test_site_settings(client, admin_headers):
    detailed = client.get("/api/admin/settings", headers=admin_headers).get_json()["settings"]
    assert {s["key"] for s in detailed} >= {"site_title", "site_description", "site_logo"}

    resp = client.post("/api/admin/settings", json={"settings": {"site_title": "NAKEN", "promo": "-10%"}},
                       headers=admin_headers)
    assert resp.get_json()["settings"]["site_title"] == "NAKEN"

    public = client.get("/api/settings").get_json()
    assert public["site_title"] == "NAKEN"
    assert public["promo"] == "-10%"
    assert client.post("/api/admin/settings", json={}, headers=admin_headers).status_code == 400


def test_telegram_endpoints(client, admin_headers, fakes):
    assert client.get("/api/admin/telegram/status", headers=admin_headers).get_json()["configured"] is True

    order = client.post("/api/admin/telegram/test-order", headers=admin_headers).get_json()
    chat = client.post("/api/admin/telegram/test-chat", json={"message": "проверка"}, headers=admin_headers)

    assert order["testData"]["orderNumber"].startswith("TEST-")
    assert fakes["notifier"].orders[-1]["total"] == 4500
    assert chat.status_code == 200
    assert fakes["notifier"].chat_messages[-1]["message"] == "проверка"


def test_telegram_failure_is_500(client, admin_headers, fakes, monkeypatch):
    monkeypatch.setattr(fakes["notifier"], "notify_new_order", lambda order: False)
    resp = client.post("/api/admin/telegram/test-order", headers=admin_headers)
    assert resp.status_code == 500


def test_dashboard_figures(client, admin_headers, user_headers, catalog):
    client.post("/api/orders", headers=user_headers, json={
        "items": [{"productId": catalog["hoodie"], "quantity": 2, "sizeId": catalog["size_m"]}],
        "address": {"street": "ул. Мира 1", "city": "Пермь"},
    })

    stats = client.get("/api/admin/stats", headers=admin_headers).get_json()
    assert stats["totalOrders"] == 1
    assert stats["totalProducts"] == 2
    assert stats["totalRevenue"] == 7980.0
    assert stats["topProducts"][0]["quantity"] == 2

    analytics = client.get("/api/admin/analytics?range=3", headers=admin_headers).get_json()
    assert analytics["period"]["days"] == 3
    assert len(analytics["registrations"]) == 4

    popularity = client.get("/api/admin/analytics/sizes-colors", headers=admin_headers).get_json()
    by_size = {s["sizeName"]: s for s in popularity["sizePopularity"]}
    assert (by_size["M"]["orders"], by_size["M"]["quantity"]) == (1, 2)
    assert by_size["L"]["quantity"] == 0
    assert popularity["colorPopularity"][0]["quantity"] == 2
    assert popularity["summary"]["activeColors"] == 1


def test_admin_orders_listing(client, admin_headers, user_headers, catalog):
    client.post("/api/orders", headers=user_headers, json={
        "items": [{"productId": catalog["tee"], "quantity": 1, "sizeId": catalog["size_l"]}],
        "address": {"street": "ул. Мира 1", "city": "Пермь"},
    })
    listing = client.get("/api/admin/orders?status=PENDING", headers=admin_headers).get_json()
    assert listing["pagination"]["total"] == 1
    assert client.get("/api/admin/orders?status=SHIPPED", headers=admin_headers).get_json()["orders"] == []


def test_upload_masonry_image(client, admin_headers, store_config):
    resp = client.post(
        "/api/admin/upload",
        data={"file": (_png(800, 1200), "photo.png", "image/png")},
        headers=admin_headers,
        content_type="multipart/form-data",
    )

    assert resp.status_code == 200
    result = resp.get_json()
    assert result["metadata"]["sizeKey"] == "portrait_large"
    assert (result["metadata"]["width"], result["metadata"]["height"]) == (400, 600)
    saved = store_config.uploads_dir / result["fileName"]
    with Image.open(saved) as img:
        assert img.size == (400, 600)
    with Image.open(store_config.uploads_dir / "thumbnails" / result["fileName"]) as thumb:
        assert thumb.size == (150, 150)
    assert client.get(result["url"]).status_code == 200


def test_upload_keep_ratio(client, admin_headers):
    resp = client.post(
        "/api/admin/upload",
        data={"file": (_png(2400, 1200), "wide.png", "image/png"), "keepRatio": "true"},
        headers=admin_headers,
        content_type="multipart/form-data",
    )
    meta = resp.get_json()["metadata"]
    assert (meta["width"], meta["height"]) == (1200, 600)


def test_upload_random_masonry_size(client, admin_headers):
    resp = client.post(
        "/api/admin/upload",
        data={"file": (_png(640, 640), "square.png", "image/png"), "sizePreference": "random"},
        headers=admin_headers,
        content_type="multipart/form-data",
    )

    assert resp.status_code == 200
    meta = resp.get_json()["metadata"]
    target = MASONRY_SIZES[meta["sizeKey"]]
    assert (meta["width"], meta["height"]) == (target["width"], target["height"])


def test_upload_rejects_bad_files(client, admin_headers):
    wrong_type = client.post(
        "/api/admin/upload",
        data={"file": (BytesIO(b"GIF89a"), "anim.gif", "image/gif")},
        headers=admin_headers,
        content_type="multipart/form-data",
    )
    not_image = client.post(
        "/api/admin/upload",
        data={"file": (BytesIO(b"not really a png"), "fake.png", "image/png")},
        headers=admin_headers,
        content_type="multipart/form-data",
    )
    assert wrong_type.status_code == 400
    assert wrong_type.get_json()["details"] == ["Неподдерживаемый тип файла"]
    assert not_image.status_code == 400


def test_admin_routes_are_rate_limited(client, admin_headers):
    statuses = [client.get("/api/admin/users", headers=admin_headers).status_code for _ in range(31)]
    assert statuses[:30] == [200] * 30
    assert statuses[30] == 429
