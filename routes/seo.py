"""Public site surface: sitemap, robots, feeds, settings, pixels and uploaded files."""

from __future__ import annotations

from flask import Blueprint, Response, abort, jsonify, send_file

from services.image_processing import describe_sizes

from .context import components


seo_bp = Blueprint("store_seo", __name__)


@seo_bp.get("/sitemap.xml")
def sitemap():
    return Response(
        components()["seo"].sitemap_xml(),
        headers={
            "Content-Type": "application/xml; charset=utf-8",
            "Cache-Control": "public, max-age=3600, s-maxage=3600",
        },
    )


@seo_bp.get("/robots.txt")
def robots():
    return Response(components()["seo"].robots_txt(), mimetype="text/plain")


@seo_bp.get("/api/feeds/yandex")
def yandex_feed():
    return Response(
        components()["seo"].yandex_feed(),
        headers={
            "Content-Type": "application/xml; charset=utf-8",
            "Cache-Control": "public, s-maxage=3600, stale-while-revalidate=7200",
        },
    )


@seo_bp.get("/api/seo/products/<slug>")
def product_metadata(slug: str):
    return jsonify(components()["seo"].product_metadata(slug))


@seo_bp.get("/api/settings")
def public_settings():
    return jsonify(components()["site_settings"].get_settings())


@seo_bp.get("/api/pixels/active")
def active_pixels():
    response = jsonify({"pixels": components()["pixels"].list_active()})
    response.headers["Cache-Control"] = "public, s-maxage=300, stale-while-revalidate=600"
    return response


@seo_bp.get("/api/upload/sizes")
def upload_sizes():
    return jsonify(describe_sizes())


@seo_bp.get("/uploads/<path:name>")
def uploaded_file(name: str):
    path = components()["images"].resolve(name)
    if path is None:
        abort(404)
    response = send_file(path)
    response.headers["Cache-Control"] = "public, max-age=31536000, immutable"
    return response
