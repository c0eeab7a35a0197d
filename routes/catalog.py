"""Storefront catalog routes: products, search, views and reviews."""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from common.utils.pagination import parse_int
from common.utils.validators import parse_money

from .context import components, payload, require_user


catalog_bp = Blueprint("store_catalog", __name__, url_prefix="/api")


@catalog_bp.get("/products")
def list_products():
    args = request.args
    result = components()["catalog"].list_products(
        search=args.get("search") or None,
        sort=args.get("sort") or None,
        page=parse_int(args.get("page"), 1),
        limit=parse_int(args.get("limit"), 20),
        shuffle=args.get("shuffle") == "true",
        color=args.get("color") or None,
        size=args.get("size") or None,
        min_price=parse_money(args.get("minPrice"), "minPrice", required=False),
        max_price=parse_money(args.get("maxPrice"), "maxPrice", required=False),
    )
    return jsonify(result)


@catalog_bp.get("/search")
def search_products():
    result = components()["catalog"].search(
        request.args.get("q"),
        limit=parse_int(request.args.get("limit"), 10),
    )
    return jsonify(result)


@catalog_bp.get("/products/<slug>")
def get_product(slug: str):
    return jsonify(components()["catalog"].get_product_by_slug(slug))


@catalog_bp.post("/products/<slug>/view")
def register_view(slug: str):
    return jsonify(components()["catalog"].register_view(slug))


@catalog_bp.get("/reviews")
def list_reviews():
    return jsonify(components()["reviews"].list_for_product(request.args.get("productId")))


@catalog_bp.post("/reviews")
def create_review():
    user = require_user()
    body = payload()
    review = components()["reviews"].create(
        user_id=user["id"],
        product_id=body.get("productId"),
        rating=body.get("rating"),
        comment=body.get("comment"),
    )
    return jsonify(review), 201
