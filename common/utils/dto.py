from typing import Any, Dict, Optional


def _iso(value) -> Optional[str]:
    return value.isoformat() + "Z" if value is not None else None


def _money(value) -> Optional[float]:
    return float(value) if value is not None else None


def to_color_dto(row: Any) -> Optional[Dict]:
    if row is None:
        return None
    return {
        "id": row.id,
        "name": row.name,
        "hexCode": row.hex_code,
    }


def to_size_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "name": row.name,
        "russianSize": getattr(row, "russian_size", None),
        "sortOrder": getattr(row, "sort_order", 0) or 0,
    }


def to_product_dto(row: Any) -> Dict:
    sizes = []
    for ps in getattr(row, "sizes", None) or []:
        size = to_size_dto(ps.size) if ps.size is not None else {"id": ps.size_id}
        size["stock"] = ps.stock
        sizes.append(size)
    return {
        "id": getattr(row, "id", None),
        "sku": getattr(row, "sku", None),
        "slug": getattr(row, "slug", None),
        "name": getattr(row, "name", None),
        "description": getattr(row, "description", None),
        "price": float(getattr(row, "price", 0) or 0),
        "salePrice": _money(getattr(row, "sale_price", None)),
        "images": getattr(row, "images", None) or [],
        "stock": getattr(row, "stock", 0) or 0,
        "published": bool(getattr(row, "published", True)),
        "viewCount": getattr(row, "view_count", 0) or 0,
        "colorId": getattr(row, "color_id", None),
        "color": to_color_dto(getattr(row, "color", None)),
        "sizes": sizes,
        "deletedAt": _iso(getattr(row, "deleted_at", None)),
        "createdAt": _iso(getattr(row, "created_at", None)),
        "updatedAt": _iso(getattr(row, "updated_at", None)),
    }


def to_user_dto(row: Any) -> Optional[Dict]:
    if row is None:
        return None
    return {
        "id": row.id,
        "name": row.name,
        "email": row.email,
        "phone": row.phone,
        "role": row.role,
        "image": row.image,
        "hasPassword": bool(row.password),
        "createdAt": _iso(row.created_at),
    }


def to_address_dto(row: Any) -> Optional[Dict]:
    if row is None:
        return None
    return {
        "id": row.id,
        "name": row.name,
        "street": row.street,
        "city": row.city,
        "postalCode": row.postal_code,
        "country": row.country,
        "phone": row.phone,
        "isDefault": bool(row.is_default),
        "createdAt": _iso(row.created_at),
    }


def to_order_item_dto(row: Any) -> Dict:
    product = getattr(row, "product", None)
    size = getattr(row, "size", None)
    return {
        "id": row.id,
        "productId": row.product_id,
        "productName": product.name if product is not None else None,
        "productSlug": product.slug if product is not None else None,
        "image": (product.images or [None])[0] if product is not None and product.images else None,
        "sizeId": row.size_id,
        "sizeName": size.name if size is not None else None,
        "colorId": row.color_id,
        "quantity": row.quantity,
        "price": float(row.price),
    }


def to_order_dto(row: Any, *, user: Any = None) -> Dict:
    data = {
        "id": row.id,
        "orderNumber": row.order_number,
        "userId": row.user_id,
        "status": row.status,
        "total": float(row.total or 0),
        "shippingCost": float(row.shipping_cost or 0),
        "shippingMethod": row.shipping_method,
        "paymentMethod": row.payment_method,
        "paymentStatus": row.payment_status,
        "paymentId": row.payment_id,
        "customerName": row.customer_name,
        "customerEmail": row.customer_email,
        "customerPhone": row.customer_phone,
        "comment": row.comment,
        "address": to_address_dto(getattr(row, "address", None)),
        "items": [to_order_item_dto(it) for it in getattr(row, "items", None) or []],
        "createdAt": _iso(row.created_at),
        "updatedAt": _iso(row.updated_at),
    }
    if user is not None:
        data["user"] = {"id": user.id, "name": user.name, "email": user.email, "phone": user.phone}
    return data


def to_review_dto(row: Any, *, user_name: Optional[str] = None) -> Dict:
    return {
        "id": row.id,
        "productId": row.product_id,
        "userId": row.user_id,
        "rating": row.rating,
        "comment": row.comment,
        "user": {"name": user_name},
        "createdAt": _iso(row.created_at),
    }


def to_chat_message_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "senderType": row.sender_type,
        "senderId": row.sender_id,
        "senderName": row.sender_name,
        "content": row.content,
        "messageType": row.message_type,
        "isRead": bool(row.is_read),
        "createdAt": _iso(row.created_at),
    }


def to_chat_session_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "sessionId": row.session_id,
        "userId": row.user_id,
        "userName": row.user_name,
        "userEmail": row.user_email,
        "userPhone": row.user_phone,
        "subject": row.subject,
        "status": row.status,
        "priority": row.priority,
        "assignedTo": row.assigned_to,
        "lastActivity": _iso(row.last_activity),
        "closedAt": _iso(row.closed_at),
        "createdAt": _iso(row.created_at),
    }


def to_pixel_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "name": row.name,
        "type": row.type,
        "pixelId": row.pixel_id,
        "code": row.code,
        "placement": row.placement,
        "isActive": bool(row.is_active),
        "description": row.description,
        "createdAt": _iso(row.created_at),
        "updatedAt": _iso(row.updated_at),
    }
