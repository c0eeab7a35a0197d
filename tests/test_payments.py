import hashlib
from decimal import Decimal

import pytest

from common.db.session import get_session
from common.models import Order
from services.tbank_client import TBankClient, format_email, format_phone, generate_token


def _create_order(client, headers, catalog):
    body = {
        "items": [{"productId": catalog["hoodie"], "quantity": 1}],
        "address": {"street": "ул. Мира, 7", "city": "Тверь"},
    }
    return client.post("/api/orders", json=body, headers=headers).get_json()


def _signed(payload, password="secret-pass"):
    return {**payload, "Token": generate_token(payload, password)}


def test_token_uses_sorted_root_scalars_and_password():
    params = {"TerminalKey": "T", "Amount": 1000, "OrderId": "o1", "Receipt": {"Items": []}, "DATA": {"a": 1}}
    expected = hashlib.sha256("1000o1pT".encode()).hexdigest()
    assert generate_token(params, "p") == expected


def test_token_renders_booleans_like_json():
    params = {"Success": True, "OrderId": "o1"}
    assert generate_token(params, "p") == hashlib.sha256("o1ptrue".encode()).hexdigest()


def test_receipt_sum_matches_order_amount():
    client = TBankClient("T", "p", production=True)
    receipt = client.build_receipt(
        500000,
        [{"name": "Худи", "price": Decimal("3990"), "quantity": 1}],
        500,
        "a@b.ru",
        "+79001112233",
    )
    lines = receipt["Items"]
    assert [line["Name"] for line in lines] == ["Худи", "Доставка"]
    assert lines[-1]["PaymentObject"] == "service"
    assert sum(line["Amount"] for line in lines) == 500000


def test_receipt_without_items_uses_single_line():
    receipt = TBankClient("T", "p").build_receipt(1990, None, 0, "a@b.ru", "+7")
    assert receipt["Items"][0]["Name"] == "Товар из магазина NAKEN"
    assert receipt["Taxation"] == "usn_income"


def test_receipt_contact_normalization():
    assert format_phone("8 (900) 111-22-33") == "+79001112233"
    assert format_phone(None) == "+79999999999"
    assert format_email("not-an-email") == "no-reply@naken-store.com"


def test_verify_notification_rejects_tampered_payload():
    client = TBankClient("T", "secret-pass")
    payload = _signed({"OrderId": "o1", "Status": "CONFIRMED", "Amount": 100})
    assert client.verify_notification(payload)
    payload["Amount"] = 1
    assert not client.verify_notification(payload)


def test_create_payment_charges_order_total(client, user_headers, catalog, fakes):
    order = _create_order(client, user_headers, catalog)

    resp = client.post("/api/tbank/create-payment", json={"orderId": order["id"], "amount": 1},
                       headers=user_headers)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["paymentUrl"] == "https://pay.test/700001"
    method, params = fakes["tbank"].init_calls[0]
    assert method == "Init"
    assert params["Amount"] == 399000
    assert params["PayType"] == "O"
    assert params["NotificationURL"] == "https://naken.test/api/tbank/notification"
    with get_session() as session:
        stored = session.get(Order, order["id"])
        assert stored.payment_id == "700001"
        assert stored.payment_method == "tbank"


def test_create_payment_with_unparsable_amount_uses_order_total(client, user_headers, catalog, fakes):
    order = _create_order(client, user_headers, catalog)

    resp = client.post("/api/tbank/create-payment", json={"orderId": order["id"], "amount": "abc"},
                       headers=user_headers)

    assert resp.status_code == 200
    assert resp.get_json()["amount"] == 3990.0
    assert fakes["tbank"].init_calls[0][1]["Amount"] == 399000


def test_get_state_request_is_signed(fakes):
    fakes["tbank"].get_state("700001")

    method, params = fakes["tbank"].init_calls[-1]
    assert method == "GetState"
    assert params["TerminalKey"] == "TestTerminal"
    assert params["Token"] == generate_token({"TerminalKey": "TestTerminal", "PaymentId": "700001"}, "secret-pass")


def test_create_payment_for_foreign_order_is_forbidden(client, user_headers, admin_headers, catalog):
    order = _create_order(client, user_headers, catalog)
    resp = client.post("/api/tbank/create-payment", json={"orderId": order["id"]}, headers=admin_headers)
    assert resp.status_code == 403


def test_create_payment_unknown_order(client, user_headers):
    resp = client.post("/api/tbank/create-payment", json={"orderId": "missing"}, headers=user_headers)
    assert resp.status_code == 404


def test_notification_confirms_payment(client, user_headers, catalog, fakes):
    order = _create_order(client, user_headers, catalog)
    payload = _signed({"TerminalKey": "TestTerminal", "OrderId": order["id"], "Success": True,
                       "Status": "CONFIRMED", "PaymentId": 700001, "Amount": 399000})

    resp = client.post("/api/tbank/notification", json=payload)

    assert resp.status_code == 200
    assert resp.get_data(as_text=True) == "OK"
    with get_session() as session:
        stored = session.get(Order, order["id"])
        assert stored.status == "PROCESSING"
        assert stored.payment_status == "PAID"
        assert stored.payment_data["status"] == "CONFIRMED"
        assert "T-Bank: CONFIRMED (700001)" in stored.comment
    assert fakes["mailer"].sent[-1][0] == "confirmation"

    client.post("/api/tbank/notification", json=payload)
    assert [kind for kind, _, _ in fakes["mailer"].sent].count("confirmation") == 1

    repeat = client.post("/api/tbank/create-payment", json={"orderId": order["id"]}, headers=user_headers)
    assert repeat.status_code == 400


@pytest.mark.parametrize("status,expected", [
    ("CANCELED", "CANCELLED"),
    ("REJECTED", "FAILED"),
    ("DEADLINE_EXPIRED", "EXPIRED"),
])
def test_notification_failure_statuses(client, user_headers, catalog, status, expected):
    order = _create_order(client, user_headers, catalog)
    payload = _signed({"OrderId": order["id"], "Status": status, "PaymentId": 1})

    assert client.post("/api/tbank/notification", json=payload).status_code == 200
    with get_session() as session:
        stored = session.get(Order, order["id"])
        assert stored.payment_status == expected
        assert stored.status == "PENDING"


def test_notification_with_unknown_status_changes_nothing(client, user_headers, catalog):
    order = _create_order(client, user_headers, catalog)
    payload = _signed({"OrderId": order["id"], "Status": "NEW", "PaymentId": 1})

    resp = client.post("/api/tbank/notification", json=payload)

    assert resp.get_data(as_text=True) == "OK"
    with get_session() as session:
        assert session.get(Order, order["id"]).payment_status == "PENDING"


def test_notification_rejects_invalid_signature(client, user_headers, catalog):
    order = _create_order(client, user_headers, catalog)
    payload = {"OrderId": order["id"], "Status": "CONFIRMED", "Token": "forged"}

    resp = client.post("/api/tbank/notification", json=payload)

    assert resp.status_code == 400
    assert resp.get_data(as_text=True) == "ERROR"


def test_notification_for_unknown_order(client):
    resp = client.post("/api/tbank/notification", json=_signed({"OrderId": "nope", "Status": "CONFIRMED"}))
    assert resp.status_code == 404
