from common.db.session import get_session
from common.models import AuthLog, Order, User, UserActivity


def test_sms_code_sign_in_creates_user(client, fakes):
    assert client.post("/api/auth/send-sms", json={"phone": "8 (912) 345-67-89"}).status_code == 200
    code = fakes["sms"].codes["79123456789"]
    assert len(code) == 4

    resp = client.post("/api/auth/signin", json={"provider": "phone", "phone": "+7 912 345 67 89", "code": code})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["user"]["phone"] == "+79123456789"
    assert body["token"]
    me = client.get("/api/auth/session").get_json()["user"]
    assert me["id"] == body["user"]["id"]


def test_sms_code_is_single_use(client, fakes):
    client.post("/api/auth/send-sms", json={"phone": "79123456789"})
    code = fakes["sms"].codes["79123456789"]
    creds = {"provider": "phone", "phone": "79123456789", "code": code}

    assert client.post("/api/auth/signin", json=creds).status_code == 200
    assert client.post("/api/auth/signin", json=creds).status_code == 401


def test_send_sms_rejects_bad_number(client):
    assert client.post("/api/auth/send-sms", json={"phone": "12345"}).status_code == 400
    assert client.post("/api/auth/send-sms", json={}).status_code == 400


def test_otp_sending_is_rate_limited(client):
    statuses = [
        client.post("/api/auth/send-sms", json={"phone": "79123456789"}).status_code
        for _ in range(6)
    ]
    assert statuses[:5] == [200] * 5
    assert statuses[5] == 429


def test_email_code_sign_in(client, fakes):
    assert client.post("/api/auth/send-email", json={"email": "Olga@Example.com"}).status_code == 200
    _, email, code = fakes["mailer"].sent[-1]
    assert email == "olga@example.com"
    assert len(code) == 6

    resp = client.post("/api/auth/signin", json={"provider": "email", "email": "olga@example.com", "code": code})
    assert resp.status_code == 200


def test_password_sign_in_logs_attempts(client, user):
    bad = client.post("/api/auth/signin", json={"provider": "password", "email": user["email"], "password": "nope"})
    good = client.post("/api/auth/signin",
                       json={"provider": "password", "email": user["email"], "password": "secret123"})

    assert bad.status_code == 401
    assert good.status_code == 200
    with get_session() as session:
        outcomes = sorted(log.success for log in session.query(AuthLog).all())
        assert outcomes == [False, True]
        assert session.query(UserActivity).filter(UserActivity.user_id == user["id"]).count() == 1


def test_admin_sign_in_requires_admin_role(client, user, admin):
    denied = client.post("/api/auth/signin",
                         json={"provider": "admin", "phone": user["phone"], "password": "secret123"})
    allowed = client.post("/api/auth/signin",
                          json={"provider": "admin", "phone": "89990000000", "password": "admin-pass"})

    assert denied.status_code == 403
    assert allowed.status_code == 200
    assert allowed.get_json()["user"]["role"] == "ADMIN"


def test_admin_legacy_plaintext_password(client, app):
    with get_session() as session:
        session.add(User(id="legacy-admin", role="ADMIN", phone="+79995554433", password="plain-old"))
    resp = client.post("/api/auth/signin",
                       json={"provider": "admin", "phone": "+79995554433", "password": "plain-old"})
    assert resp.status_code == 200


def test_sign_out_clears_session(client, user):
    client.post("/api/auth/signin", json={"provider": "password", "email": user["email"], "password": "secret123"})
    client.post("/api/auth/signout")
    assert client.get("/api/auth/session").get_json()["user"] is None


def test_set_password(client, user_headers, user):
    assert client.post("/api/auth/set-password", json={"password": "123"}, headers=user_headers).status_code == 400
    assert client.post("/api/auth/set-password", json={"password": "new-secret"},
                       headers=user_headers).status_code == 200
    resp = client.post("/api/auth/signin",
                       json={"provider": "password", "email": user["email"], "password": "new-secret"})
    assert resp.status_code == 200


def test_profile_update_validates_phone(client, user_headers, admin):
    ok = client.put("/api/profile", json={"name": "Анна К.", "phone": "+79005556677"}, headers=user_headers)
    assert ok.status_code == 200
    assert client.get("/api/profile", headers=user_headers).get_json()["name"] == "Анна К."

    assert client.put("/api/profile", json={"name": "А", "phone": "+79005556677"},
                      headers=user_headers).status_code == 400
    assert client.put("/api/profile", json={"name": "Анна", "phone": "abc"}, headers=user_headers).status_code == 400
    taken = client.put("/api/profile", json={"name": "Анна", "phone": admin["phone"]}, headers=user_headers)
    assert taken.status_code == 409


def test_addresses_default_handling(client, user_headers):
    first = client.post("/api/user/addresses", json={"street": "ул. Мира 1", "city": "Пермь", "isDefault": True},
                        headers=user_headers).get_json()
    second = client.post("/api/user/addresses", json={"street": "ул. Ленина 2", "city": "Пермь", "isDefault": True},
                         headers=user_headers).get_json()

    addresses = client.get("/api/user/addresses", headers=user_headers).get_json()["addresses"]
    assert [a["id"] for a in addresses] == [second["id"], first["id"]]
    assert [a["isDefault"] for a in addresses] == [True, False]

    client.delete(f"/api/user/addresses/{second['id']}", headers=user_headers)
    remaining = client.get("/api/user/addresses", headers=user_headers).get_json()["addresses"]
    assert [(a["id"], a["isDefault"]) for a in remaining] == [(first["id"], True)]


def test_address_used_by_order_is_detached(client, user_headers, catalog):
    order = client.post("/api/orders", headers=user_headers, json={
        "items": [{"productId": catalog["tee"], "quantity": 1, "sizeId": catalog["size_l"]}],
        "address": {"street": "ул. Мира 1", "city": "Пермь"},
        "shippingMethod": "standard",
    }).get_json()
    address_id = client.get("/api/user/addresses", headers=user_headers).get_json()["addresses"][0]["id"]

    assert client.delete(f"/api/user/addresses/{address_id}", headers=user_headers).status_code == 200
    assert client.get("/api/user/addresses", headers=user_headers).get_json()["addresses"] == []
    with get_session() as session:
        assert session.get(Order, order["id"]).address_id == address_id


def test_foreign_address_is_not_found(client, user_headers, admin_headers):
    address = client.post("/api/user/addresses", json={"street": "ул. Мира 1", "city": "Пермь"},
                          headers=user_headers).get_json()
    resp = client.put(f"/api/user/addresses/{address['id']}", json={"city": "Омск"}, headers=admin_headers)
    assert resp.status_code == 404
