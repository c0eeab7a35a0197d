from decimal import Decimal
from uuid import uuid4

import pytest

from app import create_app
from common.config import AppConfig
from common.db.session import get_session
from common.models import Color, Product, ProductSize, Size, User
from common.services.auth_service import hash_password
from common.utils.dto import to_user_dto
from config import StoreConfig
from services.tbank_client import TBankClient


class FakeNotifier:
    def __init__(self):
        self.orders = []
        self.status_changes = []
        self.chat_messages = []

    def status(self):
        return {"configured": True, "hasToken": True, "hasChatId": True}

    def notify_new_order(self, order):
        self.orders.append(order)
        return True

    def notify_order_status(self, order, old_status, new_status):
        self.status_changes.append((order["orderNumber"], old_status, new_status))
        return True

    def notify_chat_message(self, *, session_id, sender_name, message, is_from_user, timestamp=None):
        self.chat_messages.append({"sessionId": session_id, "sender": sender_name,
                                   "message": message, "fromUser": is_from_user})
        return True


class FakeMailer:
    def __init__(self):
        self.sent = []

    def send_login_code(self, email, code):
        self.sent.append(("code", email, code))
        return True

    def send_order_confirmation(self, email, order):
        self.sent.append(("confirmation", email, order["orderNumber"]))
        return True

    def send_status_update(self, email, order, status, message=None):
        self.sent.append(("status", email, status))
        return True


class FakeSms:
    def __init__(self):
        self.codes = {}

    def send_code(self, phone, code):
        self.codes[phone] = code
        return True


class FakeTBank(TBankClient):
    """Real signing, canned gateway responses."""

    def __init__(self):
        super().__init__("TestTerminal", "secret-pass", base_url="https://naken.test")
        self.init_calls = []

    def _post(self, method, params):
        self.init_calls.append((method, params))
        return {"Success": True, "Status": "NEW", "PaymentId": "700001",
                "PaymentURL": "https://pay.test/700001"}


@pytest.fixture
def fakes():
    return {
        "notifier": FakeNotifier(),
        "mailer": FakeMailer(),
        "sms": FakeSms(),
        "tbank": FakeTBank(),
    }


@pytest.fixture
def store_config(tmp_path):
    return StoreConfig(
        project_root=tmp_path,
        data_dir=tmp_path,
        uploads_dir=tmp_path / "uploads",
        app=AppConfig(
            database_url=f"sqlite:///{tmp_path / 'store.db'}",
            secret_key="test-secret",
            log_level="WARNING",
            store_base_url="https://naken.test",
            currency="RUB",
        ),
        testing=True,
    )


@pytest.fixture
def app(store_config, fakes):
    return create_app(store_config, overrides=fakes)


@pytest.fixture
def client(app):
    return app.test_client()


def _make_user(role="USER", **fields):
    with get_session() as session:
        user = User(id=str(uuid4()), role=role, **fields)
        session.add(user)
        session.flush()
        return to_user_dto(user)


@pytest.fixture
def user(app):
    return _make_user(name="Анна", email="anna@example.com", phone="+79001112233",
                      password=hash_password("secret123"))


@pytest.fixture
def admin(app):
    return _make_user(role="ADMIN", name="Админ", email="admin@example.com", phone="+79990000000",
                      password=hash_password("admin-pass"))


def bearer(app, user_dto):
    token = app.extensions["store_components"]["auth"].issue_token(user_dto)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(app, user):
    return bearer(app, user)


@pytest.fixture
def admin_headers(app, admin):
    return bearer(app, admin)


@pytest.fixture
def catalog(app):
    """One color, two sizes and two published products."""
    with get_session() as session:
        color = Color(id=str(uuid4()), name="Черный", hex_code="#000000")
        size_m = Size(id=str(uuid4()), name="M", russian_size="46-48", sort_order=2)
        size_l = Size(id=str(uuid4()), name="L", russian_size="50-52", sort_order=3)
        session.add_all([color, size_m, size_l])
        session.flush()
        hoodie = Product(
            id=str(uuid4()), sku="NK-HOODIE-001", slug="hudi-oversize", name="Худи оверсайз",
            description="Теплое худи из хлопка", price=Decimal("4990"), sale_price=Decimal("3990"),
            images=["/uploads/hoodie.jpg"], color_id=color.id, stock=5, published=True,
        )
        tee = Product(
            id=str(uuid4()), sku="NK-TEE-002", slug="futbolka-basic", name="Футболка базовая",
            description="Базовая футболка", price=Decimal("1990"), images=[], color_id=color.id,
            stock=10, published=True,
        )
        hoodie.sizes = [ProductSize(id=str(uuid4()), size_id=size_m.id, stock=5)]
        tee.sizes = [ProductSize(id=str(uuid4()), size_id=size_l.id, stock=10)]
        session.add_all([hoodie, tee])
        return {
            "color_id": color.id,
            "size_m": size_m.id,
            "size_l": size_l.id,
            "hoodie": hoodie.id,
            "tee": tee.id,
        }
