"""Sign-in providers, one-time codes and access tokens."""

from datetime import datetime, timedelta
from typing import Dict, Optional
from uuid import uuid4
import hmac
import logging
import secrets

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from ..db.session import get_session
from ..models.activity import AuthLog, UserActivity
from ..models.auth_code import AuthCode
from ..models.enums import AuthCodeType, Role
from ..models.user import Account, User
from ..utils.dto import to_user_dto
from ..utils.validators import is_valid_email, normalize_phone
from .errors import AccessDenied, AuthRequired, StoreError
from .logging import log_event


logger = logging.getLogger(__name__)

SMS_CODE_TTL = timedelta(minutes=10)
EMAIL_CODE_TTL = timedelta(minutes=15)
TOKEN_TTL = timedelta(days=30)
HASH_PREFIXES = ("pbkdf2:", "scrypt:")
PROVIDERS = ("password", "phone", "email", "admin", "google")


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def check_password(stored: Optional[str], candidate: str, *, allow_plaintext: bool = False) -> bool:
    if not stored or not candidate:
        return False
    if stored.startswith(HASH_PREFIXES):
        return check_password_hash(stored, candidate)
    # accounts seeded before hashing was introduced
    return allow_plaintext and hmac.compare_digest(stored, candidate)


class AuthService:
    """Authenticate users through the supported providers.

    Every attempt is written to ``AuthLog``; successful sign-ins also add a
    ``UserActivity`` row. Phone and email sign-ins create the account on
    first use.
    """

    def __init__(self, session_factory=get_session, *, secret_key: str, sms_sender=None, mailer=None,
                 google_client=None, token_ttl: timedelta = TOKEN_TTL):
        self._session_factory = session_factory
        self._secret_key = secret_key
        self._sms = sms_sender
        self._mailer = mailer
        self._google = google_client
        self._token_ttl = token_ttl

    # -- one-time codes --------------------------------------------------

    def _issue_code(self, contact: str, kind: AuthCodeType) -> str:
        if kind == AuthCodeType.SMS:
            code, ttl = f"{secrets.randbelow(9000) + 1000}", SMS_CODE_TTL
        else:
            code, ttl = f"{secrets.randbelow(900000) + 100000}", EMAIL_CODE_TTL
        with self._session_factory() as session:
            session.query(AuthCode).filter(AuthCode.contact == contact, AuthCode.type == kind.value).delete(
                synchronize_session=False
            )
            session.add(
                AuthCode(
                    id=str(uuid4()),
                    type=kind.value,
                    contact=contact,
                    code=code,
                    expires_at=datetime.utcnow() + ttl,
                )
            )
        return code

    def verify_code(self, contact: str, code: Optional[str], kind: AuthCodeType) -> bool:
        clean = (code or "").strip()
        with self._session_factory() as session:
            latest = (
                session.query(AuthCode)
                .filter(AuthCode.contact == contact, AuthCode.type == kind.value, AuthCode.used.is_(False))
                .order_by(AuthCode.created_at.desc())
                .first()
            )
            if not latest or latest.expires_at <= datetime.utcnow() or latest.code != clean:
                return False
            latest.used = True
            return True

    def send_sms_code(self, phone: Optional[str]) -> Dict:
        if not phone:
            raise StoreError("Номер телефона обязателен")
        digits = normalize_phone(phone)
        if len(digits) != 11:
            raise StoreError("Неверный формат номера телефона")
        code = self._issue_code(digits, AuthCodeType.SMS)
        delivered = bool(self._sms and self._sms.send_code(digits, code))
        if not delivered:
            logger.info("SMS code for +%s: %s", digits, code)
        log_event("info", "auth.sms_code_issued", phone=f"+{digits}", delivered=delivered)
        return {"success": True, "message": "Код подтверждения отправлен"}

    def send_email_code(self, email: Optional[str]) -> Dict:
        if not is_valid_email(email):
            raise StoreError("Некорректный email")
        contact = email.strip().lower()
        code = self._issue_code(contact, AuthCodeType.EMAIL)
        delivered = bool(self._mailer and self._mailer.send_login_code(contact, code))
        if not delivered:
            logger.info("Email code for %s: %s", contact, code)
        log_event("info", "auth.email_code_issued", email=contact, delivered=delivered)
        return {"success": True, "message": "Код отправлен на email"}

    # -- providers -------------------------------------------------------

    def _find_or_create(self, session, **lookup) -> User:
        (field, value), = lookup.items()
        user = session.query(User).filter(getattr(User, field) == value).first()
        if not user:
            user = User(id=str(uuid4()), role=Role.USER.value, **lookup)
            session.add(user)
            session.flush()
            log_event("info", "auth.user_created", user_id=user.id, via=field)
        return user

    def _password(self, session, creds: Dict) -> Optional[User]:
        email = (creds.get("email") or "").strip().lower()
        if not email or not creds.get("password"):
            return None
        user = session.query(User).filter(User.email == email).first()
        if user and check_password(user.password, creds["password"]):
            return user
        return None

    def _phone(self, session, creds: Dict) -> Optional[User]:
        if not creds.get("phone") or not creds.get("code"):
            return None
        digits = normalize_phone(creds["phone"])
        if not self.verify_code(digits, creds["code"], AuthCodeType.SMS):
            return None
        return self._find_or_create(session, phone=f"+{digits}")

    def _email(self, session, creds: Dict) -> Optional[User]:
        if not creds.get("email") or not creds.get("code"):
            return None
        email = creds["email"].strip().lower()
        if not self.verify_code(email, creds["code"], AuthCodeType.EMAIL):
            return None
        user = self._find_or_create(session, email=email)
        if user.email_verified is None:
            user.email_verified = datetime.utcnow()
        return user

    def _admin(self, session, creds: Dict) -> Optional[User]:
        phone = (creds.get("phone") or "").strip()
        if not phone or not creds.get("password"):
            return None
        candidates = {phone, "+" + normalize_phone(phone)}
        admin = session.query(User).filter(User.phone.in_(candidates)).first()
        if not admin or admin.role != Role.ADMIN.value:
            return None
        if not check_password(admin.password, creds["password"], allow_plaintext=True):
            return None
        return admin

    def _google_user(self, session, creds: Dict) -> Optional[User]:
        if self._google is None or not creds.get("code"):
            return None
        tokens = self._google.exchange_code(creds["code"], creds.get("redirectUri"))
        profile = self._google.fetch_userinfo(tokens["access_token"])
        email = (profile.get("email") or "").lower()
        if not email:
            return None
        user = session.query(User).filter(User.email == email).first()
        if not user:
            user = User(
                id=str(uuid4()),
                email=email,
                name=profile.get("name"),
                image=profile.get("picture"),
                role=Role.USER.value,
                email_verified=datetime.utcnow(),
            )
            session.add(user)
            session.flush()
        linked = (
            session.query(Account)
            .filter(Account.provider == "google", Account.provider_account_id == str(profile.get("sub")))
            .first()
        )
        if not linked:
            session.add(
                Account(
                    id=str(uuid4()),
                    user_id=user.id,
                    provider="google",
                    provider_account_id=str(profile.get("sub")),
                    access_token=tokens.get("access_token"),
                )
            )
        return user

    def sign_in(self, provider: str, credentials: Dict, *, ip: Optional[str] = None,
                user_agent: Optional[str] = None) -> Dict:
        handlers = {
            "password": self._password,
            "phone": self._phone,
            "email": self._email,
            "admin": self._admin,
            "google": self._google_user,
        }
        handler = handlers.get(provider)
        if handler is None:
            raise StoreError("Неизвестный способ входа")
        with self._session_factory() as session:
            user = handler(session, credentials or {})
            session.add(
                AuthLog(
                    id=str(uuid4()),
                    user_id=user.id if user else None,
                    type=provider,
                    success=user is not None,
                    ip=ip,
                    user_agent=user_agent,
                )
            )
            if user is not None:
                session.add(
                    UserActivity(id=str(uuid4()), user_id=user.id, action="login", details={"provider": provider})
                )
                session.flush()
                dto = to_user_dto(user)
            else:
                dto = None
        if dto is None:
            log_event("warning", "auth.failed", provider=provider, ip=ip)
            if provider == "admin":
                raise AccessDenied("Неверные данные для входа администратора")
            raise AuthRequired("Неверные данные для входа")
        log_event("info", "auth.signed_in", provider=provider, user_id=dto["id"])
        return dto

    # -- tokens ----------------------------------------------------------

    def issue_token(self, user: Dict) -> str:
        now = datetime.utcnow()
        payload = {"sub": user["id"], "role": user["role"], "iat": now, "exp": now + self._token_ttl}
        return jwt.encode(payload, self._secret_key, algorithm="HS256")

    def decode_token(self, token: str) -> Optional[Dict]:
        try:
            return jwt.decode(token, self._secret_key, algorithms=["HS256"])
        except jwt.PyJWTError:
            return None

    def google_authorization_url(self, redirect_uri: str, state: str) -> str:
        if self._google is None:
            raise StoreError("Вход через Google не настроен")
        return self._google.authorization_url(redirect_uri, state)
