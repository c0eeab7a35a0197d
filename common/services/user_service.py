from typing import Dict, List, Optional
from ..db.session import get_session
from ..models.enums import Role
from ..models.user import User
from ..utils.dto import to_user_dto
from ..utils.validators import is_valid_ru_phone
from .auth_service import hash_password
from .errors import Conflict, NotFound, StoreError
from .logging import log_event


class UserService:
    """Profile management for customers and user administration for staff."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def get_user(self, user_id: str) -> Optional[Dict]:
        with self._session_factory() as session:
            return to_user_dto(session.get(User, user_id))

    def get_profile(self, *, user_id: str) -> Dict:
        user = self.get_user(user_id)
        if not user:
            raise NotFound("Пользователь не найден")
        return {"id": user["id"], "name": user["name"], "phone": user["phone"], "email": user["email"]}

    def update_profile(self, *, user_id: str, name: Optional[str], phone: Optional[str]) -> Dict:
        if not name or len(name.strip()) < 2:
            raise StoreError("Имя должно содержать минимум 2 символа")
        if not is_valid_ru_phone(phone):
            raise StoreError("Неверный формат телефона")
        with self._session_factory() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFound("Пользователь не найден")
            taken = session.query(User.id).filter(User.phone == phone, User.id != user_id).first()
            if taken:
                raise Conflict("Этот номер телефона уже используется")
            user.name = name.strip()
            user.phone = phone
            session.flush()
            return to_user_dto(user)

    def set_password(self, *, user_id: str, password: Optional[str]) -> Dict:
        if not password or len(password) < 6:
            raise StoreError("Пароль должен содержать минимум 6 символов")
        with self._session_factory() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFound("Пользователь не найден")
            user.password = hash_password(password)
        log_event("info", "auth.password_set", user_id=user_id)
        return {"success": True, "message": "Пароль успешно установлен"}

    def list_users(self) -> List[Dict]:
        with self._session_factory() as session:
            return [to_user_dto(u) for u in session.query(User).order_by(User.created_at.desc()).all()]

    def change_role(self, *, actor_id: str, user_id: str, role: Optional[str]) -> Dict:
        if actor_id == user_id:
            raise StoreError("Нельзя изменить свою роль")
        if role not in {r.value for r in Role}:
            raise StoreError("Неверная роль")
        with self._session_factory() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFound("Пользователь не найден")
            user.role = role
            session.flush()
            dto = to_user_dto(user)
        log_event("info", "admin.role_changed", actor_id=actor_id, user_id=user_id, role=role)
        return dto
