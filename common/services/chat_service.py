from datetime import datetime
from typing import Dict, List, Optional
from uuid import uuid4
import logging
import secrets
from sqlalchemy import func
from ..db.session import get_session
from ..models.chat import ChatMessage, ChatSession
from ..models.enums import ChatPriority, ChatStatus, MessageType, Role, SenderType
from ..utils.dto import to_chat_message_dto, to_chat_session_dto
from ..utils.pagination import normalize_paging, page_meta
from .errors import NotFound, StoreError
from .logging import log_event


logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Общий вопрос"
ANONYMOUS_NAME = "Анонимный пользователь"
WELCOME_TEXT = "Здравствуйте! Спасибо за обращение в NAKEN Store. Наши менеджеры ответят вам в ближайшее время."
CLOSED_TEXT = "Чат был закрыт администратором. Спасибо за обращение!"
MESSAGE_TYPES = {t.value for t in MessageType}


class ChatService:
    """Support chat between site visitors and staff."""

    def __init__(self, session_factory=get_session, notifier=None):
        self._session_factory = session_factory
        self._notifier = notifier

    @staticmethod
    def _by_public_id(session, session_id: Optional[str]) -> ChatSession:
        if not session_id:
            raise StoreError("Не указан ID сессии")
        chat = session.query(ChatSession).filter(ChatSession.session_id == session_id).first()
        if not chat:
            raise NotFound("Чат-сессия не найдена")
        return chat

    @staticmethod
    def _system_message(session, chat: ChatSession, text: str) -> None:
        session.add(
            ChatMessage(
                id=str(uuid4()),
                session_id=chat.id,
                sender_type=SenderType.SYSTEM.value,
                content=text,
                message_type=MessageType.SYSTEM.value,
            )
        )

    def create_session(
        self,
        *,
        user: Optional[Dict],
        subject: Optional[str] = None,
        message: Optional[str] = None,
        user_agent: Optional[str] = None,
        ip: Optional[str] = None,
        client_info: Optional[Dict] = None,
    ) -> Dict:
        info = {
            "userAgent": user_agent or "Unknown",
            "ip": ip or "Unknown",
            "timestamp": datetime.utcnow().isoformat() + "Z",
        }
        info.update(client_info or {})
        with self._session_factory() as session:
            chat = ChatSession(
                id=str(uuid4()),
                session_id=secrets.token_urlsafe(16),
                user_id=user["id"] if user else None,
                user_name=user.get("name") if user else None,
                user_email=user.get("email") if user else None,
                user_phone=user.get("phone") if user else None,
                subject=(subject or "").strip() or DEFAULT_SUBJECT,
                status=ChatStatus.ACTIVE.value,
                priority=ChatPriority.NORMAL.value,
                client_info=info,
            )
            session.add(chat)
            session.flush()
            if message and message.strip():
                session.add(
                    ChatMessage(
                        id=str(uuid4()),
                        session_id=chat.id,
                        sender_type=SenderType.USER.value,
                        sender_id=user["id"] if user else None,
                        sender_name=(user or {}).get("name") or ANONYMOUS_NAME,
                        content=message.strip(),
                        message_type=MessageType.TEXT.value,
                    )
                )
                session.flush()
            self._system_message(session, chat, WELCOME_TEXT)
            public_id = chat.session_id
        log_event("info", "chat.session_created", session_id=public_id)
        return {"success": True, "sessionId": public_id, "message": "Чат-сессия создана успешно"}

    def get_chat(self, session_id: Optional[str]) -> Dict:
        with self._session_factory() as session:
            chat = self._by_public_id(session, session_id)
            messages = (
                session.query(ChatMessage)
                .filter(ChatMessage.session_id == chat.id)
                .order_by(ChatMessage.created_at.asc())
                .all()
            )
            dto = to_chat_session_dto(chat)
            dto["messages"] = [to_chat_message_dto(m) for m in messages]
            return dto

    def post_message(
        self,
        *,
        session_id: Optional[str],
        content: Optional[str],
        sender: Optional[Dict],
        message_type: str = MessageType.TEXT.value,
    ) -> Dict:
        if not session_id or not content or not content.strip():
            raise StoreError("Не указаны обязательные поля")
        if message_type not in MESSAGE_TYPES:
            raise StoreError("Неверный тип сообщения")
        is_admin = bool(sender) and sender.get("role") == Role.ADMIN.value
        sender_name = (sender or {}).get("name") or ANONYMOUS_NAME
        with self._session_factory() as session:
            chat = self._by_public_id(session, session_id)
            msg = ChatMessage(
                id=str(uuid4()),
                session_id=chat.id,
                sender_type=SenderType.ADMIN.value if is_admin else SenderType.USER.value,
                sender_id=sender["id"] if sender else None,
                sender_name=sender_name,
                content=content.strip(),
                message_type=message_type,
            )
            session.add(msg)
            chat.last_activity = datetime.utcnow()
            session.flush()
            dto = to_chat_message_dto(msg)
            public_id = chat.session_id

        if message_type != MessageType.SYSTEM.value and self._notifier is not None:
            try:
                self._notifier.notify_chat_message(
                    session_id=public_id,
                    sender_name=sender_name,
                    message=dto["content"],
                    is_from_user=not is_admin,
                )
            except Exception:
                logger.exception("chat notification failed for %s", public_id)
        return dto

    def list_messages(self, session_id: Optional[str], *, last_message_id: Optional[str] = None,
                      limit: int = 50) -> List[Dict]:
        _, lim = normalize_paging(1, limit, max_page_size=200)
        with self._session_factory() as session:
            chat = self._by_public_id(session, session_id)
            q = session.query(ChatMessage).filter(ChatMessage.session_id == chat.id)
            if last_message_id:
                anchor = (
                    session.query(ChatMessage.created_at)
                    .filter(ChatMessage.id == last_message_id, ChatMessage.session_id == chat.id)
                    .scalar()
                )
                if anchor is not None:
                    q = q.filter(ChatMessage.created_at > anchor)
            rows = q.order_by(ChatMessage.created_at.asc()).limit(lim).all()
            return [to_chat_message_dto(m) for m in rows]

    def mark_read(self, session_id: Optional[str], message_ids: Optional[List[str]] = None) -> Dict:
        with self._session_factory() as session:
            chat = self._by_public_id(session, session_id)
            q = session.query(ChatMessage).filter(ChatMessage.session_id == chat.id, ChatMessage.is_read.is_(False))
            if isinstance(message_ids, list):
                q = q.filter(ChatMessage.id.in_(message_ids))
            updated = q.update({ChatMessage.is_read: True}, synchronize_session=False)
        return {"success": True, "updated": updated, "message": "Статус прочтения обновлен"}

    # -- admin -----------------------------------------------------------

    def list_sessions(self, *, status: Optional[str] = None, page: int = 1, limit: int = 20) -> Dict:
        p, ps = normalize_paging(page, limit)
        with self._session_factory() as session:
            q = session.query(ChatSession)
            if status and status != "all":
                q = q.filter(ChatSession.status == status)
            total = q.count()
            chats = q.order_by(ChatSession.last_activity.desc()).offset((p - 1) * ps).limit(ps).all()
            ids = [c.id for c in chats]
            counts = dict(
                session.query(ChatMessage.session_id, func.count(ChatMessage.id))
                .filter(ChatMessage.session_id.in_(ids))
                .group_by(ChatMessage.session_id)
                .all()
            ) if ids else {}
            unread = dict(
                session.query(ChatMessage.session_id, func.count(ChatMessage.id))
                .filter(
                    ChatMessage.session_id.in_(ids),
                    ChatMessage.is_read.is_(False),
                    ChatMessage.sender_type == SenderType.USER.value,
                )
                .group_by(ChatMessage.session_id)
                .all()
            ) if ids else {}
            sessions = []
            for chat in chats:
                last = (
                    session.query(ChatMessage)
                    .filter(ChatMessage.session_id == chat.id)
                    .order_by(ChatMessage.created_at.desc())
                    .first()
                )
                dto = to_chat_session_dto(chat)
                dto["lastMessage"] = to_chat_message_dto(last) if last else None
                dto["messageCount"] = counts.get(chat.id, 0)
                dto["unreadCount"] = unread.get(chat.id, 0)
                sessions.append(dto)
            return {"sessions": sessions, "pagination": page_meta(p, ps, total)}

    def update_session(
        self,
        *,
        admin: Dict,
        session_id: Optional[str],
        action: Optional[str] = None,
        assigned_to: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> Dict:
        if status and status not in {s.value for s in ChatStatus}:
            raise StoreError("Неверный статус чата")
        if priority and priority not in {p.value for p in ChatPriority}:
            raise StoreError("Неверный приоритет")
        with self._session_factory() as session:
            chat = self._by_public_id(session, session_id)
            if action == "assign" and assigned_to:
                chat.assigned_to = assigned_to
                self._system_message(
                    session, chat, f"Чат был назначен администратору {admin.get('name') or 'Администратор'}"
                )
            if status:
                chat.status = status
                if status == ChatStatus.CLOSED.value:
                    chat.closed_at = datetime.utcnow()
                    self._system_message(session, chat, CLOSED_TEXT)
            if priority:
                chat.priority = priority
            session.flush()
            dto = to_chat_session_dto(chat)
        log_event("info", "chat.session_updated", session_id=session_id, action=action, status=status,
                  priority=priority, admin_id=admin.get("id"))
        return {"success": True, "session": dto, "message": "Чат-сессия обновлена успешно"}
