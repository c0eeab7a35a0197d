from typing import Dict, List
from uuid import uuid4
from ..db.session import get_session
from ..models.address import Address
from ..models.order import Order
from ..utils.dto import to_address_dto
from .errors import NotFound, StoreError


EDITABLE_FIELDS = {
    "name": "name",
    "street": "street",
    "city": "city",
    "postalCode": "postal_code",
    "zipCode": "postal_code",
    "country": "country",
    "phone": "phone",
}


class AddressService:
    """Saved delivery addresses of a user."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    @staticmethod
    def _owned(session, user_id: str, address_id: str) -> Address:
        addr = session.query(Address).filter(Address.id == address_id, Address.user_id == user_id).first()
        if not addr:
            raise NotFound("Адрес не найден")
        return addr

    @staticmethod
    def _clear_default(session, user_id: str, keep_id=None) -> None:
        q = session.query(Address).filter(Address.user_id == user_id)
        if keep_id:
            q = q.filter(Address.id != keep_id)
        q.update(
            {Address.is_default: False}, synchronize_session=False
        )

    def list_addresses(self, *, user_id: str) -> List[Dict]:
        with self._session_factory() as session:
            rows = (
                session.query(Address)
                .filter(Address.user_id == user_id)
                .order_by(Address.is_default.desc(), Address.created_at.asc())
                .all()
            )
            return [to_address_dto(a) for a in rows]

    def create(self, *, user_id: str, data: Dict) -> Dict:
        if not data.get("street") or not data.get("city"):
            raise StoreError("Необходимо указать улицу и город")
        with self._session_factory() as session:
            if data.get("isDefault"):
                self._clear_default(session, user_id)
            addr = Address(id=str(uuid4()), user_id=user_id, is_default=bool(data.get("isDefault")))
            for key, attr in EDITABLE_FIELDS.items():
                if key in data:
                    setattr(addr, attr, data[key])
            if not addr.country:
                addr.country = "Россия"
            session.add(addr)
            session.flush()
            return to_address_dto(addr)

    def update(self, *, user_id: str, address_id: str, data: Dict) -> Dict:
        with self._session_factory() as session:
            addr = self._owned(session, user_id, address_id)
            if data.get("isDefault"):
                self._clear_default(session, user_id, keep_id=addr.id)
                addr.is_default = True
            elif "isDefault" in data:
                addr.is_default = False
            for key, attr in EDITABLE_FIELDS.items():
                if key in data:
                    setattr(addr, attr, data[key])
            if not addr.street or not addr.city:
                raise StoreError("Необходимо указать улицу и город")
            session.flush()
            return to_address_dto(addr)

    def delete(self, *, user_id: str, address_id: str) -> Dict:
        with self._session_factory() as session:
            addr = self._owned(session, user_id, address_id)
            if addr.is_default:
                successor = (
                    session.query(Address)
                    .filter(Address.user_id == user_id, Address.id != address_id)
                    .order_by(Address.created_at.asc())
                    .first()
                )
                if successor:
                    successor.is_default = True
            if session.query(Order.id).filter(Order.address_id == address_id).first():
                # orders keep their delivery address
                addr.user_id = None
                addr.is_default = False
            else:
                session.delete(addr)
        return {"message": "Адрес успешно удален"}
