from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..db.session import get_session
from ..errors import NotFoundError, ValidationError
from ..models.address import Address
from ..utils.dto import to_address_dto
from ..utils.validators import require_fields


REQUIRED_FIELDS = ("name", "phone", "province", "city", "district", "detail")
EDITABLE_FIELDS = REQUIRED_FIELDS + ("postal_code",)


def _unset_other_defaults(session: Session, user_id: str, keep_id: Optional[str] = None) -> None:
    stmt = update(Address).where(Address.user_id == user_id, Address.is_default.is_(True))
    if keep_id:
        stmt = stmt.where(Address.id != keep_id)
    session.execute(stmt.values(is_default=False).execution_options(synchronize_session="fetch"))
    # the partial unique index checks each statement, so clear before setting
    session.flush()


class AddressService:
    """Per-user shipping addresses; at most one default per user."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def list_addresses(self, *, user_id: str) -> List[Dict]:
        with self._session_factory() as session:
            rows = (
                session.query(Address)
                .filter(Address.user_id == user_id)
                .order_by(Address.is_default.desc(), Address.created_at.desc())
                .all()
            )
            return [to_address_dto(r) for r in rows]

    def create_address(self, *, user_id: str, data: Dict[str, Any]) -> Dict:
        require_fields(data, REQUIRED_FIELDS)
        is_default = bool(data.get("is_default"))
        with self._session_factory() as session:
            if is_default:
                _unset_other_defaults(session, user_id)
            address = Address(
                id=str(uuid4()),
                user_id=user_id,
                postal_code=(data.get("postal_code") or None),
                is_default=is_default,
                **{f: str(data[f]).strip() for f in REQUIRED_FIELDS},
            )
            session.add(address)
            session.flush()
            return to_address_dto(address)

    def update_address(self, *, user_id: str, address_id: str, data: Dict[str, Any]) -> Dict:
        with self._session_factory() as session:
            address = (
                session.query(Address)
                .filter(Address.id == address_id, Address.user_id == user_id)
                .first()
            )
            if not address:
                raise NotFoundError("address not found", address_id=address_id)
            for field in EDITABLE_FIELDS:
                if field not in data:
                    continue
                value = data[field]
                if field in REQUIRED_FIELDS and not str(value or "").strip():
                    raise ValidationError(f"{field} must not be empty", field=field)
                setattr(address, field, str(value).strip() if value else None)
            if "is_default" in data:
                if data["is_default"]:
                    _unset_other_defaults(session, user_id, keep_id=address.id)
                    address.is_default = True
                else:
                    address.is_default = False
            session.flush()
            return to_address_dto(address)

    def delete_address(self, *, user_id: str, address_id: str) -> None:
        # orders keep address_id and render the address as null afterwards
        with self._session_factory() as session:
            address = (
                session.query(Address)
                .filter(Address.id == address_id, Address.user_id == user_id)
                .first()
            )
            if not address:
                raise NotFoundError("address not found", address_id=address_id)
            session.delete(address)
            session.flush()
        return None
