from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping

from ..db.session import get_session
from ..errors import ValidationError
from ..models.setting import Setting


PUBLIC_DEFAULTS: Dict[str, Any] = {
    "companyName": "Storefront",
    "logo": None,
    "heroImage": None,
    "brandAdvantages": [],
    "testimonials": [],
}


@dataclass(frozen=True)
class SiteSettings:
    """Read-only copy of the setting table, taken once per request."""

    values: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def get(self, key: str, default: Any = None) -> Any:
        value = self.values.get(key)
        return default if value is None else value

    def public(self) -> Dict[str, Any]:
        return {k: self.get(k, v) for k, v in PUBLIC_DEFAULTS.items()}

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.values)


class SettingsService:
    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def snapshot(self) -> SiteSettings:
        with self._session_factory() as session:
            rows = session.query(Setting).order_by(Setting.key).all()
            return SiteSettings(MappingProxyType({r.key: r.value for r in rows}))

    def put(self, key: str, value: Any) -> Dict[str, Any]:
        key = (key or "").strip()
        if not key:
            raise ValidationError("key required", field="key")
        with self._session_factory() as session:
            row = session.merge(Setting(key=key, value=value))
            session.flush()
            return {"key": row.key, "value": row.value}
