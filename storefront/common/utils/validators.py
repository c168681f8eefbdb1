from typing import Any, Dict, Iterable, List, Optional

from ..errors import InvalidQuantityError, ValidationError


# Largest value an INTEGER column holds on every supported backend.
MAX_INT = 2**31 - 1


def _to_int(value: Any) -> Optional[int]:
    """Integral value of ``value`` or None; bools and floats like 1.5 are rejected."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if isinstance(value, float) and value != number:
        return None
    return number


def ensure_positive_int(value: Any, field: str = "quantity") -> int:
    """Quantities must be integers between 1 and MAX_INT."""
    number = _to_int(value)
    if number is None or not 1 <= number <= MAX_INT:
        raise InvalidQuantityError(f"{field} must be an integer between 1 and {MAX_INT}", field=field)
    return number


def ensure_non_negative_int(value: Any, field: str) -> int:
    number = _to_int(value)
    if number is None or not 0 <= number <= MAX_INT:
        raise ValidationError(f"{field} must be an integer between 0 and {MAX_INT}", field=field)
    return number


def require_fields(payload: Dict[str, Any], fields: Iterable[str]) -> None:
    missing: List[str] = [f for f in fields if not str(payload.get(f) or "").strip()]
    if missing:
        raise ValidationError("missing required fields: " + ", ".join(missing), fields=missing)


def ensure_choice(value: Any, enum_cls, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [m.value for m in enum_cls]
        raise ValidationError(f"{field} must be one of {', '.join(allowed)}", field=field, allowed=allowed)
