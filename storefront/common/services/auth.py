import time
from dataclasses import dataclass
from typing import Optional

import jwt


ROLES = ("user", "admin")
_ALGORITHM = "HS256"


@dataclass(frozen=True)
class Principal:
    id: str
    role: str


def issue_token(principal: Principal, secret: str, expires_in: int = 7 * 24 * 3600) -> str:
    """Mint a token for a principal. Login flows live outside this service."""
    if principal.role not in ROLES:
        raise ValueError(f"unknown role: {principal.role}")
    now = int(time.time())
    payload = {"id": principal.id, "role": principal.role, "iat": now, "exp": now + int(expires_in)}
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def decode_token(token: Optional[str], secret: str) -> Optional[Principal]:
    """Return the principal for a valid token, None for anything else."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except jwt.PyJWTError:
        return None
    user_id = payload.get("id")
    role = payload.get("role")
    if not user_id or role not in ROLES:
        return None
    return Principal(id=str(user_id), role=role)
