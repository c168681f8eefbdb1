import os
from dataclasses import dataclass
from pathlib import Path
import json
from typing import Dict, Optional

from dotenv import load_dotenv


@dataclass
class AppConfig:
    database_url: str
    secret_key: str
    jwt_secret: str
    log_level: str
    currency: str
    order_number_prefix: str = "ORD"


# Keys that data/settings.json may override; secrets only come from the environment.
OVERLAY_KEYS = {"CURRENCY", "LOG_LEVEL", "ORDER_NUMBER_PREFIX"}


def validate_currency(value: Optional[str]) -> str:
    v = (value or "CNY").strip().upper()
    if len(v) != 3:
        raise ValueError("Invalid currency code: expected ISO4217 length 3")
    return v


def validate_prefix(value: Optional[str]) -> str:
    v = (value or "ORD").strip().upper()
    if not v.isalnum() or len(v) > 6:
        raise ValueError("ORDER_NUMBER_PREFIX must be 1-6 alphanumeric characters")
    return v


def _load_settings_file(path: Optional[Path] = None) -> Dict[str, str]:
    path = path or Path.cwd() / "data" / "settings.json"
    if not path.exists():
        return {}
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return {k: v for k, v in data.items() if k in OVERLAY_KEYS}


def load_env(settings_file: Optional[Path] = None) -> AppConfig:
    # .env 先載入，data/settings.json 只覆寫非敏感設定
    load_dotenv()
    s = _load_settings_file(settings_file)
    secret_key = os.getenv("SECRET_KEY", "dev_secret")
    return AppConfig(
        database_url=os.getenv("DATABASE_URL", "sqlite:///data/storefront.db"),
        secret_key=secret_key,
        jwt_secret=os.getenv("JWT_SECRET", secret_key),
        log_level=(s.get("LOG_LEVEL") or os.getenv("LOG_LEVEL") or "INFO").upper(),
        currency=validate_currency(s.get("CURRENCY") or os.getenv("CURRENCY")),
        order_number_prefix=validate_prefix(s.get("ORDER_NUMBER_PREFIX") or os.getenv("ORDER_NUMBER_PREFIX")),
    )
