import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional

# ---------------- Rate defaults ----------------
DEFAULT_TAX_RATE_PCT = Decimal("13")
DEFAULT_BASE_SURCHARGE_PCT = Decimal("20")

# share of the base financing surcharge applied per billing cadence (months)
DEFAULT_TERM_SURCHARGE_SHARES: Dict[int, Decimal] = {
    1: Decimal("1.00"),
    3: Decimal("0.75"),
    6: Decimal("0.50"),
    9: Decimal("0.25"),
}


@dataclass(frozen=True)
class RenderConfig:
    """Everything the core needs that is not part of the quote record itself."""
    tax_rate_pct: Decimal = DEFAULT_TAX_RATE_PCT
    base_surcharge_pct: Decimal = DEFAULT_BASE_SURCHARGE_PCT
    term_surcharge_shares: Dict[int, Decimal] = field(
        default_factory=lambda: dict(DEFAULT_TERM_SURCHARGE_SHARES)
    )
    currency_symbol: str = "$"
    validity_days: int = 30
    logo_timeout: float = 10.0
    public_quote_base_url: Optional[str] = None


@dataclass(frozen=True)
class ServiceConfig:
    data_dir: str = "data"
    storage_backend: str = "local"  # "local" | "api"
    local_storage_path: str = "storage"
    public_base_url: str = "http://localhost:5000/files"
    storage_url: str = ""
    storage_key: str = ""
    storage_bucket: str = "quotations"
    log_enabled: bool = True
    log_dir: str = "logs"
    log_redact: bool = True


def _env_decimal(name: str, default: Decimal) -> Decimal:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    return Decimal(raw.strip())


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_render_config() -> RenderConfig:
    return RenderConfig(
        tax_rate_pct=_env_decimal("QUOTE_TAX_RATE_PCT", DEFAULT_TAX_RATE_PCT),
        base_surcharge_pct=_env_decimal("QUOTE_BASE_SURCHARGE_PCT", DEFAULT_BASE_SURCHARGE_PCT),
        currency_symbol=os.getenv("QUOTE_CURRENCY_SYMBOL", "$"),
        validity_days=int(os.getenv("QUOTE_VALIDITY_DAYS", "30")),
        logo_timeout=float(os.getenv("QUOTE_LOGO_TIMEOUT", "10")),
        public_quote_base_url=os.getenv("FRONTEND_URL") or None,
    )


def load_service_config() -> ServiceConfig:
    return ServiceConfig(
        data_dir=os.getenv("QUOTEDOC_DATA_DIR", "data"),
        storage_backend=os.getenv("STORAGE_BACKEND", "local").lower(),
        local_storage_path=os.getenv("LOCAL_STORAGE_PATH", "storage"),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:5000/files"),
        storage_url=os.getenv("STORAGE_URL", ""),
        storage_key=os.getenv("STORAGE_KEY", ""),
        storage_bucket=os.getenv("STORAGE_BUCKET", "quotations"),
        log_enabled=_env_bool("LOG_ENABLED", True),
        log_dir=os.getenv("LOG_DIR", "logs"),
        log_redact=_env_bool("LOG_REDACT", True),
    )
