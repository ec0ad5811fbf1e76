"""Read-only records consumed by the proposal core, and their parsing from stored rows."""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from quotedoc.errors import QuoteDataError

logger = logging.getLogger(__name__)

PAYMENT_ANNUAL = "annual"
PAYMENT_MONTHLY = "monthly"

_PAYMENT_ALIASES = {
    "annual": PAYMENT_ANNUAL,
    "anual": PAYMENT_ANNUAL,
    "yearly": PAYMENT_ANNUAL,
    "monthly": PAYMENT_MONTHLY,
    "mensual": PAYMENT_MONTHLY,
}

_ZERO = Decimal("0")


@dataclass(frozen=True)
class AddonModule:
    name: str
    annual_cost: Decimal = _ZERO
    monthly_cost: Decimal = _ZERO
    one_time_cost: Decimal = _ZERO
    description: Optional[str] = None

    @property
    def is_one_time(self) -> bool:
        return self.one_time_cost > 0 or (self.annual_cost == 0 and self.monthly_cost == 0)

    @property
    def display_amount(self) -> Decimal:
        return self.one_time_cost if self.one_time_cost > 0 else self.annual_cost


@dataclass(frozen=True)
class QuoteRecord:
    id: str
    client_name: str
    plan_name: str
    total_annual: Decimal
    payment_mode: str = PAYMENT_ANNUAL
    client_company: Optional[str] = None
    company_id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    plan_description: Optional[str] = None
    dte_volume: int = 0
    plan_annual_cost: Decimal = _ZERO
    implementation_cost: Decimal = _ZERO
    addon_modules: Tuple[AddonModule, ...] = ()
    include_implementation: bool = True
    whatsapp_service: bool = False
    whatsapp_cost: Decimal = _ZERO
    term_months: int = 1
    installment_count: Optional[int] = None
    upfront_amount: Decimal = _ZERO
    tax_rate_pct: Optional[Decimal] = None
    base_surcharge_pct: Optional[Decimal] = None

    @property
    def is_monthly(self) -> bool:
        return self.payment_mode == PAYMENT_MONTHLY


@dataclass(frozen=True)
class CompanyBranding:
    name: str
    id: Optional[str] = None
    logo_url: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    terms_text: Optional[str] = None

    @property
    def contact_bits(self) -> List[str]:
        return [b for b in [self.phone, self.website, self.email] if b]


@dataclass(frozen=True)
class LeadContext:
    company_name: Optional[str] = None


@dataclass(frozen=True)
class CreatorContext:
    full_name: Optional[str] = None
    email: Optional[str] = None


# ---------- parsing helpers ----------
def _decimal(value: Any, name: str, default: Optional[Decimal] = _ZERO) -> Optional[Decimal]:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise QuoteDataError(f"Field '{name}' must be a number, got {value!r}")
    try:
        out = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise QuoteDataError(f"Field '{name}' must be a number, got {value!r}")
    if not out.is_finite():
        raise QuoteDataError(f"Field '{name}' must be finite, got {value!r}")
    return out


def _int(value: Any, name: str, default: Optional[int] = None) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise QuoteDataError(f"Field '{name}' must be an integer, got {value!r}")


def _datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip().replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.warning("Unparseable created_at %r; issue date falls back to render time", value)
        return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_modules(raw: Any) -> List[Dict[str, Any]]:
    """Module lists are stored either as a JSON array or as a JSON string of one."""
    if not raw:
        return []
    if isinstance(raw, list):
        return [m for m in raw if isinstance(m, dict)]
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            logger.warning("Could not parse stored module list; treating it as empty")
            return []
        return [m for m in parsed if isinstance(m, dict)] if isinstance(parsed, list) else []
    return []


def addon_from_dict(row: Dict[str, Any]) -> AddonModule:
    name = _text(row.get("name") or row.get("nombre"))
    if not name:
        raise QuoteDataError("Add-on module without a name")
    return AddonModule(
        name=name,
        annual_cost=_decimal(row.get("annual_cost", row.get("costo_anual")), f"{name}.annual_cost"),
        monthly_cost=_decimal(row.get("monthly_cost", row.get("costo_mensual")), f"{name}.monthly_cost"),
        one_time_cost=_decimal(row.get("one_time_cost", row.get("pago_unico")), f"{name}.one_time_cost"),
        description=_text(row.get("description") or row.get("descripcion")),
    )


# legacy quote rows use Spanish column names
_QUOTE_ALIASES = {
    "client_name": "nombre_cliente",
    "client_company": "empresa_cliente",
    "plan_name": "plan_nombre",
    "dte_volume": "volumen_dtes",
    "plan_annual_cost": "costo_plan_anual",
    "implementation_cost": "costo_implementacion",
    "include_implementation": "incluir_implementacion",
    "addon_modules": "modulos_adicionales",
    "whatsapp_service": "servicio_whatsapp",
    "whatsapp_cost": "costo_whatsapp",
    "payment_mode": "tipo_pago",
    "term_months": "meses",
    "installment_count": "cuotas",
    "total_annual": "total_anual",
    "upfront_amount": "monto_anticipo",
    "tax_rate_pct": "iva_porcentaje",
    "base_surcharge_pct": "recargo_mensual_porcentaje",
}


def _field(row: Dict[str, Any], name: str) -> Any:
    value = row.get(name)
    if value is None and name in _QUOTE_ALIASES:
        value = row.get(_QUOTE_ALIASES[name])
    return value


def _bool(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "si", "sí", "on"}
    return bool(value)


def quote_from_dict(row: Dict[str, Any]) -> QuoteRecord:
    quote_id = _text(row.get("id"))
    if not quote_id:
        raise QuoteDataError("Quote record has no id")

    raw_mode = str(_field(row, "payment_mode") or PAYMENT_ANNUAL).strip().lower()
    payment_mode = _PAYMENT_ALIASES.get(raw_mode)
    if payment_mode is None:
        raise QuoteDataError(f"Unknown payment_mode '{raw_mode}'")

    total = _decimal(_field(row, "total_annual"), "total_annual", default=None)
    if total is None:
        raise QuoteDataError("Quote record has no total_annual")

    return QuoteRecord(
        id=quote_id,
        client_name=_text(_field(row, "client_name")) or "Client",
        client_company=_text(_field(row, "client_company")),
        company_id=_text(row.get("company_id")),
        created_by=_text(row.get("created_by")),
        created_at=_datetime(row.get("created_at")),
        plan_name=_text(_field(row, "plan_name")) or "",
        plan_description=_text(_field(row, "plan_description")),
        dte_volume=_int(_field(row, "dte_volume"), "dte_volume", 0),
        plan_annual_cost=_decimal(_field(row, "plan_annual_cost"), "plan_annual_cost"),
        implementation_cost=_decimal(_field(row, "implementation_cost"), "implementation_cost"),
        include_implementation=_bool(_field(row, "include_implementation"), True),
        addon_modules=tuple(addon_from_dict(m) for m in parse_modules(_field(row, "addon_modules"))),
        whatsapp_service=_bool(_field(row, "whatsapp_service"), False),
        whatsapp_cost=_decimal(_field(row, "whatsapp_cost"), "whatsapp_cost"),
        payment_mode=payment_mode,
        term_months=_int(_field(row, "term_months"), "term_months", 1),
        installment_count=_int(_field(row, "installment_count"), "installment_count"),
        total_annual=total,
        upfront_amount=_decimal(_field(row, "upfront_amount"), "upfront_amount"),
        tax_rate_pct=_decimal(_field(row, "tax_rate_pct"), "tax_rate_pct", default=None),
        base_surcharge_pct=_decimal(_field(row, "base_surcharge_pct"), "base_surcharge_pct", default=None),
    )


def branding_from_dict(row: Dict[str, Any]) -> CompanyBranding:
    return CompanyBranding(
        id=_text(row.get("id")),
        name=_text(row.get("name")) or "",
        logo_url=_text(row.get("logo_url")),
        address=_text(row.get("address")),
        phone=_text(row.get("phone")),
        website=_text(row.get("website")),
        email=_text(row.get("email")),
        terms_text=row.get("terms_text") or row.get("terminos_condiciones") or None,
    )


def creator_from_dict(row: Optional[Dict[str, Any]]) -> Optional[CreatorContext]:
    if not row:
        return None
    return CreatorContext(full_name=_text(row.get("full_name")), email=_text(row.get("email")))


def lead_from_dict(row: Optional[Dict[str, Any]]) -> Optional[LeadContext]:
    if not row:
        return None
    return LeadContext(company_name=_text(row.get("company_name")))
