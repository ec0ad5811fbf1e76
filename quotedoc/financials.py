"""Reverse computation of a quote's financial breakdown.

Stored quotes only keep the aggregate ``total_annual``. It was assembled forward
as ``base -> +financing surcharge -> +tax`` (both multiplicative) plus the
tax-inclusive upfront charge, so the breakdown shown on the proposal is
recovered by dividing both layers back out in a single step.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

from quotedoc.errors import FinancialModelError
from quotedoc.models import PAYMENT_ANNUAL, PAYMENT_MONTHLY, QuoteRecord
from quotedoc.settings import RenderConfig

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_ONE = Decimal("1")
_HUNDRED = Decimal("100")

# Money helpers
_CENTS = Decimal("0.01")
def money(x: Decimal) -> Decimal:
    return x.quantize(_CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class FinancialBreakdown:
    payment_mode: str
    term_months: int
    tax_rate_pct: Decimal
    base_surcharge_pct: Decimal
    effective_surcharge_pct: Decimal
    total_annual: Decimal
    upfront_amount: Decimal
    recurring_gross: Decimal
    recurring_base_subtotal: Decimal
    financing_surcharge_amount: Decimal
    tax_amount: Decimal
    installment_count: int
    installment_amount: Decimal
    upfront_subtotal: Decimal
    upfront_tax: Decimal

    @property
    def is_monthly(self) -> bool:
        return self.payment_mode == PAYMENT_MONTHLY

    def as_dict(self) -> Dict[str, Any]:
        """JSON-friendly view, amounts rounded to cents."""
        return {
            "payment_mode": self.payment_mode,
            "term_months": self.term_months,
            "tax_rate_pct": float(self.tax_rate_pct),
            "base_surcharge_pct": float(self.base_surcharge_pct),
            "effective_surcharge_pct": float(self.effective_surcharge_pct),
            "total_annual": float(money(self.total_annual)),
            "upfront_amount": float(money(self.upfront_amount)),
            "upfront_subtotal": float(money(self.upfront_subtotal)),
            "upfront_tax": float(money(self.upfront_tax)),
            "recurring_gross": float(money(self.recurring_gross)),
            "recurring_base_subtotal": float(money(self.recurring_base_subtotal)),
            "financing_surcharge_amount": float(money(self.financing_surcharge_amount)),
            "tax_amount": float(money(self.tax_amount)),
            "installment_count": self.installment_count,
            "installment_amount": float(money(self.installment_amount)),
        }


def _rate(value: Optional[Decimal], default: Decimal, name: str) -> Decimal:
    rate = default if value is None else Decimal(str(value))
    if not rate.is_finite():
        raise FinancialModelError(f"{name} must be a finite percentage, got {rate}")
    if rate < 0:
        raise FinancialModelError(f"{name} cannot be negative, got {rate}")
    return rate


def effective_surcharge_pct(payment_mode: str, term_months: int, base_surcharge_pct: Decimal,
                            config: Optional[RenderConfig] = None) -> Decimal:
    """Longer billing cadences pay a smaller share of the base financing surcharge."""
    if payment_mode == PAYMENT_ANNUAL:
        return _ZERO
    if payment_mode != PAYMENT_MONTHLY:
        raise FinancialModelError(f"Unknown payment mode '{payment_mode}'")
    shares = (config or RenderConfig()).term_surcharge_shares
    share = shares.get(int(term_months))
    if share is None:
        allowed = ", ".join(str(k) for k in sorted(shares))
        raise FinancialModelError(f"Unsupported term of {term_months} months (expected one of {allowed})")
    return base_surcharge_pct * share


def resolve_installment_count(quote: QuoteRecord) -> int:
    if quote.installment_count is not None:
        count = int(quote.installment_count)
    elif quote.is_monthly:
        count = int(quote.term_months)
    else:
        count = 1
    if count <= 0:
        raise FinancialModelError(f"installment_count must be positive, got {count}")
    return count


def compute_breakdown(quote: QuoteRecord, config: Optional[RenderConfig] = None) -> FinancialBreakdown:
    """Decompose the stored total into subtotal, surcharge, tax and installment."""
    config = config or RenderConfig()

    total = quote.total_annual
    if total is None or not Decimal(str(total)).is_finite():
        raise FinancialModelError("total_annual is missing or not a finite amount")
    total = Decimal(str(total))
    upfront = Decimal(str(quote.upfront_amount or 0))
    if not upfront.is_finite():
        raise FinancialModelError("upfront_amount is not a finite amount")

    tax_pct = _rate(quote.tax_rate_pct, config.tax_rate_pct, "tax_rate_pct")
    base_pct = _rate(quote.base_surcharge_pct, config.base_surcharge_pct, "base_surcharge_pct")
    surcharge_pct = effective_surcharge_pct(quote.payment_mode, quote.term_months, base_pct, config)
    installments = resolve_installment_count(quote)

    t = tax_pct / _HUNDRED
    s = surcharge_pct / _HUNDRED

    recurring_gross = total - upfront
    base = recurring_gross / ((_ONE + s) * (_ONE + t))
    surcharge = base * s
    tax = (base + surcharge) * t

    upfront_subtotal = upfront / (_ONE + t)

    breakdown = FinancialBreakdown(
        payment_mode=quote.payment_mode,
        term_months=int(quote.term_months),
        tax_rate_pct=tax_pct,
        base_surcharge_pct=base_pct,
        effective_surcharge_pct=surcharge_pct,
        total_annual=total,
        upfront_amount=upfront,
        recurring_gross=recurring_gross,
        recurring_base_subtotal=base,
        financing_surcharge_amount=surcharge,
        tax_amount=tax,
        installment_count=installments,
        installment_amount=recurring_gross / Decimal(installments),
        upfront_subtotal=upfront_subtotal,
        upfront_tax=upfront - upfront_subtotal,
    )
    logger.debug(
        "Breakdown for quote %s: base=%s surcharge=%s%% tax=%s installments=%s",
        quote.id, money(base), surcharge_pct, money(tax), installments,
    )
    return breakdown
