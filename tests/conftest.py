from datetime import datetime
from decimal import Decimal

import pytest

from quotedoc.models import AddonModule, CompanyBranding, CreatorContext, QuoteRecord
from quotedoc.settings import RenderConfig


def make_quote(**overrides) -> QuoteRecord:
    fields = dict(
        id="3f9a1c2e-7b44-4c1d-9e0a-51d2b7c8e901",
        client_name="Maria Lopez",
        client_company="Distribuidora Central",
        company_id="acme",
        created_at=datetime(2026, 9, 30, 15, 20),
        plan_name="STARTER",
        dte_volume=3000,
        plan_annual_cost=Decimal("1200"),
        implementation_cost=Decimal("150"),
        addon_modules=(),
        payment_mode="annual",
        term_months=1,
        total_annual=Decimal("1506"),
        upfront_amount=Decimal("150"),
        tax_rate_pct=Decimal("13"),
        base_surcharge_pct=Decimal("20"),
    )
    fields.update(overrides)
    return QuoteRecord(**fields)


def make_modules(count: int, description: str = None):
    return tuple(
        AddonModule(name=f"Module {i:02d}", annual_cost=Decimal(100 + i), monthly_cost=Decimal(10),
                    description=description)
        for i in range(count)
    )


TERMS = (
    "**Validity.** This proposal is valid for 30 days from its issue date.\n\n"
    "**Payment.** The upfront amount is due before activation.\n\n"
    "**Support.** Base technical support is included with every license plan."
)


@pytest.fixture
def quote():
    return make_quote()


@pytest.fixture
def branding():
    return CompanyBranding(
        id="acme",
        name="Acme Billing Solutions",
        address="Col. Escalon, San Salvador",
        phone="+503 2200 0000",
        website="www.acme-billing.example",
        email="sales@acme-billing.example",
        terms_text=TERMS,
    )


@pytest.fixture
def creator():
    return CreatorContext(full_name="Carlos Rivera", email="carlos@acme-billing.example")


@pytest.fixture
def config():
    return RenderConfig()


def char_measure(text: str, font_size: float) -> float:
    """One unit per character, independent of font size."""
    return float(len(text))
