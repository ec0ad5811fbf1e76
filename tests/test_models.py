from decimal import Decimal

import pytest

from quotedoc.errors import QuoteDataError
from quotedoc.models import (
    addon_from_dict, branding_from_dict, creator_from_dict, lead_from_dict, parse_modules, quote_from_dict,
)


def _row(**overrides):
    row = {
        "id": "q-1",
        "client_name": "Maria Lopez",
        "plan_name": "STARTER",
        "total_annual": 1506,
        "upfront_amount": "150",
        "company_id": "acme",
    }
    row.update(overrides)
    return row


class TestQuoteFromDict:
    def test_minimal_row(self):
        q = quote_from_dict(_row())
        assert q.id == "q-1"
        assert q.total_annual == Decimal("1506")
        assert q.upfront_amount == Decimal("150")
        assert q.payment_mode == "annual"
        assert q.term_months == 1
        assert q.tax_rate_pct is None
        assert q.addon_modules == ()

    @pytest.mark.parametrize("raw,expected", [("mensual", "monthly"), ("MONTHLY", "monthly"),
                                              ("anual", "annual"), ("yearly", "annual")])
    def test_payment_mode_aliases(self, raw, expected):
        assert quote_from_dict(_row(payment_mode=raw)).payment_mode == expected

    def test_unknown_payment_mode(self):
        with pytest.raises(QuoteDataError, match="weekly"):
            quote_from_dict(_row(payment_mode="weekly"))

    def test_missing_id(self):
        with pytest.raises(QuoteDataError):
            quote_from_dict(_row(id=None))

    def test_missing_total(self):
        with pytest.raises(QuoteDataError, match="total_annual"):
            quote_from_dict(_row(total_annual=None))

    def test_non_numeric_amount(self):
        with pytest.raises(QuoteDataError):
            quote_from_dict(_row(upfront_amount="lots"))

    def test_client_name_fallback(self):
        assert quote_from_dict(_row(client_name="  ")).client_name == "Client"

    def test_created_at_with_z_suffix(self):
        q = quote_from_dict(_row(created_at="2026-09-30T15:20:00Z"))
        assert q.created_at.year == 2026
        assert q.created_at.utcoffset().total_seconds() == 0

    def test_unparseable_created_at_is_dropped(self):
        assert quote_from_dict(_row(created_at="yesterday")).created_at is None

    def test_modules_stored_as_json_string(self):
        q = quote_from_dict(_row(addon_modules='[{"nombre": "POS", "costo_anual": 360, "costo_mensual": 36}]'))
        assert len(q.addon_modules) == 1
        assert q.addon_modules[0].name == "POS"
        assert q.addon_modules[0].annual_cost == Decimal("360")

    def test_spanish_column_names(self):
        q = quote_from_dict({
            "id": "q-2",
            "nombre_cliente": "Jose Perez",
            "empresa_cliente": "Ferreteria Norte",
            "plan_nombre": "PRO",
            "volumen_dtes": 12000,
            "costo_plan_anual": "2400",
            "costo_implementacion": "300",
            "incluir_implementacion": False,
            "modulos_adicionales": '[{"nombre": "POS", "costo_anual": 360}]',
            "servicio_whatsapp": True,
            "costo_whatsapp": "120",
            "tipo_pago": "mensual",
            "meses": 3,
            "cuotas": 3,
            "total_anual": "3180",
            "monto_anticipo": "0",
            "iva_porcentaje": "13",
            "recargo_mensual_porcentaje": "20",
        })
        assert q.client_name == "Jose Perez"
        assert q.client_company == "Ferreteria Norte"
        assert q.plan_name == "PRO"
        assert q.dte_volume == 12000
        assert q.plan_annual_cost == Decimal("2400")
        assert q.implementation_cost == Decimal("300")
        assert q.include_implementation is False
        assert q.addon_modules[0].name == "POS"
        assert q.whatsapp_service is True
        assert q.whatsapp_cost == Decimal("120")
        assert q.payment_mode == "monthly"
        assert q.term_months == 3
        assert q.installment_count == 3
        assert q.total_annual == Decimal("3180")
        assert q.tax_rate_pct == Decimal("13")
        assert q.base_surcharge_pct == Decimal("20")

    def test_english_name_wins_over_spanish(self):
        assert quote_from_dict(_row(nombre_cliente="Otro")).client_name == "Maria Lopez"

    def test_implementation_included_unless_switched_off(self):
        assert quote_from_dict(_row()).include_implementation is True
        assert quote_from_dict(_row(include_implementation="false")).include_implementation is False
        assert quote_from_dict(_row(incluir_implementacion="si")).include_implementation is True

    def test_whatsapp_off_by_default(self):
        q = quote_from_dict(_row())
        assert q.whatsapp_service is False
        assert q.whatsapp_cost == Decimal("0")


class TestModules:
    def test_parse_list_keeps_only_objects(self):
        assert parse_modules([{"name": "A"}, "junk", 3]) == [{"name": "A"}]

    def test_parse_bad_json(self):
        assert parse_modules("{not json") == []
        assert parse_modules('{"name": "A"}') == []
        assert parse_modules(None) == []

    def test_one_time_module(self):
        mod = addon_from_dict({"name": "Brand customization", "one_time_cost": 150})
        assert mod.is_one_time
        assert mod.display_amount == Decimal("150")

    def test_zero_cost_module_counts_as_one_time(self):
        assert addon_from_dict({"name": "Free onboarding"}).is_one_time

    def test_module_without_name(self):
        with pytest.raises(QuoteDataError):
            addon_from_dict({"annual_cost": 10})


class TestContexts:
    def test_branding_spanish_terms_key(self):
        b = branding_from_dict({"id": "acme", "name": "Acme", "terminos_condiciones": "Term one."})
        assert b.terms_text == "Term one."
        assert b.contact_bits == []

    def test_creator_and_lead(self):
        assert creator_from_dict(None) is None
        assert creator_from_dict({"full_name": "Ana", "email": ""}).email is None
        assert lead_from_dict({}) is None
        assert lead_from_dict({"company_name": "Override SA"}).company_name == "Override SA"
