"""
Shipping rate engine: eligibility, pricing rules, zones, free shipping,
ordering and the eco-only variant.
"""
from datetime import date
from decimal import Decimal

import pytest

from app.services.shipping_rate_engine import ShippingRateEngine, carbon_offset_for
from app.utils.result import ErrorType

from tests.fakes import FakeProductLookup, product

MONDAY = date(2026, 10, 19)


@pytest.fixture
def engine(products):
    return ShippingRateEngine(
        products,
        free_shipping_threshold=500,
        free_shipping_types={"STANDARD"},
        today=lambda: MONDAY,
    )


def _items(*pairs):
    return [{"product_id": pid, "quantity": qty} for pid, qty in pairs]


def _option(quote, carrier, service):
    return next(
        (o for o in quote.options
         if o.service.carrier_code == carrier and o.service.service_type == service),
        None,
    )


# ────────────────────────────────────────────
# BASIC QUOTES
# ────────────────────────────────────────────

class TestCalculate:

    def test_light_parcel_gets_every_service_tier(self, engine):
        result = engine.calculate(_items(("p-1kg", 1)), "SE", order_value=100)
        assert result.success
        quote = result.data
        assert len(quote.options) == 20
        assert quote.total_weight == 1.0
        assert quote.no_carrier_available is False

    def test_cheapest_option_is_recommended(self, engine):
        quote = engine.calculate(_items(("p-1kg", 1)), "SE", order_value=100).data
        assert quote.recommended is quote.options[0]
        assert quote.recommended.price == Decimal("39.00")
        assert (quote.recommended.service.carrier_code, quote.recommended.service.service_type) == \
            ("BUDBEE", "LOCKER")

    def test_options_sorted_by_price_then_days(self, engine):
        quote = engine.calculate(_items(("p-1kg", 1)), "SE", order_value=100).data
        keys = [(o.price, o.estimated_days) for o in quote.options]
        assert keys == sorted(keys)

    def test_weight_sums_products_times_quantity(self, engine):
        quote = engine.calculate(_items(("p-lavender", 2), ("p-diffuser", 1)), "SE").data
        assert quote.total_weight == 2.0

    def test_country_aliases(self, engine):
        for country in ("SE", "se", "Sweden", "Sverige"):
            result = engine.calculate(_items(("p-1kg", 1)), country)
            assert result.success, country
            assert result.data.country == "SE"

    def test_prices_in_sek_with_two_decimals(self, engine):
        quote = engine.calculate(_items(("p-1kg", 1)), "SE").data
        for option in quote.options:
            assert option.currency == "SEK"
            assert option.price == option.price.quantize(Decimal("0.01"))

    def test_delivery_date_skips_weekend(self, engine):
        quote = engine.calculate(_items(("p-1kg", 1)), "SE").data
        postnord = _option(quote, "POSTNORD", "STANDARD")
        assert postnord.estimated_days == 3
        assert postnord.estimated_delivery_date == date(2026, 10, 22)
        instabee = _option(quote, "INSTABEE", "HOME_DELIVERY")
        assert instabee.estimated_delivery_date == MONDAY


# ────────────────────────────────────────────
# WEIGHT LIMITS AND WEIGHT-BUCKET PRICING
# ────────────────────────────────────────────

class TestWeight:

    def test_over_limit_parcel_is_success_with_no_options(self, engine):
        result = engine.calculate(_items(("p-huge", 1)), "SE")
        assert result.success
        assert result.data.options == []
        assert result.data.recommended is None
        assert result.data.no_carrier_available is True

    def test_bucket_rule_adds_per_kg_above_bucket_start(self, engine):
        quote = engine.calculate(_items(("p-1kg", 3)), "SE").data
        # PostNord Standard 2-5 kg: 59 + 5/kg over 2 kg
        assert _option(quote, "POSTNORD", "STANDARD").price == Decimal("64.00")
        # DHL Standard 0-5 kg flat 69
        assert _option(quote, "DHL", "STANDARD").price == Decimal("69.00")

    def test_bucket_boundary_uses_higher_bucket(self, engine):
        quote = engine.calculate(_items(("p-1kg", 2)), "SE").data
        assert _option(quote, "POSTNORD", "STANDARD").price == Decimal("59.00")

    def test_heavy_parcel_pricing_and_tier_exclusion(self, engine):
        quote = engine.calculate(_items(("p-heavy", 1)), "SE").data
        assert _option(quote, "POSTNORD", "STANDARD") is None  # max 10 kg
        assert _option(quote, "DHL", "STANDARD").price == Decimal("131.00")
        assert _option(quote, "BRING", "HOME_DELIVERY").price == Decimal("134.00")
        assert _option(quote, "BUDBEE", "BOX").price == Decimal("49.00")

    def test_unknown_product_counts_as_zero_kg(self):
        engine = ShippingRateEngine(FakeProductLookup(), today=lambda: MONDAY)
        result = engine.calculate(_items(("p-missing", 5)), "SE")
        assert result.success
        assert result.data.total_weight == 0.0
        assert len(result.data.options) == 20

    def test_lookup_exception_counts_as_zero_kg(self):
        lookup = FakeProductLookup({"p-ok": product("Oil", 2.0)}, broken={"p-broken"})
        engine = ShippingRateEngine(lookup, today=lambda: MONDAY)
        result = engine.calculate(_items(("p-ok", 1), ("p-broken", 3)), "SE")
        assert result.success
        assert result.data.total_weight == 2.0


# ────────────────────────────────────────────
# FREE SHIPPING
# ────────────────────────────────────────────

class TestFreeShipping:

    def test_standard_tiers_free_above_threshold(self, engine):
        quote = engine.calculate(_items(("p-1kg", 1)), "SE", order_value=600).data
        for option in quote.options:
            if option.service.service_type == "STANDARD":
                assert option.price == Decimal("0")
                assert option.free_shipping_applied
            else:
                assert option.price > 0
                assert not option.free_shipping_applied

    def test_express_and_eco_stay_paid(self, engine):
        quote = engine.calculate(_items(("p-1kg", 1)), "SE", order_value=600).data
        assert _option(quote, "POSTNORD", "EXPRESS").price == Decimal("89.00")
        assert _option(quote, "EARLY_BIRD", "ECO_STANDARD").price == Decimal("59.00")

    def test_threshold_is_inclusive(self, engine):
        quote = engine.calculate(_items(("p-1kg", 1)), "SE", order_value=500).data
        assert _option(quote, "POSTNORD", "STANDARD").price == Decimal("0")

    def test_below_threshold_pays(self, engine):
        quote = engine.calculate(_items(("p-1kg", 1)), "SE", order_value=499.99).data
        assert _option(quote, "POSTNORD", "STANDARD").price == Decimal("49.00")

    def test_free_standard_tie_broken_by_delivery_days(self, engine):
        quote = engine.calculate(_items(("p-1kg", 1)), "SE", order_value=600).data
        # PostNord Standard (3d) and DHL Standard (2d) are both free
        assert quote.recommended.service.carrier_code == "DHL"

    def test_configurable_free_tiers(self, products):
        engine = ShippingRateEngine(
            products, free_shipping_threshold=500,
            free_shipping_types={"STANDARD", "SERVICEPOINT"}, today=lambda: MONDAY,
        )
        quote = engine.calculate(_items(("p-1kg", 1)), "SE", order_value=800).data
        assert _option(quote, "BRING", "SERVICEPOINT").price == Decimal("0")


# ────────────────────────────────────────────
# SWEDISH ZONES
# ────────────────────────────────────────────

class TestZones:

    def test_stockholm_has_no_surcharge(self, engine):
        quote = engine.calculate(_items(("p-1kg", 1)), "SE", postal_code="114 55").data
        option = _option(quote, "POSTNORD", "STANDARD")
        assert option.price == Decimal("49.00")
        assert option.estimated_days == 3
        assert quote.zone.name == "Stockholm"

    def test_uppsala_surcharge_and_delay(self, engine):
        quote = engine.calculate(_items(("p-1kg", 1)), "SE", postal_code="753 20").data
        option = _option(quote, "POSTNORD", "STANDARD")
        assert option.price == Decimal("53.90")
        assert option.estimated_days == 4
        assert option.zone_multiplier == 1.1

    def test_norrland_surcharge_delay_and_no_instabee(self, engine):
        quote = engine.calculate(_items(("p-1kg", 1)), "SE", postal_code="951 00").data
        option = _option(quote, "POSTNORD", "STANDARD")
        assert option.price == Decimal("63.70")
        assert option.estimated_days == 5
        assert all(o.service.carrier_code != "INSTABEE" for o in quote.options)
        assert len(quote.options) == 18

    def test_free_shipping_applies_after_zone_multiplier(self, engine):
        quote = engine.calculate(_items(("p-1kg", 1)), "SE", postal_code="951 00", order_value=700).data
        assert _option(quote, "POSTNORD", "STANDARD").price == Decimal("0")
        assert _option(quote, "POSTNORD", "EXPRESS").price == Decimal("115.70")

    def test_no_postal_code_means_no_zone(self, engine):
        quote = engine.calculate(_items(("p-1kg", 1)), "SE").data
        assert quote.zone is None
        assert all(o.zone_multiplier is None for o in quote.options)


# ────────────────────────────────────────────
# VALIDATION
# ────────────────────────────────────────────

class TestValidation:

    def test_unsupported_country(self, engine):
        result = engine.calculate(_items(("p-1kg", 1)), "Norway")
        assert not result.success
        assert result.error_type == ErrorType.UNSUPPORTED_DESTINATION
        assert result.data is None

    def test_malformed_postal_code(self, engine):
        result = engine.calculate(_items(("p-1kg", 1)), "SE", postal_code="12")
        assert result.error_type == ErrorType.VALIDATION

    @pytest.mark.parametrize("items", [
        [],
        [{"product_id": "p-1kg", "quantity": 0}],
        [{"product_id": "p-1kg", "quantity": -1}],
        [{"product_id": "p-1kg", "quantity": "2"}],
        [{"product_id": "p-1kg", "quantity": 1.5}],
        [{"product_id": "", "quantity": 1}],
    ])
    def test_bad_items(self, engine, items):
        result = engine.calculate(items, "SE")
        assert not result.success
        assert result.error_type == ErrorType.VALIDATION

    @pytest.mark.parametrize("order_value", [float("nan"), float("inf"), "NaN", -1])
    def test_bad_order_value(self, engine, order_value):
        result = engine.calculate(_items(("p-1kg", 1)), "SE", order_value=order_value)
        assert result.error_type == ErrorType.VALIDATION
        assert "Order value" in result.error


# ────────────────────────────────────────────
# ECO ONLY
# ────────────────────────────────────────────

class TestEcoOnly:

    def test_only_eco_services(self, engine):
        quote = engine.calculate_eco_only(_items(("p-1kg", 1)), "SE").data
        assert len(quote.options) == 5
        assert all(o.service.is_eco_friendly for o in quote.options)
        assert quote.recommended.service.service_type == "LOCKER"

    def test_carbon_offset_estimate(self, engine):
        quote = engine.calculate_eco_only(_items(("p-1kg", 3)), "SE").data
        assert quote.carbon_offset == {"co2_kg": 1.5, "offset_cost": 3.0, "currency": "SEK"}

    def test_no_eco_carrier_for_heavy_parcel(self, engine):
        result = engine.calculate_eco_only(_items(("p-heavy", 2)), "SE")
        assert result.success
        assert result.data.no_carrier_available

    def test_regular_quote_has_no_offset(self, engine):
        assert engine.calculate(_items(("p-1kg", 1)), "SE").data.carbon_offset is None


def test_carbon_offset_rounds_to_two_places():
    assert carbon_offset_for(1.333) == {"co2_kg": 0.67, "offset_cost": 1.34, "currency": "SEK"}


def test_quote_serializes(engine):
    data = engine.calculate(_items(("p-1kg", 1)), "SE", postal_code="114 55").data.to_dict()
    assert data["recommended"]["carrier_code"] == "BUDBEE"
    assert data["recommended"]["estimated_delivery_date"] == "2026-10-20"
    assert data["zone"]["zone"] == "Stockholm"
    assert data["no_carrier_available"] is False
