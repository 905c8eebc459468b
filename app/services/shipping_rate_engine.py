"""
Shipping Rate Engine

Turns a cart (product ids + quantities), a destination and an order value into
a ranked list of shipping options across every carrier service tier that can
take the parcel.

Pipeline:
1. Total parcel weight from product weights
2. Service tiers whose weight range contains the parcel
3. Base price from the country rate table (or a weight-bucket rule)
4. Swedish zone multiplier + delivery delay from the postal code
5. Free shipping on eligible tiers above the threshold
6. Sort by price, then delivery days; first option is recommended
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set

from app.config import get_settings
from app.services.carrier_catalog import CarrierCatalog, CarrierService
from app.services.swedish_zones import ZoneInfo, estimate_delivery_date, validate_postal_code
from app.utils.helpers import round_money, to_decimal
from app.utils.logger import log
from app.utils.result import ErrorType, ServiceResult

CURRENCY = "SEK"

COUNTRY_ALIASES = {
    "SE": "SE",
    "SWEDEN": "SE",
    "SVERIGE": "SE",
}

# Flat price per (carrier, service) for each supported destination country
RATE_TABLES: Dict[str, Dict[tuple, Decimal]] = {
    "SE": {
        ("POSTNORD", "STANDARD"): Decimal("49"),
        ("POSTNORD", "PAKET"): Decimal("69"),
        ("POSTNORD", "EXPRESS"): Decimal("89"),
        ("DHL", "STANDARD"): Decimal("69"),
        ("DHL", "EXPRESS"): Decimal("119"),
        ("BRING", "HOME_DELIVERY"): Decimal("79"),
        ("BRING", "SERVICEPOINT"): Decimal("59"),
        ("BRING", "PICKUP"): Decimal("49"),
        ("DB_SCHENKER", "HOME_DELIVERY"): Decimal("89"),
        ("DB_SCHENKER", "PARCEL_BOX"): Decimal("59"),
        ("DB_SCHENKER", "SERVICEPOINT"): Decimal("49"),
        ("INSTABEE", "HOME_DELIVERY"): Decimal("99"),
        ("INSTABEE", "EVENING_DELIVERY"): Decimal("109"),
        ("BUDBEE", "HOME_DELIVERY"): Decimal("69"),
        ("BUDBEE", "BOX"): Decimal("49"),
        ("BUDBEE", "LOCKER"): Decimal("39"),
        ("INSTABOX", "LOCKER"): Decimal("39"),
        ("INSTABOX", "SERVICEPOINT"): Decimal("49"),
        ("EARLY_BIRD", "ECO_STANDARD"): Decimal("59"),
        ("EARLY_BIRD", "ECO_EXPRESS"): Decimal("89"),
    },
}


@dataclass(frozen=True)
class WeightPricingRule:
    weight_from: Decimal
    weight_to: Decimal
    base_price: Decimal
    price_per_kg: Decimal

    def matches(self, weight: Decimal) -> bool:
        return self.weight_from <= weight <= self.weight_to

    def price_for(self, weight: Decimal) -> Decimal:
        return self.base_price + self.price_per_kg * (weight - self.weight_from)


def _rules(*rows) -> List[WeightPricingRule]:
    return [WeightPricingRule(*(Decimal(str(v)) for v in row)) for row in rows]


# (carrier, service, country) -> weight buckets overriding the flat rate
WEIGHT_PRICING_RULES: Dict[tuple, List[WeightPricingRule]] = {
    ("POSTNORD", "STANDARD", "SE"): _rules((0, 2, 49, 0), (2, 5, 59, 5), (5, 10, 69, 7)),
    ("DHL", "STANDARD", "SE"): _rules((0, 5, 69, 0), (5, 15, 89, 6), (15, 31.5, 119, 8)),
    ("BRING", "HOME_DELIVERY", "SE"): _rules((0, 5, 79, 0), (5, 15, 99, 5), (15, 35, 129, 7)),
}

# Carbon offset estimate for eco-only quotes
CO2_KG_PER_KG_SHIPPED = Decimal("0.5")
OFFSET_COST_PER_KG_CO2 = Decimal("2")


@dataclass
class ShippingOption:
    service: CarrierService
    price: Decimal
    base_price: Decimal
    estimated_days: int
    estimated_delivery_date: date
    currency: str = CURRENCY
    free_shipping_applied: bool = False
    zone_multiplier: Optional[float] = None
    zone: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "carrier_code": self.service.carrier_code,
            "service_type": self.service.service_type,
            "name": self.service.name,
            "description": self.service.description,
            "features": list(self.service.features),
            "is_eco_friendly": self.service.is_eco_friendly,
            "price": float(self.price),
            "base_price": float(self.base_price),
            "currency": self.currency,
            "estimated_days": self.estimated_days,
            "estimated_delivery_date": self.estimated_delivery_date.isoformat(),
            "free_shipping_applied": self.free_shipping_applied,
            "zone_multiplier": self.zone_multiplier,
            "zone": self.zone,
        }


@dataclass
class ShippingQuote:
    options: List[ShippingOption]
    total_weight: float
    free_shipping_threshold: float
    country: str
    zone: Optional[ZoneInfo] = None
    carbon_offset: Optional[Dict[str, float]] = None

    @property
    def recommended(self) -> Optional[ShippingOption]:
        return self.options[0] if self.options else None

    @property
    def no_carrier_available(self) -> bool:
        return not self.options

    def to_dict(self) -> Dict[str, Any]:
        return {
            "options": [o.to_dict() for o in self.options],
            "recommended": self.recommended.to_dict() if self.recommended else None,
            "no_carrier_available": self.no_carrier_available,
            "total_weight": self.total_weight,
            "free_shipping_threshold": self.free_shipping_threshold,
            "country": self.country,
            "zone": self.zone.to_dict() if self.zone else None,
            "carbon_offset": self.carbon_offset,
        }


def normalize_country(country: Optional[str]) -> Optional[str]:
    return COUNTRY_ALIASES.get((country or "").strip().upper())


def carbon_offset_for(weight_kg: Any) -> Dict[str, float]:
    co2_kg = round_money(to_decimal(weight_kg) * CO2_KG_PER_KG_SHIPPED)
    cost = round_money(co2_kg * OFFSET_COST_PER_KG_CO2)
    return {"co2_kg": float(co2_kg), "offset_cost": float(cost), "currency": CURRENCY}


class ShippingRateEngine:
    """Multi-carrier shipping quotes for a cart"""

    def __init__(
        self,
        product_lookup,
        catalog: Optional[CarrierCatalog] = None,
        free_shipping_threshold: Optional[float] = None,
        free_shipping_types: Optional[Iterable[str]] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        settings = get_settings()
        self.product_lookup = product_lookup
        self.catalog = catalog or CarrierCatalog()
        self.free_shipping_threshold = to_decimal(
            free_shipping_threshold if free_shipping_threshold is not None
            else settings.free_shipping_threshold
        )
        self.free_shipping_types: Set[str] = (
            {t.upper() for t in free_shipping_types} if free_shipping_types is not None
            else settings.free_shipping_types
        )
        self.today = today or date.today

    def calculate(
        self,
        items: List[Mapping[str, Any]],
        destination_country: str,
        postal_code: Optional[str] = None,
        order_value: Any = 0,
    ) -> ServiceResult:
        return self._quote(items, destination_country, postal_code, order_value, eco_only=False)

    def calculate_eco_only(
        self,
        items: List[Mapping[str, Any]],
        destination_country: str,
        postal_code: Optional[str] = None,
        order_value: Any = 0,
    ) -> ServiceResult:
        return self._quote(items, destination_country, postal_code, order_value, eco_only=True)

    def _quote(self, items, destination_country, postal_code, order_value, eco_only: bool) -> ServiceResult:
        validation = self._validate_items(items)
        if validation is not None:
            return validation

        order_total = to_decimal(order_value)
        if not order_total.is_finite() or order_total < 0:
            return ServiceResult.fail(ErrorType.VALIDATION, "Order value must be a non-negative amount")

        country = normalize_country(destination_country)
        if country is None or country not in RATE_TABLES:
            return ServiceResult.fail(
                ErrorType.UNSUPPORTED_DESTINATION,
                f"Shipping to {destination_country} is not supported"
            )

        zone = None
        if country == "SE" and postal_code:
            zone_result = validate_postal_code(postal_code)
            if not zone_result.success:
                return zone_result
            zone = zone_result.data

        weight = self._total_weight(items)
        free_shipping = order_total >= self.free_shipping_threshold

        options = []
        for carrier in self.catalog.carriers_for_weight(float(weight)):
            if zone and carrier.code in zone.excluded_carriers:
                continue
            for service in carrier.services_for_weight(float(weight)):
                if eco_only and not service.is_eco_friendly:
                    continue
                option = self._price_option(service, country, weight, zone, free_shipping)
                if option is not None:
                    options.append(option)

        options.sort(key=lambda o: (o.price, o.estimated_days))

        if not options:
            log.warning(
                f"No carrier available for {float(weight)} kg to {country}"
                f"{' ' + postal_code if postal_code else ''}"
            )

        quote = ShippingQuote(
            options=options,
            total_weight=float(weight),
            free_shipping_threshold=float(self.free_shipping_threshold),
            country=country,
            zone=zone,
            carbon_offset=carbon_offset_for(weight) if eco_only else None,
        )
        return ServiceResult.ok(quote)

    def _validate_items(self, items) -> Optional[ServiceResult]:
        if not items:
            return ServiceResult.fail(ErrorType.VALIDATION, "Cart items are required")

        for item in items:
            product_id = item.get("product_id")
            quantity = item.get("quantity")
            if not product_id:
                return ServiceResult.fail(ErrorType.VALIDATION, "Each item needs a product_id")
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                return ServiceResult.fail(
                    ErrorType.VALIDATION,
                    f"Invalid quantity for product {product_id}: {quantity}"
                )
        return None

    def _total_weight(self, items) -> Decimal:
        """Sum of product weight x quantity; unresolvable products count as 0 kg"""
        total = Decimal("0")
        for item in items:
            product_id = item["product_id"]
            try:
                result = self.product_lookup.get_product(product_id)
            except Exception as e:
                log.warning(f"Product lookup raised for {product_id}, counting 0 kg: {e}")
                continue

            if not result.success:
                log.warning(f"Product {product_id} not resolved ({result.error}), counting 0 kg")
                continue

            weight = to_decimal(getattr(result.data, "weight", None))
            total += weight * item["quantity"]
        return total

    def _base_price(self, service: CarrierService, country: str, weight: Decimal) -> Optional[Decimal]:
        rules = WEIGHT_PRICING_RULES.get((service.carrier_code, service.service_type, country))
        if rules:
            matching = [r for r in rules if r.matches(weight)]
            if matching:
                rule = max(matching, key=lambda r: r.weight_from)
                return rule.price_for(weight)
        return RATE_TABLES[country].get((service.carrier_code, service.service_type))

    def _price_option(
        self,
        service: CarrierService,
        country: str,
        weight: Decimal,
        zone: Optional[ZoneInfo],
        free_shipping: bool,
    ) -> Optional[ShippingOption]:
        base_price = self._base_price(service, country, weight)
        if base_price is None:
            log.debug(f"No {country} rate for {service.carrier_code} {service.service_type}")
            return None

        price = base_price
        days = service.estimated_days
        if zone:
            price = price * to_decimal(zone.multiplier)
            days += zone.delivery_delay_days

        free_applied = free_shipping and service.service_type in self.free_shipping_types
        if free_applied:
            price = Decimal("0")

        return ShippingOption(
            service=service,
            price=round_money(price),
            base_price=round_money(base_price),
            estimated_days=days,
            estimated_delivery_date=estimate_delivery_date(days, self.today()),
            free_shipping_applied=free_applied,
            zone_multiplier=zone.multiplier if zone else None,
            zone=zone.name if zone else None,
        )
