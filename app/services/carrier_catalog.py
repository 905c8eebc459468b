"""
Carrier Catalog

Static registry of the Swedish carriers the shop ships with, their service
tiers, weight limits and eco flags. Built once at import and never mutated.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from app.utils.result import ErrorType, ServiceResult


@dataclass(frozen=True)
class CarrierService:
    """One service tier of a carrier (e.g. PostNord Express)"""
    carrier_code: str
    service_type: str
    name: str
    description: str
    estimated_days: int
    min_weight: float
    max_weight: float
    features: Tuple[str, ...] = ()
    is_eco_friendly: bool = False

    def accepts_weight(self, weight_kg: float) -> bool:
        return self.min_weight <= weight_kg <= self.max_weight

    def to_dict(self) -> Dict:
        return {
            "carrier_code": self.carrier_code,
            "service_type": self.service_type,
            "name": self.name,
            "description": self.description,
            "estimated_days": self.estimated_days,
            "min_weight": self.min_weight,
            "max_weight": self.max_weight,
            "features": list(self.features),
            "is_eco_friendly": self.is_eco_friendly,
        }


@dataclass(frozen=True)
class Carrier:
    code: str
    name: str
    tracking_prefix: str
    services: Tuple[CarrierService, ...]

    @property
    def has_eco_service(self) -> bool:
        return any(s.is_eco_friendly for s in self.services)

    def services_for_weight(self, weight_kg: float) -> List[CarrierService]:
        return [s for s in self.services if s.accepts_weight(weight_kg)]

    def to_dict(self) -> Dict:
        return {
            "code": self.code,
            "name": self.name,
            "tracking_prefix": self.tracking_prefix,
            "is_eco_friendly": self.has_eco_service,
            "services": [s.to_dict() for s in self.services],
        }


def _service(carrier_code, service_type, name, description, days, max_weight,
             features, eco=False, min_weight=0.0) -> CarrierService:
    return CarrierService(
        carrier_code=carrier_code,
        service_type=service_type,
        name=name,
        description=description,
        estimated_days=days,
        min_weight=min_weight,
        max_weight=max_weight,
        features=tuple(features),
        is_eco_friendly=eco,
    )


CARRIERS: Tuple[Carrier, ...] = (
    Carrier("POSTNORD", "PostNord", "PN", (
        _service("POSTNORD", "STANDARD", "PostNord Standard", "Standard leverans inom Sverige", 3, 10.0,
                 ["Spårning", "Försäkring upp till 1000 SEK"]),
        _service("POSTNORD", "PAKET", "PostNord Paket", "Paketleverans med spårning", 2, 35.0,
                 ["Spårning", "Försäkring", "Leveransavi"]),
        _service("POSTNORD", "EXPRESS", "PostNord Express", "Expressleverans nästa arbetsdag", 1, 35.0,
                 ["Spårning", "Försäkring", "Leveransavi", "Express"]),
    )),
    Carrier("DHL", "DHL", "DHL", (
        _service("DHL", "STANDARD", "DHL Standard", "Standard paketleverans", 2, 31.5,
                 ["Spårning", "Försäkring", "SMS-avisering"]),
        _service("DHL", "EXPRESS", "DHL Express", "Expressleverans före kl 12:00", 1, 31.5,
                 ["Spårning", "Försäkring", "SMS-avisering", "Express", "Signaturkrav"]),
    )),
    Carrier("BRING", "Bring", "BR", (
        _service("BRING", "HOME_DELIVERY", "Bring Hemleverans", "Leverans direkt hem till dörren", 2, 35.0,
                 ["Spårning", "Hemleverans", "SMS-avisering"]),
        _service("BRING", "SERVICEPOINT", "Bring Servicepoint", "Leverans till närmaste servicepunkt", 2, 35.0,
                 ["Spårning", "Servicepunkt", "SMS-avisering", "Förlängd uthämtningstid"]),
        _service("BRING", "PICKUP", "Bring Pickup", "Upphämtning vid utlämningsställe", 3, 35.0,
                 ["Spårning", "Servicepunkt", "Billigaste alternativet"]),
    )),
    Carrier("DB_SCHENKER", "DB Schenker", "DBS", (
        _service("DB_SCHENKER", "HOME_DELIVERY", "DB Schenker Home Delivery", "Hemleverans med tidsfönster", 2, 35.0,
                 ["Spårning", "Hemleverans", "Tidsfönster", "SMS-avisering"]),
        _service("DB_SCHENKER", "PARCEL_BOX", "DB Schenker Parcel Box", "Leverans till paketbox", 2, 20.0,
                 ["Spårning", "Paketbox", "24/7 tillgång"]),
        _service("DB_SCHENKER", "SERVICEPOINT", "DB Schenker Servicepoint", "Leverans till servicepunkt", 2, 35.0,
                 ["Spårning", "Servicepunkt", "Förlängd uthämtningstid"]),
    )),
    Carrier("INSTABEE", "Instabee", "IB", (
        _service("INSTABEE", "HOME_DELIVERY", "Instabee Home Delivery", "Snabb hemleverans samma dag", 0, 20.0,
                 ["Spårning", "Samma dag", "SMS-avisering", "Live-tracking"]),
        _service("INSTABEE", "EVENING_DELIVERY", "Instabee Evening Delivery", "Kvällsleverans 17-21", 0, 20.0,
                 ["Spårning", "Kvällsleverans", "SMS-avisering", "Live-tracking"]),
    )),
    Carrier("BUDBEE", "Budbee", "BD", (
        _service("BUDBEE", "HOME_DELIVERY", "Budbee Home Delivery", "Hemleverans nästa arbetsdag", 1, 20.0,
                 ["Spårning", "SMS-avisering", "Tidsfönster", "Miljövänlig"], eco=True),
        _service("BUDBEE", "BOX", "Budbee Box", "Leverans till Budbee Box", 1, 20.0,
                 ["Spårning", "SMS-avisering", "24/7 tillgång", "Miljövänlig"], eco=True),
        _service("BUDBEE", "LOCKER", "Budbee Locker", "Leverans till paketskåp", 1, 15.0,
                 ["Spårning", "SMS-avisering", "24/7 tillgång", "Billigaste alternativet", "Miljövänlig"], eco=True),
    )),
    Carrier("INSTABOX", "Instabox", "IX", (
        _service("INSTABOX", "LOCKER", "Instabox Locker", "Leverans till paketskåp", 1, 20.0,
                 ["Spårning", "SMS-avisering", "24/7 tillgång", "Billigaste alternativet"]),
        _service("INSTABOX", "SERVICEPOINT", "Instabox Servicepoint", "Leverans till servicepunkt", 1, 20.0,
                 ["Spårning", "SMS-avisering", "Förlängd uthämtningstid"]),
    )),
    Carrier("EARLY_BIRD", "Early Bird", "EB", (
        _service("EARLY_BIRD", "ECO_STANDARD", "Early Bird Eco Standard", "Klimatneutral standardleverans", 3, 20.0,
                 ["Spårning", "Klimatneutral", "Fossilfri transport", "Kompenserar CO2"], eco=True),
        _service("EARLY_BIRD", "ECO_EXPRESS", "Early Bird Eco Express", "Klimatneutral expressleverans", 1, 20.0,
                 ["Spårning", "Klimatneutral", "Fossilfri transport", "Express", "Kompenserar CO2"], eco=True),
    )),
)


class CarrierCatalog:
    """Read-only lookups over the carrier registry"""

    def __init__(self, carriers: Optional[Tuple[Carrier, ...]] = None):
        self._carriers = tuple(carriers if carriers is not None else CARRIERS)
        self._by_code = {c.code: c for c in self._carriers}

    def list_carriers(self) -> List[Carrier]:
        return list(self._carriers)

    def get_carrier(self, code: str) -> ServiceResult:
        carrier = self._by_code.get((code or "").strip().upper())
        if carrier is None:
            return ServiceResult.fail(ErrorType.NOT_FOUND, f"Carrier not found: {code}")
        return ServiceResult.ok(carrier)

    def carriers_for_weight(self, weight_kg: float) -> List[Carrier]:
        """Carriers with at least one service tier whose weight range contains weight_kg"""
        return [c for c in self._carriers if c.services_for_weight(weight_kg)]

    def eco_friendly_carriers(self) -> List[Carrier]:
        return [c for c in self._carriers if c.has_eco_service]

    def all_services(self) -> List[CarrierService]:
        return [s for c in self._carriers for s in c.services]
