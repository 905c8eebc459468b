"""
Swedish postal zones and delivery calendar

Zones are derived from the first two digits of the postal code. Remote zones
cost more and take longer; Norrland has no same-day courier coverage.
"""
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import FrozenSet, Optional

from app.utils.result import ErrorType, ServiceResult

POSTAL_CODE_PATTERN = re.compile(r"^\d{3}\s?\d{2}$")

# (month, day, name)
SWEDISH_FIXED_HOLIDAYS = (
    (1, 1, "Nyårsdagen"),
    (1, 6, "Trettondedag jul"),
    (5, 1, "Första maj"),
    (6, 6, "Sveriges nationaldag"),
    (12, 24, "Julafton"),
    (12, 25, "Juldagen"),
    (12, 26, "Annandag jul"),
)


@dataclass(frozen=True)
class ZoneInfo:
    name: str
    multiplier: float
    delivery_delay_days: int
    excluded_carriers: FrozenSet[str] = frozenset()

    def to_dict(self):
        return {
            "zone": self.name,
            "multiplier": self.multiplier,
            "delivery_delay_days": self.delivery_delay_days,
            "excluded_carriers": sorted(self.excluded_carriers),
        }


STOCKHOLM = ZoneInfo("Stockholm", 1.0, 0)
GOTEBORG = ZoneInfo("Göteborg", 1.0, 0)
MALMO = ZoneInfo("Malmö", 1.0, 0)
UPPSALA = ZoneInfo("Uppsala", 1.1, 1)
NORRLAND = ZoneInfo("Norrland", 1.3, 2, frozenset({"INSTABEE"}))
OVRIGA_SVERIGE = ZoneInfo("Övriga Sverige", 1.15, 1)


def normalize_postal_code(postal_code: str) -> str:
    """Strip whitespace: '114 55' -> '11455'"""
    return re.sub(r"\s+", "", postal_code or "")


def zone_for_postal_code(postal_code: str) -> ZoneInfo:
    """Zone for a (valid) postal code, by its two-digit prefix"""
    prefix = int(normalize_postal_code(postal_code)[:2])

    # Uppsala's prefix sits inside the Stockholm range, check it first
    if prefix == 75:
        return UPPSALA
    if 10 <= prefix <= 19 or 76 <= prefix <= 77:
        return STOCKHOLM
    if 40 <= prefix <= 44 or 50 <= prefix <= 54:
        return GOTEBORG
    if 20 <= prefix <= 28:
        return MALMO
    if 80 <= prefix <= 98:
        return NORRLAND
    return OVRIGA_SVERIGE


def validate_postal_code(postal_code: Optional[str]) -> ServiceResult:
    """Check format (five digits, optional space after the third) and resolve zone"""
    if not postal_code or not POSTAL_CODE_PATTERN.match(postal_code.strip()):
        return ServiceResult.fail(
            ErrorType.VALIDATION,
            "Invalid Swedish postal code format. Expected: XXX XX or XXXXX"
        )
    return ServiceResult.ok(zone_for_postal_code(postal_code.strip()))


def zone_multiplier(postal_code: str) -> float:
    return zone_for_postal_code(postal_code).multiplier


def is_swedish_holiday(day: date) -> bool:
    return any(day.month == m and day.day == d for m, d, _ in SWEDISH_FIXED_HOLIDAYS)


def is_business_day(day: date) -> bool:
    return day.weekday() < 5 and not is_swedish_holiday(day)


def estimate_delivery_date(days: int, start: Optional[date] = None) -> date:
    """
    start + days, then rolled forward until it lands on a business day.

    Same-day services (days=0) still roll past weekends and holidays.
    """
    delivery = (start or date.today()) + timedelta(days=max(days, 0))
    while not is_business_day(delivery):
        delivery += timedelta(days=1)
    return delivery
