"""
Fare Engine
===========

Formula
-------
Subtotal = (Base + Distance x Per_KM + Duration x Per_Minute)
           x Load_Multiplier x Time_Multiplier + Helper_Charges

Total = max(Subtotal, Minimum_Charge)

* **Load_Multiplier** comes from the load type (1.0 when unlisted).
* **Time_Multiplier** is the *largest* applicable factor among peak hours,
  weekend and night.  Factors are never compounded.
* Money is rounded half-up to whole currency units.

The engine is built from an immutable ``PricingConfig`` snapshot, so a quote
never observes a configuration that is half-way through an admin update.

Complexity: O(1) per quote.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, tzinfo
from typing import Any, Mapping

from .entities import Coordinate
from .enums import LoadType, VehicleType
from .errors import BusinessRuleError, InvalidPricingConfig, UnknownVehicleType
from .geo import distance_km, estimated_duration_minutes, round_half_up

PEAK_HOURS = (range(7, 10), range(17, 20))
WEEKEND_DAYS = (5, 6)  # Saturday, Sunday


# ── Configuration ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class VehicleRates:
    base: float
    per_km: float
    per_minute: float


@dataclass(frozen=True)
class TimeMultipliers:
    peak_hours: float = 1.3
    weekend: float = 1.2
    night: float = 1.1


@dataclass(frozen=True)
class PricingConfig:
    """Whole-config snapshot.  Never mutated; updates build a new instance."""

    base_rates: Mapping[str, VehicleRates]
    load_multipliers: Mapping[str, float]
    time_multipliers: TimeMultipliers = field(default_factory=TimeMultipliers)
    helper_rate: float = 300
    minimum_charge: float = 800

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_rates": {k: asdict(v) for k, v in self.base_rates.items()},
            "load_multipliers": dict(self.load_multipliers),
            "time_multipliers": asdict(self.time_multipliers),
            "helper_rate": self.helper_rate,
            "minimum_charge": self.minimum_charge,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PricingConfig:
        return cls(
            base_rates={
                k: VehicleRates(**v) for k, v in data["base_rates"].items()
            },
            load_multipliers=dict(data["load_multipliers"]),
            time_multipliers=TimeMultipliers(**data["time_multipliers"]),
            helper_rate=data["helper_rate"],
            minimum_charge=data["minimum_charge"],
        )


def default_pricing_config() -> PricingConfig:
    return PricingConfig(
        base_rates={
            VehicleType.PICKUP.value: VehicleRates(500, 50, 5),
            VehicleType.SMALL_TRUCK.value: VehicleRates(800, 70, 8),
            VehicleType.MEDIUM_TRUCK.value: VehicleRates(1200, 90, 12),
            VehicleType.LARGE_TRUCK.value: VehicleRates(1800, 120, 18),
            VehicleType.VAN.value: VehicleRates(700, 60, 7),
        },
        load_multipliers={
            LoadType.FURNITURE.value: 1.2,
            LoadType.APPLIANCES.value: 1.3,
            LoadType.ELECTRONICS.value: 1.1,
            LoadType.FRAGILE.value: 1.4,
            LoadType.BOXES.value: 1.0,
            LoadType.OTHER.value: 1.1,
        },
        time_multipliers=TimeMultipliers(peak_hours=1.3, weekend=1.2, night=1.1),
        helper_rate=300,
        minimum_charge=800,
    )


def merge_pricing_config(
    current: PricingConfig, patch: Mapping[str, Any]
) -> PricingConfig:
    """
    Apply a partial update on top of *current* and return a new config.

    Vehicle rates are replaced per vehicle type, multipliers per key; scalar
    fields only when present.  Raises ``InvalidPricingConfig`` on bad input.
    """
    vehicle_types = {v.value for v in VehicleType}
    load_types = {lt.value for lt in LoadType}

    base_rates = dict(current.base_rates)
    for vehicle_type, rates in (patch.get("base_rates") or {}).items():
        if vehicle_type not in vehicle_types:
            raise InvalidPricingConfig(f"Unknown vehicle type: {vehicle_type}")
        for name in ("base", "per_km", "per_minute"):
            value = rates.get(name) if isinstance(rates, Mapping) else None
            if value is None or value < 0:
                raise InvalidPricingConfig(f"Invalid {name} rate for {vehicle_type}")
        base_rates[vehicle_type] = VehicleRates(
            rates["base"], rates["per_km"], rates["per_minute"]
        )

    load_multipliers = dict(current.load_multipliers)
    for load_type, value in (patch.get("load_multipliers") or {}).items():
        if load_type not in load_types:
            raise InvalidPricingConfig(f"Unknown load type: {load_type}")
        if value is None or not 0.5 <= value <= 3.0:
            raise InvalidPricingConfig(
                f"Invalid load multiplier for {load_type}. Must be between 0.5 and 3.0"
            )
        load_multipliers[load_type] = value

    time_multipliers = asdict(current.time_multipliers)
    for name, value in (patch.get("time_multipliers") or {}).items():
        if name not in time_multipliers:
            raise InvalidPricingConfig(f"Unknown time multiplier: {name}")
        if value is None or value <= 0:
            raise InvalidPricingConfig(f"Invalid time multiplier for {name}")
        time_multipliers[name] = value

    helper_rate = patch.get("helper_rate", current.helper_rate)
    if helper_rate is None or helper_rate < 0:
        raise InvalidPricingConfig("Helper rate cannot be negative")

    minimum_charge = patch.get("minimum_charge", current.minimum_charge)
    if minimum_charge is None or minimum_charge < 0:
        raise InvalidPricingConfig("Minimum charge cannot be negative")

    return PricingConfig(
        base_rates=base_rates,
        load_multipliers=load_multipliers,
        time_multipliers=TimeMultipliers(**time_multipliers),
        helper_rate=helper_rate,
        minimum_charge=minimum_charge,
    )


# ── Quote ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PricingQuote:
    distance_km: float
    duration_min: int
    base_price: int
    distance_price: int
    time_price: int
    load_multiplier: float
    time_multiplier: float
    helper_charges: int
    subtotal: int
    total_price: int
    currency: str
    breakdown: Mapping[str, str]

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["breakdown"] = dict(self.breakdown)
        return data


def _money(value: float) -> int:
    return int(round_half_up(value))


def _value(member: Any) -> str:
    return member.value if hasattr(member, "value") else str(member)


# ── Engine facade ─────────────────────────────────────────────────────


class PricingEngine:
    """High-level API used by the booking service and the estimate endpoint."""

    def __init__(
        self,
        config: PricingConfig,
        tz: tzinfo,
        currency: str = "KES",
        average_speed_kmh: float = 25.0,
        minimum_duration_minutes: int = 30,
    ):
        self.config = config
        self.tz = tz
        self.currency = currency
        self.average_speed_kmh = average_speed_kmh
        self.minimum_duration_minutes = minimum_duration_minutes

    def time_multiplier(self, pickup_datetime: datetime) -> float:
        """Largest factor that applies to the local pickup time, else 1.0."""
        if pickup_datetime.tzinfo is None:
            local = pickup_datetime
        else:
            local = pickup_datetime.astimezone(self.tz)
        hour, weekday = local.hour, local.weekday()
        factors = self.config.time_multipliers

        multiplier = 1.0
        if any(hour in window for window in PEAK_HOURS):
            multiplier = max(multiplier, factors.peak_hours)
        if weekday in WEEKEND_DAYS:
            multiplier = max(multiplier, factors.weekend)
        if hour >= 22 or hour <= 6:
            multiplier = max(multiplier, factors.night)
        return multiplier

    def quote(
        self,
        pickup: Coordinate,
        dropoff: Coordinate,
        vehicle_type: VehicleType | str,
        load_type: LoadType | str,
        pickup_datetime: datetime,
        requires_helpers: bool = False,
        helpers_count: int = 0,
    ) -> PricingQuote:
        vehicle_key, load_key = _value(vehicle_type), _value(load_type)

        distance = round_half_up(distance_km(pickup, dropoff), 2)
        duration = estimated_duration_minutes(
            distance, self.average_speed_kmh, self.minimum_duration_minutes
        )

        rates = self.config.base_rates.get(vehicle_key)
        if rates is None:
            raise UnknownVehicleType(f"Invalid vehicle type: {vehicle_key}")

        base_price = rates.base
        distance_price = distance * rates.per_km
        time_price = duration * rates.per_minute

        load_multiplier = self.config.load_multipliers.get(load_key, 1.0)
        time_multiplier = self.time_multiplier(pickup_datetime)

        helper_charges = 0.0
        if requires_helpers and helpers_count > 0:
            helper_charges = helpers_count * self.config.helper_rate

        subtotal = (
            (base_price + distance_price + time_price)
            * load_multiplier
            * time_multiplier
        ) + helper_charges
        total = max(subtotal, self.config.minimum_charge)

        return PricingQuote(
            distance_km=distance,
            duration_min=duration,
            base_price=_money(base_price),
            distance_price=_money(distance_price),
            time_price=_money(time_price),
            load_multiplier=load_multiplier,
            time_multiplier=time_multiplier,
            helper_charges=_money(helper_charges),
            subtotal=_money(subtotal),
            total_price=_money(total),
            currency=self.currency,
            breakdown=self._breakdown(
                vehicle_key, load_key, rates, distance, duration,
                distance_price, time_price, load_multiplier, time_multiplier,
                requires_helpers, helpers_count, helper_charges,
            ),
        )

    def quote_all_vehicle_types(
        self,
        pickup: Coordinate,
        dropoff: Coordinate,
        load_type: LoadType | str,
        pickup_datetime: datetime,
        requires_helpers: bool = False,
        helpers_count: int = 0,
    ) -> dict[str, PricingQuote | BusinessRuleError]:
        """Quote every vehicle type; a failing type yields its error, not a raise."""
        estimates: dict[str, PricingQuote | BusinessRuleError] = {}
        for vehicle_type in VehicleType:
            try:
                estimates[vehicle_type.value] = self.quote(
                    pickup, dropoff, vehicle_type, load_type, pickup_datetime,
                    requires_helpers, helpers_count,
                )
            except BusinessRuleError as exc:
                estimates[vehicle_type.value] = exc
        return estimates

    def _breakdown(
        self,
        vehicle_key: str,
        load_key: str,
        rates: VehicleRates,
        distance: float,
        duration: int,
        distance_price: float,
        time_price: float,
        load_multiplier: float,
        time_multiplier: float,
        requires_helpers: bool,
        helpers_count: int,
        helper_charges: float,
    ) -> dict[str, str]:
        cur = self.currency
        helpers = "No helpers required"
        if requires_helpers:
            helpers = (
                f"{helpers_count} helper(s) x {self.config.helper_rate:g} {cur}"
                f" = {_money(helper_charges)} {cur}"
            )
        return {
            "base_rate": f"{rates.base:g} {cur} (base rate for {vehicle_key})",
            "distance_rate": (
                f"{distance:.2f} km x {rates.per_km:g} {cur}/km"
                f" = {_money(distance_price)} {cur}"
            ),
            "time_rate": (
                f"{duration} min x {rates.per_minute:g} {cur}/min"
                f" = {_money(time_price)} {cur}"
            ),
            "load_adjustment": f"{load_multiplier * 100:.0f}% ({load_key} load)",
            "time_adjustment": f"{time_multiplier * 100:.0f}% (time-based pricing)",
            "helpers": helpers,
            "minimum_charge": f"Minimum charge: {self.config.minimum_charge:g} {cur}",
        }
