"""
Pickup fee calculation.

    base    = category rate + weight x weight rate (when weight > 0)
    urgency = base x multiplier - base  (EXTRA, EMERGENCY; REGULAR pays none)
    total   = base + urgency
    final   = max(0, total - points x point value)

Rates and multipliers come from settings.PICKUP_FEES so they can be
changed per deployment without touching this module.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.conf import settings

from common.exceptions import InvalidArgument
from .models import PickupRequest

CENT = Decimal('0.01')
ZERO = Decimal('0.00')

DEFAULT_FEES = {
    "base_rates": {
        PickupRequest.BULKY_WASTE: "25.00",
        PickupRequest.E_WASTE: "15.00",
        PickupRequest.ORGANIC: "10.00",
        PickupRequest.RECYCLABLE: "10.00",
        PickupRequest.HAZARDOUS: "10.00",
        PickupRequest.GENERAL: "10.00",
    },
    "weight_rate": "2.00",
    "extra_multiplier": "1.2",
    "emergency_multiplier": "1.5",
    "point_value": "0.01",
}


def to_decimal(value, name="value"):
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    try:
        # str() keeps floats like 2.5 exact instead of their binary expansion
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidArgument(f"{name} must be a number, got {value!r}.")


def quantize(amount):
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class FeeSchedule:
    base_rates: dict
    weight_rate: Decimal
    extra_multiplier: Decimal
    emergency_multiplier: Decimal
    point_value: Decimal

    @classmethod
    def from_settings(cls):
        configured = getattr(settings, "PICKUP_FEES", None) or {}
        base_rates = {**DEFAULT_FEES["base_rates"], **configured.get("base_rates", {})}
        return cls(
            base_rates={k: to_decimal(v, k) for k, v in base_rates.items()},
            weight_rate=to_decimal(configured.get("weight_rate", DEFAULT_FEES["weight_rate"]), "weight_rate"),
            extra_multiplier=to_decimal(
                configured.get("extra_multiplier", DEFAULT_FEES["extra_multiplier"]), "extra_multiplier"),
            emergency_multiplier=to_decimal(
                configured.get("emergency_multiplier", DEFAULT_FEES["emergency_multiplier"]), "emergency_multiplier"),
            point_value=to_decimal(configured.get("point_value", DEFAULT_FEES["point_value"]), "point_value"),
        )

    def multiplier_for(self, pickup_type):
        if pickup_type == PickupRequest.EMERGENCY:
            return self.emergency_multiplier
        if pickup_type == PickupRequest.EXTRA:
            return self.extra_multiplier
        if pickup_type == PickupRequest.REGULAR:
            return Decimal('1')
        raise InvalidArgument(f"Unknown pickup type: {pickup_type}")


@dataclass(frozen=True)
class FeeBreakdown:
    base_amount: Decimal
    urgency_fee: Decimal
    total_amount: Decimal
    reward_points_used: int
    reward_deduction: Decimal
    final_amount: Decimal
    calculation_breakdown: str = field(default="")


def calculate_fees(waste_type, estimated_weight=None, pickup_type=PickupRequest.REGULAR,
                   reward_points_used=None, schedule=None):
    """Price a pickup. Pure: no database access, no side effects."""
    schedule = schedule or FeeSchedule.from_settings()

    weight = to_decimal(estimated_weight, "estimated_weight")
    points = to_decimal(reward_points_used, "reward_points_used") or ZERO

    if weight is not None and weight < 0:
        raise InvalidArgument("Estimated weight cannot be negative.")
    if points < 0:
        raise InvalidArgument("Reward points cannot be negative.")
    if points != points.to_integral_value():
        raise InvalidArgument("Reward points must be a whole number.")
    if waste_type not in schedule.base_rates:
        raise InvalidArgument(f"Unknown waste type: {waste_type}")

    base_amount = schedule.base_rates[waste_type]
    if weight is not None and weight > 0:
        base_amount += weight * schedule.weight_rate
    base_amount = quantize(base_amount)

    urgency_fee = quantize(base_amount * schedule.multiplier_for(pickup_type) - base_amount)
    total_amount = base_amount + urgency_fee

    reward_deduction = quantize(points * schedule.point_value)
    final_amount = max(ZERO, total_amount - reward_deduction)

    breakdown = (
        f"Base Amount: ${base_amount:.2f}, Urgency Fee: ${urgency_fee:.2f}, "
        f"Reward Points Used: {points:.0f} points (${reward_deduction:.2f}), "
        f"Final Amount: ${final_amount:.2f}"
    )

    return FeeBreakdown(
        base_amount=base_amount,
        urgency_fee=urgency_fee,
        total_amount=total_amount,
        reward_points_used=int(points),
        reward_deduction=reward_deduction,
        final_amount=final_amount,
        calculation_breakdown=breakdown,
    )
