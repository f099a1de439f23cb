"""
Fare Calculator.

Composes a FareCalculation from resolved pricing, trip metrics,
multipliers and zone fees. The composition order is part of the billing
contract and must not change:

 1. base = base_fare
 2. distance_charge = distance_km * per_km_rate
 3. time_charge = duration_min * per_minute_rate
 4. zone_fees_total (percentage fees on base + distance + time)
 5. pre_multiplier_subtotal = base + distance + time + booking_fee + zone fees
 6. total_multiplier = time * weather * event * clamped surge
 7. multiplied_subtotal = pre_multiplier_subtotal * total_multiplier
 8. subtotal = max(multiplied_subtotal, minimum_fare)
 9. tax (inclusive or exclusive) and total
10. platform commission and driver earnings, both on the pre-tax subtotal

Rounding is done by the Currency collaborator. The subtotal is rounded
once; tax, total and commission derive from the rounded subtotal.
"""

from typing import Optional, Sequence, Dict

from ride_pricing.app.core.config import settings
from ride_pricing.app.core.exceptions import PriceOutOfRangeError, ValidationError
from ride_pricing.app.models.pricing_enums import CancellationFeeType
from ride_pricing.app.models.zone_fee import ZoneFee
from ride_pricing.app.schemas.pricing import ResolvedPricing, FareCalculation
from ride_pricing.app.domain.pricing.multipliers import MultiplierStack
from ride_pricing.app.domain.pricing.zone_fees import price_zone_fees
from ride_pricing.app.services.currency import Currency


class FareCalculator:

    def __init__(self, currency: Currency):
        self.currency = currency

    def calculate(
        self,
        pricing: ResolvedPricing,
        distance_km: float,
        duration_min: int,
        multipliers: MultiplierStack = MultiplierStack(),
        zone_fees: Sequence[ZoneFee] = (),
        zone_names: Optional[Dict[int, str]] = None
    ) -> FareCalculation:
        if distance_km < 0 or duration_min < 0:
            raise ValidationError(
                "Distance and duration must be non-negative",
                details={"distance_km": distance_km, "duration_min": duration_min}
            )

        round_ = self.currency.round

        base = pricing.base_fare
        distance_charge = distance_km * pricing.per_km_rate
        time_charge = duration_min * pricing.per_minute_rate

        running_subtotal = base + distance_charge + time_charge
        zone_fees_total, breakdown = price_zone_fees(zone_fees, running_subtotal, zone_names)

        pre_multiplier_subtotal = running_subtotal + pricing.booking_fee + zone_fees_total

        total_multiplier = multipliers.total
        multiplied_subtotal = pre_multiplier_subtotal * total_multiplier

        # Floor applies after multipliers
        minimum_fare_applied = multiplied_subtotal < pricing.minimum_fare
        subtotal = round_(max(multiplied_subtotal, pricing.minimum_fare))

        rate = pricing.tax_rate_pct / 100
        if pricing.tax_inclusive:
            tax_amount = round_(subtotal - subtotal / (1 + rate))
            total_fare = subtotal
        else:
            tax_amount = round_(subtotal * rate)
            total_fare = round_(subtotal + tax_amount)

        platform_commission = round_(subtotal * pricing.platform_commission_pct / 100)
        driver_earnings = round_(
            subtotal - platform_commission + subtotal * pricing.driver_incentive_pct / 100
        )

        return FareCalculation(
            distance_km=distance_km,
            duration_min=duration_min,
            currency=self.currency.code,
            base_fare=round_(base),
            distance_charge=round_(distance_charge),
            time_charge=round_(time_charge),
            booking_fee=round_(pricing.booking_fee),
            zone_fees_total=round_(zone_fees_total),
            zone_fees_breakdown=[
                line.model_copy(update={"amount": round_(line.amount)}) for line in breakdown
            ],
            time_multiplier=multipliers.time,
            weather_multiplier=multipliers.weather,
            event_multiplier=multipliers.event,
            surge_multiplier=multipliers.surge,
            total_multiplier=total_multiplier,
            pre_multiplier_subtotal=round_(pre_multiplier_subtotal),
            subtotal=subtotal,
            minimum_fare=round_(pricing.minimum_fare),
            minimum_fare_applied=minimum_fare_applied,
            tax_rate_pct=pricing.tax_rate_pct,
            tax_inclusive=pricing.tax_inclusive,
            tax_amount=tax_amount,
            total_fare=total_fare,
            platform_commission_pct=pricing.platform_commission_pct,
            platform_commission=platform_commission,
            driver_earnings=driver_earnings,
            pricing_version_id=pricing.version_id,
        )

    def price_band(
        self,
        fare: FareCalculation,
        min_multiplier: Optional[float] = None,
        max_multiplier: Optional[float] = None
    ) -> tuple[float, float]:
        """Allowed [min, max] for a negotiated price around the fare's total."""
        low = settings.negotiation_min_multiplier if min_multiplier is None else min_multiplier
        high = settings.negotiation_max_multiplier if max_multiplier is None else max_multiplier
        return self.currency.round(fare.total_fare * low), self.currency.round(fare.total_fare * high)

    def validate_negotiated_price(
        self,
        fare: FareCalculation,
        price: float,
        min_multiplier: Optional[float] = None,
        max_multiplier: Optional[float] = None
    ) -> FareCalculation:
        """
        Accept a negotiated price inside the variance band.

        Returns:
            The fare marked as negotiated.

        Raises:
            PriceOutOfRangeError: carrying the allowed band.
        """
        min_price, max_price = self.price_band(fare, min_multiplier, max_multiplier)

        if price < min_price or price > max_price:
            raise PriceOutOfRangeError(
                price=price,
                min_price=min_price,
                max_price=max_price,
                estimated_fare=fare.total_fare
            )

        return fare.model_copy(update={
            "was_negotiated": True,
            "negotiated_fare": self.currency.round(price),
        })

    def cancellation_fee(
        self,
        pricing: ResolvedPricing,
        minutes_since_request: float,
        estimated_fare: float
    ) -> float:
        """
        Fee of the highest tier whose after_minutes has elapsed.

        Percentage tiers charge `fee` percent of the estimated fare. No
        elapsed tier means no fee.
        """
        tiers = sorted(pricing.cancellation_fees, key=lambda tier: tier.after_minutes)

        applicable = None
        for tier in tiers:
            if tier.after_minutes <= minutes_since_request:
                applicable = tier

        if applicable is None:
            return 0.0

        if applicable.fee_type == CancellationFeeType.PERCENTAGE:
            return self.currency.round(estimated_fare * applicable.fee / 100)
        return self.currency.round(applicable.fee)
