"""
Zone Fee Resolver.

Finds the zone fees that apply to a ride's pickup and dropoff zones and
prices them against the pre-multiplier running subtotal.
"""

from datetime import datetime
from typing import Optional, Sequence, Dict, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_

from ride_pricing.app.models.zone_fee import ZoneFee, PricingZone
from ride_pricing.app.schemas.pricing import ZoneFeeBreakdown
from ride_pricing.app.domain.pricing.windows import clock_window_contains, day_of_week


def schedule_contains(schedule: Optional[dict], local_moment: datetime) -> bool:
    """A fee without a schedule always applies."""
    if not schedule:
        return True
    days = schedule.get("days") or []
    if days and day_of_week(local_moment) not in days:
        return False
    return clock_window_contains(schedule["start_time"], schedule["end_time"], local_moment.time())


class ZoneFeeResolver:

    @staticmethod
    def select(
        rows: Sequence[ZoneFee],
        pickup_zone_id: Optional[int],
        dropoff_zone_id: Optional[int],
        ride_type_id: Optional[int],
        local_moment: datetime
    ) -> List[ZoneFee]:
        """
        Fees applying at pickup or dropoff.

        A fee row applies at most once per ride even when pickup and
        dropoff share its zone.
        """
        applicable = []
        for fee in rows:
            if not fee.is_active:
                continue
            if fee.ride_type_id is not None and fee.ride_type_id != ride_type_id:
                continue
            at_pickup = fee.applies_pickup and pickup_zone_id is not None and fee.zone_id == pickup_zone_id
            at_dropoff = fee.applies_dropoff and dropoff_zone_id is not None and fee.zone_id == dropoff_zone_id
            if not (at_pickup or at_dropoff):
                continue
            if not schedule_contains(fee.schedule, local_moment):
                continue
            applicable.append(fee)

        return sorted(applicable, key=lambda fee: fee.id or 0)

    @staticmethod
    async def resolve(
        db: AsyncSession,
        version_id: int,
        pickup_zone_id: Optional[int],
        dropoff_zone_id: Optional[int],
        ride_type_id: Optional[int],
        local_moment: datetime
    ) -> List[ZoneFee]:
        zone_ids = [z for z in (pickup_zone_id, dropoff_zone_id) if z is not None]
        if not zone_ids:
            return []

        if ride_type_id is None:
            ride_type_clause = ZoneFee.ride_type_id.is_(None)
        else:
            ride_type_clause = or_(ZoneFee.ride_type_id.is_(None), ZoneFee.ride_type_id == ride_type_id)

        result = await db.execute(
            select(ZoneFee).where(
                ZoneFee.version_id == version_id,
                ZoneFee.is_active == True,
                ZoneFee.zone_id.in_(zone_ids),
                ride_type_clause
            )
        )
        return ZoneFeeResolver.select(
            result.scalars().all(), pickup_zone_id, dropoff_zone_id, ride_type_id, local_moment
        )

    @staticmethod
    async def zone_names(db: AsyncSession, zone_ids: Sequence[int]) -> Dict[int, str]:
        ids = sorted(set(zone_ids))
        if not ids:
            return {}
        result = await db.execute(select(PricingZone.id, PricingZone.name).where(PricingZone.id.in_(ids)))
        return {zone_id: name for zone_id, name in result.all()}


def price_zone_fees(
    fees: Sequence[ZoneFee],
    running_subtotal: float,
    zone_names: Optional[Dict[int, str]] = None
) -> Tuple[float, List[ZoneFeeBreakdown]]:
    """
    Sum applicable fees.

    Percentage fees take `amount` percent of running_subtotal
    (base + distance + time, before booking fee and multipliers).
    """
    zone_names = zone_names or {}
    total = 0.0
    breakdown = []

    for fee in fees:
        if fee.is_percentage:
            amount = running_subtotal * fee.amount / 100
        else:
            amount = fee.amount
        total += amount
        breakdown.append(ZoneFeeBreakdown(
            zone_id=fee.zone_id,
            zone_name=zone_names.get(fee.zone_id, ""),
            fee_type=fee.fee_type,
            amount=amount,
        ))

    return total, breakdown
