"""
Pricing enumerations.
"""

import enum


class VersionStatus(str, enum.Enum):
    """
    Pricing config version lifecycle.

    DRAFT -> ACTIVE -> ARCHIVED. Rows belonging to a version are editable
    only while it is DRAFT.
    """
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class CancellationFeeType(str, enum.Enum):
    """How a cancellation tier's fee is interpreted."""
    FIXED = "fixed"  # Flat amount
    PERCENTAGE = "percentage"  # Percent of the estimated fare


class WeatherCondition(str, enum.Enum):
    CLEAR = "clear"
    CLOUDY = "cloudy"
    RAIN = "rain"
    HEAVY_RAIN = "heavy_rain"
    SNOW = "snow"
    STORM = "storm"
    EXTREME_HEAT = "extreme_heat"
    FOG = "fog"


class EventType(str, enum.Enum):
    SPORTS = "sports"
    CONCERT = "concert"
    CONFERENCE = "conference"
    HOLIDAY = "holiday"
    FESTIVAL = "festival"
    OTHER = "other"
