"""
Geographic scope rules.

A pricing row is scoped by optional country/region/city/zone ids. The
specificity table below is the single source of truth for override
precedence: zone(4) > city(3) > region(2) > country(1) > global(0).
"""

from typing import Sequence
from sqlalchemy import and_, or_

from ride_pricing.app.services.geography import ResolvedLocation

# Broadest first
GEO_LEVELS = ("country_id", "region_id", "city_id", "zone_id")

# Most specific first; first non-null id decides the row's specificity
SPECIFICITY = (
    ("zone_id", 4),
    ("city_id", 3),
    ("region_id", 2),
    ("country_id", 1),
)
GLOBAL_SPECIFICITY = 0

SCOPE_NAMES = {4: "zone", 3: "city", 2: "region", 1: "country", 0: "global"}


def specificity_of(row) -> int:
    for column, rank in SPECIFICITY:
        if getattr(row, column, None) is not None:
            return rank
    return GLOBAL_SPECIFICITY


def scope_label(row) -> str:
    rank = specificity_of(row)
    label = SCOPE_NAMES[rank]
    if rank != GLOBAL_SPECIFICITY:
        column = next(c for c, r in SPECIFICITY if r == rank)
        label = f"{label}:{getattr(row, column)}"
    ride_type_id = getattr(row, "ride_type_id", None)
    if ride_type_id is not None:
        label = f"{label}/ride_type:{ride_type_id}"
    return label


def sort_by_specificity(rows: Sequence) -> list:
    """
    Most specific scope first, ride-type-specific before generic, then id.

    Applied even when the query already ordered the rows.
    """
    return sorted(
        rows,
        key=lambda row: (
            -specificity_of(row),
            0 if getattr(row, "ride_type_id", None) is not None else 1,
            row.id if row.id is not None else 0,
        )
    )


def scope_clause(model, location: ResolvedLocation, levels: Sequence[str] = GEO_LEVELS):
    """
    SQL filter matching rows scoped to the location at any level.

    A level matches when its id equals the location's and every narrower
    level is NULL. Levels the location does not have are skipped rather
    than compared against NULL.
    """
    clauses = [and_(*[getattr(model, level).is_(None) for level in levels])]

    for index, level in enumerate(levels):
        value = getattr(location, level)
        if value is None:
            continue
        narrower = levels[index + 1:]
        clauses.append(
            and_(
                getattr(model, level) == value,
                *[getattr(model, n).is_(None) for n in narrower]
            )
        )

    return or_(*clauses)
