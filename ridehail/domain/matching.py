"""
Nearest-Driver Matching with Rating Tie-Break
=============================================

1. **Candidate building** -- every available driver with a usable
   location becomes a ``Candidate`` carrying its haversine distance to the
   passenger.  Drivers without a (valid) location are skipped silently.
2. **Ranking** -- candidates are sorted with a threshold comparator:

   * if ``|d_a - d_b| / min(d_a, d_b) < TIE_BREAK_RATIO`` the two drivers
     are "about as close" and the higher rating wins;
   * otherwise the closer driver wins.

3. **Selection** -- the first ranked candidate is offered the ride.  If
   it was acquired by a concurrent run, the caller moves on to the next.

Notes
-----
The comparator is not transitive (A~B and B~C does not imply A~C), so
only the head of the ranking is meaningful.  ``sorted`` is TimSort, which
gives a deterministic order for a given input order.

When both distances are 0 the drivers are treated as tied (rating
decides); when only one is 0 the ratio is infinite and distance decides.

Complexity
----------
Let D = available drivers.

* Candidate building: O(D)
* Ranking:            O(D log D)
"""

from __future__ import annotations

import math
from functools import cmp_to_key
from typing import Iterable

from .distance import distance_between
from .entities import Candidate, Location

TIE_BREAK_RATIO = 0.2
MINUTES_PER_KM = 2.0  # 30 km/h


def build_candidates(pickup: Location, drivers: Iterable) -> list[Candidate]:
    """Project driver records onto candidates, skipping unlocatable ones.

    A driver record is anything exposing ``id``, ``current_lat``,
    ``current_lng`` and ``rating`` (ORM rows and ``Driver`` entities both
    qualify).
    """
    candidates: list[Candidate] = []
    for driver in drivers:
        location = Location.maybe(driver.current_lat, driver.current_lng)
        if location is None:
            continue
        candidates.append(
            Candidate(
                driver_id=driver.id,
                distance_km=distance_between(pickup, location),
                rating=driver.rating or 0.0,
                driver=driver,
            )
        )
    return candidates


def compare_candidates(
    a: Candidate, b: Candidate, tie_break_ratio: float = TIE_BREAK_RATIO
) -> int:
    """Negative if *a* should be offered the ride before *b*."""
    nearest = min(a.distance_km, b.distance_km)
    gap = abs(a.distance_km - b.distance_km)

    if nearest > 0:
        close_call = gap / nearest < tie_break_ratio
    else:
        close_call = gap == 0

    if close_call:
        return _sign(b.rating - a.rating)
    return _sign(a.distance_km - b.distance_km)


def rank_candidates(
    candidates: Iterable[Candidate], tie_break_ratio: float = TIE_BREAK_RATIO
) -> list[Candidate]:
    return sorted(
        candidates,
        key=cmp_to_key(lambda a, b: compare_candidates(a, b, tie_break_ratio)),
    )


def pickup_eta_minutes(distance_km: float, minutes_per_km: float = MINUTES_PER_KM) -> int:
    """Whole minutes until pickup at a fixed average speed."""
    return math.ceil(distance_km * minutes_per_km)


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)
