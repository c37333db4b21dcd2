"""Unit tests for distance and the nearest-driver ranking algorithm."""

import math
from types import SimpleNamespace

import pytest

from ridehail.domain.distance import haversine_km, is_valid_coordinate
from ridehail.domain.entities import Candidate, Location
from ridehail.domain.matching import (
    build_candidates,
    compare_candidates,
    pickup_eta_minutes,
    rank_candidates,
)

CONNAUGHT_PLACE = (28.632735, 77.219696)
INDIA_GATE = (28.612912, 77.229510)


def _driver(id, lat, lng, rating=4.5):
    return SimpleNamespace(id=id, current_lat=lat, current_lng=lng, rating=rating)


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(28.6, 77.2, 28.6, 77.2) == 0.0

    def test_known_distance(self):
        # Connaught Place -> India Gate ~2.4 km
        d = haversine_km(*CONNAUGHT_PLACE, *INDIA_GATE)
        assert 2.2 < d < 2.6

    def test_symmetric(self):
        d1 = haversine_km(28.0, 77.0, 29.0, 78.0)
        d2 = haversine_km(29.0, 78.0, 28.0, 77.0)
        assert abs(d1 - d2) < 1e-9

    def test_antipodes_is_half_circumference(self):
        d = haversine_km(0.0, 0.0, 0.0, 180.0)
        assert d == pytest.approx(math.pi * 6371.0, rel=1e-9)


class TestCoordinateValidation:
    @pytest.mark.parametrize(
        "lat,lng",
        [(0.0, 0.0), (90.0, 180.0), (-90.0, -180.0), (28.6315, 77.2167)],
    )
    def test_valid(self, lat, lng):
        assert is_valid_coordinate(lat, lng)

    @pytest.mark.parametrize(
        "lat,lng",
        [
            (None, 77.2),
            (28.6, None),
            (91.0, 77.2),
            (28.6, -180.5),
            (float("nan"), 77.2),
            (28.6, float("inf")),
            ("north", 77.2),
            (True, 77.2),
        ],
    )
    def test_invalid(self, lat, lng):
        assert not is_valid_coordinate(lat, lng)

    def test_location_maybe(self):
        assert Location.maybe(28.6, 77.2) == Location(28.6, 77.2)
        assert Location.maybe(None, 77.2) is None
        assert Location.maybe(128.6, 77.2) is None


class TestComparator:
    def test_close_call_prefers_higher_rating(self):
        # 0.8 / 5.0 = 0.16 < 0.2 -> rating decides
        a = Candidate(driver_id=1, distance_km=5.0, rating=4.2)
        b = Candidate(driver_id=2, distance_km=5.8, rating=4.9)
        assert compare_candidates(a, b) > 0
        assert compare_candidates(b, a) < 0

    def test_clear_gap_prefers_nearest(self):
        a = Candidate(driver_id=1, distance_km=2.0, rating=3.0)
        b = Candidate(driver_id=2, distance_km=10.0, rating=5.0)
        assert compare_candidates(a, b) < 0

    def test_exact_threshold_is_not_a_close_call(self):
        # 1.0 / 5.0 == 0.2 is not < 0.2 -> distance decides
        a = Candidate(driver_id=1, distance_km=5.0, rating=3.0)
        b = Candidate(driver_id=2, distance_km=6.0, rating=5.0)
        assert compare_candidates(a, b) < 0

    def test_equal_distance_equal_rating_is_tie(self):
        a = Candidate(driver_id=1, distance_km=3.0, rating=4.0)
        b = Candidate(driver_id=2, distance_km=3.0, rating=4.0)
        assert compare_candidates(a, b) == 0

    def test_both_at_pickup_compare_on_rating(self):
        a = Candidate(driver_id=1, distance_km=0.0, rating=4.0)
        b = Candidate(driver_id=2, distance_km=0.0, rating=4.8)
        assert compare_candidates(a, b) > 0

    def test_one_at_pickup_wins_on_distance(self):
        a = Candidate(driver_id=1, distance_km=0.0, rating=3.0)
        b = Candidate(driver_id=2, distance_km=0.1, rating=5.0)
        assert compare_candidates(a, b) < 0

    def test_custom_ratio(self):
        a = Candidate(driver_id=1, distance_km=5.0, rating=3.0)
        b = Candidate(driver_id=2, distance_km=6.0, rating=5.0)
        assert compare_candidates(a, b, tie_break_ratio=0.5) > 0


class TestRanking:
    def test_rank_orders_by_distance_outside_threshold(self):
        candidates = [
            Candidate(driver_id=3, distance_km=9.0, rating=5.0),
            Candidate(driver_id=1, distance_km=1.0, rating=3.0),
            Candidate(driver_id=2, distance_km=4.0, rating=4.0),
        ]
        ranked = rank_candidates(candidates)
        assert [c.driver_id for c in ranked] == [1, 2, 3]

    def test_rating_leads_within_threshold(self):
        candidates = [
            Candidate(driver_id=1, distance_km=5.0, rating=4.2),
            Candidate(driver_id=2, distance_km=5.8, rating=4.9),
        ]
        assert rank_candidates(candidates)[0].driver_id == 2

    def test_rank_empty(self):
        assert rank_candidates([]) == []

    def test_ranking_is_deterministic(self):
        candidates = [
            Candidate(driver_id=i, distance_km=1.0 + i * 0.15, rating=4.0 + i * 0.1)
            for i in range(6)
        ]
        first = [c.driver_id for c in rank_candidates(candidates)]
        second = [c.driver_id for c in rank_candidates(list(candidates))]
        assert first == second


class TestBuildCandidates:
    def test_skips_drivers_without_usable_location(self):
        pickup = Location(*CONNAUGHT_PLACE)
        drivers = [
            _driver(1, *INDIA_GATE),
            _driver(2, None, 77.2),
            _driver(3, 28.6, None),
            _driver(4, 95.0, 77.2),
            _driver(5, *CONNAUGHT_PLACE),
        ]
        candidates = build_candidates(pickup, drivers)
        assert [c.driver_id for c in candidates] == [1, 5]
        assert candidates[1].distance_km == 0.0
        assert candidates[0].driver is drivers[0]

    def test_zero_coordinates_are_usable(self):
        candidates = build_candidates(Location(0.0, 0.0), [_driver(1, 0.0, 0.0)])
        assert len(candidates) == 1

    def test_missing_rating_counts_as_zero(self):
        candidates = build_candidates(
            Location(*CONNAUGHT_PLACE), [_driver(1, *INDIA_GATE, rating=None)]
        )
        assert candidates[0].rating == 0.0


class TestPickupEta:
    def test_rounds_up_to_whole_minutes(self):
        assert pickup_eta_minutes(4.3) == 9

    def test_exact_minutes(self):
        assert pickup_eta_minutes(1.0) == 2

    def test_driver_at_pickup(self):
        assert pickup_eta_minutes(0.0) == 0

    def test_custom_speed(self):
        assert pickup_eta_minutes(3.0, minutes_per_km=1.0) == 3
