"""Unit tests for distance, coordinate and pickup-time rules."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from movenow.domain.entities import Coordinate, ServiceArea
from movenow.domain.errors import (
    InvalidAddress,
    InvalidCoordinate,
    InvalidPickupTime,
    PickupTimeTooFarOut,
    PickupTimeTooSoon,
    TripTooLong,
    TripTooShort,
)
from movenow.domain.geo import (
    bounding_box,
    distance_km,
    estimated_duration_minutes,
    format_address,
    haversine_km,
    is_within_service_area,
    round_half_up,
    validate_coordinate,
    validate_pickup_time,
    validate_trip_distance,
)

NAIROBI_AREA = ServiceArea(north=-1.163, south=-1.444, east=37.103, west=36.65)
NAIROBI_TZ = ZoneInfo("Africa/Nairobi")


class TestHaversine:
    def test_same_point_is_zero(self):
        a = Coordinate(-1.28, 36.8)
        assert distance_km(a, a) == 0.0

    def test_known_distance(self):
        # CBD-ish to South C-ish, ~3.1 km
        d = distance_km(Coordinate(-1.28, 36.80), Coordinate(-1.30, 36.82))
        assert d == pytest.approx(3.1447, abs=1e-3)

    @pytest.mark.parametrize(
        "a, b",
        [
            ((-1.28, 36.80), (-1.30, 36.82)),
            ((0.0, 0.0), (10.0, 10.0)),
            ((-45.0, 170.0), (45.0, -170.0)),
        ],
    )
    def test_symmetric(self, a, b):
        d1 = haversine_km(*a, *b)
        d2 = haversine_km(*b, *a)
        assert d1 == pytest.approx(d2, abs=1e-9)

    def test_one_degree_of_latitude(self):
        assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.19, abs=0.01)


class TestRounding:
    def test_halves_round_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1

    def test_two_decimals(self):
        assert round_half_up(3.14467, 2) == 3.14
        assert round_half_up(1.005001, 2) == 1.01


class TestValidateCoordinate:
    def test_accepts_numeric_strings(self):
        assert validate_coordinate("-1.28", "36.8") == Coordinate(-1.28, 36.8)

    @pytest.mark.parametrize(
        "lat, lng",
        [(None, 36.8), ("abc", 36.8), (float("nan"), 36.8), (91, 0), (-90.01, 0), (0, 180.5)],
    )
    def test_rejects_invalid(self, lat, lng):
        with pytest.raises(InvalidCoordinate):
            validate_coordinate(lat, lng)

    def test_extremes_are_valid(self):
        validate_coordinate(90, 180)
        validate_coordinate(-90, -180)


class TestServiceArea:
    def test_inside(self):
        assert is_within_service_area(Coordinate(-1.2864, 36.8172), NAIROBI_AREA)

    @pytest.mark.parametrize(
        "point",
        [
            Coordinate(-1.163, 36.8),   # north edge
            Coordinate(-1.444, 36.8),   # south edge
            Coordinate(-1.3, 37.103),   # east edge
            Coordinate(-1.3, 36.65),    # west edge
            Coordinate(-1.163, 36.65),  # corner
        ],
    )
    def test_edges_are_inside(self, point):
        assert is_within_service_area(point, NAIROBI_AREA)

    @pytest.mark.parametrize(
        "point",
        [
            Coordinate(-1.1629, 36.8),
            Coordinate(-1.4441, 36.8),
            Coordinate(-1.3, 37.1031),
            Coordinate(-1.3, 36.6499),
            Coordinate(-4.0435, 39.6682),  # Mombasa
        ],
    )
    def test_outside(self, point):
        assert not is_within_service_area(point, NAIROBI_AREA)


class TestTripDistance:
    def test_identical_points_too_short(self):
        p = Coordinate(-1.28, 36.80)
        with pytest.raises(TripTooShort):
            validate_trip_distance(p, p)

    def test_150_km_too_long(self):
        with pytest.raises(TripTooLong):
            validate_trip_distance(Coordinate(-1.28, 36.80), Coordinate(0.07, 36.80))

    def test_normal_trip_returns_distance(self):
        d = validate_trip_distance(Coordinate(-1.28, 36.80), Coordinate(-1.30, 36.82))
        assert 3.0 < d < 3.2


class TestDuration:
    def test_short_trip_floored_to_minimum(self):
        assert estimated_duration_minutes(3.14) == 30

    def test_long_trip(self):
        # 50 km at 25 km/h
        assert estimated_duration_minutes(50) == 120

    def test_rounds_half_up(self):
        assert estimated_duration_minutes(12.7) == 30  # 30.48
        assert estimated_duration_minutes(12.71) == 31  # 30.504


class TestBoundingBox:
    def test_deltas(self):
        box = bounding_box(Coordinate(0.0, 0.0), 11.1)
        assert box.max_lat == pytest.approx(0.1)
        assert box.min_lat == pytest.approx(-0.1)
        assert box.max_lng == pytest.approx(0.1)

    def test_longitude_widens_away_from_equator(self):
        box = bounding_box(Coordinate(60.0, 10.0), 11.1)
        assert box.max_lng - 10.0 == pytest.approx(0.2, rel=1e-6)

    def test_corner_is_outside_true_radius(self):
        center = Coordinate(-1.28, 36.8)
        box = bounding_box(center, 10)
        corner = Coordinate(box.max_lat, box.max_lng)
        assert box.contains(corner)
        assert distance_km(center, corner) > 10


class TestAddress:
    def test_trims_and_caps(self):
        assert format_address("  Moi Avenue  ") == "Moi Avenue"
        assert len(format_address("x" * 600)) == 500

    @pytest.mark.parametrize("value", ["", "   ", None, 42])
    def test_rejects_empty(self, value):
        with pytest.raises(InvalidAddress):
            format_address(value)


class TestPickupTime:
    # Monday 2026-03-02 09:00 in Nairobi
    NOW = datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc)

    def test_valid_time_is_local(self):
        pickup = validate_pickup_time("2026-03-03", "11:00", NAIROBI_TZ, now=self.NOW)
        assert pickup.astimezone(timezone.utc) == datetime(
            2026, 3, 3, 8, 0, tzinfo=timezone.utc
        )

    def test_too_soon(self):
        with pytest.raises(PickupTimeTooSoon):
            validate_pickup_time("2026-03-02", "09:20", NAIROBI_TZ, now=self.NOW)

    def test_exactly_lead_time_is_allowed(self):
        validate_pickup_time("2026-03-02", "09:30", NAIROBI_TZ, now=self.NOW)

    def test_too_far_out(self):
        with pytest.raises(PickupTimeTooFarOut):
            validate_pickup_time("2026-03-09", "09:01", NAIROBI_TZ, now=self.NOW)

    @pytest.mark.parametrize(
        "day, clock", [("2026-02-30", "10:00"), ("tomorrow", "10:00"), ("2026-03-03", "25:00"), ("2026-03-03", "10")]
    )
    def test_unparsable(self, day, clock):
        with pytest.raises(InvalidPickupTime):
            validate_pickup_time(day, clock, NAIROBI_TZ, now=self.NOW)
