"""Unit tests for the fare estimate."""

import pytest

from orbitride.domain.pricing import (
    DistanceTimeFare,
    FareEstimator,
    FareRates,
    SharedRideFare,
)

RATES = FareRates(
    base_fare=30.0, rate_per_km=0.5, rate_per_minute=0.25, rate_per_extra_passenger=2.0
)


class TestFareStrategies:
    def test_distance_time_fare(self):
        strategy = DistanceTimeFare()
        assert strategy.calculate(10.0, 20.0, RATES) == 40.0  # 30 + 5 + 5

    def test_single_passenger_has_no_surcharge(self):
        assert SharedRideFare(1).calculate(10.0, 20.0, RATES) == 40.0

    def test_extra_passengers_add_surcharge(self):
        assert SharedRideFare(3).calculate(10.0, 20.0, RATES) == 44.0

    def test_passenger_count_floors_at_one(self):
        assert SharedRideFare(0).calculate(10.0, 20.0, RATES) == 40.0


class TestFareEstimator:
    def setup_method(self):
        self.estimator = FareEstimator(RATES)

    def test_zero_trip_costs_base_fare(self):
        assert self.estimator.estimate(0, 0) == 30.0

    def test_base_fare_override(self):
        assert self.estimator.estimate(10.0, 20.0, base_fare=50.0) == 60.0

    def test_rounds_to_paise(self):
        fare = self.estimator.estimate(3.333, 7.777)
        assert fare == round(fare, 2)
        assert fare == pytest.approx(30 + 3.333 * 0.5 + 7.777 * 0.25, abs=0.01)

    def test_defaults(self):
        assert FareEstimator().estimate(10.0, 20.0, passengers=2) == 42.0
