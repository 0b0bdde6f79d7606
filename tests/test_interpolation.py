"""Tests for spatial and temporal TEC interpolation."""

from datetime import datetime, timedelta

import pytest

from pyionex.core.exceptions import OutOfGrid
from pyionex.ionex import IONEX, TecEstimate, TecInterpolator


T0 = datetime(2022, 1, 2, 0)
T1 = datetime(2022, 1, 2, 2)


@pytest.fixture
def uniform(uniform_text: str) -> TecInterpolator:
    return TecInterpolator(IONEX.from_string(uniform_text))


@pytest.fixture
def worldwide(global_text: str) -> TecInterpolator:
    return TecInterpolator(IONEX.from_string(global_text))


class TestUniformScenario:
    """Two epochs, 2x2 nodes, raw 100 then 200 with exponent -1."""

    def test_values_at_epochs(self, uniform: TecInterpolator) -> None:
        assert uniform.interpolate(10.0, 0.0, T0) == 10.0
        assert uniform.interpolate(0.0, 10.0, T1) == 20.0

    def test_interior_at_epochs(self, uniform: TecInterpolator) -> None:
        """A uniform field gives back its value exactly anywhere inside."""
        for latitude in (0.5, 3.3, 5.0, 9.1):
            for longitude in (0.1, 3.3, 7.1, 9.9):
                assert uniform.interpolate(latitude, longitude, T0) == 10.0
                assert uniform.interpolate(latitude, longitude, T1) == 20.0

    def test_temporal_midpoint(self, uniform: TecInterpolator) -> None:
        midpoint = T0 + (T1 - T0) / 2
        for latitude in (0.5, 3.3, 5.0, 9.1):
            for longitude in (0.1, 3.3, 7.1, 9.9):
                assert uniform.interpolate(latitude, longitude, midpoint) == 15.0

    def test_clamp_before_first_epoch(self, uniform: TecInterpolator) -> None:
        before = T0 - timedelta(hours=5)
        assert uniform.interpolate(5.0, 5.0, before) == uniform.interpolate(5.0, 5.0, T0)

    def test_clamp_after_last_epoch(self, uniform: TecInterpolator) -> None:
        after = T1 + timedelta(days=1)
        assert uniform.interpolate(5.0, 5.0, after) == uniform.interpolate(5.0, 5.0, T1)

    def test_outside_coverage_is_no_data(self, uniform: TecInterpolator) -> None:
        """No spatial extrapolation beyond the grid."""
        assert uniform.interpolate(20.0, 5.0, T0) is None
        assert uniform.interpolate(5.0, 50.0, T0) is None

    def test_no_rms(self, uniform: TecInterpolator) -> None:
        assert uniform.estimate(5.0, 5.0, T0) == TecEstimate(tecu=pytest.approx(10.0), rms=None)


class TestBracketing:
    """Tests for temporal bracketing."""

    def test_exact_hit(self, uniform: TecInterpolator) -> None:
        assert uniform.bracket(T1) == (1, 1, 0.0)

    def test_between(self, uniform: TecInterpolator) -> None:
        i, j, fraction = uniform.bracket(T0 + timedelta(minutes=30))
        assert (i, j) == (0, 1)
        assert fraction == pytest.approx(0.25)

    def test_clamped(self, uniform: TecInterpolator) -> None:
        assert uniform.bracket(T0 - timedelta(seconds=1)) == (0, 0, 0.0)
        assert uniform.bracket(T1 + timedelta(seconds=1)) == (1, 1, 0.0)


class TestSpatial:
    """Tests for bilinear interpolation on the worldwide grid."""

    def test_node_identity(self, worldwide: TecInterpolator) -> None:
        """Node queries at sampled epochs reproduce sample_at exactly."""
        ionex = worldwide.ionex
        for index, epoch in enumerate(ionex.epochs):
            for latitude in (10.0, 0.0, -10.0):
                for longitude in (-180.0, -90.0, 0.0, 90.0, 180.0):
                    assert worldwide.interpolate(latitude, longitude, epoch) == ionex.sample_at(
                        index, latitude, longitude
                    )

    def test_bilinear(self, worldwide: TecInterpolator) -> None:
        """Midway between four nodes gives their mean."""
        # Raw nodes (10,-180)=10 (10,-90)=20 (0,-180)=50 (0,-90)=60
        assert worldwide.interpolate(5.0, -135.0, T0) == pytest.approx(3.5)

    def test_linear_along_longitude(self, worldwide: TecInterpolator) -> None:
        assert worldwide.interpolate(10.0, -157.5, T0) == pytest.approx(1.25)

    def test_wraparound_seam(self, worldwide: TecInterpolator) -> None:
        """-180 and +180 give identical results, and the seam cell interpolates."""
        for latitude in (10.0, 5.0, -2.5):
            assert worldwide.interpolate(latitude, -180.0, T0) == worldwide.interpolate(
                latitude, 180.0, T0
            )
        # Between 90 (raw 40) and 180 (raw 10) at latitude 10
        assert worldwide.interpolate(10.0, 135.0, T0) == pytest.approx(2.5)
        assert worldwide.interpolate(10.0, -225.0, T0) == pytest.approx(2.5)

    def test_sentinel_corner_renormalized(self, worldwide: TecInterpolator) -> None:
        """A missing corner is dropped and the other weights rescaled."""
        second = datetime(2022, 1, 2, 1)
        # Raw corners (0,0)=no data, (0,90)=100, (-10,0)=130, (-10,90)=140
        value = worldwide.interpolate(-5.0, 45.0, second)
        assert value == pytest.approx((10.0 + 13.0 + 14.0) / 3)

    def test_sentinel_node_is_no_data(self, worldwide: TecInterpolator) -> None:
        assert worldwide.interpolate(0.0, 0.0, datetime(2022, 1, 2, 1)) is None

    def test_temporal_sentinel_propagates(self, worldwide: TecInterpolator) -> None:
        """No data at either bracketing epoch gives no data."""
        between = datetime(2022, 1, 2, 0, 30)
        assert worldwide.interpolate(0.0, 0.0, between) is None
        assert worldwide.interpolate(10.0, 0.0, between) == pytest.approx(4.0)

    def test_rms(self, worldwide: TecInterpolator) -> None:
        estimate = worldwide.estimate(5.0, 45.0, datetime(2022, 1, 2, 0, 30))
        assert estimate.rms == pytest.approx(0.6)
        assert worldwide.interpolate(5.0, 45.0, T0, rms=True) == pytest.approx(0.5)


class TestAltitude:
    """Tests for altitude handling."""

    def test_altitude_ignored_on_2d(self, uniform: TecInterpolator) -> None:
        assert uniform.interpolate(10.0, 0.0, T0, altitude=350.0) == 10.0

    def test_3d_requires_layer(self, ionex_builder) -> None:
        tec = [[[[10, 10], [10, 10]], [[50, 50], [50, 50]]]]
        interpolator = TecInterpolator(IONEX.from_string(ionex_builder(tec, hgt=(200.0, 400.0, 200.0))))

        assert interpolator.interpolate(5.0, 5.0, T0, altitude=400.0) == pytest.approx(5.0)
        with pytest.raises(OutOfGrid):
            interpolator.interpolate(5.0, 5.0, T0, altitude=300.0)
