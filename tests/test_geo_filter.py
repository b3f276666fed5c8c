"""
Tests for great-circle distance and radius membership.
"""

import math
import pytest

from business_logic.geo_filter import haversine_distance, is_within_radius
from models.data_models import Site, PostcodeTarget


def make_site(lat, lng, site_id="S1"):
    return Site(id=site_id, name="Test Panel", format="48 sheet", lat=lat, lng=lng, cost=100.0)


class TestHaversineDistance:
    """Test cases for haversine_distance."""

    def test_same_point_is_zero(self):
        assert haversine_distance(51.5, -0.1, 51.5, -0.1) == pytest.approx(0.0, abs=1e-6)

    def test_one_degree_of_longitude_at_equator(self):
        assert haversine_distance(0, 0, 0, 1) == pytest.approx(111195, rel=1e-4)

    def test_symmetric(self):
        a = haversine_distance(51.4545, -2.5879, 51.4550, -2.5890)
        b = haversine_distance(51.4550, -2.5890, 51.4545, -2.5879)
        assert a == pytest.approx(b)

    def test_nan_propagates(self):
        assert math.isnan(haversine_distance(float('nan'), 0, 0, 0))


class TestIsWithinRadius:
    """Test cases for is_within_radius."""

    @pytest.mark.parametrize("radius", [0, 1, 250, 2000, 10 ** 9])
    def test_no_targets_never_constrains(self, radius):
        assert is_within_radius(make_site(10, 10), [], radius) is True

    def test_zero_radius_with_targets_excludes_everything(self):
        target = PostcodeTarget(postcode="BS1", lat=51.5, lng=-0.1)
        # Even a site on top of the target is excluded
        assert is_within_radius(make_site(51.5, -0.1), [target], 0) is False

    def test_site_on_target(self):
        target = PostcodeTarget(postcode="EC1", lat=51.5, lng=-0.1)
        assert is_within_radius(make_site(51.5, -0.1), [target], 1) is True

    def test_radius_boundary_around_one_degree(self):
        target = PostcodeTarget(postcode="NULL", lat=0, lng=0)
        site = make_site(0, 1)
        assert is_within_radius(site, [target], 100000) is False
        assert is_within_radius(site, [target], 120000) is True

    def test_any_target_is_enough(self):
        far = PostcodeTarget(postcode="FAR", lat=10, lng=10)
        near = PostcodeTarget(postcode="NEAR", lat=51.4545, lng=-2.5879)
        site = make_site(51.4550, -2.5890)
        assert is_within_radius(site, [far], 500) is False
        assert is_within_radius(site, [far, near], 500) is True

    def test_nan_coordinates_do_not_match(self):
        target = PostcodeTarget(postcode="EC1", lat=51.5, lng=-0.1)
        assert is_within_radius(make_site(float('nan'), -0.1), [target], 2000) is False
        assert is_within_radius(make_site(51.5, float('nan')), [target], 2000) is False
