"""
Tests for the derived site view.
"""

import pytest

from business_logic.filter_engine import FilterState, filter_sites, RADIUS_MAX
from models.data_models import PostcodeTarget, Site


BRISTOL = PostcodeTarget(postcode="BS1 4DJ", lat=51.4545, lng=-2.5879)


@pytest.fixture
def sites():
    return [
        Site(id="1", name="Near A", format="A", lat=51.4550, lng=-2.5890, cost=100.0),
        Site(id="2", name="Far A", format="A", lat=52.4862, lng=-1.8904, cost=100.0),
        Site(id="3", name="Near B", format="B", lat=51.4546, lng=-2.5880, cost=900.0),
        Site(id="4", name="Dear A", format="A", lat=51.4547, lng=-2.5881, cost=5000.0),
    ]


def ids(result):
    return [s.id for s in result]


class TestFormatFilter:
    """Test cases for format selection."""

    @pytest.mark.parametrize("radius_mode", [False, True])
    @pytest.mark.parametrize("budget_mode", [False, True])
    def test_only_selected_formats_pass(self, sites, radius_mode, budget_mode):
        state = FilterState(selected_formats=["A"], radius_mode=radius_mode, radius=2000, budget_mode=budget_mode)
        result = filter_sites(sites, state, [BRISTOL], remaining_budget=10000)
        assert all(s.format == "A" for s in result)

    def test_no_formats_selected_hides_everything(self, sites):
        assert filter_sites(sites, FilterState(), []) == []

    def test_toggle_format(self):
        state = FilterState(selected_formats=["A", "B"], radius_mode=True)
        state.toggle_format("A")
        assert state.selected_formats == ["B"]
        state.toggle_format("A")
        assert state.selected_formats == ["B", "A"]
        assert state.radius_mode is True

    def test_select_all_turns_radius_mode_off(self):
        state = FilterState(radius_mode=True, radius=500)
        state.select_all_formats(["A", "B"])
        assert state.selected_formats == ["A", "B"]
        assert state.radius_mode is False
        assert state.radius == 500

    def test_reset_formats_leaves_radius_mode(self):
        state = FilterState(radius_mode=True)
        state.reset_formats(["A"])
        assert state.radius_mode is True


class TestBudgetFilter:
    """Test cases for budget mode."""

    def test_hides_sites_over_remaining(self, sites):
        state = FilterState(selected_formats=["A", "B"], budget_mode=True)
        assert ids(filter_sites(sites, state, [], remaining_budget=1000)) == ["1", "2", "3"]

    def test_site_equal_to_remaining_passes(self, sites):
        state = FilterState(selected_formats=["B"], budget_mode=True)
        assert ids(filter_sites(sites, state, [], remaining_budget=900)) == ["3"]

    def test_no_budget_means_no_constraint(self, sites):
        state = FilterState(selected_formats=["A", "B"], budget_mode=True)
        assert len(filter_sites(sites, state, [], remaining_budget=None)) == 4

    def test_budget_mode_off_ignores_remaining(self, sites):
        state = FilterState(selected_formats=["A", "B"])
        assert len(filter_sites(sites, state, [], remaining_budget=0)) == 4


class TestRadiusFilter:
    """Test cases for radius mode."""

    def test_keeps_sites_near_targets(self, sites):
        state = FilterState(selected_formats=["A", "B"], radius_mode=True, radius=500)
        assert ids(filter_sites(sites, state, [BRISTOL])) == ["1", "3", "4"]

    def test_zero_radius_with_targets_hides_everything(self, sites):
        state = FilterState(selected_formats=["A", "B"], radius_mode=True, radius=0)
        assert filter_sites(sites, state, [BRISTOL]) == []

    def test_no_targets_leaves_view_unconstrained(self, sites):
        state = FilterState(selected_formats=["A", "B"], radius_mode=True, radius=0)
        assert len(filter_sites(sites, state, [])) == 4

    def test_all_rules_combine(self, sites):
        state = FilterState(selected_formats=["A"], radius_mode=True, radius=500, budget_mode=True)
        assert ids(filter_sites(sites, state, [BRISTOL], remaining_budget=1000)) == ["1"]

    @pytest.mark.parametrize("value,expected", [
        (-100, 0),
        (0, 0),
        (300, 250),
        (400, 500),
        (1999, 2000),
        (99999, RADIUS_MAX),
    ])
    def test_set_radius_clamps_and_snaps(self, value, expected):
        state = FilterState()
        state.set_radius(value)
        assert state.radius == expected

    def test_reset_radius(self):
        state = FilterState(radius=750)
        state.reset_radius()
        assert state.radius == 0
