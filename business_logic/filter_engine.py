"""
Derived view over the site catalog: format, radius and budget filtering.

Control coupling is explicit: the only transition that touches more than one
control is select_all_formats, which also turns radius mode off.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from models.data_models import PostcodeTarget, Site
from .geo_filter import is_within_radius

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


RADIUS_MIN = 0
RADIUS_MAX = 2000
RADIUS_STEP = 250


@dataclass
class FilterState:
    """User-controlled filter settings for the map view."""
    selected_formats: List[str] = field(default_factory=list)
    radius_mode: bool = False
    radius: int = RADIUS_MIN
    budget_mode: bool = False

    def toggle_format(self, fmt: str):
        """Select or deselect one format. Radius mode is left as it is."""
        if fmt in self.selected_formats:
            self.selected_formats = [f for f in self.selected_formats if f != fmt]
        else:
            self.selected_formats = self.selected_formats + [fmt]

    def select_all_formats(self, available_formats: Iterable[str]):
        """Select every format and turn radius mode off."""
        self.selected_formats = list(available_formats)
        self.radius_mode = False

    def clear_formats(self):
        self.selected_formats = []

    def reset_formats(self, available_formats: Iterable[str]):
        """Select every format after a catalog load. Radius mode is unchanged."""
        self.selected_formats = list(available_formats)

    def set_radius_mode(self, enabled: bool):
        self.radius_mode = bool(enabled)

    def set_budget_mode(self, enabled: bool):
        self.budget_mode = bool(enabled)

    def set_radius(self, meters: float):
        """Set the radius, clamped to the slider range and snapped to its step."""
        meters = max(RADIUS_MIN, min(RADIUS_MAX, meters))
        self.radius = int(round(meters / RADIUS_STEP) * RADIUS_STEP)

    def reset_radius(self):
        self.radius = RADIUS_MIN


def site_passes(site: Site, state: FilterState, targets: Sequence[PostcodeTarget],
                remaining_budget: Optional[float]) -> bool:
    """Check one site against the format, budget and radius rules."""
    if site.format not in state.selected_formats:
        return False

    if state.budget_mode and remaining_budget is not None and site.cost > remaining_budget:
        return False

    if state.radius_mode and not is_within_radius(site, targets, state.radius):
        return False

    return True


def filter_sites(sites: Iterable[Site], state: FilterState, targets: Sequence[PostcodeTarget],
                 remaining_budget: Optional[float] = None) -> List[Site]:
    """
    Return the sites visible under the current filter state.

    Args:
        sites: Site catalog
        state: Current filter settings
        targets: Targets of the active target area
        remaining_budget: Remaining budget of the active scenario, if set

    Returns:
        Sites passing every rule, in catalog order
    """
    return [site for site in sites if site_passes(site, state, targets, remaining_budget)]
