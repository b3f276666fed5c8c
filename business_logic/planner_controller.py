"""
Planner Controller - the application state object for the OOH planner.

Built once at start-up from configuration and persisted storage, it owns the
site catalog, target areas, scenarios, schedules and the filter state, and
exposes the user actions that span more than one of them.
"""

import logging
from typing import Any, Dict, IO, List, Optional, Tuple, Union

from models.data_models import Scenario, Schedule, Site
from config.settings import AppConfig, CURRENCY_OPTIONS, apply_user_settings
from data.manager import SiteCatalog
from data.storage import LocalStorage
from .error_handler import error_handler, PlannerError
from .filter_engine import FilterState, filter_sites
from .geocoder import NominatimGeocoder
from .scenario_store import MultiSelection, ScenarioStore
from .schedule_store import ScheduleStore
from .target_areas import TargetAreaRegistry

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


USER_SETTINGS_KEY = 'settings'

ActionResult = Tuple[bool, str, Optional[Dict[str, Any]]]


class PlannerController:
    """
    Main controller for the planning workflow.

    Keeps the derived view consistent with the catalog and the active
    scenario, and converts planner errors into user notifications.
    """

    def __init__(self, config: Optional[AppConfig] = None, storage: Optional[LocalStorage] = None,
                 geocoder=None, catalog: Optional[SiteCatalog] = None):
        """
        Initialize the planner controller.

        Args:
            config: Application configuration; defaults are used if None
            storage: Storage shared by all stores; created from config if None
            geocoder: Geocoding collaborator; a NominatimGeocoder if None
            catalog: Optional pre-built SiteCatalog
        """
        self.config = config or AppConfig()
        self.storage = storage or LocalStorage(self.config.storage_dir)
        # Values saved from the Settings page win over file and environment config
        self.config = apply_user_settings(self.config, self.storage.get_item(USER_SETTINGS_KEY))

        self.filters = FilterState()
        self.selection = MultiSelection()

        self.catalog = catalog or SiteCatalog(self.storage, request_timeout=self.config.request_timeout_seconds)
        self.catalog.on_load(self._on_catalog_loaded)

        self.target_areas = TargetAreaRegistry(
            geocoder or NominatimGeocoder(self.config.geocoder_url, timeout=self.config.request_timeout_seconds),
            self.storage,
        )
        self.scenarios = ScenarioStore(self.storage)
        self.schedules = ScheduleStore(self.storage)

        self.catalog.restore()
        logger.info("PlannerController initialized")

    def _on_catalog_loaded(self, sites: List[Site]):
        # All formats are visible after every load
        self.filters.reset_formats(self.catalog.available_formats)
        self.selection.clear()

    # Derived view

    @property
    def active_scenario(self) -> Scenario:
        return self.scenarios.active_scenario

    def visible_sites(self) -> List[Site]:
        """Sites passing the current format, budget and radius filters."""
        summary = self.scenarios.budget_summary()
        return filter_sites(
            self.catalog.sites,
            self.filters,
            self.target_areas.active_targets(),
            summary.remaining_budget,
        )

    def set_radius_mode(self, enabled: bool) -> bool:
        """
        Turn radius mode on or off.

        Radius mode can only be turned on while the active area has targets.
        """
        if enabled and not self.target_areas.active_targets():
            logger.warning("Radius mode needs an active target area with targets")
            return False
        self.filters.set_radius_mode(enabled)
        return True

    def select_all_formats(self):
        self.filters.select_all_formats(self.catalog.available_formats)

    def clear_active_targets(self):
        """Remove every target from the active area and reset the radius."""
        area = self.target_areas.active_area
        if area is None:
            return
        self.target_areas.clear_targets(area.id)
        self.filters.reset_radius()

    # Scenario actions

    def add_site(self, site: Site) -> bool:
        return self.scenarios.add_site(self.active_scenario.id, site, self.target_areas.active_area)

    def add_visible_sites(self) -> int:
        return self.scenarios.add_visible_sites(
            self.active_scenario.id, self.visible_sites(), self.target_areas.active_area
        )

    def toggle_multi_select(self, site: Site):
        self.selection.toggle(site, self.active_scenario)

    def add_selected_sites(self) -> int:
        return self.scenarios.add_selected_sites(
            self.active_scenario.id, self.selection, self.target_areas.active_area
        )

    def export_active_scenario(self, schedule_id: Optional[str] = None) -> Schedule:
        """Export the active scenario into a new or existing schedule."""
        return self.schedules.export_from_scenario(self.active_scenario, schedule_id)

    # External calls

    def add_target(self, postcode_text: str) -> ActionResult:
        """
        Geocode a postcode into the active target area.

        Returns:
            Tuple of (success, status message, user_notification)
        """
        area = self.target_areas.active_area
        if area is None:
            return False, "Select or create a target area first", None

        try:
            target = self.target_areas.add_target(area.id, postcode_text)
        except PlannerError as e:
            notification = error_handler.handle(e, "Add target")
            return False, notification['message'], notification

        if target is None:
            return False, "Enter a postcode", None
        return True, f"Added {target.postcode} to {area.name}", None

    def load_sites_from_url(self, url: Optional[str] = None) -> ActionResult:
        """
        Load the catalog from the JSON site endpoint.

        Returns:
            Tuple of (success, status message, user_notification)
        """
        try:
            sites = self.catalog.load_from_url(url or self.config.site_source_url)
        except PlannerError as e:
            notification = error_handler.handle(e, "Site source")
            return False, notification['message'], notification
        return True, f"Loaded {len(sites)} sites", None

    def load_sites_from_csv(self, source: Union[str, IO]) -> ActionResult:
        """
        Load the catalog from an uploaded CSV file.

        Returns:
            Tuple of (success, status message, user_notification)
        """
        try:
            sites = self.catalog.load_from_csv(source)
        except PlannerError as e:
            notification = error_handler.handle(e, "CSV upload")
            return False, notification['message'], notification
        return True, f"Loaded {len(sites)} sites from CSV", None

    # Settings

    def update_settings(self, site_source_url: Optional[str] = None,
                        currency_symbol: Optional[str] = None) -> bool:
        """
        Change user-editable settings and save them for later sessions.

        Args:
            site_source_url: JSON site endpoint; None leaves it unchanged
            currency_symbol: One of CURRENCY_OPTIONS; None leaves it unchanged

        Returns:
            False if the currency is not supported; nothing is changed then
        """
        if currency_symbol is not None and currency_symbol not in CURRENCY_OPTIONS:
            logger.warning(f"Unsupported currency '{currency_symbol}'")
            return False

        saved = {
            'siteSourceUrl': self.config.site_source_url if site_source_url is None else site_source_url.strip(),
            'currency': self.config.currency_symbol if currency_symbol is None else currency_symbol,
        }
        self.config = apply_user_settings(self.config, saved)
        self.storage.set_item(USER_SETTINGS_KEY, saved)
        logger.info("Settings saved")
        return True
