"""
Media schedule store.

Schedules are persisted independently of scenarios. Exporting a scenario
copies its sites structurally, so later edits on either side never reach
the other.
"""

import logging
import uuid
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from models.data_models import (
    BudgetSummary, CampaignSite, Scenario, Schedule, Site,
    SCHEDULE_COLUMNS, clone_sites,
)
from data.storage import LocalStorage
from .budget_calculator import calculate_budget_summary, parse_budget

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


SCHEDULES_KEY = 'mediaSchedules'
ACTIVE_SCHEDULE_KEY = 'activeScheduleId'
LEGACY_SCHEDULE_KEY = 'exportedScenario'

MIGRATED_SCHEDULE_ID = 'initial'


def _is_valid_date(value: str) -> bool:
    if value == '':
        return True
    try:
        date.fromisoformat(value)
        return True
    except ValueError:
        return False


def column_value(site: CampaignSite, column: str) -> Any:
    """Value shown for a campaign site in a schedule column."""
    values = {
        'mediaOwner': site.site.media_owner,
        'format': site.site.format,
        'name': site.site.name,
        'targetAreaName': site.target_area_name,
        'postcode': site.site.postcode,
        'frameId': site.site.id,
        'cost': site.site.cost,
    }
    return values[column]


class ScheduleStore:
    """
    Holds all media schedules and the active schedule id.

    Unlike scenarios, the collection may be empty. State is written to
    storage after every transition.
    """

    def __init__(self, storage: Optional[LocalStorage] = None):
        """
        Initialize the store, migrating a legacy single schedule if present.

        Args:
            storage: Optional storage for persisting schedules
        """
        self.storage = storage
        self.schedules: List[Schedule] = []
        self.active_schedule_id: Optional[str] = None
        self._load()

    # Persistence

    def _load(self):
        if self.storage is None:
            return

        saved = self.storage.get_item(SCHEDULES_KEY)
        if saved is None:
            self._migrate_legacy()
            return

        try:
            self.schedules = [Schedule.from_dict(s) for s in saved]
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Discarding unreadable schedules: {str(e)}")
            self.schedules = []

        active_id = self.storage.get_item(ACTIVE_SCHEDULE_KEY)
        self.active_schedule_id = active_id if self.get_schedule(active_id) else None
        self._ensure_active()

        # A legacy record left next to migrated data is never read again
        if self.storage.has_item(LEGACY_SCHEDULE_KEY):
            self.storage.remove_item(LEGACY_SCHEDULE_KEY)

    def _migrate_legacy(self):
        legacy = self.storage.get_item(LEGACY_SCHEDULE_KEY)
        if not legacy:
            return

        try:
            schedule = Schedule.from_dict(dict(legacy, id=MIGRATED_SCHEDULE_ID))
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Could not migrate legacy schedule: {str(e)}")
        else:
            self.schedules = [schedule]
            self.active_schedule_id = schedule.id
            self._save()
            logger.info("Migrated legacy schedule into schedule collection")

        self.storage.remove_item(LEGACY_SCHEDULE_KEY)

    def _save(self):
        if self.storage is None:
            return
        self.storage.set_item(SCHEDULES_KEY, [s.to_dict() for s in self.schedules])
        self.storage.set_item(ACTIVE_SCHEDULE_KEY, self.active_schedule_id)

    def _ensure_active(self):
        if self.get_schedule(self.active_schedule_id) is None:
            self.active_schedule_id = self.schedules[0].id if self.schedules else None

    # Queries

    def get_schedule(self, schedule_id: Optional[str]) -> Optional[Schedule]:
        if schedule_id is None:
            return None
        for schedule in self.schedules:
            if schedule.id == schedule_id:
                return schedule
        return None

    @property
    def active_schedule(self) -> Optional[Schedule]:
        return self.get_schedule(self.active_schedule_id)

    def budget_summary(self, schedule_id: str) -> BudgetSummary:
        schedule = self.get_schedule(schedule_id)
        if schedule is None:
            return calculate_budget_summary(None, [])
        return calculate_budget_summary(schedule.budget, schedule.sites)

    def available_sites(self, schedule_id: str, catalog_sites: Iterable[Site]) -> List[Site]:
        """Catalog sites not yet in the schedule."""
        schedule = self.get_schedule(schedule_id)
        if schedule is None:
            return []
        return [site for site in catalog_sites if not schedule.has_site(site.id)]

    def schedule_rows(self, schedule_id: str) -> List[Dict[str, Any]]:
        """Table rows for a schedule, keyed and ordered by its column order."""
        schedule = self.get_schedule(schedule_id)
        if schedule is None:
            return []
        return [
            {column: column_value(site, column) for column in schedule.column_order}
            for site in schedule.sites
        ]

    # Lifecycle

    def add_schedule(self, name: Optional[str] = None) -> Schedule:
        """Create an empty schedule and make it active."""
        name = (name or '').strip() or f"Schedule {len(self.schedules) + 1}"
        schedule = Schedule(id=uuid.uuid4().hex, name=name, campaign_name=name)
        self.schedules.append(schedule)
        self.active_schedule_id = schedule.id
        self._save()
        logger.info(f"Added schedule '{name}'")
        return schedule

    def export_from_scenario(self, scenario: Scenario, schedule_id: Optional[str] = None) -> Schedule:
        """
        Copy a scenario into a schedule.

        Without schedule_id a new schedule is created with empty campaign
        metadata. With schedule_id the sites and budget of that schedule are
        replaced and its metadata and column order kept.

        Returns:
            The schedule that received the export; it becomes active
        """
        existing = self.get_schedule(schedule_id)
        if existing is not None:
            existing.sites = clone_sites(scenario.sites)
            existing.budget = scenario.budget
            schedule = existing
        else:
            # Reuse the scenario id when free so a re-export is recognisable
            new_id = scenario.id if self.get_schedule(scenario.id) is None else uuid.uuid4().hex
            schedule = Schedule(
                id=new_id,
                name=scenario.name,
                budget=scenario.budget,
                sites=clone_sites(scenario.sites),
                campaign_name=scenario.name,
            )
            self.schedules.append(schedule)

        self.active_schedule_id = schedule.id
        self._save()
        logger.info(f"Exported scenario '{scenario.name}' to schedule '{schedule.name}'")
        return schedule

    def remove_schedule(self, schedule_id: str):
        schedule = self.get_schedule(schedule_id)
        if schedule is None:
            return
        self.schedules.remove(schedule)
        self._ensure_active()
        self._save()
        logger.info(f"Removed schedule '{schedule.name}'")

    def set_active(self, schedule_id: str):
        if self.get_schedule(schedule_id) is None:
            logger.warning(f"Cannot activate unknown schedule {schedule_id}")
            return
        self.active_schedule_id = schedule_id
        self._save()

    def rename_schedule(self, schedule_id: str, new_name: str):
        schedule = self.get_schedule(schedule_id)
        new_name = (new_name or '').strip()
        if schedule is None or not new_name:
            return
        schedule.name = new_name
        self._save()

    def set_budget(self, schedule_id: str, value: Any):
        schedule = self.get_schedule(schedule_id)
        if schedule is None:
            return
        schedule.budget = parse_budget(value)
        self._save()

    def update_metadata(self, schedule_id: str, client_name: Optional[str] = None,
                        campaign_name: Optional[str] = None, start_date: Optional[str] = None,
                        end_date: Optional[str] = None):
        """
        Update campaign metadata. Fields left as None are unchanged.

        Dates must be ISO formatted (YYYY-MM-DD) or empty; other values are
        discarded.
        """
        schedule = self.get_schedule(schedule_id)
        if schedule is None:
            return

        if client_name is not None:
            schedule.client_name = client_name
        if campaign_name is not None:
            schedule.campaign_name = campaign_name
        for attr, value in (('start_date', start_date), ('end_date', end_date)):
            if value is None:
                continue
            value = value.strip()
            if _is_valid_date(value):
                setattr(schedule, attr, value)
            else:
                logger.warning(f"Ignoring invalid {attr} '{value}' for schedule '{schedule.name}'")

        self._save()

    def set_column_order(self, schedule_id: str, new_order: List[str]) -> bool:
        """
        Reorder the display columns.

        Returns:
            False if new_order is not a permutation of the schedule columns
        """
        schedule = self.get_schedule(schedule_id)
        if schedule is None:
            return False

        new_order = list(new_order)
        if len(new_order) != len(SCHEDULE_COLUMNS) or set(new_order) != set(SCHEDULE_COLUMNS):
            logger.warning(f"Rejected column order {new_order}")
            return False

        schedule.column_order = new_order
        self._save()
        return True

    def move_column(self, schedule_id: str, column: str, offset: int) -> bool:
        """
        Move one column left (negative offset) or right, swapping with its neighbour.

        Returns:
            False if the schedule or column is unknown or the move leaves the table
        """
        schedule = self.get_schedule(schedule_id)
        if schedule is None or column not in schedule.column_order:
            return False

        order = list(schedule.column_order)
        index = order.index(column)
        target = index + offset
        if target < 0 or target >= len(order):
            return False

        order[index], order[target] = order[target], order[index]
        return self.set_column_order(schedule_id, order)

    # Sites

    def add_site_manually(self, schedule_id: str, site_id: str, catalog_sites: Iterable[Site]) -> bool:
        """
        Add a site from the full catalog as an uncategorized entry.

        Returns:
            True if the site was added
        """
        schedule = self.get_schedule(schedule_id)
        if schedule is None or schedule.has_site(site_id):
            return False

        site = next((s for s in catalog_sites if s.id == site_id), None)
        if site is None:
            logger.warning(f"Site {site_id} not found in catalog")
            return False

        schedule.sites.append(CampaignSite.from_site(site))
        self._save()
        return True

    def remove_site(self, schedule_id: str, site_id: str):
        schedule = self.get_schedule(schedule_id)
        if schedule is None:
            return
        schedule.sites = [s for s in schedule.sites if s.id != site_id]
        self._save()
