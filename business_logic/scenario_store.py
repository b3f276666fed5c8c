"""
Scenario store with snapshot-based undo.

Every mutation works on a structural copy of the scenario set and commits
it as a new history snapshot, unless the result is value-identical to the
current state. The live scenario set always equals the last snapshot, and
undo never removes the first one.
"""

import json
import logging
import uuid
from typing import Any, Iterable, List, Optional

from models.data_models import BudgetSummary, CampaignSite, Scenario, Site, TargetArea
from data.storage import LocalStorage
from .budget_calculator import calculate_budget_summary, parse_budget

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


SCENARIOS_KEY = 'scenarios'
SCENARIO_HISTORY_KEY = 'scenarioHistory'
ACTIVE_SCENARIO_KEY = 'activeScenarioId'

DEFAULT_SCENARIO_ID = 'default'


def default_scenario() -> Scenario:
    return Scenario(id=DEFAULT_SCENARIO_ID, name='Scenario 1')


def _clone_all(scenarios: Iterable[Scenario]) -> List[Scenario]:
    return [s.clone() for s in scenarios]


def _state_key(scenarios: Iterable[Scenario]) -> str:
    # Serialized comparison so NaN coordinates compare equal to themselves
    return json.dumps([s.to_dict() for s in scenarios], sort_keys=True)


class MultiSelection:
    """
    Staged multi-select set of sites waiting to be added to a scenario.

    Turning the mode off discards the staged sites.
    """

    def __init__(self):
        self.enabled = False
        self.sites: List[Site] = []

    def set_enabled(self, enabled: bool):
        self.enabled = bool(enabled)
        if not self.enabled:
            self.sites = []

    def contains(self, site_id: str) -> bool:
        return any(s.id == site_id for s in self.sites)

    def toggle(self, site: Site, scenario: Optional[Scenario] = None):
        """Add or remove a site from the staged set."""
        if not self.enabled:
            return
        # Sites already in the scenario cannot be staged
        if scenario is not None and scenario.has_site(site.id):
            return
        if self.contains(site.id):
            self.sites = [s for s in self.sites if s.id != site.id]
        else:
            self.sites.append(site)

    def clear(self):
        self.sites = []


class ScenarioStore:
    """
    Holds all scenarios, the active scenario id and the undo history.

    At least one scenario always exists. State is written to storage after
    every transition and read back on construction.
    """

    def __init__(self, storage: Optional[LocalStorage] = None):
        """
        Initialize the store.

        Args:
            storage: Optional storage for persisting scenarios and history
        """
        self.storage = storage
        self.scenarios: List[Scenario] = [default_scenario()]
        self.history: List[List[Scenario]] = [_clone_all(self.scenarios)]
        self.active_scenario_id: str = DEFAULT_SCENARIO_ID
        self._load()

    # Persistence

    def _load(self):
        if self.storage is None:
            return

        saved = self.storage.get_item(SCENARIOS_KEY)
        if not saved:
            return

        try:
            scenarios = [Scenario.from_dict(s) for s in saved]
            history = [
                [Scenario.from_dict(s) for s in snapshot]
                for snapshot in self.storage.get_item(SCENARIO_HISTORY_KEY, [])
            ]
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Discarding unreadable scenario state: {str(e)}")
            return

        if not scenarios:
            scenarios = [default_scenario()]

        # The live state must be the last snapshot
        if not history or _state_key(history[-1]) != _state_key(scenarios):
            history.append(_clone_all(scenarios))

        self.scenarios = scenarios
        self.history = history
        self.active_scenario_id = self.storage.get_item(ACTIVE_SCENARIO_KEY) or scenarios[0].id
        self._ensure_active()
        logger.info(f"Loaded {len(scenarios)} scenario(s) with {len(history)} history snapshot(s)")

    def _save(self):
        if self.storage is None:
            return
        self.storage.set_item(SCENARIOS_KEY, [s.to_dict() for s in self.scenarios])
        self.storage.set_item(SCENARIO_HISTORY_KEY, [[s.to_dict() for s in snapshot] for snapshot in self.history])
        self.storage.set_item(ACTIVE_SCENARIO_KEY, self.active_scenario_id)

    # Internal helpers

    def _ensure_active(self):
        if self.get_scenario(self.active_scenario_id) is None:
            self.active_scenario_id = self.scenarios[0].id

    def _working_copy(self) -> List[Scenario]:
        return _clone_all(self.scenarios)

    def _commit(self, scenarios: List[Scenario]) -> bool:
        """
        Make scenarios the live state and record a snapshot.

        Returns:
            False if nothing changed and no snapshot was recorded
        """
        if _state_key(scenarios) == _state_key(self.scenarios):
            return False

        self.scenarios = scenarios
        self.history.append(_clone_all(scenarios))
        self._ensure_active()
        self._save()
        return True

    @staticmethod
    def _find(scenarios: List[Scenario], scenario_id: str) -> Optional[Scenario]:
        for scenario in scenarios:
            if scenario.id == scenario_id:
                return scenario
        return None

    @staticmethod
    def _append_sites(scenario: Scenario, sites: Iterable[Site], area: Optional[TargetArea]) -> int:
        added = 0
        for site in sites:
            if not scenario.has_site(site.id):
                scenario.sites.append(CampaignSite.from_site(site, area))
                added += 1
        return added

    # Queries

    def get_scenario(self, scenario_id: Optional[str]) -> Optional[Scenario]:
        if scenario_id is None:
            return None
        return self._find(self.scenarios, scenario_id)

    @property
    def active_scenario(self) -> Scenario:
        return self.get_scenario(self.active_scenario_id) or self.scenarios[0]

    @property
    def can_undo(self) -> bool:
        return len(self.history) > 1

    def budget_summary(self, scenario_id: Optional[str] = None) -> BudgetSummary:
        scenario = self.get_scenario(scenario_id) if scenario_id else self.active_scenario
        if scenario is None:
            return calculate_budget_summary(None, [])
        return calculate_budget_summary(scenario.budget, scenario.sites)

    # Scenario lifecycle

    def create_scenario(self, name: Optional[str] = None, budget: Optional[float] = None) -> Scenario:
        """
        Create a scenario and make it active.

        Args:
            name: Display name; defaults to "Scenario N"
            budget: Optional non-negative budget

        Returns:
            The new scenario
        """
        name = (name or '').strip() or f"Scenario {len(self.scenarios) + 1}"
        scenario = Scenario(id=uuid.uuid4().hex, name=name, budget=parse_budget(budget))

        scenarios = self._working_copy()
        scenarios.append(scenario)
        self.active_scenario_id = scenario.id
        self._commit(scenarios)
        logger.info(f"Created scenario '{name}'")
        return self.get_scenario(scenario.id)

    def remove_scenario(self, scenario_id: str):
        """Delete a scenario, keeping at least one scenario in the store."""
        scenarios = [s for s in self._working_copy() if s.id != scenario_id]
        if len(scenarios) == len(self.scenarios):
            return

        if not scenarios:
            scenarios = [default_scenario()]
        if self.active_scenario_id == scenario_id:
            self.active_scenario_id = scenarios[0].id

        self._commit(scenarios)
        logger.info(f"Removed scenario {scenario_id}")

    def set_active(self, scenario_id: str):
        if self.get_scenario(scenario_id) is None:
            logger.warning(f"Cannot activate unknown scenario {scenario_id}")
            return
        self.active_scenario_id = scenario_id
        self._save()

    def rename_scenario(self, scenario_id: str, new_name: str):
        new_name = (new_name or '').strip()
        if not new_name:
            return
        scenarios = self._working_copy()
        scenario = self._find(scenarios, scenario_id)
        if scenario is None:
            return
        scenario.name = new_name
        self._commit(scenarios)

    def set_budget(self, scenario_id: str, value: Any):
        """Set the budget from user input; invalid or negative input unsets it."""
        scenarios = self._working_copy()
        scenario = self._find(scenarios, scenario_id)
        if scenario is None:
            return
        scenario.budget = parse_budget(value)
        self._commit(scenarios)

    # Site operations

    def add_site(self, scenario_id: str, site: Site, active_area: Optional[TargetArea] = None) -> bool:
        """
        Append a site unless the scenario already contains it.

        Returns:
            True if the site was added
        """
        scenarios = self._working_copy()
        scenario = self._find(scenarios, scenario_id)
        if scenario is None:
            return False
        self._append_sites(scenario, [site], active_area)
        return self._commit(scenarios)

    def add_visible_sites(self, scenario_id: str, visible_sites: Iterable[Site],
                          active_area: Optional[TargetArea] = None) -> int:
        """
        Bulk-add the currently visible sites not already in the scenario.

        Returns:
            Number of sites added
        """
        scenarios = self._working_copy()
        scenario = self._find(scenarios, scenario_id)
        if scenario is None:
            return 0
        added = self._append_sites(scenario, visible_sites, active_area)
        self._commit(scenarios)
        logger.info(f"Added {added} visible site(s) to scenario '{scenario.name}'")
        return added

    def add_selected_sites(self, scenario_id: str, selection: MultiSelection,
                           active_area: Optional[TargetArea] = None) -> int:
        """
        Bulk-add a staged multi-selection, then clear it and leave multi-select mode.

        Returns:
            Number of sites added
        """
        scenarios = self._working_copy()
        scenario = self._find(scenarios, scenario_id)
        added = 0
        if scenario is not None:
            added = self._append_sites(scenario, selection.sites, active_area)
            self._commit(scenarios)

        selection.clear()
        selection.set_enabled(False)
        return added

    def remove_site(self, scenario_id: str, site_id: str):
        scenarios = self._working_copy()
        scenario = self._find(scenarios, scenario_id)
        if scenario is None:
            return
        scenario.sites = [s for s in scenario.sites if s.id != site_id]
        self._commit(scenarios)

    def clear_scenario(self, scenario_id: str):
        scenarios = self._working_copy()
        scenario = self._find(scenarios, scenario_id)
        if scenario is None:
            return
        scenario.sites = []
        self._commit(scenarios)

    def undo(self) -> bool:
        """
        Restore the previous snapshot.

        Returns:
            False if only the initial snapshot remains
        """
        if len(self.history) <= 1:
            return False

        self.history.pop()
        self.scenarios = _clone_all(self.history[-1])
        self._ensure_active()
        self._save()
        logger.info("Undid last scenario change")
        return True
