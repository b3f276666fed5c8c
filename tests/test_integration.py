"""
Integration tests for complete planning workflows.

These tests drive the PlannerController across the catalog, target areas,
scenarios and schedules with real storage and a mocked geocoder.
"""

import io
import shutil
import tempfile
from unittest.mock import Mock, patch

import requests

from business_logic.planner_controller import PlannerController
from config.settings import AppConfig
from data.storage import LocalStorage


SITES_CSV = (
    "frameId,panelName,formatName,lat,lng,cost,mediaOwner,postcode\n"
    "F1,Temple Meads,48 sheet,51.4494,-2.5813,1200,Clear Channel,BS1 6QF\n"
    "F2,Cabot Circus,6 sheet,51.4585,-2.5843,300,JCDecaux,BS1 3BX\n"
    "F3,Harbourside,48 sheet,51.4505,-2.5980,800,Global,BS1 5DB\n"
    "F4,Bath Spa,48 sheet,51.3776,-2.3569,600,Global,BA1 1SU\n"
)


class TestPlanningWorkflow:
    """Test the map planning workflow end-to-end."""

    def setup_method(self):
        """Set up a controller with temporary storage and a fake geocoder."""
        self.temp_dir = tempfile.mkdtemp()
        self.config = AppConfig(storage_dir=self.temp_dir, site_source_url="https://sites.example.test/exec")
        self.geocoder = Mock()
        self.geocoder.search.return_value = [{'lat': '51.4545', 'lon': '-2.5879'}]
        self.controller = self._new_controller()

        success, message, _ = self.controller.load_sites_from_csv(io.StringIO(SITES_CSV))
        assert success, message

    def teardown_method(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir)

    def _new_controller(self):
        return PlannerController(self.config, LocalStorage(self.temp_dir), geocoder=self.geocoder)

    def _visible_ids(self):
        return [s.id for s in self.controller.visible_sites()]

    def test_catalog_load_selects_all_formats(self):
        assert self.controller.filters.selected_formats == ['48 sheet', '6 sheet']
        assert self._visible_ids() == ['F1', 'F2', 'F3', 'F4']

    def test_radius_planning_flow(self):
        controller = self.controller

        # Radius mode needs targets first
        assert controller.set_radius_mode(True) is False

        area = controller.target_areas.create_area("Bristol Centre")
        controller.target_areas.set_active(area.id)
        success, message, _ = controller.add_target("BS1 4DJ")
        assert success, message

        assert controller.set_radius_mode(True) is True
        controller.filters.set_radius(1000)
        assert self._visible_ids() == ['F1', 'F2', 'F3']

        assert controller.add_visible_sites() == 3
        scenario = controller.active_scenario
        assert {s.target_area_name for s in scenario.sites} == {"Bristol Centre"}

        # Select all formats drops radius mode
        controller.select_all_formats()
        assert controller.filters.radius_mode is False
        assert 'F4' in self._visible_ids()

    def test_budget_mode_hides_unaffordable_sites(self):
        controller = self.controller
        controller.scenarios.set_budget(controller.active_scenario.id, 1500)
        controller.add_site(controller.catalog.find_site('F3'))
        controller.filters.set_budget_mode(True)

        # 700 remaining
        assert self._visible_ids() == ['F2', 'F4']

    def test_multi_select_flow(self):
        controller = self.controller
        controller.selection.set_enabled(True)
        controller.toggle_multi_select(controller.catalog.find_site('F1'))
        controller.toggle_multi_select(controller.catalog.find_site('F4'))

        assert controller.add_selected_sites() == 2
        assert [s.id for s in controller.active_scenario.sites] == ['F1', 'F4']
        assert controller.selection.enabled is False

    def test_export_then_edit_independently(self):
        controller = self.controller
        controller.add_site(controller.catalog.find_site('F1'))
        controller.add_site(controller.catalog.find_site('F2'))

        schedule = controller.export_active_scenario()
        controller.scenarios.remove_site(controller.active_scenario.id, 'F1')
        controller.schedules.add_site_manually(schedule.id, 'F4', controller.catalog.sites)

        assert [s.id for s in schedule.sites] == ['F1', 'F2', 'F4']
        assert [s.id for s in controller.active_scenario.sites] == ['F2']

    def test_undo_after_bulk_add(self):
        controller = self.controller
        controller.add_visible_sites()
        assert len(controller.active_scenario.sites) == 4
        assert controller.scenarios.undo() is True
        assert controller.active_scenario.sites == []

    def test_state_restored_by_new_controller(self):
        controller = self.controller
        area = controller.target_areas.create_area("Bristol")
        controller.target_areas.set_active(area.id)
        controller.add_target("BS1 4DJ")
        controller.add_site(controller.catalog.find_site('F2'))
        controller.export_active_scenario()

        restored = self._new_controller()

        assert [s.id for s in restored.catalog.sites] == ['F1', 'F2', 'F3', 'F4']
        assert restored.filters.selected_formats == ['48 sheet', '6 sheet']
        assert restored.target_areas.active_area.name == "Bristol"
        assert [s.id for s in restored.active_scenario.sites] == ['F2']
        assert len(restored.schedules.schedules) == 1

    def test_clear_active_targets_resets_radius(self):
        controller = self.controller
        area = controller.target_areas.create_area("Bristol")
        controller.target_areas.set_active(area.id)
        controller.add_target("BS1 4DJ")
        controller.filters.set_radius(1500)

        controller.clear_active_targets()

        assert area.targets == []
        assert controller.filters.radius == 0


class TestFailureHandling:
    """Test that failures surface as notifications and leave state intact."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.geocoder = Mock()
        self.controller = PlannerController(
            AppConfig(storage_dir=self.temp_dir, site_source_url="https://sites.example.test/exec"),
            LocalStorage(self.temp_dir),
            geocoder=self.geocoder,
        )

    def teardown_method(self):
        shutil.rmtree(self.temp_dir)

    def test_add_target_without_area(self):
        success, message, notification = self.controller.add_target("BS1")
        assert success is False
        assert message == "Select or create a target area first"
        assert notification is None

    def test_blank_postcode(self):
        area = self.controller.target_areas.create_area("Bristol")
        self.controller.target_areas.set_active(area.id)
        assert self.controller.add_target("  ") == (False, "Enter a postcode", None)

    def test_postcode_not_found(self):
        self.geocoder.search.return_value = []
        area = self.controller.target_areas.create_area("Bristol")
        self.controller.target_areas.set_active(area.id)

        success, message, notification = self.controller.add_target("ZZ99 9ZZ")

        assert success is False
        assert message == "Postcode not found"
        assert notification['type'] == 'warning'
        assert area.targets == []

    def test_geocoder_network_error(self):
        self.geocoder.search.side_effect = requests.exceptions.ConnectionError("offline")
        area = self.controller.target_areas.create_area("Bristol")
        self.controller.target_areas.set_active(area.id)

        success, message, _ = self.controller.add_target("BS1")

        assert success is False
        assert message == "Failed to geocode postcode"

    @patch('data.manager.requests.get')
    def test_source_failure_keeps_catalog(self, mock_get):
        self.controller.load_sites_from_csv(io.StringIO(SITES_CSV))
        mock_get.side_effect = requests.exceptions.Timeout("timed out")

        success, _, notification = self.controller.load_sites_from_url()

        assert success is False
        assert notification['type'] == 'error'
        assert len(self.controller.catalog.sites) == 4

    @patch('data.manager.requests.get')
    def test_url_load_success(self, mock_get):
        response = Mock()
        response.raise_for_status.return_value = None
        response.json.return_value = [
            {'frameId': 'X1', 'panelName': 'One', 'formatName': 'Digital', 'lat': 51.5, 'lng': -0.1, 'cost': 10},
        ]
        mock_get.return_value = response

        success, message, _ = self.controller.load_sites_from_url()

        assert success is True
        assert message == "Loaded 1 sites"
        assert self.controller.filters.selected_formats == ['Digital']

    def test_invalid_csv_reports_schema_error(self):
        success, message, notification = self.controller.load_sites_from_csv(io.StringIO("frameId,lat\n1,2\n"))
        assert success is False
        assert message.startswith("CSV is missing required headers")
        assert notification['title'] == "Invalid CSV File"


class TestSavedSettings:
    """Test that Settings page values survive a new session."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.config = AppConfig(storage_dir=self.temp_dir, site_source_url="https://env.example.test/exec")

    def teardown_method(self):
        shutil.rmtree(self.temp_dir)

    def _new_controller(self):
        return PlannerController(self.config, LocalStorage(self.temp_dir), geocoder=Mock())

    def test_round_trip(self):
        controller = self._new_controller()
        assert controller.update_settings(site_source_url=" https://saved.example.test/exec ") is True
        assert controller.update_settings(currency_symbol="€") is True

        restored = self._new_controller()

        assert restored.config.site_source_url == "https://saved.example.test/exec"
        assert restored.config.currency_symbol == "€"
        assert LocalStorage(self.temp_dir).get_item('settings') == {
            'siteSourceUrl': "https://saved.example.test/exec",
            'currency': "€",
        }
        # The caller's config object is left alone
        assert self.config.site_source_url == "https://env.example.test/exec"

    def test_unsupported_currency_rejected(self):
        controller = self._new_controller()
        assert controller.update_settings(currency_symbol="CHF") is False
        assert controller.config.currency_symbol == "£"
        assert not LocalStorage(self.temp_dir).has_item('settings')

    @patch('data.manager.requests.get')
    def test_saved_url_used_for_loading(self, mock_get):
        response = Mock()
        response.raise_for_status.return_value = None
        response.json.return_value = []
        mock_get.return_value = response

        self._new_controller().update_settings(site_source_url="https://saved.example.test/exec")
        self._new_controller().load_sites_from_url()

        assert mock_get.call_args[0][0] == "https://saved.example.test/exec"


class TestBlankFrameIds:
    """Test that rows without a frame id never reach scenarios."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.controller = PlannerController(
            AppConfig(storage_dir=self.temp_dir), LocalStorage(self.temp_dir), geocoder=Mock()
        )

    def teardown_method(self):
        shutil.rmtree(self.temp_dir)

    def test_blank_ids_skipped_before_adding(self):
        csv_text = (
            "frameId,panelName,formatName,lat,lng,cost\n"
            ",Nameless A,48 sheet,51.45,-2.58,100\n"
            ",Nameless B,48 sheet,51.46,-2.59,100\n"
            "F7,Named,48 sheet,51.47,-2.60,100\n"
        )
        success, message, _ = self.controller.load_sites_from_csv(io.StringIO(csv_text))

        assert success is True
        assert message == "Loaded 1 sites from CSV"
        assert self.controller.add_visible_sites() == 1
        assert [s.id for s in self.controller.active_scenario.sites] == ['F7']
