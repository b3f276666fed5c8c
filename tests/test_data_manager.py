"""
Tests for the site catalog and local storage.
"""

import io
import pytest
import requests
from unittest.mock import Mock, patch

from data.manager import SiteCatalog, SITE_DATA_KEY
from data.storage import LocalStorage
from data.parsers import CSV_TEMPLATE
from business_logic.error_handler import CsvSchemaError, SourceUnavailableError


RECORDS = [
    {'frameId': 'A1', 'panelName': 'Harbourside', 'formatName': 'Digital 48', 'lat': 51.45, 'lng': -2.6, 'cost': 900},
    {'frameId': 'A2', 'panelName': 'Clifton', 'formatName': '6 sheet', 'lat': 51.46, 'lng': -2.61, 'cost': 150},
    {'frameId': 'A3', 'panelName': 'Redland', 'formatName': 'Digital 48', 'lat': 51.47, 'lng': -2.59, 'cost': 700},
]


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "store"))


@pytest.fixture
def catalog(storage):
    return SiteCatalog(storage)


class TestLocalStorage:
    """Test cases for LocalStorage."""

    def test_round_trip(self, storage):
        storage.set_item('scenarios', [{'id': 'x', 'budget': None}])
        assert storage.get_item('scenarios') == [{'id': 'x', 'budget': None}]
        assert storage.has_item('scenarios')

    def test_missing_key_returns_default(self, storage):
        assert storage.get_item('nothing') is None
        assert storage.get_item('nothing', []) == []

    def test_corrupt_json_reads_as_missing(self, storage):
        (storage.storage_dir / 'broken.json').write_text('{not json', encoding='utf-8')
        assert storage.get_item('broken', 'fallback') == 'fallback'

    def test_remove_item(self, storage):
        storage.set_item('activeScenarioId', 'default')
        storage.remove_item('activeScenarioId')
        assert not storage.has_item('activeScenarioId')
        # Removing again is a no-op
        storage.remove_item('activeScenarioId')

    def test_rejects_path_like_keys(self, storage):
        with pytest.raises(ValueError):
            storage.set_item('../escape', 1)


class TestSiteCatalog:
    """Test cases for SiteCatalog."""

    def test_load_recomputes_formats(self, catalog):
        sites = catalog.load(RECORDS)

        assert len(sites) == 3
        assert catalog.available_formats == ['6 sheet', 'Digital 48']
        assert catalog.find_site('A2').name == 'Clifton'
        assert catalog.find_site('missing') is None

    def test_load_notifies_listeners(self, catalog):
        listener = Mock()
        catalog.on_load(listener)
        catalog.load(RECORDS)
        listener.assert_called_once()
        assert len(listener.call_args[0][0]) == 3

    def test_error_payload_keeps_previous_catalog(self, catalog):
        catalog.load(RECORDS)
        with pytest.raises(SourceUnavailableError):
            catalog.load({'error': 'Sheet "Sites" not found.'})
        assert len(catalog.sites) == 3

    @patch('data.manager.requests.get')
    def test_load_from_url(self, mock_get, catalog):
        response = Mock()
        response.json.return_value = RECORDS
        response.raise_for_status.return_value = None
        mock_get.return_value = response

        sites = catalog.load_from_url('https://example.test/sites')

        assert [s.id for s in sites] == ['A1', 'A2', 'A3']
        assert catalog.data_source == 'api'
        mock_get.assert_called_once_with('https://example.test/sites', timeout=30.0)

    @patch('data.manager.requests.get')
    def test_network_failure_is_source_unavailable(self, mock_get, catalog):
        mock_get.side_effect = requests.exceptions.ConnectionError("connection refused")

        with pytest.raises(SourceUnavailableError):
            catalog.load_from_url('https://example.test/sites')
        assert catalog.sites == []

    @patch('data.manager.requests.get')
    def test_invalid_json_is_source_unavailable(self, mock_get, catalog):
        response = Mock()
        response.raise_for_status.return_value = None
        response.json.side_effect = ValueError("Expecting value")
        mock_get.return_value = response

        with pytest.raises(SourceUnavailableError):
            catalog.load_from_url('https://example.test/sites')

    def test_missing_url(self, catalog):
        with pytest.raises(SourceUnavailableError):
            catalog.load_from_url('')

    def test_csv_load_sets_source(self, catalog):
        catalog.load_from_csv(io.StringIO(CSV_TEMPLATE))
        assert catalog.data_source == 'csv'
        assert catalog.available_formats == ['48 sheet', '6 sheet']

    def test_invalid_csv_applies_nothing(self, catalog):
        catalog.load(RECORDS)
        with pytest.raises(CsvSchemaError):
            catalog.load_from_csv(io.StringIO("frameId,name\n1,x\n"))
        assert len(catalog.sites) == 3
        assert catalog.data_source == 'api'

    def test_cache_restored_by_new_catalog(self, storage, catalog):
        catalog.load_from_csv(io.StringIO(CSV_TEMPLATE))

        restored = SiteCatalog(storage)
        assert restored.restore() is True
        assert [s.id for s in restored.sites] == ['123', '124']
        assert restored.data_source == 'csv'
        assert restored.available_formats == ['48 sheet', '6 sheet']

    def test_clear_cache(self, storage, catalog):
        catalog.load(RECORDS)
        catalog.clear_cache()

        assert not storage.has_item(SITE_DATA_KEY)
        assert SiteCatalog(storage).restore() is False

    def test_catalog_stats(self, catalog):
        catalog.load(RECORDS)
        stats = catalog.get_catalog_stats()

        assert stats['total_sites'] == 3
        assert stats['sites_by_format'] == {'Digital 48': 2, '6 sheet': 1}
        assert stats['last_updated'] is not None
