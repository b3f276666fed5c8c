"""
Site catalog: loading, caching and format discovery for candidate sites.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Any, IO, Union

import requests

from models.data_models import Site
from business_logic.error_handler import SourceUnavailableError
from .parsers import SiteListParser
from .storage import LocalStorage

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


SITE_DATA_KEY = 'siteData'

DATA_SOURCE_API = 'api'
DATA_SOURCE_CSV = 'csv'


class SiteCatalog:
    """
    Holds the current list of candidate sites and the formats they cover.

    The catalog is wholly replaced on every successful load. A failed load
    leaves the previous catalog untouched.
    """

    def __init__(self, storage: Optional[LocalStorage] = None, request_timeout: float = 30.0):
        """
        Initialize the SiteCatalog.

        Args:
            storage: Storage used to cache the last loaded site list
            request_timeout: Timeout in seconds for fetching the site source
        """
        self.storage = storage
        self.request_timeout = request_timeout
        self.parser = SiteListParser()

        self.sites: List[Site] = []
        self.available_formats: List[str] = []
        self.data_source: str = DATA_SOURCE_API
        self.last_updated: Optional[datetime] = None

        self._listeners: List[Callable[[List[Site]], None]] = []

    def on_load(self, listener: Callable[[List[Site]], None]):
        """Register a callback invoked after every successful load."""
        self._listeners.append(listener)

    def load(self, raw_records: Union[List[Dict[str, Any]], Dict[str, Any]],
             data_source: str = DATA_SOURCE_API) -> List[Site]:
        """
        Map raw site records into the catalog.

        Args:
            raw_records: Decoded JSON from the site source
            data_source: 'api' or 'csv'

        Returns:
            The newly loaded sites

        Raises:
            SourceUnavailableError: If the records signal an error
        """
        sites = self.parser.parse_records(raw_records)
        self._replace(sites, data_source)
        return sites

    def load_from_url(self, url: str) -> List[Site]:
        """
        Fetch the JSON site endpoint and load its records.

        Raises:
            SourceUnavailableError: On network, HTTP or decoding failures, or
                an {error} payload
        """
        if not url:
            raise SourceUnavailableError("No site source URL configured")

        logger.info(f"Fetching site data from: {url}")
        try:
            response = requests.get(url, timeout=self.request_timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to fetch site data: {str(e)}")
            raise SourceUnavailableError(str(e)) from e
        except ValueError as e:
            logger.error(f"Site source returned invalid JSON: {str(e)}")
            raise SourceUnavailableError("Site source returned invalid JSON") from e

        return self.load(payload, DATA_SOURCE_API)

    def load_from_csv(self, source: Union[str, IO]) -> List[Site]:
        """
        Parse an uploaded CSV file and load its rows.

        Raises:
            CsvSchemaError: If required headers are missing
            SourceUnavailableError: If the file cannot be read
        """
        sites = self.parser.parse_csv(source)
        self._replace(sites, DATA_SOURCE_CSV)
        return sites

    def _replace(self, sites: List[Site], data_source: str):
        self.sites = list(sites)
        self.available_formats = sorted({site.format for site in self.sites})
        self.data_source = data_source
        self.last_updated = datetime.now()

        self._save_cache()
        logger.info(f"Loaded {len(self.sites)} sites in {len(self.available_formats)} formats from {data_source}")

        for listener in self._listeners:
            listener(self.sites)

    def _save_cache(self):
        if self.storage is None:
            return
        self.storage.set_item(SITE_DATA_KEY, {
            'dataSource': self.data_source,
            'lastUpdated': self.last_updated.isoformat(),
            'sites': [site.to_dict() for site in self.sites],
        })

    def restore(self) -> bool:
        """
        Restore the last cached site list from storage.

        Returns:
            True if a cached catalog was restored
        """
        if self.storage is None:
            return False

        cached = self.storage.get_item(SITE_DATA_KEY)
        if not cached:
            return False

        try:
            sites = [Site.from_dict(s) for s in cached.get('sites', [])]
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Discarding unreadable site cache: {str(e)}")
            self.storage.remove_item(SITE_DATA_KEY)
            return False

        self.sites = sites
        self.available_formats = sorted({site.format for site in sites})
        self.data_source = cached.get('dataSource', DATA_SOURCE_API)
        last_updated = cached.get('lastUpdated')
        self.last_updated = datetime.fromisoformat(last_updated) if last_updated else None

        logger.info(f"Restored {len(sites)} cached sites")
        for listener in self._listeners:
            listener(self.sites)
        return True

    def clear_cache(self):
        """Forget the cached site list and fall back to the API source."""
        if self.storage is not None:
            self.storage.remove_item(SITE_DATA_KEY)
        self.data_source = DATA_SOURCE_API
        logger.info("Site cache cleared")

    def find_site(self, site_id: str) -> Optional[Site]:
        for site in self.sites:
            if site.id == site_id:
                return site
        return None

    def get_catalog_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the loaded catalog.

        Returns:
            Dictionary with site counts per format and load metadata
        """
        sites_by_format: Dict[str, int] = {}
        for site in self.sites:
            sites_by_format[site.format] = sites_by_format.get(site.format, 0) + 1

        return {
            'total_sites': len(self.sites),
            'formats': list(self.available_formats),
            'sites_by_format': sites_by_format,
            'data_source': self.data_source,
            'last_updated': self.last_updated.isoformat() if self.last_updated else None,
        }
