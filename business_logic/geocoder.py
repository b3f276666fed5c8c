"""
Postcode geocoding through a Nominatim-compatible search endpoint.
"""

import logging
from typing import Any, Dict, List

import requests

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


DEFAULT_GEOCODER_URL = "https://nominatim.openstreetmap.org/search"


class NominatimGeocoder:
    """
    Resolve free text to candidate locations.

    Each candidate is a dict with at least 'lat' and 'lon' strings. An empty
    list means nothing matched; transport and decoding failures raise.
    """

    def __init__(self, base_url: str = DEFAULT_GEOCODER_URL, timeout: float = 10.0,
                 user_agent: str = "ooh-media-planner"):
        self.base_url = base_url
        self.timeout = timeout
        self.user_agent = user_agent

    def search(self, text: str) -> List[Dict[str, Any]]:
        """
        Look up text and return candidate results, best first.

        Raises:
            requests.exceptions.RequestException: On network or HTTP failures
            ValueError: If the response is not a JSON list
        """
        response = requests.get(
            self.base_url,
            params={'format': 'json', 'q': text},
            headers={'User-Agent': self.user_agent},
            timeout=self.timeout,
        )
        response.raise_for_status()
        results = response.json()

        if not isinstance(results, list):
            raise ValueError("Unexpected geocoder response")

        logger.info(f"Geocode result for '{text}': {len(results)} candidate(s)")
        return results
