"""
Target area registry: named groups of geocoded postcodes.

Target areas are independent of scenarios. The active area supplies the
targets for radius filtering and the provenance recorded on newly added
campaign sites.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from models.data_models import PostcodeTarget, TargetArea
from data.storage import LocalStorage
from .error_handler import GeocodeNotFoundError, GeocodeFailedError

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


TARGET_AREAS_KEY = 'targetAreas'


class TargetAreaRegistry:
    """
    Manages target areas and their postcode targets.

    At most one area is active at a time. Names that trim to empty are
    ignored rather than raising.
    """

    def __init__(self, geocoder, storage: Optional[LocalStorage] = None):
        """
        Initialize the registry.

        Args:
            geocoder: Object with search(text) -> list of {'lat', 'lon'} dicts
            storage: Optional storage for persisting areas between sessions
        """
        self.geocoder = geocoder
        self.storage = storage
        self.areas: List[TargetArea] = []
        self.active_area_id: Optional[str] = None
        self._load()

    def _load(self):
        if self.storage is None:
            return
        saved = self.storage.get_item(TARGET_AREAS_KEY)
        if not saved:
            return
        try:
            self.areas = [TargetArea.from_dict(a) for a in saved.get('areas', [])]
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Discarding unreadable target areas: {str(e)}")
            self.areas = []
            return
        active_id = saved.get('activeAreaId')
        self.active_area_id = active_id if self.get_area(active_id) else None

    def _save(self):
        if self.storage is None:
            return
        self.storage.set_item(TARGET_AREAS_KEY, self.to_dict())

    def get_area(self, area_id: Optional[str]) -> Optional[TargetArea]:
        if area_id is None:
            return None
        for area in self.areas:
            if area.id == area_id:
                return area
        return None

    @property
    def active_area(self) -> Optional[TargetArea]:
        return self.get_area(self.active_area_id)

    def active_targets(self) -> List[PostcodeTarget]:
        area = self.active_area
        return list(area.targets) if area else []

    def create_area(self, name: str) -> Optional[TargetArea]:
        """
        Create a new, empty target area.

        Returns:
            The new area, or None if the name is blank
        """
        name = (name or '').strip()
        if not name:
            logger.warning("Ignoring target area with empty name")
            return None

        area = TargetArea(id=uuid.uuid4().hex, name=name)
        self.areas.append(area)
        self._save()
        logger.info(f"Created target area '{name}' ({area.id})")
        return area

    def remove_area(self, area_id: str):
        area = self.get_area(area_id)
        if area is None:
            return
        self.areas.remove(area)
        if self.active_area_id == area_id:
            self.active_area_id = None
        self._save()
        logger.info(f"Removed target area '{area.name}'")

    def rename_area(self, area_id: str, new_name: str):
        area = self.get_area(area_id)
        new_name = (new_name or '').strip()
        if area is None or not new_name:
            return
        area.name = new_name
        self._save()

    def set_active(self, area_id: Optional[str]):
        """Make an area active, or clear the active area with None."""
        if area_id is not None and self.get_area(area_id) is None:
            logger.warning(f"Cannot activate unknown target area {area_id}")
            return
        self.active_area_id = area_id
        self._save()

    def add_target(self, area_id: str, postcode_text: str) -> Optional[PostcodeTarget]:
        """
        Geocode a postcode and append it to an area.

        A postcode already present in the area (compared case-insensitively)
        is not geocoded again; the existing target is returned.

        Args:
            area_id: Area receiving the target
            postcode_text: Free text to geocode

        Returns:
            The new or existing target, or None for blank input or unknown area

        Raises:
            GeocodeNotFoundError: If the geocoder returns no candidates
            GeocodeFailedError: If the geocoder call fails
        """
        area = self.get_area(area_id)
        postcode = (postcode_text or '').strip()
        if area is None or not postcode:
            return None

        for target in area.targets:
            if target.postcode.strip().lower() == postcode.lower():
                logger.info(f"Postcode '{postcode}' already in area '{area.name}'")
                return target

        try:
            results = self.geocoder.search(postcode)
        except Exception as e:
            logger.error(f"Geocoding API error for '{postcode}': {str(e)}")
            raise GeocodeFailedError(postcode, str(e)) from e

        if not results:
            raise GeocodeNotFoundError(postcode)

        try:
            lat = float(results[0]['lat'])
            lng = float(results[0]['lon'])
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodeFailedError(postcode, f"Unreadable geocoder result: {str(e)}") from e

        target = PostcodeTarget(postcode=postcode, lat=lat, lng=lng)
        area.targets.append(target)
        self._save()
        logger.info(f"Added target '{postcode}' to area '{area.name}'")
        return target

    def remove_target(self, area_id: str, postcode: str):
        area = self.get_area(area_id)
        if area is None:
            return
        remaining = [t for t in area.targets if t.postcode != postcode]
        if len(remaining) != len(area.targets):
            area.targets = remaining
            self._save()

    def clear_targets(self, area_id: str):
        area = self.get_area(area_id)
        if area is None or not area.targets:
            return
        area.targets = []
        self._save()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'areas': [a.to_dict() for a in self.areas],
            'activeAreaId': self.active_area_id,
        }
