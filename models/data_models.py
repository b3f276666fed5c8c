"""
Core data models for the OOH Media Planner application.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Any


UNCATEGORIZED = "Uncategorized"

# Display columns of a media schedule table, in default order
SCHEDULE_COLUMNS = (
    'mediaOwner',
    'format',
    'name',
    'targetAreaName',
    'postcode',
    'frameId',
    'cost',
)
DEFAULT_COLUMN_ORDER = list(SCHEDULE_COLUMNS)

COLUMN_LABELS = {
    'mediaOwner': 'Media Owner',
    'format': 'Format',
    'name': 'Name',
    'targetAreaName': 'Target Area',
    'postcode': 'Postcode',
    'frameId': 'Frame ID',
    'cost': 'Cost',
}


@dataclass(frozen=True)
class Site:
    """Candidate advertising placement loaded from the site source."""
    id: str
    name: str
    format: str
    lat: float
    lng: float
    cost: float
    media_owner: str = ''
    postcode: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'format': self.format,
            'lat': self.lat,
            'lng': self.lng,
            'cost': self.cost,
            'mediaOwner': self.media_owner,
            'postcode': self.postcode,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Site':
        return cls(
            id=str(data['id']),
            name=data.get('name', ''),
            format=data.get('format', ''),
            lat=float(data['lat']),
            lng=float(data['lng']),
            cost=float(data.get('cost') or 0.0),
            media_owner=data.get('mediaOwner') or '',
            postcode=data.get('postcode') or '',
        )


@dataclass
class PostcodeTarget:
    """Geocoded point of interest."""
    postcode: str
    lat: float
    lng: float

    def to_dict(self) -> Dict[str, Any]:
        return {'postcode': self.postcode, 'lat': self.lat, 'lng': self.lng}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PostcodeTarget':
        return cls(postcode=data['postcode'], lat=float(data['lat']), lng=float(data['lng']))


@dataclass
class TargetArea:
    """Named group of postcode targets."""
    id: str
    name: str
    targets: List[PostcodeTarget] = field(default_factory=list)

    def has_postcode(self, postcode: str) -> bool:
        key = postcode.strip().lower()
        return any(t.postcode.strip().lower() == key for t in self.targets)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'targets': [t.to_dict() for t in self.targets],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TargetArea':
        return cls(
            id=data['id'],
            name=data['name'],
            targets=[PostcodeTarget.from_dict(t) for t in data.get('targets', [])],
        )


@dataclass
class CampaignSite:
    """A site plus the target area that was active when it was added."""
    site: Site
    target_area_id: Optional[str] = None
    target_area_name: str = UNCATEGORIZED

    @property
    def id(self) -> str:
        return self.site.id

    @property
    def cost(self) -> float:
        return self.site.cost

    @classmethod
    def from_site(cls, site: Site, area: Optional[TargetArea] = None) -> 'CampaignSite':
        if area is None:
            return cls(site=site)
        return cls(site=site, target_area_id=area.id, target_area_name=area.name)

    def clone(self) -> 'CampaignSite':
        # Site is frozen, so sharing it is safe
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        data = self.site.to_dict()
        data['targetAreaId'] = self.target_area_id
        data['targetAreaName'] = self.target_area_name
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CampaignSite':
        return cls(
            site=Site.from_dict(data),
            target_area_id=data.get('targetAreaId'),
            target_area_name=data.get('targetAreaName') or UNCATEGORIZED,
        )


def clone_sites(sites: List[CampaignSite]) -> List[CampaignSite]:
    """Copy a campaign site list so that no list or entry is shared."""
    return [s.clone() for s in sites]


@dataclass
class Scenario:
    """Named, budgeted planning alternative."""
    id: str
    name: str
    budget: Optional[float] = None
    sites: List[CampaignSite] = field(default_factory=list)

    def has_site(self, site_id: str) -> bool:
        return any(s.id == site_id for s in self.sites)

    def clone(self) -> 'Scenario':
        return Scenario(id=self.id, name=self.name, budget=self.budget, sites=clone_sites(self.sites))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'budget': self.budget,
            'sites': [s.to_dict() for s in self.sites],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Scenario':
        budget = data.get('budget')
        return cls(
            id=data['id'],
            name=data['name'],
            budget=float(budget) if budget is not None else None,
            sites=[CampaignSite.from_dict(s) for s in data.get('sites', [])],
        )


@dataclass
class Schedule:
    """Exported media schedule with campaign metadata and column ordering."""
    id: str
    name: str
    budget: Optional[float] = None
    sites: List[CampaignSite] = field(default_factory=list)
    client_name: str = ''
    campaign_name: str = ''
    start_date: str = ''
    end_date: str = ''
    column_order: List[str] = field(default_factory=lambda: list(DEFAULT_COLUMN_ORDER))

    def has_site(self, site_id: str) -> bool:
        return any(s.id == site_id for s in self.sites)

    def clone(self) -> 'Schedule':
        return replace(self, sites=clone_sites(self.sites), column_order=list(self.column_order))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'budget': self.budget,
            'sites': [s.to_dict() for s in self.sites],
            'clientName': self.client_name,
            'campaignName': self.campaign_name,
            'startDate': self.start_date,
            'endDate': self.end_date,
            'columnOrder': list(self.column_order),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Schedule':
        budget = data.get('budget')
        column_order = data.get('columnOrder')
        if not column_order or sorted(column_order) != sorted(SCHEDULE_COLUMNS):
            column_order = list(DEFAULT_COLUMN_ORDER)
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            budget=float(budget) if budget is not None else None,
            sites=[CampaignSite.from_dict(s) for s in data.get('sites', [])],
            client_name=data.get('clientName') or '',
            campaign_name=data.get('campaignName') or data.get('name') or '',
            start_date=data.get('startDate') or '',
            end_date=data.get('endDate') or '',
            column_order=list(column_order),
        )


@dataclass
class BudgetSummary:
    """Derived cost figures for a scenario or schedule."""
    total_cost: float
    remaining_budget: Optional[float]
    is_over_budget: bool
