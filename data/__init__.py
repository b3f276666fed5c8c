# Data layer for the OOH planner

from .parsers import SiteListParser
from .manager import SiteCatalog
from .storage import LocalStorage

__all__ = ['SiteListParser', 'SiteCatalog', 'LocalStorage']
