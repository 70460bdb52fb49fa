"""Hospital directory navigation and search core."""

from hbscan.app import Navigator, create_navigator
from hbscan.config import NavigatorSettings, load_settings
from hbscan.cursor import Crumb, HierarchyCursor, Level, Selection
from hbscan.errors import FetchError, InvalidTransition, NavigatorError, NotFound, ValidationError
from hbscan.history import SearchHistoryStore
from hbscan.navigation import ModeKind, NavigationMode, NavigationOrchestrator
from hbscan.paginator import ELLIPSIS, PageView, PageWindow, paginate, visible_pages
from hbscan.search import SearchSession
from hbscan.settings_store import DisplaySettingsStore

__all__ = [
    "Crumb",
    "DisplaySettingsStore",
    "ELLIPSIS",
    "FetchError",
    "HierarchyCursor",
    "InvalidTransition",
    "Level",
    "ModeKind",
    "NavigationMode",
    "NavigationOrchestrator",
    "Navigator",
    "NavigatorError",
    "NavigatorSettings",
    "NotFound",
    "PageView",
    "PageWindow",
    "SearchHistoryStore",
    "SearchSession",
    "Selection",
    "ValidationError",
    "create_navigator",
    "load_settings",
    "paginate",
    "visible_pages",
]
