from .base import Level, TabController
from .builds import BuildsMode, BuildsTab
from .dashboard import DashboardTab, Panel
from .views import ViewsMode, ViewsTab

__all__ = [
    "Level",
    "TabController",
    "DashboardTab",
    "Panel",
    "ViewsTab",
    "ViewsMode",
    "BuildsTab",
    "BuildsMode",
]
