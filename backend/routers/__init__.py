"""API Routers."""

from . import upload
from . import charts
from . import usage
from . import dashboards

__all__ = ["upload", "charts", "usage", "dashboards"]
