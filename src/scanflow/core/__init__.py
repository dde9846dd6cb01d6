"""Core scanflow functionality.

Provides:
- Scan request and scan result models
- Configuration with locked process-wide updates
- Override resolution (config-as-code and flow overrides)
- Finding and merge comment rendering
"""

from .config import Config, load_config
from .models import BugTracker, BugTrackerType, FilterConfiguration, ScanRequest
from .results import ScanResults, XIssue
from .severity import Severity

__all__ = [
    "Config",
    "load_config",
    "BugTracker",
    "BugTrackerType",
    "FilterConfiguration",
    "ScanRequest",
    "ScanResults",
    "XIssue",
    "Severity",
]
