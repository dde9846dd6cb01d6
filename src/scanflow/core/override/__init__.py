"""Override resolution for scan requests.

Provides:
- ConfigurationOverrider: Layers config-as-code / flow overrides onto requests
- ChangeReport: Record of the fields an override pass changed
- build_filter: Raw filter values to FilterConfiguration
- resolve_thresholds, exceeds_thresholds: Severity threshold handling
- can_override_bug_tracker, resolve_bug_tracker, override_jira_fields: Bug tracker rules
"""

from .bugtracker import can_override_bug_tracker, override_jira_fields, resolve_bug_tracker
from .engine import ChangeReport, ConfigurationOverrider, resolve_project_name
from .filters import build_filter
from .sources import ConfigAsCode, FlowOverride, OverrideSource
from .thresholds import exceeds_thresholds, resolve_thresholds

__all__ = [
    "ConfigurationOverrider",
    "ChangeReport",
    "resolve_project_name",
    "build_filter",
    "resolve_thresholds",
    "exceeds_thresholds",
    "can_override_bug_tracker",
    "resolve_bug_tracker",
    "override_jira_fields",
    "ConfigAsCode",
    "FlowOverride",
    "OverrideSource",
]
