"""Bug tracker override resolution.

Decides whether the destination bug tracker of a scan request may be
replaced by an override, and applies field level JIRA overrides.

Provides:
- can_override_bug_tracker: Override decision with the refusal reason
- bug_tracker_type_for: Resolve an override name to a BugTrackerType
- resolve_bug_tracker: Bug tracker a request ends up with
- override_jira_fields: Apply JIRA field overrides in place
"""

import structlog

from scanflow.core.models import (
    PULL_REQUEST_TRACKERS,
    BugTracker,
    BugTrackerType,
    ScanRequest,
)
from scanflow.core.override.sources import FlowOverride, JiraOverride

logger = structlog.get_logger()

REASON_PULL_REQUEST = "scan was initiated by pull request"
REASON_NO_OVERRIDE = "no bug tracker override is defined"
REASON_SAME_TYPE = "bug tracker type in override is the same as in scan request"


def can_override_bug_tracker(
    current: BugTracker, override_name: str | None
) -> tuple[bool, str | None]:
    """Check if the bug tracker of a request may be overridden.

    Pull request scans keep their tracker type, otherwise the results are
    never posted back to the pull request.

    Args:
        current: Bug tracker currently set on the request
        override_name: Bug tracker name requested by the override

    Returns:
        Tuple of (can_override, reason_if_refused).
        If allowed: (True, None)
        If refused: (False, "explanation string")
    """
    reason = None
    if current.type in PULL_REQUEST_TRACKERS:
        reason = REASON_PULL_REQUEST
    elif not override_name:
        reason = REASON_NO_OVERRIDE
    elif override_name.lower() == current.type.value.lower():
        reason = REASON_SAME_TYPE

    if reason is not None:
        logger.debug("bug_tracker_override_refused", current=current.type.value, reason=reason)
        return False, reason
    return True, None


def bug_tracker_type_for(name: str, custom_impls: list[str] | None = None) -> BugTrackerType:
    """Resolve a bug tracker name.

    Names match case-insensitively. A name that is not a known type must be
    one of the configured custom implementations and resolves to CUSTOM.

    Raises:
        ValueError: If the name is neither a known type nor a custom implementation
    """
    try:
        return BugTrackerType(name.upper())
    except ValueError:
        if any(name.lower() == impl.lower() for impl in custom_impls or []):
            return BugTrackerType.CUSTOM
        raise ValueError(
            f"Unknown bug tracker '{name}', available custom implementations: {custom_impls or []}"
        ) from None


def resolve_bug_tracker(
    override: FlowOverride,
    request: ScanRequest,
    custom_impls: list[str] | None = None,
) -> tuple[BugTracker, bool]:
    """Determine the bug tracker for a request under an override.

    A request without a bug tracker is treated as having type NONE.

    Returns:
        Tuple of (bug_tracker, overridden). When ``overridden`` is False the
        returned tracker is the request's own (or the NONE default).
    """
    current = request.bug_tracker
    if current is None:
        current = BugTracker(type=BugTrackerType.NONE)
        logger.debug("bug_tracker_defaulted", type=current.type.value)

    allowed, _ = can_override_bug_tracker(current, override.bug_tracker)
    if not allowed:
        return current, False

    name = override.bug_tracker
    bug_type = bug_tracker_type_for(name, custom_impls)
    logger.debug("bug_tracker_overridden", previous=current.type.value, override=name)

    result = BugTracker(type=bug_type)
    if bug_type == BugTrackerType.CUSTOM:
        result.custom_bean = name
    return result, True


def override_jira_fields(jira: JiraOverride, bug_tracker: BugTracker) -> None:
    """Apply JIRA field overrides to a bug tracker in place.

    Non-empty values replace the current ones, absent or empty values leave
    them untouched. The assignee is the exception: an explicit empty string
    clears it. Custom fields are replaced whenever given (an empty list
    means no fields); priorities only when non-empty.
    """
    if jira.assignee:
        bug_tracker.assignee = jira.assignee
    elif jira.assignee == "":
        bug_tracker.assignee = None

    scalar_fields = {
        "project_key": jira.project,
        "issue_type": jira.issue_type,
        "open_status": jira.opened_status,
        "closed_status": jira.closed_status,
        "open_transition": jira.open_transition,
        "close_transition": jira.close_transition,
        "close_transition_field": jira.close_transition_field,
        "close_transition_value": jira.close_transition_value,
    }
    for field_name, value in scalar_fields.items():
        if value:
            setattr(bug_tracker, field_name, value)

    if jira.fields is not None:
        bug_tracker.fields = jira.fields
    if jira.priorities:
        bug_tracker.priorities = jira.priorities
