"""Severity threshold resolution and gating."""

from scanflow.core.override.sources import ThresholdsOverride
from scanflow.core.severity import Severity


def resolve_thresholds(thresholds: ThresholdsOverride | None) -> dict[Severity, int] | None:
    """Build a threshold map holding only the severities that were given.

    Returns:
        The map, or None when no ceiling is given at all. None means the
        current thresholds must be left untouched.
    """
    if thresholds is None:
        return None

    given = {
        Severity.HIGH: thresholds.high,
        Severity.MEDIUM: thresholds.medium,
        Severity.LOW: thresholds.low,
        Severity.INFO: thresholds.info,
    }
    resolved = {severity: ceiling for severity, ceiling in given.items() if ceiling is not None}
    return resolved or None


def exceeds_thresholds(
    counts: dict[Severity, int], thresholds: dict[Severity, int] | None
) -> bool:
    """Check finding counts against severity ceilings.

    Args:
        counts: Number of findings per severity
        thresholds: Ceiling per severity; a missing severity has no ceiling

    Returns:
        True if any severity has more findings than its ceiling allows
    """
    if not thresholds:
        return False
    return any(counts.get(severity, 0) > ceiling for severity, ceiling in thresholds.items())
