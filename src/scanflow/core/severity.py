"""Severity levels shared by filters, thresholds and report rendering.

Provides:
- Severity: Ordered severity enum with case-insensitive lookup
- severity_rank: Rank of a raw severity string (unknown values sort last)
- severity_from_score: CVSS base score to severity mapping
"""

from enum import Enum


class Severity(str, Enum):
    """Finding severity.

    Values are the upper-case names used by scanners and override files.
    Lookup accepts any casing, so ``Severity("high")`` and
    ``Severity("High")`` both resolve to ``Severity.HIGH``.
    """

    INFO = "INFO"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().upper()
            if normalized == "INFORMATIONAL":
                return cls.INFO
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @property
    def rank(self) -> int:
        """Numeric rank, higher is more severe."""
        return _RANKS[self]

    @property
    def label(self) -> str:
        """Display label ("High", "Medium", ...)."""
        return self.value.capitalize()


_RANKS = {
    Severity.INFO: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
}


def severity_rank(value: str | Severity | None) -> int:
    """Rank a raw severity value.

    Args:
        value: Severity member or scanner string such as "High"

    Returns:
        The severity rank, or -1 when the value is missing or unknown
    """
    if value is None:
        return -1
    try:
        return Severity(value).rank
    except ValueError:
        return -1


def severity_from_score(score: float) -> Severity:
    """Map a CVSS base score to a severity.

    Example:
        >>> severity_from_score(7.5)
        <Severity.HIGH: 'HIGH'>
    """
    if score <= 0.0:
        return Severity.INFO
    if score < 4.0:
        return Severity.LOW
    if score < 7.0:
        return Severity.MEDIUM
    return Severity.HIGH
