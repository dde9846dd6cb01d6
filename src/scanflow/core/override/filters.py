"""Filter resolution.

Converts raw severity/CWE/category/status override values into a
FilterConfiguration. Each field is converted on its own: a value that
cannot be converted rejects that field only.
"""

import structlog

from scanflow.core.models import Filter, FilterConfiguration, FilterType
from scanflow.core.severity import Severity

logger = structlog.get_logger()

RawValues = list[str] | str | None


def _split(values: RawValues) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        values = values.split(",")
    return [v.strip() for v in values if v and v.strip()]


def _severity_filters(values: list[str]) -> list[Filter]:
    return [Filter(type=FilterType.SEVERITY, value=Severity(v).label) for v in values]


def _cwe_filters(values: list[str]) -> list[Filter]:
    filters = []
    for value in values:
        if not value.isdigit():
            raise ValueError(f"CWE must be numeric: {value!r}")
        filters.append(Filter(type=FilterType.CWE, value=value))
    return filters


def _plain_filters(filter_type: FilterType):
    def build(values: list[str]) -> list[Filter]:
        return [Filter(type=filter_type, value=v) for v in values]

    return build


_BUILDERS = {
    FilterType.SEVERITY: _severity_filters,
    FilterType.CWE: _cwe_filters,
    FilterType.CATEGORY: _plain_filters(FilterType.CATEGORY),
    FilterType.STATUS: _plain_filters(FilterType.STATUS),
}


def build_filter(
    severity: RawValues = None,
    cwe: RawValues = None,
    category: RawValues = None,
    status: RawValues = None,
) -> FilterConfiguration:
    """Build a filter configuration from raw override values.

    Args:
        severity: Severity names, list or comma separated string
        cwe: Numeric CWE ids
        category: Vulnerability category names
        status: Result status names

    Returns:
        FilterConfiguration; empty (match-all) when no usable value is given

    Example:
        >>> build_filter(severity=["High"], cwe="79,89").describe()
        'SEVERITY=High,CWE=79,CWE=89'
    """
    raw = {
        FilterType.SEVERITY: severity,
        FilterType.CWE: cwe,
        FilterType.CATEGORY: category,
        FilterType.STATUS: status,
    }

    simple_filters: list[Filter] = []
    for filter_type, values in raw.items():
        try:
            simple_filters.extend(_BUILDERS[filter_type](_split(values)))
        except ValueError as e:
            logger.warning("filter_field_rejected", field=filter_type.value, error=str(e))

    return FilterConfiguration(simple_filters=simple_filters)
