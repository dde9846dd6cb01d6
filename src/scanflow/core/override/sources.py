"""Override payload models.

Two override sources exist:

- ConfigAsCode: repository-hosted configuration. Carries project level
  settings, dependency scanner connection settings and, under the extra
  key ``cxFlow``, an embedded flow override.
- FlowOverride: standalone override read from a repository blob/file.

Keys that are not modelled are kept in the pydantic extra side map and
re-emitted by ``model_dump``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from scanflow.core.models import JiraField

FLOW_OVERRIDE_KEY = "cxFlow"


class OverrideModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    @property
    def additional_properties(self) -> dict[str, Any]:
        """Unrecognised keys of the payload, in input order."""
        return dict(self.model_extra or {})


class SastOverride(OverrideModel):
    incremental: bool | None = None
    force_scan: bool | None = None
    preset: str | None = None
    folder_excludes: str | None = None
    file_excludes: str | None = None


class ScaOverride(OverrideModel):
    access_control_url: str | None = None
    api_url: str | None = None
    app_url: str | None = None
    tenant: str | None = None
    thresholds_severity: dict[str, int] | None = None
    thresholds_score: float | None = None
    filter_severity: list[str] | None = None
    filter_score: float | None = None


class JiraOverride(OverrideModel):
    assignee: str | None = None
    project: str | None = None
    issue_type: str | None = None
    opened_status: list[str] | None = None
    closed_status: list[str] | None = None
    open_transition: str | None = None
    close_transition: str | None = None
    close_transition_field: str | None = None
    close_transition_value: str | None = None
    fields: list[JiraField] | None = None
    priorities: dict[str, str] | None = None


class FiltersOverride(OverrideModel):
    severity: list[str] | None = None
    cwe: list[str] | None = None
    category: list[str] | None = None
    status: list[str] | None = None


class ThresholdsOverride(OverrideModel):
    high: int | None = None
    medium: int | None = None
    low: int | None = None
    info: int | None = None


class FlowOverride(OverrideModel):
    """Standalone (blob/file) override, also embedded in ConfigAsCode."""

    application: str | None = None
    branches: list[str] | None = None
    bug_tracker: str | None = None
    jira: JiraOverride | None = None
    emails: list[str] | None = None
    filters: FiltersOverride | None = None
    thresholds: ThresholdsOverride | None = None
    vulnerability_scanners: list[str] | None = None


class ConfigAsCode(OverrideModel):
    """Repository-hosted configuration layered onto a scan request."""

    version: float | None = None
    active: bool | None = None
    project: str | None = None
    team: str | None = None
    sast: SastOverride | None = None
    sca: ScaOverride | None = None

    @property
    def embedded_flow_override(self) -> Any:
        """Raw embedded flow override payload, not yet validated."""
        return self.additional_properties.get(FLOW_OVERRIDE_KEY)


OverrideSource = ConfigAsCode | FlowOverride
