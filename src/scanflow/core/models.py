"""Scan request data models.

The ScanRequest is created by whatever triggered the scan (webhook, CLI)
and is mutated in place by the override engine before the scan is
submitted.

Provides:
- BugTrackerType, Repository, Product, ScannerKind: Enumerations
- JiraField, BugTracker: Destination tracker and its JIRA settings
- FilterType, Filter, FilterConfiguration: Normalized finding filters
- ScanRequest: One scan job
"""

from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from scanflow.core.severity import Severity

if TYPE_CHECKING:
    from scanflow.core.results import XIssue


class CamelModel(BaseModel):
    """Base model accepting camelCase JSON keys and snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BugTrackerType(str, Enum):
    """Destination for scan findings."""

    NONE = "NONE"
    WAIT = "WAIT"
    EMAIL = "EMAIL"
    JIRA = "JIRA"
    CUSTOM = "CUSTOM"
    GITHUBPULL = "GITHUBPULL"
    GITHUBCOMMIT = "GITHUBCOMMIT"
    GITHUBISSUE = "GITHUBISSUE"
    GITLABMERGE = "GITLABMERGE"
    GITLABCOMMIT = "GITLABCOMMIT"
    GITLABISSUE = "GITLABISSUE"
    BITBUCKETPULL = "BITBUCKETPULL"
    BITBUCKETSERVERPULL = "BITBUCKETSERVERPULL"
    BITBUCKETCOMMIT = "BITBUCKETCOMMIT"
    ADOPULL = "ADOPULL"
    AZUREISSUE = "AZUREISSUE"


# Pull/merge request flows of the five supported SCMs. Results of these
# scans are posted back to the pull request, so the type must survive
# overrides.
PULL_REQUEST_TRACKERS = frozenset(
    {
        BugTrackerType.ADOPULL,
        BugTrackerType.BITBUCKETPULL,
        BugTrackerType.BITBUCKETSERVERPULL,
        BugTrackerType.GITHUBPULL,
        BugTrackerType.GITLABMERGE,
    }
)


class Repository(str, Enum):
    """Source control system the scanned code lives in."""

    GITHUB = "GITHUB"
    GITLAB = "GITLAB"
    BITBUCKET = "BITBUCKET"
    BITBUCKETSERVER = "BITBUCKETSERVER"
    ADO = "ADO"
    NA = "NA"


class Product(str, Enum):
    """Scanner product that produced the results."""

    CX = "CX"
    CXOSA = "CXOSA"


class ScannerKind(str, Enum):
    """Vulnerability scanner component a request is submitted to."""

    SAST = "SAST"
    SCA = "SCA"


class JiraField(CamelModel):
    """Custom JIRA field mapping."""

    model_config = ConfigDict(extra="allow")

    type: str | None = None
    name: str | None = None
    jira_field_name: str | None = None
    jira_field_type: str | None = None
    jira_default_value: str | None = None
    skip_update: bool = False


class BugTracker(CamelModel):
    """Destination bug tracker for a scan request.

    Only ``type`` (and ``custom_bean`` for CUSTOM) matter for non-JIRA
    trackers; the remaining fields configure JIRA tickets.
    """

    type: BugTrackerType = BugTrackerType.NONE
    custom_bean: str | None = None
    assignee: str | None = None
    project_key: str | None = None
    issue_type: str | None = None
    open_status: list[str] | None = None
    closed_status: list[str] | None = None
    open_transition: str | None = None
    close_transition: str | None = None
    close_transition_field: str | None = None
    close_transition_value: str | None = None
    fields: list[JiraField] | None = None
    priorities: dict[str, str] | None = None


class FilterType(str, Enum):
    """Attribute of a finding a filter applies to."""

    SEVERITY = "SEVERITY"
    CWE = "CWE"
    CATEGORY = "CATEGORY"
    STATUS = "STATUS"


class Filter(CamelModel):
    """Single inclusion rule."""

    model_config = ConfigDict(frozen=True)

    type: FilterType
    value: str

    def __str__(self) -> str:
        return f"{self.type.value}={self.value}"


class FilterConfiguration(CamelModel):
    """Normalized inclusion rules over severity, CWE, category and status.

    An empty configuration matches every finding. Values of the same type
    are alternatives; different types must all match.
    """

    simple_filters: list[Filter] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.simple_filters

    def describe(self) -> str:
        if self.is_empty:
            return "EMPTY"
        return ",".join(str(f) for f in self.simple_filters)

    def matches(self, issue: "XIssue") -> bool:
        """Check whether a finding passes the filters."""
        by_type: dict[FilterType, set[str]] = {}
        for f in self.simple_filters:
            by_type.setdefault(f.type, set()).add(f.value.lower())

        for filter_type, accepted in by_type.items():
            if filter_type == FilterType.SEVERITY:
                try:
                    candidate = Severity(issue.severity).label if issue.severity else None
                except ValueError:
                    candidate = issue.severity
            elif filter_type == FilterType.CWE:
                candidate = issue.cwe
            elif filter_type == FilterType.CATEGORY:
                candidate = issue.vulnerability
            else:
                candidate = issue.status
            if candidate is None or candidate.lower() not in accepted:
                return False
        return True


class ScanRequest(CamelModel):
    """One scan job.

    Owned by the caller; override operations mutate it in place and
    return the same instance.
    """

    application: str | None = None
    product: Product = Product.CX
    project: str | None = None
    team: str | None = None
    namespace: str | None = None
    repo_name: str | None = None
    repo_url: str | None = None
    repo_type: Repository = Repository.NA
    branch: str | None = None
    ref: str | None = None
    merge_number: str | None = None
    merge_target_branch: str | None = None
    active_branches: list[str] | None = None
    email: list[str] | None = None
    filter: FilterConfiguration | None = None
    bug_tracker: BugTracker | None = None
    vulnerability_scanners: list[ScannerKind] | None = None
    incremental: bool = False
    force_scan: bool = False
    scan_preset: str | None = None
    scan_preset_override: bool = False
    exclude_folders: list[str] | None = None
    exclude_files: list[str] | None = None
    additional_metadata: dict[str, str] = Field(default_factory=dict)
