"""Scan results data models.

Results are produced by the scanner clients and are read-only here.

Provides:
- IssueDetails, OsaDetails: Per-line and legacy dependency details
- ScaPackage, ScaFinding, ScaSummary, ScaResults: Dependency scan shapes
- ScaDetails: Dependency details attached to a single XIssue
- XIssue: One finding, static analysis or dependency class
- ScanSummary, ScanResults: Whole scan output
"""

from enum import Enum
from typing import Any

from pydantic import ConfigDict, Field

from scanflow.core.models import CamelModel
from scanflow.core.severity import Severity

# Well-known keys of the additional details bags
SUMMARY_KEY = "flow-summary"
RECOMMENDED_FIX = "recommendedFix"


class FindingKind(str, Enum):
    """Class of a finding, selects the body layout."""

    SAST = "sast"
    SCA = "sca"


class IssueDetails(CamelModel):
    """Details of one line of a static analysis finding."""

    code_snippet: str | None = None
    false_positive: bool = False
    comment: str | None = None


class OsaDetails(CamelModel):
    """Legacy open-source analysis vulnerability details."""

    cve: str | None = None
    severity: str | None = None
    version: str | None = None
    description: str | None = None
    recommendation: str | None = None
    url: str | None = None


class ScaPackage(CamelModel):
    id: str
    name: str = ""
    version: str = ""


class ScaFinding(CamelModel):
    """Vulnerability reported against a package."""

    id: str
    package_id: str | None = None
    severity: Severity = Severity.LOW
    score: float = 0.0
    publish_date: str | None = None
    cve_name: str | None = None
    description: str | None = None
    fix_resolution_text: str | None = None
    recommendations: str | None = None


class ScaSummary(CamelModel):
    total_packages: int = 0
    finding_counts: dict[Severity, int] = Field(default_factory=dict)
    risk_score: float = 0.0


class ScaResults(CamelModel):
    """Dependency scan output."""

    web_report_link: str = ""
    summary: ScaSummary = Field(default_factory=ScaSummary)
    packages: list[ScaPackage] = Field(default_factory=list)
    findings: list[ScaFinding] = Field(default_factory=list)

    def package_for(self, finding: ScaFinding) -> ScaPackage | None:
        for package in self.packages:
            if package.id == finding.package_id:
                return package
        return None


class ScaDetails(CamelModel):
    finding: ScaFinding
    vulnerability_package: ScaPackage
    vulnerability_link: str | None = None


class XIssue(CamelModel):
    """A single finding.

    ``details`` maps a source line number to the per-line details. A
    finding carrying ``sca_details`` is a dependency finding; otherwise it
    is a static analysis finding.
    """

    model_config = ConfigDict(extra="allow")

    vulnerability: str | None = None
    severity: str | None = None
    cwe: str | None = None
    description: str | None = None
    filename: str | None = None
    link: str | None = None
    status: str | None = None
    details: dict[int, IssueDetails] | None = None
    osa_details: list[OsaDetails] | None = None
    sca_details: list[ScaDetails] | None = None
    additional_details: dict[str, Any] = Field(default_factory=dict)

    @property
    def kind(self) -> FindingKind:
        return FindingKind.SCA if self.sca_details else FindingKind.SAST

    def true_positive_lines(self) -> dict[int, IssueDetails]:
        """Lines that are not marked false positive, sorted by line number."""
        return {
            line: detail
            for line, detail in sorted((self.details or {}).items())
            if detail is not None and not detail.false_positive
        }

    def false_positive_lines(self) -> dict[int, IssueDetails]:
        """Lines marked not exploitable, sorted by line number."""
        return {
            line: detail
            for line, detail in sorted((self.details or {}).items())
            if detail is not None and detail.false_positive
        }


class ScanSummary(CamelModel):
    high_severity: int = 0
    medium_severity: int = 0
    low_severity: int = 0
    info_severity: int = 0

    def counts(self) -> dict[Severity, int]:
        return {
            Severity.HIGH: self.high_severity,
            Severity.MEDIUM: self.medium_severity,
            Severity.LOW: self.low_severity,
            Severity.INFO: self.info_severity,
        }


class ScanResults(CamelModel):
    """Completed scan output consumed by the report renderer."""

    project_id: str | None = None
    link: str | None = None
    xissues: list[XIssue] = Field(default_factory=list, alias="xIssues")
    scan_summary: ScanSummary = Field(default_factory=ScanSummary)
    additional_details: dict[str, Any] = Field(default_factory=dict)
    sca_results: ScaResults | None = None
    osa: bool = False
    sast_results: bool = False
    ast_results: bool = False
