"""Aggregate Markdown comment for merge/pull requests.

The comment is assembled from independent blocks in a fixed order:

1. SAST scan summary (severity counts, omitted for OSA-only results)
2. Flow summary (violation counts, when enabled)
3. Per-finding detail table (when enabled)
4. Dependency (SCA) scan summary and ranked finding table

A block that produces no output is skipped, and a horizontal rule is only
placed between two blocks that both produced output.
"""

from decimal import ROUND_HALF_UP, Decimal

import structlog

from scanflow.core.config import CommentConfig
from scanflow.core.models import Product, ScanRequest
from scanflow.core.reporting.links import file_url_for, line_link, nvd_url, vulnerability_url
from scanflow.core.results import SUMMARY_KEY, ScaResults, ScanResults, XIssue
from scanflow.core.severity import Severity, severity_rank

logger = structlog.get_logger()

CRLF = "\r\n"
MD_H3 = "###"
MD_H4 = "####"
SEPARATOR = "***" + CRLF
CVE_MITRE_URL = "https://cve.mitre.org/cgi-bin/cvename.cgi?name="

SCA_TABLE_HEADINGS = [
    "Vulnerability ID",
    "Package",
    "Severity",
    "CVSS score",
    "Publish date",
    "Current version",
    "Recommended version",
    "Link in CxSCA",
    "Reference – NVD link",
]


def _heading(level: str, text: str | None) -> str:
    return f"{level} {text}{CRLF}" if text else ""


def scan_summary_block(request: ScanRequest, results: ScanResults, options: CommentConfig) -> str:
    """SAST scan summary with severity counts."""
    body = [f"{MD_H3} Checkmarx SAST Scan Summary{CRLF}"]
    if results.link:
        body.append(f"[Full Scan Details]({results.link}){CRLF}")
    if options.cx_summary and request.product != Product.CXOSA:
        summary = results.scan_summary
        body.append(_heading(MD_H4, options.cx_summary_header))
        body.append(f"Severity|Count{CRLF}---|---{CRLF}")
        body.append(f"High|{summary.high_severity}{CRLF}")
        body.append(f"Medium|{summary.medium_severity}{CRLF}")
        body.append(f"Low|{summary.low_severity}{CRLF}")
        body.append(f"Informational|{summary.info_severity}{CRLF}{CRLF}")
    return "".join(body)


def flow_summary_block(results: ScanResults, options: CommentConfig) -> str:
    """Violation counts after filtering, from the results' summary bag."""
    if not options.flow_summary:
        return ""
    body = [_heading(MD_H4, options.flow_summary_header), f"Severity|Count{CRLF}---|---{CRLF}"]
    counts = results.additional_details.get(SUMMARY_KEY)
    if not isinstance(counts, dict):
        counts = {}
    for severity, count in counts.items():
        body.append(f"{severity}|{count}{CRLF}")
    body.append(CRLF)
    return "".join(body)


def merge_issues(issues: list[XIssue]) -> list[XIssue]:
    """Merge findings of the same vulnerability in the same file.

    Line details of duplicates are combined into the first occurrence.
    """
    merged: dict[tuple, XIssue] = {}
    for issue in issues:
        key = (issue.vulnerability, issue.filename)
        existing = merged.get(key)
        if existing is None:
            merged[key] = issue.model_copy(deep=True)
        elif issue.details:
            existing.details = {**(existing.details or {}), **issue.details}
    return list(merged.values())


def _by_severity_then_name(issue: XIssue):
    return (-severity_rank(issue.severity), issue.vulnerability or "")


def details_block(request: ScanRequest, results: ScanResults, options: CommentConfig) -> str:
    """Table of findings with links to the affected lines."""
    if not options.detailed:
        return ""
    logger.debug("building_merge_comment_details", issues=len(results.xissues))

    issues = sorted(merge_issues(results.xissues), key=_by_severity_then_name)
    body = [_heading(MD_H4, options.detail_header), f"|Lines|Severity|Category|File|Link|{CRLF}"]
    body.append(f"---|---|---|---|---{CRLF}")
    for issue in issues:
        true_lines = issue.true_positive_lines()
        if not true_lines:
            continue
        file_url = file_url_for(request, issue.filename)
        lines = "".join(f"{line_link(request.repo_type, file_url, line)} " for line in true_lines)
        body.append(
            f"|{lines}|{issue.severity}|{issue.vulnerability}|{issue.filename}|[Checkmarx]({issue.link})|{CRLF}"
        )

    if results.osa:
        body.append(f"{CRLF}|Library|Severity|CVE|{CRLF}---|---|---{CRLF}")
        for issue in sorted(results.xissues, key=_by_severity_then_name):
            if issue.osa_details is None:
                continue
            cves = "".join(f"[{o.cve}]({CVE_MITRE_URL}{o.cve}) " for o in issue.osa_details)
            body.append(f"|{issue.filename}|{issue.severity}|{cves}|{CRLF}")
    return "".join(body)


def _two_decimals(value: float) -> str:
    """Format with two decimals, rounding halves up (0.125 -> 0.13)."""
    return str(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _rank_sca_findings(sca: ScaResults):
    return sorted(sca.findings, key=lambda f: (-f.severity.rank, -f.score))


def sca_block(results: ScanResults) -> str:
    """Dependency scan summary and ranked finding table."""
    sca = results.sca_results
    if sca is None:
        return ""
    logger.debug("building_merge_comment_sca", findings=len(sca.findings))

    summary = sca.summary
    body = [
        f"{MD_H3} Checkmarx Dependency (CxSCA) Scan Summary{CRLF}",
        f"[Full Scan Details]({sca.web_report_link})  {CRLF}",
        f"{MD_H4} Summary  {CRLF}",
        f"| Total Packages Identified | {summary.total_packages}| {CRLF}",
        f"-|-{CRLF}",
    ]
    for severity in (Severity.HIGH, Severity.MEDIUM, Severity.LOW):
        count = summary.finding_counts.get(severity, 0)
        body.append(f"{severity.label} severity vulnerabilities | {count} {CRLF}")
    body.append(f"Scan risk score | {_two_decimals(summary.risk_score)} |{CRLF}{CRLF}")

    body.append(f"{MD_H4} CxSCA vulnerability result overview{CRLF}")
    body.append("".join(f"| {h}" for h in SCA_TABLE_HEADINGS) + f"|{CRLF}")
    body.append("|-" * len(SCA_TABLE_HEADINGS) + f"|{CRLF}")

    for finding in _rank_sca_findings(sca):
        package = sca.package_for(finding)
        cells = [
            f"`{finding.id}`",
            package.name if package else "",
            finding.severity.value,
            finding.score,
            finding.publish_date or "",
            package.version if package else "",
            finding.recommendations or "",
            f" [Vulnerability Link]({vulnerability_url(sca.web_report_link, finding)}) | ",
        ]
        body.append("".join(f"| {cell}" for cell in cells))
        if finding.cve_name:
            body.append(f"[{finding.cve_name}]({nvd_url(finding.cve_name)})")
        else:
            body.append("N\\A")
        body.append(f"|{CRLF}")
    return "".join(body)


def render_merge_comment(request: ScanRequest, results: ScanResults, options: CommentConfig) -> str:
    """Build the aggregate merge/pull request comment.

    Args:
        request: Scan request (SCM, branch, repo URL, product)
        results: Completed scan results
        options: Comment formatting options

    Returns:
        Markdown comment, empty when no scanner produced results
    """
    blocks = []
    if results.sast_results or results.ast_results:
        blocks.append(scan_summary_block(request, results, options))
        blocks.append(flow_summary_block(results, options))
        blocks.append(details_block(request, results, options))
    blocks.append(sca_block(results))

    body = ""
    for block in blocks:
        if not block:
            continue
        if body:
            body += SEPARATOR
        body += block
    return body
