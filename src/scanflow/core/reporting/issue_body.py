"""Single finding bodies for tickets and comments.

Every finding can be rendered as HTML, Markdown or plain text. The body
layout depends on the finding class: static analysis findings list
severity, CWE, guidance links and affected lines; dependency findings
list the vulnerable package and its CVSS data.

Code snippets are HTML-escaped in every format so markup embedded in
source code is never interpreted by the consumer.

Provides:
- BodyFormat: Output format enum
- render_issue_body: Render a finding in the requested format
- render_html_body, render_markdown_body, render_text_body: Per-format entry points
"""

import html
from enum import Enum

import structlog

from scanflow.core.config import FlowConfig
from scanflow.core.models import ScanRequest
from scanflow.core.reporting.links import (
    file_url_for,
    line_anchor,
    line_link,
    nvd_url,
    vulnerability_url,
)
from scanflow.core.results import RECOMMENDED_FIX, FindingKind, OsaDetails, ScaDetails, XIssue

logger = structlog.get_logger()

CRLF = "\r\n"

ISSUE_BODY_HTML = "<b>{}</b> issue exists @ <b>{}</b> in branch <b>{}</b>"
ISSUE_BODY_MD = "**{}** issue exists @ **{}** in branch **{}**"
ISSUE_BODY_TEXT = "{} issue exists @ {} in branch {}"

SCA_ISSUE_BODY_HTML = "<b>{}</b> severity vulnerability in package <b>{}</b> on branch <b>{}</b>"
SCA_ISSUE_BODY_MD = "**{}** severity vulnerability in package **{}** on branch **{}**"
SCA_ISSUE_BODY_TEXT = "{} severity vulnerability in package {} on branch {}"

GUIDANCE_TEXT = "Vulnerability details and guidance"
WIKI_TEXT = "Internal Guidance"
SCANNER_TEXT = "Checkmarx"
FIX_TEXT = "Recommended Fix"
SCA_LINK_TEXT = "Link To SCA"
NVD_LINK_TEXT = "Reference – NVD link"
LINES_LABEL = "Lines: "
NOT_EXPLOITABLE_LABEL = "Lines Marked Not Exploitable: "


class BodyFormat(str, Enum):
    """Output format of a rendered body."""

    HTML = "html"
    MARKDOWN = "markdown"
    TEXT = "text"


# Shared content


def _guidance_url(issue: XIssue, options: FlowConfig) -> str | None:
    if not issue.cwe or not options.mitre_url:
        return None
    return options.mitre_url.replace("{}", issue.cwe)


def _recommended_fix(issue: XIssue) -> str | None:
    fix = issue.additional_details.get(RECOMMENDED_FIX)
    return str(fix) if fix else None


def _sast_links(issue: XIssue, options: FlowConfig) -> list[tuple[str, str]]:
    """(url, text) links shown after severity and CWE, guidance excluded."""
    links = []
    if options.wiki_url:
        links.append((options.wiki_url, WIKI_TEXT))
    if issue.link:
        links.append((issue.link, SCANNER_TEXT))
    fix = _recommended_fix(issue)
    if fix:
        links.append((fix, FIX_TEXT))
    return links


def _sca_fields(details: ScaDetails) -> list[tuple[str, str]]:
    finding = details.finding
    package = details.vulnerability_package
    fields = [
        ("Vulnerability ID", finding.id),
        ("Package Name", package.name),
        ("Severity", finding.severity.value),
        ("CVSS Score", str(finding.score)),
        ("Publish Date", finding.publish_date),
        ("Current Package Version", package.version),
        ("Recommended Version", finding.recommendations),
        ("Remediation Upgrade Recommendation", finding.fix_resolution_text),
    ]
    return [(label, value) for label, value in fields if value]


def _sca_links(details: ScaDetails) -> list[tuple[str, str]]:
    links = []
    if details.vulnerability_link:
        links.append((vulnerability_url(details.vulnerability_link, details.finding), SCA_LINK_TEXT))
    if details.finding.cve_name:
        links.append((nvd_url(details.finding.cve_name), NVD_LINK_TEXT))
    return links


def _osa_text(osa: OsaDetails) -> str:
    fields = [
        ("Severity: ", osa.severity),
        ("Version: ", osa.version),
        ("Description: ", osa.description),
        ("Recommendation: ", osa.recommendation),
        ("URL: ", osa.url),
    ]
    return "".join(f"{label}{value}{CRLF}" for label, value in fields if value)


def _snippet(code: str) -> str:
    return html.escape(code)


def _numbers(lines) -> str:
    return "".join(f"{line} " for line in lines)


# HTML


def _sast_html(issue: XIssue, request: ScanRequest, options: FlowConfig) -> str:
    body = ["<div>", ISSUE_BODY_HTML.format(issue.vulnerability, issue.filename, request.branch), CRLF]
    if issue.description:
        body.append(f"<div><i>{issue.description.strip()}</i></div>")
    body.append(CRLF)
    if issue.severity:
        body.append(f"<div><b>Severity:</b> {issue.severity}</div>")
    if issue.cwe:
        body.append(f"<div><b>CWE:</b> {issue.cwe}</div>")
        guidance = _guidance_url(issue, options)
        if guidance:
            body.append(f"<div><a href='{guidance}'>{GUIDANCE_TEXT}</a></div>")
    for url, text in _sast_links(issue, options):
        body.append(f"<div><a href='{url}'>{text}</a></div>")

    if issue.details:
        true_lines = issue.true_positive_lines()
        fp_lines = issue.false_positive_lines()
        if true_lines:
            body.append(f"<div><b>{LINES_LABEL}</b>{_numbers(true_lines)}</div>")
        if options.list_false_positives and fp_lines:
            body.append(f"<div><b>{NOT_EXPLOITABLE_LABEL}</b>{_numbers(fp_lines)}</div>")
        for line, detail in true_lines.items():
            if detail.code_snippet:
                body.append(f"<hr/><b>Line #{line}</b>")
                body.append(f"<pre><code><div>{_snippet(detail.code_snippet)}</div></code></pre>")
        body.append("<hr/>")

    for osa in issue.osa_details or []:
        body.append(CRLF)
        if osa.cve:
            body.append(f"<b>{osa.cve}</b>{CRLF}")
        body.append(f"<pre><code><div>{_osa_text(osa)}</div></code></pre>{CRLF}")

    body.append("</div>")
    return "".join(body)


def _sca_html(issue: XIssue, request: ScanRequest, options: FlowConfig) -> str:
    details = issue.sca_details[0]
    finding = details.finding
    body = ["<div>"]
    if finding.description:
        body.append(f"<div><i>{finding.description}</i></div><br>")
    body.append(
        "<div>"
        + SCA_ISSUE_BODY_HTML.format(finding.severity.value, details.vulnerability_package.name, request.branch)
        + "</div><br>"
    )
    for label, value in _sca_fields(details):
        body.append(f"<b>{label}:</b> {value}<br>")
    for url, text in _sca_links(details):
        body.append(f"<div><a href='{url}'>{text}</a></div>")
    body.append("</div>")
    return "".join(body)


# Markdown


def _sast_markdown(issue: XIssue, request: ScanRequest, options: FlowConfig) -> str:
    paragraph = CRLF + CRLF
    body = [ISSUE_BODY_MD.format(issue.vulnerability, issue.filename, request.branch), paragraph]
    if issue.description:
        body.append(f"*{issue.description.strip()}*{paragraph}")
    if issue.severity:
        body.append(f"**Severity:** {issue.severity}{paragraph}")
    if issue.cwe:
        body.append(f"**CWE:** {issue.cwe}{paragraph}")
        guidance = _guidance_url(issue, options)
        if guidance:
            body.append(f"[{GUIDANCE_TEXT}]({guidance}){paragraph}")
    for url, text in _sast_links(issue, options):
        body.append(f"[{text}]({url}){paragraph}")

    if issue.details:
        file_url = file_url_for(request, issue.filename)
        true_lines = issue.true_positive_lines()
        fp_lines = issue.false_positive_lines()

        def links(lines) -> str:
            return "".join(f"{line_link(request.repo_type, file_url, line)} " for line in lines)

        if true_lines:
            body.append(f"{LINES_LABEL}{links(true_lines)}{paragraph}")
        if options.list_false_positives and fp_lines:
            body.append(f"{CRLF}{NOT_EXPLOITABLE_LABEL}{links(fp_lines)}{paragraph}")
        for line, detail in true_lines.items():
            if detail.code_snippet:
                anchor = line_anchor(request.repo_type, line)
                if file_url is not None and anchor is not None:
                    header = f"[Code (Line #{line}):]({file_url}{anchor})"
                else:
                    header = f"Code (Line #{line}):"
                body.append(f"---{CRLF}{header}{CRLF}```{CRLF}{_snippet(detail.code_snippet)}{CRLF}```{CRLF}")
        body.append(f"---{CRLF}")

    for osa in issue.osa_details or []:
        body.append(CRLF)
        if osa.cve:
            body.append(f"*{osa.cve}*{CRLF}")
        body.append(f"```{CRLF}{_osa_text(osa)}```{CRLF}")

    return "".join(body)


def _sca_markdown(issue: XIssue, request: ScanRequest, options: FlowConfig) -> str:
    paragraph = CRLF + CRLF
    details = issue.sca_details[0]
    finding = details.finding
    body = []
    if finding.description:
        body.append(f"**Description**{paragraph}{finding.description}{paragraph}")
    body.append(
        SCA_ISSUE_BODY_MD.format(finding.severity.value, details.vulnerability_package.name, request.branch)
        + paragraph
    )
    for label, value in _sca_fields(details):
        body.append(f"**{label}:** {value}{paragraph}")
    for url, text in _sca_links(details):
        body.append(f"[{text}]({url}){paragraph}")
    return "".join(body)


# Plain text


def _sast_text(issue: XIssue, request: ScanRequest, options: FlowConfig) -> str:
    body = [ISSUE_BODY_TEXT.format(issue.vulnerability, issue.filename, request.branch), CRLF]
    if issue.description:
        body.append(f"Description: {issue.description.strip()}{CRLF}")
    if issue.severity:
        body.append(f"Severity: {issue.severity}{CRLF}")
    if issue.cwe:
        body.append(f"CWE: {issue.cwe}{CRLF}")
        guidance = _guidance_url(issue, options)
        if guidance:
            body.append(f"Details - {guidance} - {GUIDANCE_TEXT}{CRLF}")
    for url, text in _sast_links(issue, options):
        body.append(f"Details - {url} - {text}{CRLF}")

    if issue.details:
        true_lines = issue.true_positive_lines()
        fp_lines = issue.false_positive_lines()
        if true_lines:
            body.append(f"{LINES_LABEL}{_numbers(true_lines)}{CRLF}")
        if options.list_false_positives and fp_lines:
            body.append(f"{NOT_EXPLOITABLE_LABEL}{_numbers(fp_lines)}{CRLF}")
        for line, detail in true_lines.items():
            if detail.code_snippet:
                body.append(f"Line # {line}{CRLF}```{CRLF}{_snippet(detail.code_snippet)}{CRLF}```{CRLF}")

    for osa in issue.osa_details or []:
        body.append(CRLF)
        if osa.cve:
            body.append(f"{osa.cve}{CRLF}")
        body.append(_osa_text(osa))

    return "".join(body)


def _sca_text(issue: XIssue, request: ScanRequest, options: FlowConfig) -> str:
    details = issue.sca_details[0]
    finding = details.finding
    body = []
    if finding.description:
        body.append(f"Description: {finding.description}{CRLF}")
    body.append(
        SCA_ISSUE_BODY_TEXT.format(finding.severity.value, details.vulnerability_package.name, request.branch)
        + CRLF
    )
    for label, value in _sca_fields(details):
        body.append(f"{label}: {value}{CRLF}")
    for url, text in _sca_links(details):
        body.append(f"Details - {url} - {text}{CRLF}")
    return "".join(body)


_RENDERERS = {
    (BodyFormat.HTML, FindingKind.SAST): _sast_html,
    (BodyFormat.HTML, FindingKind.SCA): _sca_html,
    (BodyFormat.MARKDOWN, FindingKind.SAST): _sast_markdown,
    (BodyFormat.MARKDOWN, FindingKind.SCA): _sca_markdown,
    (BodyFormat.TEXT, FindingKind.SAST): _sast_text,
    (BodyFormat.TEXT, FindingKind.SCA): _sca_text,
}


def render_issue_body(
    issue: XIssue,
    request: ScanRequest,
    options: FlowConfig,
    fmt: BodyFormat | str = BodyFormat.HTML,
) -> str:
    """Render a finding as a ticket or comment body.

    Args:
        issue: Finding to render
        request: Scan request the finding belongs to (branch, SCM, repo URL)
        options: Guidance links and false-positive listing settings
        fmt: Output format

    Returns:
        Rendered body; identical inputs always give identical output
    """
    fmt = BodyFormat(fmt)
    logger.debug("rendering_issue_body", format=fmt.value, kind=issue.kind.value)
    return _RENDERERS[(fmt, issue.kind)](issue, request, options)


def render_html_body(issue: XIssue, request: ScanRequest, options: FlowConfig) -> str:
    return render_issue_body(issue, request, options, BodyFormat.HTML)


def render_markdown_body(issue: XIssue, request: ScanRequest, options: FlowConfig) -> str:
    return render_issue_body(issue, request, options, BodyFormat.MARKDOWN)


def render_text_body(issue: XIssue, request: ScanRequest, options: FlowConfig) -> str:
    return render_issue_body(issue, request, options, BodyFormat.TEXT)
