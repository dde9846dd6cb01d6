"""Tests for single finding body rendering."""

import pytest

from scanflow.core.config import FlowConfig
from scanflow.core.models import Repository, ScanRequest
from scanflow.core.reporting import (
    BodyFormat,
    render_html_body,
    render_issue_body,
    render_markdown_body,
    render_text_body,
)
from scanflow.core.reporting.links import file_url_for, line_link
from scanflow.core.results import (
    IssueDetails,
    OsaDetails,
    ScaDetails,
    ScaFinding,
    ScaPackage,
    XIssue,
)
from scanflow.core.severity import Severity

GITHUB_FILE_URL = "https://github.com/org/app/blob/main/src/app/db.py"


@pytest.fixture
def options():
    return FlowConfig(
        mitre_url="https://cwe.mitre.org/data/definitions/{}.html",
        wiki_url="https://wiki.example.com/appsec",
        list_false_positives=True,
    )


@pytest.fixture
def github_request():
    return ScanRequest(
        repo_name="app",
        repo_url="https://github.com/org/app.git",
        repo_type=Repository.GITHUB,
        branch="main",
    )


@pytest.fixture
def sast_issue():
    return XIssue(
        vulnerability="SQL_Injection",
        severity="High",
        cwe="89",
        description=" Untrusted input reaches a query ",
        filename="src/app/db.py",
        link="https://cx.example.com/CxWebClient/ViewerMain.aspx?scanid=1",
        details={
            12: IssueDetails(code_snippet="query = '<b>' + name"),
            10: IssueDetails(code_snippet="name = request.args['name']"),
            20: IssueDetails(false_positive=True),
        },
        additional_details={"recommendedFix": "https://cx.example.com/fix/89"},
    )


@pytest.fixture
def sca_issue():
    finding = ScaFinding(
        id="CVE-2021-23337",
        package_id="lodash-4.17.15",
        severity=Severity.HIGH,
        score=7.2,
        publish_date="2021-02-15",
        cve_name="CVE-2021-23337",
        description="Command injection via template",
        recommendations="4.17.21",
        fix_resolution_text="Upgrade to version 4.17.21",
    )
    return XIssue(
        vulnerability="CVE-2021-23337",
        filename="package.json",
        sca_details=[
            ScaDetails(
                finding=finding,
                vulnerability_package=ScaPackage(id="lodash-4.17.15", name="lodash", version="4.17.15"),
                vulnerability_link="https://sca.example.com/results/abc",
            )
        ],
    )


# Links


def test_file_url_per_scm():
    request = ScanRequest(repo_url="https://host/org/app.git", branch="dev", repo_type=Repository.GITLAB)
    assert file_url_for(request, "a.py") == "https://host/org/app/-/blob/dev/a.py"

    request.repo_type = Repository.BITBUCKET
    assert file_url_for(request, "a.py") == "https://host/org/app/src/dev/a.py"

    request.repo_type = Repository.BITBUCKETSERVER
    assert file_url_for(request, "a.py") == "https://host/org/app/browse/a.py?at=dev"

    request.repo_type = Repository.ADO
    assert file_url_for(request, "a.py") is None


def test_file_url_needs_repo_and_branch():
    assert file_url_for(ScanRequest(branch="main"), "a.py") is None
    assert file_url_for(ScanRequest(repo_url="https://github.com/o/r"), "a.py") is None


@pytest.mark.parametrize(
    "repo_type,expected",
    [
        (Repository.GITHUB, "[7](https://x/f.py#L7)"),
        (Repository.GITLAB, "[7](https://x/f.py#L7)"),
        (Repository.BITBUCKET, "[7](https://x/f.py#lines-7)"),
        (Repository.BITBUCKETSERVER, "[7](https://x/f.py#7)"),
        (Repository.ADO, "7"),
    ],
)
def test_line_link_dialects(repo_type, expected):
    assert line_link(repo_type, "https://x/f.py", 7) == expected


# HTML


def test_html_sast_body(sast_issue, github_request, options):
    body = render_html_body(sast_issue, github_request, options)

    assert body.startswith(
        "<div><b>SQL_Injection</b> issue exists @ <b>src/app/db.py</b> in branch <b>main</b>"
    )
    assert body.endswith("</div>")
    assert "<div><i>Untrusted input reaches a query</i></div>" in body
    assert "<div><b>Severity:</b> High</div>" in body
    assert "<div><b>CWE:</b> 89</div>" in body
    assert (
        "<a href='https://cwe.mitre.org/data/definitions/89.html'>Vulnerability details and guidance</a>"
        in body
    )
    assert "<a href='https://wiki.example.com/appsec'>Internal Guidance</a>" in body
    assert ">Checkmarx</a>" in body
    assert "<a href='https://cx.example.com/fix/89'>Recommended Fix</a>" in body
    assert "<div><b>Lines: </b>10 12 </div>" in body
    assert "<div><b>Lines Marked Not Exploitable: </b>20 </div>" in body
    # Line numbers are not links in HTML
    assert "#L12" not in body


def test_snippets_are_escaped(sast_issue, github_request, options):
    for fmt in BodyFormat:
        body = render_issue_body(sast_issue, github_request, options, fmt)
        assert "&lt;b&gt;" in body
        assert "'<b>'" not in body


def test_false_positives_hidden_when_disabled(sast_issue, github_request, options):
    options.list_false_positives = False

    for fmt in BodyFormat:
        body = render_issue_body(sast_issue, github_request, options, fmt)
        assert "Lines Marked Not Exploitable" not in body


def test_guidance_template_with_other_placeholders(sast_issue, github_request):
    """Only the positional {} placeholder is filled, other braces stay as-is."""
    options = FlowConfig(mitre_url="https://x.example.com/{cwe}/{}.html", wiki_url="")

    for fmt in BodyFormat:
        body = render_issue_body(sast_issue, github_request, options, fmt)
        assert "https://x.example.com/{cwe}/89.html" in body


def test_missing_data_is_omitted(github_request):
    issue = XIssue(vulnerability="Hardcoded_Password", filename="settings.py")
    options = FlowConfig(mitre_url="", wiki_url="", list_false_positives=False)

    for fmt in BodyFormat:
        body = render_issue_body(issue, github_request, options, fmt)
        assert "None" not in body
        assert "Severity" not in body
        assert "CWE" not in body
        assert "Lines" not in body
    assert "href" not in render_html_body(issue, github_request, options)


def test_rendering_is_deterministic(sast_issue, sca_issue, github_request, options):
    for issue in (sast_issue, sca_issue):
        for fmt in BodyFormat:
            first = render_issue_body(issue, github_request, options, fmt)
            assert render_issue_body(issue, github_request, options, fmt) == first


def test_format_accepts_string(sast_issue, github_request, options):
    assert render_issue_body(sast_issue, github_request, options, "text") == render_text_body(
        sast_issue, github_request, options
    )


# Markdown


def test_markdown_github_line_links(sast_issue, github_request, options):
    body = render_markdown_body(sast_issue, github_request, options)

    assert body.startswith("**SQL_Injection** issue exists @ **src/app/db.py** in branch **main**")
    assert f"Lines: [10]({GITHUB_FILE_URL}#L10) [12]({GITHUB_FILE_URL}#L12) " in body
    assert f"Lines Marked Not Exploitable: [20]({GITHUB_FILE_URL}#L20) " in body
    assert f"[Code (Line #12):]({GITHUB_FILE_URL}#L12)\r\n```\r\n" in body
    assert "[Vulnerability details and guidance](https://cwe.mitre.org/data/definitions/89.html)" in body


def test_markdown_bitbucket_server_line_links(sast_issue, options):
    request = ScanRequest(
        repo_url="https://bitbucket.example.com/scm/proj/app.git",
        repo_type=Repository.BITBUCKETSERVER,
        branch="main",
    )

    body = render_markdown_body(sast_issue, request, options)

    file_url = "https://bitbucket.example.com/scm/proj/app/browse/src/app/db.py?at=main"
    assert f"[12]({file_url}#12)" in body


def test_markdown_bitbucket_server_browse_metadata(sast_issue, options):
    request = ScanRequest(
        repo_url="https://bitbucket.example.com/scm/proj/app.git",
        repo_type=Repository.BITBUCKETSERVER,
        branch="main",
        additional_metadata={"BITBUCKET_BROWSE": "https://bitbucket.example.com/projects/PROJ/repos/app/browse"},
    )

    body = render_markdown_body(sast_issue, request, options)

    assert "[12](https://bitbucket.example.com/projects/PROJ/repos/app/browse/src/app/db.py?at=main#12)" in body


def test_markdown_ado_uses_plain_line_numbers(sast_issue, options):
    request = ScanRequest(
        repo_url="https://dev.azure.com/org/proj/_git/app",
        repo_type=Repository.ADO,
        branch="main",
    )

    body = render_markdown_body(sast_issue, request, options)

    assert "Lines: 10 12 " in body
    assert "Code (Line #12):\r\n" in body
    assert "[Code" not in body


# Plain text


def test_text_sast_body(sast_issue, github_request, options):
    body = render_text_body(sast_issue, github_request, options)

    assert body.startswith("SQL_Injection issue exists @ src/app/db.py in branch main\r\n")
    assert "Description: Untrusted input reaches a query\r\n" in body
    assert "Severity: High\r\n" in body
    assert "CWE: 89\r\n" in body
    assert (
        "Details - https://cwe.mitre.org/data/definitions/89.html - Vulnerability details and guidance\r\n"
        in body
    )
    assert "Lines: 10 12 \r\n" in body
    assert "Line # 10\r\n```\r\n" in body
    assert "<" not in body.replace("&lt;", "")


def test_osa_details_are_listed(github_request, options):
    issue = XIssue(
        vulnerability="OSA_Vulnerability",
        severity="High",
        filename="commons-collections-3.2.1.jar",
        osa_details=[OsaDetails(cve="CVE-2015-6420", severity="High", version="3.2.1")],
    )

    body = render_text_body(issue, github_request, options)

    assert "CVE-2015-6420\r\nSeverity: High\r\nVersion: 3.2.1\r\n" in body


# Dependency findings


def test_sca_html_body(sca_issue, github_request, options):
    body = render_html_body(sca_issue, github_request, options)

    assert "<div><i>Command injection via template</i></div>" in body
    assert "<b>HIGH</b> severity vulnerability in package <b>lodash</b> on branch <b>main</b>" in body
    assert "<b>Package Name:</b> lodash<br>" in body
    assert "<b>CVSS Score:</b> 7.2<br>" in body
    assert "<b>Recommended Version:</b> 4.17.21<br>" in body
    assert (
        "<a href='https://sca.example.com/results/abc/vulnerabilities/CVE-2021-23337/vulnerabilityDetails'>"
        "Link To SCA</a>"
    ) in body
    assert "<a href='https://nvd.nist.gov/vuln/detail/CVE-2021-23337'>Reference – NVD link</a>" in body


def test_sca_markdown_body(sca_issue, github_request, options):
    body = render_markdown_body(sca_issue, github_request, options)

    assert body.startswith("**Description**\r\n\r\nCommand injection via template")
    assert "**Current Package Version:** 4.17.15" in body
    assert "**Remediation Upgrade Recommendation:** Upgrade to version 4.17.21" in body
    assert "[Reference – NVD link](https://nvd.nist.gov/vuln/detail/CVE-2021-23337)" in body


def test_sca_text_body(sca_issue, github_request, options):
    body = render_text_body(sca_issue, github_request, options)

    assert "HIGH severity vulnerability in package lodash on branch main\r\n" in body
    assert "Publish Date: 2021-02-15\r\n" in body
    assert "Details - https://nvd.nist.gov/vuln/detail/CVE-2021-23337 - Reference – NVD link\r\n" in body


def test_sca_without_cve_has_no_nvd_link(sca_issue, github_request, options):
    sca_issue.sca_details[0].finding.cve_name = None

    for fmt in BodyFormat:
        assert "nvd.nist.gov" not in render_issue_body(sca_issue, github_request, options, fmt)
