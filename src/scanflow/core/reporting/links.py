"""Links to source lines and vulnerability pages.

Each SCM has its own way of addressing a line of a file:

- GitHub / GitLab: ``<file-url>#L<n>``
- Bitbucket Cloud: ``<file-url>#lines-<n>``
- Bitbucket Server: ``<file-url>#<n>``
- Azure DevOps: unknown at render time, the bare line number is used
"""

from urllib.parse import quote

from scanflow.core.models import Product, Repository, ScanRequest
from scanflow.core.results import ScaFinding

NVD_URL_PREFIX = "https://nvd.nist.gov/vuln/detail/"
BITBUCKET_BROWSE_KEY = "BITBUCKET_BROWSE"


def file_url_for(request: ScanRequest, filename: str | None) -> str | None:
    """Build the browse URL of a file on the request's branch.

    Returns:
        The URL, or None when it cannot be built (no repo URL or branch,
        Azure DevOps, OSA results)
    """
    if not filename or request.product == Product.CXOSA:
        return None
    if not request.repo_url or not request.branch:
        return None

    base = request.repo_url.rstrip("/")
    if base.endswith(".git"):
        base = base[: -len(".git")]
    filename = filename.lstrip("/")
    branch = request.branch

    if request.repo_type == Repository.ADO:
        return None
    if request.repo_type == Repository.BITBUCKETSERVER:
        browse = request.additional_metadata.get(BITBUCKET_BROWSE_KEY) or f"{base}/browse"
        return f"{browse.rstrip('/')}/{filename}?at={branch}"
    if request.repo_type == Repository.BITBUCKET:
        return f"{base}/src/{branch}/{filename}"
    if request.repo_type == Repository.GITLAB:
        return f"{base}/-/blob/{branch}/{filename}"
    return f"{base}/blob/{branch}/{filename}"


def line_anchor(repo_type: Repository, line: int) -> str | None:
    """URL fragment addressing a line, None when the SCM has none."""
    if repo_type == Repository.ADO:
        return None
    if repo_type == Repository.BITBUCKET:
        return f"#lines-{line}"
    if repo_type == Repository.BITBUCKETSERVER:
        return f"#{line}"
    return f"#L{line}"


def line_link(repo_type: Repository, file_url: str | None, line: int) -> str:
    """Markdown link to a line, or the bare line number.

    Example:
        >>> line_link(Repository.GITHUB, "https://github.com/o/r/blob/main/a.py", 7)
        '[7](https://github.com/o/r/blob/main/a.py#L7)'
    """
    anchor = line_anchor(repo_type, line)
    if file_url is None or anchor is None:
        return str(line)
    return f"[{line}]({file_url}{anchor})"


def vulnerability_url(report_link: str, finding: ScaFinding) -> str:
    """Deep link to a dependency vulnerability in the scanner web report."""
    return f"{report_link.rstrip('/')}/vulnerabilities/{quote(finding.id, safe='')}/vulnerabilityDetails"


def nvd_url(cve_name: str) -> str:
    return f"{NVD_URL_PREFIX}{cve_name}"
