"""Unit tests for CLI commands."""

import json

import pytest
from asyncclick.testing import CliRunner

from scanflow.cli.flow import cli
from scanflow.core.config import CommentConfig, Config, FlowConfig, ScaConfig


@pytest.fixture
def config():
    return Config(
        flow=FlowConfig(mitre_url="https://cwe.mitre.org/data/definitions/{}.html", wiki_url=""),
        sca=ScaConfig(tenant="old"),
        comment=CommentConfig(),
    )


@pytest.fixture
def request_file(tmp_path):
    path = tmp_path / "request.json"
    path.write_text(json.dumps({
        "application": "app",
        "repoName": "app",
        "repoUrl": "https://github.com/org/app.git",
        "repoType": "GITHUB",
        "branch": "main",
        "bugTracker": {"type": "JIRA", "assignee": "alice"},
    }))
    return path


@pytest.fixture
def results_file(tmp_path):
    path = tmp_path / "results.json"
    path.write_text(json.dumps({
        "link": "https://cx.example.com/scan/1",
        "sastResults": True,
        "scanSummary": {"highSeverity": 1},
        "xIssues": [{
            "vulnerability": "SQL_Injection",
            "severity": "High",
            "cwe": "89",
            "filename": "src/db.py",
            "link": "https://cx.example.com/result/1",
            "details": {"12": {"codeSnippet": "execute(q)"}},
        }],
    }))
    return path


@pytest.mark.asyncio
async def test_override_config_as_code(tmp_path, config, request_file):
    """Test that override applies a config-as-code file and writes the request."""
    override_file = tmp_path / "cx.config"
    override_file.write_text(json.dumps({
        "project": "${repo}-${branch}",
        "sca": {"tenant": "acme"},
        "cxFlow": {"jira": {"assignee": "bob"}, "emails": ["sec@example.com"]},
    }))
    output = tmp_path / "out.json"
    runner = CliRunner()

    result = await runner.invoke(
        cli, ["override", str(request_file), str(override_file), "-o", str(output)], obj={"config": config}
    )

    assert result.exit_code == 0
    assert "[+] Overridden properties: {project=app-main" in result.output
    assert f"[+] Request written to {output}" in result.output

    request = json.loads(output.read_text())
    assert request["project"] == "app-main"
    assert request["bugTracker"]["assignee"] == "bob"
    assert request["email"] == ["sec@example.com"]
    assert config.sca.tenant == "acme"


@pytest.mark.asyncio
async def test_override_flow_file(tmp_path, config, request_file):
    """Test the --flow variant leaves the bug tracker type alone."""
    override_file = tmp_path / "override.json"
    override_file.write_text(json.dumps({"application": "billing", "bugTracker": "GITHUBISSUE"}))
    output = tmp_path / "out.json"
    runner = CliRunner()

    result = await runner.invoke(
        cli,
        ["override", str(request_file), str(override_file), "--flow", "-o", str(output)],
        obj={"config": config},
    )

    assert result.exit_code == 0
    assert "Overridden properties" not in result.output
    request = json.loads(output.read_text())
    assert request["application"] == "billing"
    assert request["bugTracker"]["type"] == "JIRA"


@pytest.mark.asyncio
async def test_override_invalid_file(tmp_path, config, request_file):
    """Test that a malformed override file fails with a message."""
    override_file = tmp_path / "cx.config"
    override_file.write_text(json.dumps({"sast": "nope"}))
    runner = CliRunner()

    result = await runner.invoke(
        cli, ["override", str(request_file), str(override_file)], obj={"config": config}
    )

    assert result.exit_code == 1
    assert "[-] Override failed:" in result.output


@pytest.mark.asyncio
async def test_override_unknown_bug_tracker(tmp_path, config, request_file):
    """Test that an unknown bug tracker name fails the command."""
    override_file = tmp_path / "cx.config"
    override_file.write_text(json.dumps({"cxFlow": {"bugTracker": "Trello"}}))
    runner = CliRunner()

    result = await runner.invoke(
        cli, ["override", str(request_file), str(override_file)], obj={"config": config}
    )

    assert result.exit_code == 1
    assert "Unknown bug tracker 'Trello'" in result.output


@pytest.mark.asyncio
async def test_issue_body_text(config, request_file, results_file):
    """Test issue-body renders the selected finding."""
    runner = CliRunner()

    result = await runner.invoke(
        cli, ["issue-body", str(request_file), str(results_file), "--format", "text"], obj={"config": config}
    )

    assert result.exit_code == 0
    assert "SQL_Injection issue exists @ src/db.py in branch main" in result.output
    assert "Severity: High" in result.output
    assert "Lines: 12" in result.output


@pytest.mark.asyncio
async def test_issue_body_markdown_links(config, request_file, results_file):
    """Test the default markdown format links lines on GitHub."""
    runner = CliRunner()

    result = await runner.invoke(cli, ["issue-body", str(request_file), str(results_file)], obj={"config": config})

    assert result.exit_code == 0
    assert "[12](https://github.com/org/app/blob/main/src/db.py#L12)" in result.output


@pytest.mark.asyncio
async def test_issue_body_index_out_of_range(config, request_file, results_file):
    """Test issue-body rejects an index past the last finding."""
    runner = CliRunner()

    result = await runner.invoke(
        cli, ["issue-body", str(request_file), str(results_file), "-i", "3"], obj={"config": config}
    )

    assert result.exit_code == 1
    assert "[-] No finding at index 3 (1 findings)" in result.output


@pytest.mark.asyncio
async def test_merge_comment_with_html(tmp_path, config, request_file, results_file):
    """Test merge-comment prints the comment and exports HTML."""
    html_path = tmp_path / "comment.html"
    runner = CliRunner()

    result = await runner.invoke(
        cli,
        ["merge-comment", str(request_file), str(results_file), "--html", str(html_path)],
        obj={"config": config},
    )

    assert result.exit_code == 0
    assert "### Checkmarx SAST Scan Summary" in result.output
    assert "|High|SQL_Injection|src/db.py|" in result.output
    assert f"[+] HTML written to {html_path}" in result.output
    assert "<h3>Checkmarx SAST Scan Summary</h3>" in html_path.read_text(encoding="utf-8")


@pytest.mark.asyncio
async def test_merge_comment_invalid_results(tmp_path, config, request_file):
    """Test merge-comment rejects a malformed results file."""
    results_file = tmp_path / "results.json"
    results_file.write_text(json.dumps({"xIssues": "not a list"}))
    runner = CliRunner()

    result = await runner.invoke(
        cli, ["merge-comment", str(request_file), str(results_file)], obj={"config": config}
    )

    assert result.exit_code == 1
    assert "[-] Invalid input:" in result.output
