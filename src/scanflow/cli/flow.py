"""AsyncClick CLI for local override and rendering runs.

Provides user-facing commands:
- override: Apply a config-as-code or flow override file to a scan request
- issue-body: Render one finding of a results file
- merge-comment: Render the aggregate merge/pull request comment
"""

from pathlib import Path

import asyncclick as click
import structlog
from pydantic import BaseModel, ValidationError

from scanflow.core.config import load_config
from scanflow.core.models import ScanRequest
from scanflow.core.override import ConfigAsCode, ConfigurationOverrider, FlowOverride
from scanflow.core.reporting import BodyFormat, export_html, render_issue_body, render_merge_comment
from scanflow.core.results import ScanResults

logger = structlog.get_logger()

_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)


def _load(model: type[BaseModel], path: Path):
    return model.model_validate_json(path.read_text(encoding="utf-8"))


@click.group()
@click.pass_context
async def cli(ctx):
    """scanflow - scan request overrides and finding reports"""
    ctx.ensure_object(dict)
    ctx.obj.setdefault("config", load_config())


@cli.command()
@click.argument("request_file", type=_FILE)
@click.argument("override_file", type=_FILE)
@click.option("--flow", "flow_override", is_flag=True,
              help="Treat the override file as a standalone flow override.")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write the overridden request here instead of stdout.")
@click.pass_context
async def override(ctx, request_file: Path, override_file: Path, flow_override: bool, output: Path | None):
    """Apply an override file to a scan request file.

    Examples:
        scanflow override request.json cx.config
        scanflow override request.json override.json --flow -o out.json
    """
    overrider = ConfigurationOverrider(ctx.obj["config"])
    report = None

    try:
        request = _load(ScanRequest, request_file)
        if flow_override:
            request = overrider.apply_flow_override(_load(FlowOverride, override_file), request)
        else:
            request, report = overrider.apply_config_as_code(_load(ConfigAsCode, override_file), request)
    except (ValidationError, ValueError) as e:
        click.echo(f"[-] Override failed: {e}")
        ctx.exit(1)

    if report is not None:
        click.echo(f"[+] Overridden properties: {report}")

    request_json = request.model_dump_json(by_alias=True, exclude_none=True, indent=2)
    if output is None:
        click.echo(request_json)
    else:
        output.write_text(request_json, encoding="utf-8")
        click.echo(f"[+] Request written to {output}")


@cli.command("issue-body")
@click.argument("request_file", type=_FILE)
@click.argument("results_file", type=_FILE)
@click.option("--format", "fmt", type=click.Choice([f.value for f in BodyFormat]),
              default=BodyFormat.MARKDOWN.value, help="Output format.")
@click.option("--index", "-i", default=0, type=int, help="Index of the finding to render.")
@click.pass_context
async def issue_body(ctx, request_file: Path, results_file: Path, fmt: str, index: int):
    """Render one finding as a ticket body.

    Example:
        scanflow issue-body request.json results.json --format html -i 2
    """
    try:
        request = _load(ScanRequest, request_file)
        results = _load(ScanResults, results_file)
    except ValidationError as e:
        click.echo(f"[-] Invalid input: {e}")
        ctx.exit(1)

    if not 0 <= index < len(results.xissues):
        click.echo(f"[-] No finding at index {index} ({len(results.xissues)} findings)")
        ctx.exit(1)

    click.echo(render_issue_body(results.xissues[index], request, ctx.obj["config"].flow, fmt))


@cli.command("merge-comment")
@click.argument("request_file", type=_FILE)
@click.argument("results_file", type=_FILE)
@click.option("--html", "html_path", default=None, help="Also export the comment as an HTML document.")
@click.pass_context
async def merge_comment(ctx, request_file: Path, results_file: Path, html_path: str | None):
    """Render the aggregate merge/pull request comment.

    Example:
        scanflow merge-comment request.json results.json --html preview.html
    """
    try:
        request = _load(ScanRequest, request_file)
        results = _load(ScanResults, results_file)
    except ValidationError as e:
        click.echo(f"[-] Invalid input: {e}")
        ctx.exit(1)

    comment = render_merge_comment(request, results, ctx.obj["config"].comment)
    click.echo(comment)

    if html_path:
        export_html(comment, html_path)
        logger.info("merge_comment_exported", path=html_path)
        click.echo(f"[+] HTML written to {html_path}")
