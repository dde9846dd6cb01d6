"""Configuration override engine.

Layers a config-as-code object, or a standalone flow override, onto a
scan request. The request is mutated in place and returned.

Config-as-code passes also update the process-wide dependency scanner
settings and gating thresholds held by ``Config``; the whole pass runs
under the config lock so concurrent passes cannot interleave.

Provides:
- ChangeReport: Ordered record of the fields an override pass changed
- ConfigurationOverrider: Applies override sources to scan requests
- resolve_project_name: Project name templating and sanitization
"""

import re

import structlog
from pydantic import ValidationError

from scanflow.core.config import Config
from scanflow.core.models import BugTrackerType, ScannerKind, ScanRequest
from scanflow.core.override.bugtracker import override_jira_fields, resolve_bug_tracker
from scanflow.core.override.filters import build_filter
from scanflow.core.override.sources import (
    ConfigAsCode,
    FlowOverride,
    OverrideSource,
    ScaOverride,
)
from scanflow.core.override.thresholds import resolve_thresholds
from scanflow.core.severity import Severity

logger = structlog.get_logger()

_PROJECT_NAME_INVALID = re.compile(r"[^a-zA-Z0-9\-_.]+")

# Override tokens naming the scanners a request is submitted to
SCANNER_TOKENS = {
    "cx": ScannerKind.SAST,
    "sca": ScannerKind.SCA,
}


def _format_value(value) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_format_value(v) for v in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{_format_value(k)}={_format_value(v)}" for k, v in value.items()) + "}"
    if isinstance(value, (Severity, ScannerKind)):
        return value.value
    return str(value)


class ChangeReport:
    """Fields changed by one override pass, in the order they were applied."""

    def __init__(self):
        self._entries: dict[str, str] = {}

    def record(self, name: str, value) -> None:
        self._entries[name] = _format_value(value)

    def items(self):
        return self._entries.items()

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __getitem__(self, name: str) -> str:
        return self._entries[name]

    def __len__(self) -> int:
        return len(self._entries)

    def __str__(self) -> str:
        return _format_value(self._entries)


def resolve_project_name(template: str, repo_name: str | None, branch: str | None) -> str:
    """Expand ``${repo}`` and ``${branch}`` and sanitize the result.

    Every run of characters outside ``[A-Za-z0-9-_.]`` becomes a single ``-``.

    Example:
        >>> resolve_project_name("${repo}-${branch}", "app", "feature/x")
        'app-feature-x'
    """
    project = template.replace("${repo}", repo_name or "").replace("${branch}", branch or "")
    return _PROJECT_NAME_INVALID.sub("-", project)


class ConfigurationOverrider:
    """Apply override sources to scan requests.

    Example:
        >>> overrider = ConfigurationOverrider(load_config())
        >>> request, report = overrider.apply_config_as_code(config_as_code, request)
    """

    def __init__(self, config: Config):
        """Initialize overrider.

        Args:
            config: Process-wide configuration updated by config-as-code passes
        """
        self.config = config

    def apply(self, source: OverrideSource | None, request: ScanRequest | None) -> ScanRequest | None:
        """Apply either override variant to a request."""
        if isinstance(source, ConfigAsCode):
            request, _ = self.apply_config_as_code(source, request)
            return request
        return self.apply_flow_override(source, request)

    def apply_config_as_code(
        self, config_as_code: ConfigAsCode | None, request: ScanRequest | None
    ) -> tuple[ScanRequest | None, ChangeReport]:
        """Layer a config-as-code object onto a scan request.

        Does nothing when either argument is missing or the object is
        explicitly inactive. A malformed embedded flow override is logged
        and ignored; fields resolved before it stay applied.

        Args:
            config_as_code: Parsed config-as-code object
            request: Scan request to mutate

        Returns:
            Tuple of (request, change_report)

        Raises:
            ValueError: If the embedded override names an unknown bug tracker
        """
        report = ChangeReport()
        if config_as_code is None or request is None or config_as_code.active is False:
            return request, report

        with self.config.lock:
            self._override_main_properties(config_as_code, request, report)

            raw_flow_override = config_as_code.embedded_flow_override
            if raw_flow_override is not None:
                try:
                    flow_override = FlowOverride.model_validate(raw_flow_override)
                except ValidationError as e:
                    logger.warning("embedded_flow_override_invalid", error=str(e))
                else:
                    self._apply_embedded_flow_override(flow_override, request, report)

        logger.info("config_as_code_applied", overrides=str(report))
        return request, report

    def apply_flow_override(
        self, override: FlowOverride | None, request: ScanRequest | None
    ) -> ScanRequest | None:
        """Apply a standalone (blob/file) flow override.

        Narrower than config-as-code: JIRA fields of an existing JIRA
        tracker, application, branches, emails and filters only. The bug
        tracker type, thresholds and scanner settings are not touched.
        """
        if override is None or request is None:
            return request

        bug_tracker = request.bug_tracker
        if bug_tracker is not None and bug_tracker.type == BugTrackerType.JIRA and override.jira is not None:
            override_jira_fields(override.jira, bug_tracker)

        self._override_request_fields(override, request, ChangeReport())
        return request

    def _override_main_properties(
        self, config_as_code: ConfigAsCode, request: ScanRequest, report: ChangeReport
    ) -> None:
        if config_as_code.project and config_as_code.project.strip():
            project = resolve_project_name(config_as_code.project, request.repo_name, request.branch)
            request.project = project
            report.record("project", project)

        if config_as_code.team and config_as_code.team.strip():
            request.team = config_as_code.team
            report.record("team", config_as_code.team)

        sast = config_as_code.sast
        if sast is not None:
            if sast.incremental is not None:
                request.incremental = sast.incremental
                report.record("incremental", sast.incremental)
            if sast.force_scan is not None:
                request.force_scan = sast.force_scan
                report.record("force scan", sast.force_scan)
            if sast.preset is not None:
                request.scan_preset = sast.preset
                request.scan_preset_override = True
                report.record("scan preset", sast.preset)
            if sast.folder_excludes is not None:
                request.exclude_folders = sast.folder_excludes.split(",")
                report.record("exclude folders", sast.folder_excludes)
            if sast.file_excludes is not None:
                request.exclude_files = sast.file_excludes.split(",")
                report.record("exclude files", sast.file_excludes)

        if config_as_code.sca is not None:
            self._override_sca_settings(config_as_code.sca, report)

    def _override_sca_settings(self, sca: ScaOverride, report: ChangeReport) -> None:
        changes = {}
        scalar_settings = [
            ("access_control_url", "accessControlUrl"),
            ("api_url", "apiUrl"),
            ("app_url", "appUrl"),
            ("tenant", "tenant"),
            ("thresholds_score", "thresholdsScore"),
            ("filter_severity", "filterSeverity"),
            ("filter_score", "filterScore"),
        ]
        for field_name, report_name in scalar_settings:
            value = getattr(sca, field_name)
            if value is not None:
                changes[field_name] = value
                report.record(report_name, value)

        if sca.thresholds_severity is not None:
            try:
                thresholds = {Severity(k): v for k, v in sca.thresholds_severity.items()}
            except ValueError as e:
                logger.warning("sca_thresholds_severity_rejected", error=str(e))
            else:
                changes["thresholds_severity"] = thresholds
                report.record("thresholdsSeverity", thresholds)

        if changes:
            self.config.update_sca(**changes)

    def _apply_embedded_flow_override(
        self, override: FlowOverride, request: ScanRequest, report: ChangeReport
    ) -> None:
        bug_tracker, overridden = resolve_bug_tracker(
            override, request, self.config.flow.bug_tracker_impl
        )
        # JIRA fields apply even when the type override itself was refused
        if bug_tracker.type == BugTrackerType.JIRA and override.jira is not None:
            override_jira_fields(override.jira, bug_tracker)
        request.bug_tracker = bug_tracker
        if overridden:
            report.record("bug tracker", override.bug_tracker)

        self._override_request_fields(override, request, report)

        thresholds = resolve_thresholds(override.thresholds)
        if thresholds is not None:
            self.config.set_thresholds(thresholds)
            report.record("thresholds", thresholds)

        if override.vulnerability_scanners is not None:
            scanners: list[ScannerKind] = []
            for token in override.vulnerability_scanners:
                kind = SCANNER_TOKENS.get(token.lower())
                if kind is not None and kind not in scanners:
                    scanners.append(kind)
            request.vulnerability_scanners = scanners
            report.record("vulnerabilityScanners", scanners)

    def _override_request_fields(
        self, override: FlowOverride, request: ScanRequest, report: ChangeReport
    ) -> None:
        """Fields shared by both override variants."""
        if override.application and override.application.strip():
            request.application = override.application
            report.record("application", override.application)

        if override.branches:
            request.active_branches = override.branches
            report.record("active branches", override.branches)

        # An explicit empty list clears the recipients, None leaves them alone
        if override.emails is not None:
            request.email = override.emails or None
            report.record("emails", override.emails)

        if override.filters is not None:
            filters = override.filters
            request.filter = build_filter(
                severity=filters.severity,
                cwe=filters.cwe,
                category=filters.category,
                status=filters.status,
            )
            report.record("filters", request.filter.describe())
