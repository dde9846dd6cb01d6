"""Configuration management for scanflow.

Loads settings from environment variables using pydantic models, with
sensible defaults for every value.

Two groups of settings are process-wide and may be changed at runtime by
config-as-code overrides: the dependency scanner (SCA) connection
settings and the severity thresholds used for pass/fail gating. Both are
only changed through ``Config.update_sca`` and ``Config.set_thresholds``,
which serialize writers on a shared lock and replace the affected
snapshot instead of mutating it.

Provides:
- FlowConfig: Rendering links, false-positive listing, gating thresholds
- ScaConfig: Dependency scanner connection settings
- CommentConfig: Merge/pull request comment formatting options
- Config: Aggregate of the above with locked update operations
- load_config: Factory function to create Config instance
"""

import os
import threading
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr

from scanflow.core.severity import Severity

DEFAULT_MITRE_URL = "https://cwe.mitre.org/data/definitions/{}.html"


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> list[str]:
    value = os.getenv(name, "")
    return [item.strip() for item in value.split(",") if item.strip()]


class FlowConfig(BaseModel):
    """Settings used when rendering findings and gating scans.

    Attributes:
        mitre_url: CWE guidance URL template, ``{}`` is replaced by the CWE id
        wiki_url: Internal guidance page linked from every finding
        list_false_positives: Whether to list lines marked not exploitable
        thresholds: Finding count ceilings per severity (None = no gating)
        bug_tracker_impl: Names of custom bug tracker implementations
    """

    mitre_url: str = Field(
        default_factory=lambda: os.getenv("SCANFLOW_MITRE_URL", DEFAULT_MITRE_URL)
    )
    wiki_url: str = Field(default_factory=lambda: os.getenv("SCANFLOW_WIKI_URL", ""))
    list_false_positives: bool = Field(
        default_factory=lambda: _env_flag("SCANFLOW_LIST_FALSE_POSITIVES")
    )
    thresholds: dict[Severity, int] | None = None
    bug_tracker_impl: list[str] = Field(
        default_factory=lambda: _env_list("SCANFLOW_BUG_TRACKER_IMPL")
    )


class ScaConfig(BaseModel):
    """Dependency scanner connection and policy settings."""

    app_url: str = Field(default_factory=lambda: os.getenv("SCA_APP_URL", ""))
    api_url: str = Field(default_factory=lambda: os.getenv("SCA_API_URL", ""))
    access_control_url: str = Field(
        default_factory=lambda: os.getenv("SCA_ACCESS_CONTROL_URL", "")
    )
    tenant: str = Field(default_factory=lambda: os.getenv("SCA_TENANT", ""))
    thresholds_severity: dict[Severity, int] | None = None
    thresholds_score: float | None = None
    filter_severity: list[str] = Field(default_factory=list)
    filter_score: float | None = None


class CommentConfig(BaseModel):
    """Formatting options for the aggregate merge/pull request comment."""

    cx_summary: bool = True
    cx_summary_header: str = "Checkmarx Scan Summary"
    flow_summary: bool = True
    flow_summary_header: str = "Violation Summary"
    detailed: bool = True
    detail_header: str = "Details"


class Config(BaseModel):
    """Application configuration.

    Attributes:
        flow: Rendering and gating settings
        sca: Dependency scanner settings
        comment: Merge comment formatting options
    """

    flow: FlowConfig = Field(default_factory=FlowConfig)
    sca: ScaConfig = Field(default_factory=ScaConfig)
    comment: CommentConfig = Field(default_factory=CommentConfig)

    _lock: Any = PrivateAttr(default_factory=threading.RLock)

    @property
    def lock(self):
        """Lock held by writers of the process-wide settings."""
        return self._lock

    def update_sca(self, **changes) -> ScaConfig:
        """Replace the dependency scanner settings with an updated copy.

        Readers that already hold the previous ``ScaConfig`` keep a
        consistent snapshot.

        Args:
            **changes: ScaConfig field names and their new values

        Returns:
            The new ScaConfig snapshot
        """
        with self._lock:
            self.sca = self.sca.model_copy(update=changes)
            return self.sca

    def set_thresholds(self, thresholds: dict[Severity, int]) -> None:
        """Install new gating thresholds."""
        with self._lock:
            self.flow = self.flow.model_copy(update={"thresholds": dict(thresholds)})


def load_config() -> Config:
    """Load configuration from environment variables.

    Returns:
        Populated Config instance
    """
    return Config()
