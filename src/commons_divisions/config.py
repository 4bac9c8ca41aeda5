"""Engine configuration loader with Pydantic v2 validation.

Loads and validates a ``divisions.yaml`` file into a typed
:class:`EngineConfig` object.  Unknown keys are allowed to support
future schema additions without breakage.

Example
-------
>>> loader = ConfigLoader()
>>> config = loader.load(Path("divisions.yaml"))
>>> config.settling_period_days
14.0
"""
from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

_DEFAULT_STAGE_DURATIONS: dict[str, int] = {
    "Second Reading": 2,
    "Report Stage": 1,
    "Report Debate": 2,
    "Final Division": 1,
    "Debate": 2,
    "Division": 1,
}


class StageConfig(BaseModel):
    """Durations, in simulated months, of each procedural stage."""

    model_config = {"extra": "allow"}

    durations: dict[str, int] = Field(default_factory=lambda: dict(_DEFAULT_STAGE_DURATIONS))
    amendment_division_months: int = Field(default=1, ge=1)

    @field_validator("durations")
    @classmethod
    def durations_must_be_non_negative(cls, values: dict[str, int]) -> dict[str, int]:
        for stage, months in values.items():
            if months < 0:
                raise ValueError(f"Stage '{stage}' duration must be >= 0, got {months}")
        merged = dict(_DEFAULT_STAGE_DURATIONS)
        merged.update(values)
        return merged


class AmendmentConfig(BaseModel):
    """Configuration for amendment escalation."""

    model_config = {"extra": "allow"}

    min_leader_supporters: int = Field(default=2, ge=1)


class DivisionConfig(BaseModel):
    """Configuration for division deadlines and tie handling."""

    model_config = {"extra": "allow"}

    real_time_hours: float | None = Field(default=None, gt=0)
    tie_grace_months: int | None = Field(default=None, ge=1)


class AuditConfig(BaseModel):
    """Configuration for the division audit trail."""

    model_config = {"extra": "allow"}

    enabled: bool = Field(default=False)
    log_path: Path = Field(default=Path("./divisions_audit.jsonl"))


class EngineConfig(BaseModel):
    """Top-level engine configuration schema.

    Loaded from ``divisions.yaml``.  All sections are optional and
    fall back to the conventions of the Commons simulation.
    """

    model_config = {"extra": "allow"}

    version: str = Field(default="1")
    settling_period_days: float = Field(default=14.0, ge=0)
    leader_roles: list[str] = Field(
        default_factory=lambda: ["prime-minister", "leader-opposition", "party-leader-3rd-4th"]
    )
    gatekeeper_offices: list[str] = Field(
        default_factory=lambda: ["prime-minister", "leader-commons"]
    )
    auto_abstain_parties: list[str] = Field(default_factory=list)
    stages: StageConfig = Field(default_factory=StageConfig)
    amendments: AmendmentConfig = Field(default_factory=AmendmentConfig)
    division: DivisionConfig = Field(default_factory=DivisionConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)

    def stage_months(self, stage: str) -> int | None:
        """Return the configured duration of *stage*, or ``None`` when it has no deadline."""
        return self.stages.durations.get(stage)


class ConfigLoader:
    """Loads and validates engine YAML configuration.

    Example
    -------
    >>> loader = ConfigLoader()
    >>> config = loader.load(Path("divisions.yaml"))
    """

    def load(self, config_path: Path) -> EngineConfig:
        """Load and validate an engine YAML file.

        Parameters
        ----------
        config_path:
            Path to the ``divisions.yaml`` file.

        Returns
        -------
        EngineConfig
            Validated configuration object.

        Raises
        ------
        FileNotFoundError:
            When the config file does not exist.
        ValueError:
            When the YAML content fails Pydantic validation.
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Engine config not found: {config_path}")

        with config_path.open("r", encoding="utf-8") as fh:
            raw: dict[str, object] = yaml.safe_load(fh) or {}

        return EngineConfig.model_validate(raw)

    def load_string(self, yaml_content: str) -> EngineConfig:
        """Load and validate a YAML string directly."""
        raw: dict[str, object] = yaml.safe_load(yaml_content) or {}
        return EngineConfig.model_validate(raw)

    def defaults(self) -> EngineConfig:
        """Return a default configuration with all defaults applied."""
        return EngineConfig()
