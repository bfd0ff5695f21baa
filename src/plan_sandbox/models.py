# models.py
# Data contracts for the attested plan runner.
# No business logic lives here — pure schema and validation.

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Written by the pipeline itself after the declared steps.
INTEGRITY_REPORT = "integrity-report.md"
SUMMARY = "summary.md"
RESERVED_OUTPUTS = (INTEGRITY_REPORT, SUMMARY)


def is_safe_component(value: object) -> bool:
    """True for a non-empty string usable as exactly one path component."""
    return (
        isinstance(value, str)
        and value not in ("", ".", "..")
        and not any(ch in value for ch in ("/", "\\", "\x00"))
    )


def _safe_component(value: str, what: str) -> str:
    if not is_safe_component(value):
        raise ValueError(f"{what} must be a single non-empty path component, got {value!r}")
    return value


class Attestation(BaseModel):
    """Detached integrity claim embedded in a plan."""

    model_config = ConfigDict(extra="allow")

    plan_hash: str | None = Field(default=None, description="Hex SHA-256 of the hash payload.")
    contract: str | None = Field(default=None, description="Field-selection contract the hash was computed under.")


class StepSpec(BaseModel):
    """A single generation step in a plan."""

    model_config = ConfigDict(extra="allow")

    id: int = Field(..., ge=1, description="1-based step index.")
    generator: str = Field(..., description="Generator name — must exist in the registry.")
    output: str = Field(..., description="Artifact filename written by this step.")
    description: str = Field(default="", description="Human-readable intent of this step.")
    args: dict[str, Any] = Field(default_factory=dict, description="Generator arguments.")

    @field_validator("output")
    @classmethod
    def _output_is_filename(cls, value: str) -> str:
        return _safe_component(value, "output")


class Plan(BaseModel):
    """
    An approved unit of work.

    Top-level fields outside the hash contract are kept as extras; they never
    affect attestation.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    plan_id: str
    skill_id: str
    skill_version: str
    inputs: dict[str, Any] = Field(default_factory=dict)
    constraints: dict[str, Any] = Field(default_factory=dict)
    steps: list[StepSpec] = Field(..., min_length=1)
    attestation: Attestation | None = None

    @field_validator("plan_id")
    @classmethod
    def _plan_id_is_dirname(cls, value: str) -> str:
        return _safe_component(value, "plan_id")

    @model_validator(mode="after")
    def _outputs_are_distinct(self) -> "Plan":
        seen: set[str] = set()
        for step in self.steps:
            if step.output in RESERVED_OUTPUTS:
                raise ValueError(f"step {step.id}: output {step.output!r} is reserved for the pipeline")
            if step.output in seen:
                raise ValueError(f"step {step.id}: output {step.output!r} is declared twice")
            seen.add(step.output)
        return self

    @property
    def outputs(self) -> list[str]:
        return [step.output for step in self.steps]


class ArtifactRecord(BaseModel):
    """One persisted artifact and the hash of its on-disk bytes."""

    plan_id: str
    filename: str
    path: str
    content_hash: str


class IntegrityReport(BaseModel):
    ok: bool
    missing: list[str] = Field(default_factory=list)


class RunState(str, Enum):
    LOADED = "LOADED"
    ATTESTED = "ATTESTED"
    RUNNING = "RUNNING"
    INTEGRITY_CHECKED = "INTEGRITY_CHECKED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class LogEntry(BaseModel):
    """Immutable audit line. Rendered once, appended once."""

    model_config = ConfigDict(frozen=True)

    timestamp: str
    kind: str = Field(..., description="START, ATTEST ok, ATTEST fail, STEP 01, END, ...")
    plan_id: str
    fields: dict[str, str] = Field(default_factory=dict)

    def render(self) -> str:
        parts = [f"[{self.timestamp}]", self.kind, f"plan_id={self.plan_id}"]
        parts.extend(f"{key}={value}" for key, value in self.fields.items())
        return " ".join(parts)


class RunResult(BaseModel):
    """Outcome of one pipeline run."""

    plan_id: str
    state: RunState
    attested_hash: str
    artifacts: list[ArtifactRecord] = Field(default_factory=list)
    integrity: IntegrityReport
    artifact_dir: str
    summary_path: str
