# pipeline.py
# Attested plan runner.
#
# The PlanRunner owns all control flow. Generators are passive producers of
# text; they never see the filesystem or the audit log.
#
# Control flow:
#   read plan → START → attestation gate → schema validation
#   → declared steps in order → integrity check → integrity report
#   → summary → END
#
# The plan body is only trusted after the attestation gate: schema validation
# runs on the verified document, never before it. Every transition appends
# exactly one audit line before the next begins. Nothing written before a
# failure is rolled back.

import json
import threading
import weakref
from pathlib import Path
from typing import Any, Callable, Mapping

from plan_sandbox import display
from plan_sandbox.artifacts import ArtifactWriteError, ArtifactWriter
from plan_sandbox.attestation import (
    HASH_CONTRACT,
    AttestationError,
    HashMismatchError,
    PlanWriteError,
    verify,
)
from plan_sandbox.audit import AuditLog, AuditLogError, FileAuditLog, now_iso
from plan_sandbox.canonical import CanonicalizationError, canonical_json
from plan_sandbox.config import RunnerConfig
from plan_sandbox.generators import GENERATORS, Generator
from plan_sandbox.integrity import IntegrityCheckError, check, render_report
from plan_sandbox.loader import (
    PlanNotFoundError,
    PlanParseError,
    parse_plan,
    read_plan_document,
)
from plan_sandbox.models import (
    INTEGRITY_REPORT,
    SUMMARY,
    ArtifactRecord,
    IntegrityReport,
    LogEntry,
    Plan,
    RunResult,
    RunState,
    StepSpec,
    is_safe_component,
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class StepGenerationError(Exception):
    """Raised when a generator is unknown, raises, or returns non-text."""


# Everything that ends a run. The CLI turns these into exit code 1.
FATAL_ERRORS: tuple[type[Exception], ...] = (
    PlanNotFoundError,
    PlanParseError,
    CanonicalizationError,
    AttestationError,
    PlanWriteError,
    StepGenerationError,
    ArtifactWriteError,
    IntegrityCheckError,
    AuditLogError,
)


# ---------------------------------------------------------------------------
# Per-plan-id locking
# ---------------------------------------------------------------------------

# Weak values: an entry lives only while some run holds its lock.
_PLAN_LOCKS: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
_PLAN_LOCKS_GUARD = threading.Lock()


def plan_lock(plan_id: str) -> threading.Lock:
    """Process-wide mutex for one plan id. Different ids never contend."""
    with _PLAN_LOCKS_GUARD:
        lock = _PLAN_LOCKS.get(plan_id)
        if lock is None:
            lock = threading.Lock()
            _PLAN_LOCKS[plan_id] = lock
        return lock


def log_label(document: Mapping[str, Any]) -> str:
    """
    plan_id as written in the audit log before the plan is trusted.

    A safe id is used as-is; anything else is logged JSON-quoted so it can
    never be mistaken for a path. Artifact paths only ever come from the
    validated Plan.
    """
    plan_id = document.get("plan_id")
    if is_safe_component(plan_id):
        return plan_id
    return json.dumps(plan_id, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def render_summary(plan: Plan, attested_hash: str, report: IntegrityReport) -> str:
    """Human-readable run summary. Deterministic: no timestamps."""
    outputs = plan.outputs + [INTEGRITY_REPORT, SUMMARY]
    lines = [
        "# Summary (DEMO / DRAFT)",
        "",
        f"Plan: {plan.plan_id}",
        f"Skill: {plan.skill_id} v{plan.skill_version}",
        f"Attested Hash: {attested_hash}",
        f"Hash Contract: {HASH_CONTRACT}",
        "",
        "Outputs generated:",
        *[f"- {name}" for name in outputs],
        "",
    ]
    if report.ok:
        lines.append("Integrity: ok")
    else:
        lines.append("Integrity: WARNING — required artifacts missing:")
        lines.extend(f"- {name}" for name in report.missing)

    if plan.constraints:
        lines += ["", "Constraints:"]
        lines.extend(f"- {key}: {canonical_json(plan.constraints[key])}" for key in sorted(plan.constraints))

    lines += [
        "",
        "Limits:",
        "- No outreach",
        "- No deployment",
        "- No real contact data",
        "- No proof claims (certs/awards/metrics)",
    ]
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# PlanRunner
# ---------------------------------------------------------------------------


class PlanRunner:
    """
    Executes one attested plan at a time.

    Example:
        runner = PlanRunner(
            artifacts_root="artifacts",
            audit_log=FileAuditLog("logs/audit.log"),
        )
        result = runner.run("plans/PLAN-0001.json")
    """

    def __init__(
        self,
        artifacts_root: str | Path,
        audit_log: AuditLog,
        generators: Mapping[str, Generator] | None = None,
        strict_integrity: bool = False,
        clock: Callable[[], str] = now_iso,
    ) -> None:
        self._writer = ArtifactWriter(artifacts_root)
        self._audit = audit_log
        self._generators = dict(GENERATORS if generators is None else generators)
        self._strict_integrity = strict_integrity
        self._clock = clock
        self.state: RunState | None = None

    @classmethod
    def from_config(
        cls, config: RunnerConfig, generators: Mapping[str, Generator] | None = None
    ) -> "PlanRunner":
        return cls(
            artifacts_root=config.artifacts_root,
            audit_log=FileAuditLog(config.audit_log_path),
            generators=generators,
            strict_integrity=config.strict_integrity,
        )

    # ------------------------------------------------------------------
    # Audit helpers
    # ------------------------------------------------------------------

    def _log(self, kind: str, plan_id: str, **fields: str) -> None:
        self._audit.append(
            LogEntry(timestamp=self._clock(), kind=kind, plan_id=plan_id, fields=fields)
        )

    def _log_step(self, number: int, plan_id: str, record: ArtifactRecord, **extra: str) -> None:
        self._log(
            f"STEP {number:02d}",
            plan_id,
            output=record.path,
            hash=record.content_hash,
            **extra,
        )

    # ------------------------------------------------------------------
    # Attestation gate
    # ------------------------------------------------------------------

    def _attest(self, document: dict, label: str) -> str:
        try:
            digest = verify(document)
        except HashMismatchError as exc:
            self._log("ATTEST fail", label, expected=exc.expected, actual=exc.actual)
            display.attest_fail("Plan hash mismatch", expected=exc.expected, actual=exc.actual)
            raise
        except AttestationError as exc:
            self._log("ATTEST fail", label, reason=type(exc).__name__)
            display.attest_fail(str(exc))
            raise

        self._log("ATTEST ok", label, hash=digest)
        display.attest_ok(digest)
        return digest

    # ------------------------------------------------------------------
    # Step execution
    # ------------------------------------------------------------------

    def _generate(self, plan: Plan, step: StepSpec) -> str:
        generator = self._generators.get(step.generator)
        if generator is None:
            raise StepGenerationError(
                f"Step {step.id}: generator {step.generator!r} is not in the registry."
            )
        try:
            content = generator(plan, step)
        except Exception as exc:
            raise StepGenerationError(f"Step {step.id} ({step.generator}) failed: {exc}") from exc
        if not isinstance(content, str):
            raise StepGenerationError(
                f"Step {step.id} ({step.generator}) returned {type(content).__name__}, expected str."
            )
        return content

    def execute_steps(self, plan: Plan, total: int) -> list[ArtifactRecord]:
        """
        Run declared steps strictly in list order.

        Each output is persisted and logged before the next step starts. The
        first failure propagates; earlier artifacts stay on disk.
        """
        records: list[ArtifactRecord] = []

        for number, step in enumerate(plan.steps, start=1):
            content = self._generate(plan, step)
            record = self._writer.write(plan.plan_id, step.output, content)
            self._log_step(number, plan.plan_id, record, step_id=str(step.id), generator=step.generator)
            display.step_written(number, total, step.description or step.generator, record)
            records.append(record)

        return records

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self, plan_path: str | Path) -> RunResult:
        """
        Full pipeline for one plan file.

        Raises one of FATAL_ERRORS on failure. A plan file that cannot be
        read or is not JSON fails before any audit line or artifact is
        written.
        """
        self.state = None
        try:
            document = read_plan_document(plan_path)
        except (PlanNotFoundError, PlanParseError):
            self.state = RunState.FAILED
            raise
        self.state = RunState.LOADED

        label = log_label(document)
        with plan_lock(label):
            return self._run_loaded(str(plan_path), document, label)

    def _fail(self, label: str, exc: Exception) -> None:
        self.state = RunState.FAILED
        if isinstance(exc, AuditLogError):
            # The log itself is broken; nothing more can be recorded.
            return
        self._log(
            "END",
            label,
            status="failed",
            error=type(exc).__name__,
            message=json.dumps(str(exc), ensure_ascii=False),
        )

    def _run_loaded(self, plan_path: str, document: dict, label: str) -> RunResult:
        try:
            self._log("START", label, plan_path=plan_path)
            display.run_start(label, plan_path)

            # ── Attestation gate ─────────────────────────────────────
            digest = self._attest(document, label)
            self.state = RunState.ATTESTED

            # ── Schema (verified document only) ──────────────────────
            plan = parse_plan(document)
            plan_id = plan.plan_id
            total = len(plan.steps) + 2
            display.plan_parsed(plan)

            # ── Declared steps ───────────────────────────────────────
            self.state = RunState.RUNNING
            records = self.execute_steps(plan, total)
            number = len(records)

            # ── Integrity check ──────────────────────────────────────
            report = check(self._writer.plan_dir(plan_id), plan.outputs)
            self.state = RunState.INTEGRITY_CHECKED
            display.integrity_result(report)

            number += 1
            record = self._writer.write(plan_id, INTEGRITY_REPORT, render_report(report))
            self._log_step(
                number,
                plan_id,
                record,
                ok=str(report.ok).lower(),
                missing=json.dumps(report.missing, separators=(",", ":")),
            )
            display.step_written(number, total, "integrity report", record)
            records.append(record)

            if self._strict_integrity and not report.ok:
                raise IntegrityCheckError(
                    f"Required artifacts missing for {plan_id}: {', '.join(report.missing)}"
                )

            # ── Summary ──────────────────────────────────────────────
            number += 1
            record = self._writer.write(plan_id, SUMMARY, render_summary(plan, digest, report))
            self._log_step(number, plan_id, record)
            display.step_written(number, total, "summary", record)
            records.append(record)

            self._log("END", plan_id, status="success")
        except FATAL_ERRORS as exc:
            self._fail(label, exc)
            raise

        self.state = RunState.COMPLETED

        return RunResult(
            plan_id=plan_id,
            state=self.state,
            attested_hash=digest,
            artifacts=records,
            integrity=report,
            artifact_dir=str(self._writer.plan_dir(plan_id)),
            summary_path=record.path,
        )
