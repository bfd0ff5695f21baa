# integrity.py
# Post-execution completeness sweep. Read-only; never raises for a missing file.

from pathlib import Path
from typing import Iterable

from plan_sandbox.models import IntegrityReport


class IntegrityCheckError(Exception):
    """Raised by the pipeline in strict mode when required artifacts are missing."""


def check(plan_dir: str | Path, required: Iterable[str]) -> IntegrityReport:
    """Report which of `required` are not regular files under `plan_dir`."""
    plan_dir = Path(plan_dir)
    missing = [name for name in required if not (plan_dir / name).is_file()]
    return IntegrityReport(ok=not missing, missing=missing)


def render_report(report: IntegrityReport) -> str:
    missing = ", ".join(report.missing) if report.missing else "none"
    return f"# Integrity Report\n\nok={str(report.ok).lower()}\nmissing={missing}\n"
