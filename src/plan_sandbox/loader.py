# loader.py
# Plan file reading. Nothing here touches the audit log or artifact tree —
# a plan that cannot be read leaves no side effects behind.

import json
import math
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from plan_sandbox.models import Plan


class PlanNotFoundError(Exception):
    """Raised when the plan path does not point at a readable file."""


class PlanParseError(Exception):
    """Raised when plan content is not valid JSON or does not match the schema."""


def _reject_constant(name: str) -> None:
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number {text} is out of range")
    return value


def read_plan_document(path: str | Path) -> dict[str, Any]:
    """
    Read a plan file into its raw JSON mapping.

    The raw mapping is what gets hashed; schema defaults never leak into it.
    A leading UTF-8 BOM is ignored.
    """
    path = Path(path)
    if not path.is_file():
        raise PlanNotFoundError(f"Plan file not found: {path}")

    try:
        raw = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise PlanParseError(f"Plan file is not UTF-8 text: {path}") from exc
    except OSError as exc:
        raise PlanNotFoundError(f"Plan file not readable: {path} ({exc})") from exc

    try:
        document = json.loads(raw, parse_float=_finite_float, parse_constant=_reject_constant)
    except ValueError as exc:
        raise PlanParseError(f"Invalid JSON in plan file: {path} ({exc})") from exc

    if not isinstance(document, dict):
        raise PlanParseError(f"Plan file must contain a JSON object: {path}")
    return document


def parse_plan(document: dict[str, Any]) -> Plan:
    """Validate a document that has already passed the attestation gate."""
    try:
        return Plan.model_validate(document)
    except ValidationError as exc:
        raise PlanParseError(f"Plan does not match schema: {exc}") from exc
